## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from .types import Operation, Stack, nil, MARK, Category, NamedRef, DistributionApplication, \
                   ConstraintApplication, AlignmentLiteral, Sequence
from .errors import StackUnderflowError, IndexOutOfRangeError, TypeMismatchError, UndefinedNameError
from .operators import op_alignment
from .validating import is_number


def _pop_name(this: Operation, stack: Stack) -> tuple[Stack, str]:
    if stack is nil:
        raise StackUnderflowError(f"`{this.name}` needs a name on top of the stack, but stack is empty.",
                                  depth=0, needed=1, sp_op=this)
    base, name = stack
    if not isinstance(name, str):
        raise TypeMismatchError(f"`{this.name}` expects a text name on top of the stack, got {name!r}.", sp_op=this)
    return base, name

def _pop_operand(this: Operation, stack: Stack, expected: str) -> tuple[Stack, object]:
    if stack is nil:
        raise StackUnderflowError(f"`{this.name}` needs {expected} below the name, but only the name was given.",
                                  depth=1, needed=2, sp_op=this)
    base, value = stack
    if value is MARK:
        raise TypeMismatchError(f"`{this.name}` found an unterminated `[` where {expected} was expected.", sp_op=this)
    return base, value


def comb_mark(this: Operation, ctx, stack: Stack):
    """Opens a vector build; everything pushed until the matching `]` becomes one vector."""
    return Stack(stack, MARK)

def comb_vector(this: Operation, ctx, stack: Stack):
    items, current = [], stack
    while current is not nil:
        current, head = current
        if head is MARK:
            return Stack(current, list(reversed(items)))
        items.append(head)
    raise StackUnderflowError("`]` found no matching `[` on the stack.", depth=len(items), needed=len(items) + 1, sp_op=this)

def comb_pick(this: Operation, ctx, stack: Stack):
    """Copies the item `n` deep (not counting `n` itself) to the top; `0 pick` is `dup`.

    : (xn ... x0 n -- xn ... x0 xn)
    """
    if stack is nil:
        raise StackUnderflowError("`pick` needs an index on the stack.", depth=0, needed=1, sp_op=this)
    base, n = stack
    if not is_number(n) or not float(n).is_integer():
        raise TypeMismatchError(f"`pick` expects an integer index on top of the stack, got {n!r}.", sp_op=this)
    if not 0 <= (n := int(n)) < (depth := base.depth()):
        raise IndexOutOfRangeError(f"`pick` index {n} is out of range for {depth} item(s) below it.", sp_op=this)
    current = base
    for _ in range(n):
        current = current.tail
    return Stack(base, current.head)


def comb_var(this: Operation, ctx, stack: Stack):
    base, name = _pop_name(this, stack)
    if name not in ctx.environment:
        raise UndefinedNameError(f"`var` refers to `{name}`, which is not bound yet.", sp_op=this, sp_token=name)
    return Stack(base, NamedRef(name))

def comb_sample(this: Operation, ctx, stack: Stack):
    base, name = _pop_name(this, stack)
    base, value = _pop_operand(this, base, 'a distribution')
    if not isinstance(value, DistributionApplication):
        raise TypeMismatchError(f"`~` binds `{name}` to a distribution, got {value!r}.", sp_op=this, sp_token=name)
    ctx.environment.bind(name, Category.RANDOM_VARIABLE, value)
    return base

def comb_assign(this: Operation, ctx, stack: Stack):
    base, name = _pop_name(this, stack)
    base, value = _pop_operand(this, base, 'a value')
    category = Category.CONSTRAINT if isinstance(value, ConstraintApplication) else Category.DETERMINISTIC
    ctx.environment.bind(name, category, value)
    return base

def comb_constraint(this: Operation, ctx, stack: Stack):
    base, name = _pop_name(this, stack)
    base, value = _pop_operand(this, base, 'a constraint')
    if not isinstance(value, ConstraintApplication):
        raise TypeMismatchError(f"`constraint` binds `{name}` to a constraint, got {value!r}.", sp_op=this, sp_token=name)
    ctx.environment.bind(name, Category.CONSTRAINT, value)
    return base

def comb_observe(this: Operation, ctx, stack: Stack):
    base, name = _pop_name(this, stack)
    base, data = _pop_operand(this, base, 'an alignment')
    if isinstance(data, list) and data and all(isinstance(s, Sequence) for s in data):
        data = op_alignment(data)
    if not isinstance(data, AlignmentLiteral):
        raise TypeMismatchError(f"`observe` expects an alignment for `{name}`, got {data!r}.", sp_op=this, sp_token=name)
    ctx.environment.observe(name, data)
    return base
