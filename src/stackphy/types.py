## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import enum
from typing import Any
from collections import namedtuple
from dataclasses import dataclass, field

class stack_list(list): pass


# Stack type is a namedtuple to save memory, yet provide tail/head accessors.
class Stack(namedtuple('Stack', ['tail', 'head'])):
    __slots__ = ()
    _nil_singleton = None

    def __new__(cls, tail, head):
        if tail is None and head is None:
            # Only one singleton creation is allowed, and it's the one just below.
            if cls._nil_singleton is None:
                self = super(Stack, cls).__new__(cls, tail, head)
                cls._nil_singleton = self
                return self
            # By convention, all other code should use `nil` explicitly.
            raise ValueError("Use the canonical `nil` instance for empty stacks")
        return super(Stack, cls).__new__(cls, tail, head)

    def __repr__(self):
        if self is nil:
            return "< nil >"

        items = []
        current = self
        while current is not nil:
            items.append(repr(current.head))
            current = current.tail
        return "< " + " ".join(reversed(items)) + " >"

    def __bool__(self):
        raise TypeError("Stack truth value is ambiguous; compare with `is nil` or `is not nil`.")

    def pushed(self, *items):
        """Push items in order of tail (left) to head (right) onto new Stack and return."""
        stack = self
        for it in items:
            stack = Stack(stack, it)
        return stack

    def depth(self) -> int:
        count, current = 0, self
        while current is not nil:
            count, current = count + 1, current.tail
        return count


# All checks for empty stack must be done by comparing to this.
nil = Stack(None, None)


class Operation:
    FUNCTION = 1        # Pure Python function, stack effect inferred from annotations.
    COMBINATOR = 2      # Needs the evaluation context: bindings, vectors, pick.
    CONSTRUCTOR = 3     # Schema-driven distribution, function, constraint or math.
    EXECUTE = 4         # User-defined procedure, replayed from its body.

    def __init__(self, type, ptr, name, meta={}):
        self.type = type
        self.ptr = ptr
        self.name = name
        self.meta = meta

    def __hash__(self):
        return hash((self.type, self.name))

    def __eq__(self, other):
        return isinstance(other, Operation) and self.type == other.type and self.ptr == other.ptr

    def __repr__(self):
        return f"{self.name}"


class Statement(namedtuple('Statement', ['kind', 'value', 'meta'])):
    """One item of the program: a literal to push, an operator token, or a procedure definition."""
    __slots__ = ()

    LITERAL = 'literal'
    OPERATOR = 'operator'
    DEFINITION = 'definition'

    @classmethod
    def literal(cls, value, meta=None):
        return cls(cls.LITERAL, value, meta or {})

    @classmethod
    def operator(cls, token: str, meta=None):
        return cls(cls.OPERATOR, token, meta or {})

    @classmethod
    def definition(cls, procedure: "ProcedureDef", meta=None):
        return cls(cls.DEFINITION, procedure, meta or procedure.meta)

    def __repr__(self):
        return repr(self.value) if self.kind == self.LITERAL else str(self.value)


class _Marker:
    """Vector-build delimiter pushed by `[` and consumed by `]`."""
    def __repr__(self): return '['

MARK = _Marker()


@dataclass(frozen=True)
class NamedRef:
    name: str

    def __repr__(self): return f'<{self.name}>'


@dataclass(frozen=True)
class DistributionApplication:
    kind: str                     # Export type name, e.g. "LogNormal".
    generates: str                # Type tag of the sampled value, e.g. "Real" or "Tree".
    parameters: dict[str, Any]    # Ordered as declared by the schema.

    def __repr__(self): return f'{self.kind}({_format_args(self.parameters)})'


@dataclass(frozen=True)
class FunctionCall:
    function: str
    returns: str
    arguments: dict[str, Any]

    def __repr__(self): return f'{self.function}({_format_args(self.arguments)})'


@dataclass(frozen=True)
class ConstraintApplication:
    kind: str
    operands: dict[str, Any]

    def __repr__(self): return f'{self.kind}({_format_args(self.operands)})'


@dataclass(frozen=True)
class Sequence:
    taxon: str
    residues: str

    def __repr__(self): return f'{self.taxon}:{self.residues}'


@dataclass(frozen=True)
class AlignmentLiteral:
    sequences: dict[str, str]     # taxon -> aligned residues, in declaration order.

    def __repr__(self): return f'≪alignment:{len(self.sequences)}≫'


@dataclass
class ProcedureDef:
    name: str
    inputs: list[str]             # Declared stack-effect, documentation only unless isolated.
    outputs: list[str]
    body: list[Statement]
    meta: dict = field(default_factory=dict)

    @property
    def arity(self) -> int:
        return len(self.inputs)


def _format_args(args: dict) -> str:
    return ', '.join(f'{k}={v!r}' for k, v in args.items())


class Category(enum.Enum):
    RANDOM_VARIABLE = 'RandomVariable'
    DETERMINISTIC = 'Deterministic'
    CONSTRAINT = 'Constraint'
    OBSERVED = 'Observed'


# All concrete values that may live on the operand stack.
Value = float | int | str | list | NamedRef | DistributionApplication | FunctionCall \
      | ConstraintApplication | Sequence | AlignmentLiteral


@dataclass(frozen=True)
class Binding:
    category: Category
    value: Value
