## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import collections
from dataclasses import dataclass, field

from .types import Operation, Statement, ProcedureDef, Stack, nil
from .errors import StackUnderflowError, DuplicateBindingError, RecursiveProcedureError
from .library import Library
from .environment import Environment
from .builtins import load_builtins_library
from .formatting import show_program_and_stack, stack_to_list


@dataclass
class EvaluationContext:
    """Everything one run owns: the library it dispatches against, its bindings, procedures, and stack.

    Procedures share the caller's live stack by default, so a body may consume or leave more than its
    declared signature says.  With `isolated` set, each call instead gets a fresh stack seeded with
    exactly its declared inputs, and whatever it leaves is pushed back for the caller.
    """
    library: Library
    environment: Environment = field(default_factory=Environment)
    procedures: dict[str, ProcedureDef] = field(default_factory=dict)
    stack: Stack = nil
    isolated: bool = False
    verbosity: int = 0
    calls: list[str] = field(default_factory=list)
    steps: int = 0


def define_procedure(ctx: EvaluationContext, proc: ProcedureDef, meta: dict | None = None) -> None:
    if ctx.library.is_builtin(proc.name):
        raise DuplicateBindingError(f"Procedure `{proc.name}` would shadow a built-in operation.", sp_token=proc.name, sp_meta=meta)
    if proc.name in ctx.procedures:
        raise DuplicateBindingError(f"Procedure `{proc.name}` is already defined.", sp_token=proc.name, sp_meta=meta)
    ctx.procedures[proc.name] = proc


def _call_procedure(op: Operation, ctx: EvaluationContext, stack: Stack) -> Stack:
    proc: ProcedureDef = op.ptr
    if proc.name in ctx.calls:
        chain = ' -> '.join(ctx.calls[ctx.calls.index(proc.name):] + [proc.name])
        raise RecursiveProcedureError(f"Procedure `{proc.name}` calls itself ({chain}) and can never finish.", sp_op=op)

    ctx.calls.append(proc.name)
    try:
        if not ctx.isolated:
            return interpret(proc.body, ctx, stack)

        # Isolated frame: only the declared inputs are visible to the body.
        args, base = [], stack
        for _ in range(proc.arity):
            if base is nil:
                raise StackUnderflowError(f"`{proc.name}` declares {proc.arity} input(s), but {len(args)} available.",
                                          depth=len(args), needed=proc.arity, sp_op=op)
            base, head = base
            args.append(head)
        frame = nil.pushed(*reversed(args))
        result = interpret(proc.body, ctx, frame)
        return base.pushed(*reversed(stack_to_list(result)))
    finally:
        ctx.calls.pop()


def execute(op: Operation, ctx: EvaluationContext, stack: Stack) -> Stack:
    match op.type:
        case Operation.FUNCTION:
            return op.ptr(stack)
        case Operation.COMBINATOR | Operation.CONSTRUCTOR:
            return op.ptr(op, ctx, stack)
        case Operation.EXECUTE:
            return _call_procedure(op, ctx, stack)
    raise NotImplementedError(op.type)


def interpret_step(statement: Statement, ctx: EvaluationContext, stack: Stack) -> Stack:
    match statement.kind:
        case Statement.LITERAL:
            return Stack(stack, statement.value)
        case Statement.DEFINITION:
            define_procedure(ctx, statement.value, statement.meta)
            return stack
        case Statement.OPERATOR:
            op = ctx.library.resolve(statement.value, meta=statement.meta, procedures=ctx.procedures)
            return execute(op, ctx, stack)
    raise NotImplementedError(statement.kind)


def interpret(statements: list, ctx: EvaluationContext, stack: Stack = nil) -> Stack:
    program = collections.deque(statements)
    depth = len(ctx.calls)

    while program:
        if ctx.verbosity == 2 or (ctx.verbosity == 1 and (ctx.steps == 0 or depth > 0)):
            print(f"\033[90m{ctx.steps:>3} :\033[0m  " + '  ' * depth, end='')
            show_program_and_stack(program, stack)

        ctx.steps += 1
        statement = program.popleft()
        try:
            stack = interpret_step(statement, ctx, stack)
        except Exception as exc:
            # Innermost context wins, procedures re-raise through their callers.
            if getattr(exc, 'sp_meta', None) is None: exc.sp_meta = statement.meta
            if getattr(exc, 'sp_token', None) is None: exc.sp_token = str(statement.value)
            if getattr(exc, 'sp_stack', None) is None: exc.sp_stack = stack
            if getattr(exc, 'sp_op', None) is None: exc.sp_op = statement
            raise

    if ctx.verbosity > 0 and depth == 0:
        print(f"\033[90m{ctx.steps:>3} :\033[0m  ", end='')
        show_program_and_stack(program, stack)
    return stack


def evaluate(statements, *, library: Library | None = None, isolated: bool = False, verbosity: int = 0,
             stats: dict | None = None, context: EvaluationContext | None = None) -> Environment:
    """Run statements in order to completion and return the bindings they made.

    Aborts on the first error; values left on the stack are reported in `stats['leftover']`, bottom first.
    """
    ctx = context or EvaluationContext(library or load_builtins_library(), isolated=isolated, verbosity=verbosity)
    start = ctx.steps
    ctx.stack = interpret(list(statements), ctx, ctx.stack)

    if stats is not None:
        stats['steps'] = stats.get('steps', 0) + ctx.steps - start
        stats['leftover'] = list(reversed(stack_to_list(ctx.stack)))
    return ctx.environment
