## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import math
from typing import Callable

from .types import Operation, Stack, nil, MARK, NamedRef, FunctionCall, DistributionApplication, ConstraintApplication
from .errors import StackUnderflowError, TypeMismatchError, IndexOutOfRangeError, DomainError
from .validating import check_argument
from . import schemas


def _is_literal(value) -> bool:
    if isinstance(value, list): return all(_is_literal(v) for v in value)
    return not isinstance(value, (NamedRef, FunctionCall))


def _evaluate_math(this: Operation, schema: schemas.Schema, arguments: dict):
    try:
        result = schemas.MATH_EVAL[schema.name](*arguments.values())
    except IndexError as exc:
        raise IndexOutOfRangeError(f"`{this.name}` {exc}.", sp_op=this) from exc
    except (ArithmeticError, ValueError) as exc:
        raise DomainError(f"`{this.name}` cannot be evaluated: {exc}.", sp_op=this) from exc
    if not all(math.isfinite(x) for x in (result if isinstance(result, list) else [result])):
        raise DomainError(f"`{this.name}` result {result!r} is not a finite number.", sp_op=this)
    return result


def build(this: Operation, schema: schemas.Schema, arguments: dict):
    match schema.group:
        case 'distribution':
            return DistributionApplication(schema.name, schema.result, arguments)
        case 'function':
            return FunctionCall(schema.name, schema.result, arguments)
        case 'constraint':
            return ConstraintApplication(schema.name, arguments)
        case 'math':
            # Fold literals right away, anything referring to a binding stays symbolic.
            if all(_is_literal(v) for v in arguments.values()):
                return _evaluate_math(this, schema, arguments)
            return FunctionCall(schema.name, schema.result, arguments)
    raise NotImplementedError(schema.group)


def make_constructor(schema: schemas.Schema) -> Callable:
    """Create the operator for a schema: pops its arity in last-pushed-last-bound order, validates, pushes one value."""

    def construct(this: Operation, ctx, stack: Stack):
        args, base = [], stack
        for _ in range(schema.arity):
            if base is nil:
                raise StackUnderflowError(f"`{this.name}` needs {schema.arity} argument(s) on the stack, but {len(args)} available.",
                                          depth=len(args), needed=schema.arity, sp_op=this)
            base, head = base
            if head is MARK:
                raise TypeMismatchError(f"`{this.name}` found an unterminated `[` among its arguments.", sp_op=this)
            args.append(head)

        arguments = {name: check_argument(schema, name, tag, value, ctx.environment)
                     for (name, tag), value in zip(schema.params, reversed(args))}
        return Stack(base, build(this, schema, arguments))

    construct.__sp_schema__ = schema
    return construct
