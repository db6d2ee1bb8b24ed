## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# stackphy — Stack-effect inference for Python operators, and shape checks for model constructors.
#

import inspect
from types import UnionType
from typing import Any, TypeVar, Callable, get_origin, get_args

from .types import Stack, nil, Category, NamedRef, FunctionCall, DistributionApplication, ConstraintApplication, \
                   Sequence, AlignmentLiteral
from .errors import StackUnderflowError, TypeMismatchError
from . import schemas


_FUNCTION_SIGNATURES = {}

def _normalize_expected_type(tp):
    if tp is inspect.Parameter.empty or tp is Any: return Any
    if isinstance(tp, TypeVar): return tp
    if get_origin(tp) is not None and not isinstance(tp, UnionType): return get_origin(tp)
    return tp if isinstance(tp, (type, tuple, UnionType)) else Any

def get_stack_effects(*, fn: Callable = None, name: str = None) -> dict:
    if name in _FUNCTION_SIGNATURES and fn is None:
        return _FUNCTION_SIGNATURES[name]
    assert fn is not None, "Must specify the function if name is not in signature cache."

    sig = inspect.signature(fn)
    positional = [p for p in sig.parameters.values()
                  if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)]

    ret_ann = sig.return_annotation
    returns_none = (ret_ann is inspect.Signature.empty or ret_ann is type(None) or ret_ann is None)
    returns_tuple = (ret_ann is tuple or get_origin(ret_ann) is tuple)

    if returns_none:
        outputs: list = []
    else:
        ret_ann = get_args(ret_ann) if returns_tuple else (ret_ann,)
        outputs = [_normalize_expected_type(t) for t in ret_ann]

    meta = {
        'arity': len(positional),
        'valency': 0 if returns_none else (len(outputs) if returns_tuple else 1),
        'inputs': list(reversed([_normalize_expected_type(p.annotation) for p in positional])),
        'outputs': list(reversed(outputs)),
    }
    _FUNCTION_SIGNATURES[name] = meta
    return meta


def _type_name(tp) -> str:
    return getattr(tp, '__name__', str(tp))

def check_inputs(name: str, meta: dict, stack: Stack) -> None:
    """Raise if the operation cannot execute on this stack, using inferred stack effects."""
    items, current = [], stack
    while current is not nil and len(items) < len(meta['inputs']):
        current, head = current
        items.append(head)

    if len(items) < (need := len(meta['inputs'])):
        raise StackUnderflowError(f"`{name}` needs at least {need} item(s) on the stack, but {len(items)} available.",
                                  depth=len(items), needed=need, sp_token=name)

    # Type checks from top downward.
    for i, (actual, expected_type) in enumerate(zip(items, meta['inputs'])):
        if isinstance(expected_type, TypeVar): expected_type = expected_type.__bound__
        if expected_type in (Any, None): continue
        if not isinstance(actual, expected_type) or (isinstance(actual, bool) and expected_type is not bool):
            raise TypeMismatchError(f"`{name}` expects {_type_name(expected_type)} at position {i+1} from top, "
                                    f"got {type(actual).__name__}.", sp_token=name)


def is_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)

def value_tag(value, env=None) -> str:
    """Type tag of a stack value, following references through the environment when given."""
    if is_number(value): return schemas.REAL
    if isinstance(value, str): return schemas.TEXT
    if isinstance(value, list):
        return schemas.TAXA if value and all(isinstance(v, str) for v in value) else schemas.VECTOR
    if isinstance(value, FunctionCall): return value.returns
    if isinstance(value, DistributionApplication): return schemas.DISTRIBUTION
    if isinstance(value, ConstraintApplication): return 'Constraint'
    if isinstance(value, Sequence): return 'Sequence'
    if isinstance(value, AlignmentLiteral): return schemas.ALIGNMENT
    if isinstance(value, NamedRef) and env is not None:
        binding = env.lookup(value.name)
        if isinstance(binding.value, DistributionApplication):
            return binding.value.generates if binding.category == Category.RANDOM_VARIABLE else schemas.DISTRIBUTION
        return value_tag(binding.value, env)
    return schemas.ANY


def _accepts(tag: str, incoming: str) -> bool:
    return tag == schemas.ANY or incoming == schemas.ANY or incoming in schemas.COMPATIBLE.get(tag, {tag})

def _is_symbolic(x) -> bool:
    return isinstance(x, (NamedRef, FunctionCall))

def check_argument(schema: schemas.Schema, param: str, tag: str, value, env=None):
    """Validate one constructor argument against its declared tag, and return it normalized."""
    def mismatch(detail):
        return TypeMismatchError(f"`{schema.key}` expects {tag} for `{param}`, {detail}.", sp_token=schema.key)

    if _is_symbolic(value):
        if not _accepts(tag, incoming := value_tag(value, env)):
            raise mismatch(f"got reference of type {incoming}")
        return value

    match tag:
        case schemas.ANY:
            return value
        case schemas.REAL:
            if not is_number(value): raise mismatch(f"got {type(value).__name__}")
            return value
        case schemas.INTEGER:
            if not is_number(value) or not float(value).is_integer():
                raise mismatch(f"got {value!r}")
            return int(value)
        case schemas.TEXT:
            if not isinstance(value, str): raise mismatch(f"got {type(value).__name__}")
            return value
        case schemas.VECTOR:
            if not isinstance(value, list): raise mismatch(f"got {type(value).__name__}")
            for item in value:
                if not is_number(item) and not (_is_symbolic(item) and _accepts(schemas.REAL, value_tag(item, env))):
                    raise mismatch(f"found element {item!r}")
            return value
        case schemas.TAXA:
            if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
                raise mismatch("requires a vector of taxon names")
            return value
        case schemas.MATRIX:
            if not isinstance(value, list) or not all(isinstance(row, list) and all(is_number(x) for x in row) for row in value):
                raise mismatch("requires a vector of numeric rows")
            return value
        case schemas.DISTRIBUTION:
            if not isinstance(value, DistributionApplication): raise mismatch(f"got {type(value).__name__}")
            return value
        case _:
            # Trees, rate matrices and alignments only ever arrive by reference.
            raise mismatch(f"got literal {type(value).__name__}")
