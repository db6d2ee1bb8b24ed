## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any, Callable
from dataclasses import dataclass, field

from .types import Stack, Operation, ProcedureDef
from .errors import UnknownOperationError
from .validating import get_stack_effects, check_inputs
from .constructors import make_constructor
from . import schemas


def get_op_name(py_name: str) -> str:
    """Map a Python operator function name to its token, e.g. `op_pick` → `pick`."""
    assert py_name.startswith('op_'), f"Operator function `{py_name}` requires prefix `op_` by convention."
    return py_name[3:].replace('_', '-')


@dataclass
class Library:
    functions: dict[str, Callable[..., Any]]
    combinators: dict[str, Callable[..., Any]]
    constructors: dict[str, Callable[..., Any]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)

    # Registration helpers
    def add_function(self, name: str, fn: Callable[..., Any]) -> None:
        fn, meta = _make_wrapper(fn, name)
        fn.__sp_meta__ = meta
        self.functions[name.lower()] = fn

    def add_constructor(self, schema: schemas.Schema) -> None:
        self.constructors[schema.key] = make_constructor(schema)

    def ensure_consistent(self) -> None:
        for _, fn in list(self.functions.items()):
            assert hasattr(fn, '__sp_meta__')
        for _, fn in list(self.constructors.items()):
            assert hasattr(fn, '__sp_schema__')
        names = [*self.functions, *self.combinators, *self.constructors]
        assert len(names) == len(set(names)), "Operator tokens must be unique across all kinds."

    def _key(self, token: str) -> str:
        key = token.lower()
        return self.aliases.get(key, key)

    def is_builtin(self, token: str) -> bool:
        key = self._key(token)
        return key in self.combinators or key in self.constructors or key in self.functions

    def resolve(self, token: str, *, meta: dict | None = None, procedures: dict[str, ProcedureDef] | None = None) -> Operation:
        """Turn a token into an executable operation; built-ins match case-insensitively, procedures exactly."""
        key = self._key(token)
        if (comb := self.combinators.get(key)) is not None:
            return Operation(Operation.COMBINATOR, comb, token, meta)
        if (cons := self.constructors.get(key)) is not None:
            return Operation(Operation.CONSTRUCTOR, cons, token, meta)
        if (fn := self.functions.get(key)) is not None:
            return Operation(Operation.FUNCTION, fn, token, meta)
        if procedures is not None and (proc := procedures.get(token)) is not None:
            return Operation(Operation.EXECUTE, proc, token, meta)
        raise UnknownOperationError(f"Unknown operation `{token}`.", sp_token=token, sp_meta=meta)

    def signatures(self) -> dict[str, dict]:
        result = {}
        for name, fn in self.functions.items():
            result[name] = {'kind': 'function', **fn.__sp_meta__}
        for name, fn in self.constructors.items():
            schema = fn.__sp_schema__
            result[name] = {'kind': schema.group, 'name': schema.name, 'params': list(schema.params), 'result': schema.result}
        for name in self.combinators:
            result[name] = {'kind': 'combinator'}
        return result


def _make_wrapper(fn: Callable[..., Any], name: str) -> Callable[..., Any]:
    meta = get_stack_effects(fn=fn, name=name)

    match meta['valency']:
        case 0:
            def push(base, _): return base
        case 1:
            def push(base, res): return Stack(base, res)
        case _:
            def push(base, res):
                for v in res: base = Stack(base, v)
                return base

    match meta['arity']:
        case 0: # no arguments
            def w_0(stk: Stack):
                return push(stk, fn())
            return w_0, meta
        case 1:
            def w_1(stk: Stack):
                check_inputs(name, meta, stk)
                base, a = stk
                return push(base, fn(a))
            return w_1, meta
        case 2:
            def w_2(stk: Stack):
                check_inputs(name, meta, stk)
                (base, b), a = stk
                return push(base, fn(b, a))
            return w_2, meta
        case _:
            def w_x(stk: Stack):
                check_inputs(name, meta, stk)
                args, base = (), stk
                for _ in range(meta['arity']):
                    base, h = base
                    args = (h,) + args
                return push(base, fn(*args))
            return w_x, meta
