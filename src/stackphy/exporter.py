## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# stackphy — Resolve the bindings of a finished run into a CodePhy interchange document.
#

import json
from typing import Iterable, Iterator

from .types import NamedRef, DistributionApplication, FunctionCall, ConstraintApplication, Sequence, AlignmentLiteral
from .errors import ExportError, CyclicDependencyError, DanglingReferenceError
from .environment import Environment


CODEPHY_VERSION = "0.1"
MODEL_NAME = "StackPhy Export"


def iter_references(value) -> Iterator[str]:
    """Names of every binding this value refers to, in argument order, at any nesting depth."""
    match value:
        case NamedRef(name=name):
            yield name
        case list():
            for item in value: yield from iter_references(item)
        case DistributionApplication(parameters=args) | FunctionCall(arguments=args) | ConstraintApplication(operands=args):
            for item in args.values(): yield from iter_references(item)


class DependencyGraph:
    """Bound names as a node table indexed by position, with edges to the names each binding refers to."""

    UNVISITED, ACTIVE, DONE = 0, 1, 2

    def __init__(self, env: Environment):
        self.names: list[str] = env.names()
        self.index: dict[str, int] = {name: i for i, name in enumerate(self.names)}
        self.edges: list[list[int]] = [[] for _ in self.names]

        for i, (name, binding) in enumerate(env):
            for target in iter_references(binding.value):
                if (j := self.index.get(target)) is None:
                    raise DanglingReferenceError(f"Binding `{name}` refers to `{target}`, which is not bound.",
                                                 binding=name, target=target, sp_token=name)
                if j not in self.edges[i]:
                    self.edges[i].append(j)

    def dependencies(self, name: str) -> list[str]:
        return [self.names[j] for j in self.edges[self.index[name]]]

    def order(self, roots: Iterable[str] = ()) -> list[str]:
        """All names with dependencies before dependents; traversal starts from `roots`, then the rest.

        Raises `CyclicDependencyError` naming the first cycle found.
        """
        state = [self.UNVISITED] * len(self.names)
        path, ordered = [], []

        def visit(i):
            state[i] = self.ACTIVE
            path.append(i)
            for j in self.edges[i]:
                if state[j] == self.ACTIVE:
                    cycle = [self.names[k] for k in path[path.index(j):]] + [self.names[j]]
                    raise CyclicDependencyError(f"Dependency cycle between bindings: {' -> '.join(cycle)}.",
                                                cycle=cycle, sp_token=self.names[j])
                if state[j] == self.UNVISITED:
                    visit(j)
            path.pop()
            state[i] = self.DONE
            ordered.append(i)

        for i in [self.index[r] for r in roots] + list(range(len(self.names))):
            if state[i] == self.UNVISITED:
                visit(i)
        return [self.names[i] for i in ordered]


def _number(x):
    return int(x) if isinstance(x, float) and x.is_integer() and abs(x) < 2**53 else x

def to_document_value(value):
    """Literals are inlined with their natural JSON shape, references become `{"variable": name}`."""
    match value:
        case NamedRef(name=name):
            return {"variable": name}
        case bool():
            raise ExportError(f"Cannot export boolean value {value!r}.")
        case int() | float():
            return _number(value)
        case str():
            return value
        case list():
            return [to_document_value(v) for v in value]
        case DistributionApplication():
            return _distribution(value)
        case FunctionCall():
            return _function(value)
        case ConstraintApplication():
            return _constraint(value)
        case Sequence(taxon=taxon, residues=residues):
            return {"taxon": taxon, "sequence": residues}
        case AlignmentLiteral(sequences=sequences):
            return dict(sequences)
    raise ExportError(f"Cannot export value {value!r} of type {type(value).__name__}.")

def _arguments(args: dict) -> dict:
    return {name: to_document_value(v) for name, v in args.items()}

def _distribution(dist: DistributionApplication) -> dict:
    return {"type": dist.kind, "generates": dist.generates, "parameters": _arguments(dist.parameters)}

def _function(call: FunctionCall) -> dict:
    return {"function": call.function, "arguments": _arguments(call.arguments)}

def _constraint(cons: ConstraintApplication) -> dict:
    return {"type": cons.kind, "parameters": _arguments(cons.operands)}

def _deterministic(value) -> dict:
    if isinstance(value, FunctionCall):
        return _function(value)
    # Plain values bound with `=` still need one entry each, as identity or constant functions.
    function = "identity" if isinstance(value, NamedRef) else "constant"
    return {"function": function, "arguments": {"value": to_document_value(value)}}


def export(env: Environment, metadata: dict | None = None) -> dict:
    """Build the complete document, or raise before returning anything."""
    graph = DependencyGraph(env)
    ordered = graph.order(roots=env.deterministic)

    random_variables = {}
    for name, binding in env.random_variables.items():
        entry = {"distribution": _distribution(binding.value)}
        if (data := env.observation(name)) is not None:
            entry["observedValue"] = to_document_value(data)
        random_variables[name] = entry

    return {
        "codephyVersion": CODEPHY_VERSION,
        "model": MODEL_NAME,
        "metadata": dict(metadata or {}),
        "randomVariables": random_variables,
        "deterministicFunctions": {name: _deterministic(env.deterministic[name].value)
                                   for name in ordered if name in env.deterministic},
        "constraints": {name: _constraint(binding.value) for name, binding in env.constraints.items()},
    }


def to_json(document: dict) -> str:
    """Strict JSON text; infinities and NaN have no JSON form and are refused."""
    try:
        return json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False)
    except ValueError as exc:
        raise ExportError(f"Document holds a non-finite number: {exc}.") from None
