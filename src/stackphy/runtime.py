## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Callable

from .types import Stack, Statement
from .parser import parse
from .library import Library
from .builtins import load_builtins_library
from .environment import Environment
from .exporter import export as _export, to_json as _to_json
from .formatting import list_to_stack as _list_to_stack, stack_to_list as _stack_to_list
from .interpreter import EvaluationContext, evaluate as _evaluate


class Runtime:
    """Minimal runtime facade focused on embedding and extension."""

    def __init__(self, library: Library | None = None, isolated: bool = False):
        self.library = library or load_builtins_library()
        self.isolated = isolated

    def context(self, verbosity: int = 0) -> EvaluationContext:
        """Fresh evaluation context for one run; keep it around to continue a session, as the REPL does."""
        return EvaluationContext(self.library, isolated=self.isolated, verbosity=verbosity)

    # Execution ───────────────────────────────────────────────────────────────────────────────
    def evaluate(self, statements: list[Statement], verbosity: int = 0, stats: dict | None = None,
                 context: EvaluationContext | None = None) -> Environment:
        return _evaluate(statements, context=context or self.context(verbosity), stats=stats)

    def run(self, source: str, filename: str | None = None, verbosity: int = 0, stats: dict | None = None,
            context: EvaluationContext | None = None) -> Environment:
        return self.evaluate(list(parse(source, filename=filename)), verbosity=verbosity, stats=stats, context=context)

    # Export ──────────────────────────────────────────────────────────────────────────────────
    def export(self, env: Environment, metadata: dict | None = None) -> dict:
        return _export(env, metadata=metadata)

    def to_json(self, document: dict) -> str:
        return _to_json(document)

    # Registration ────────────────────────────────────────────────────────────────────────────
    def register_operation(self, name: str, func: Callable) -> None:
        self.library.add_function(name, func)

    # Introspection ───────────────────────────────────────────────────────────────────────────
    def get_signature(self, name: str) -> dict:
        return self.library.signatures()[name.lower()]

    def list_operations(self) -> dict[str, dict]:
        return self.library.signatures()

    def to_stack(self, values: list) -> Stack:
        return _list_to_stack(values)

    def from_stack(self, stack: Stack) -> list:
        return _stack_to_list(stack)
