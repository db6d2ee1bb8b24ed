## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Any, Iterator

from .types import Binding, Category, DistributionApplication, AlignmentLiteral
from .errors import DuplicateBindingError, UndefinedNameError, TypeMismatchError
from . import schemas


class Environment:
    """Named bindings produced by a run, partitioned by category and kept in declaration order.

    Names are unique across random variables, deterministic functions and constraints.  Observed
    data is an attachment keyed by the name of an existing random variable, not a new name.
    """

    def __init__(self):
        self.random_variables: dict[str, Binding] = {}
        self.deterministic: dict[str, Binding] = {}
        self.constraints: dict[str, Binding] = {}
        self.observed: dict[str, Binding] = {}

    def _category_map(self, category: Category) -> dict[str, Binding]:
        match category:
            case Category.RANDOM_VARIABLE: return self.random_variables
            case Category.DETERMINISTIC: return self.deterministic
            case Category.CONSTRAINT: return self.constraints
            case Category.OBSERVED: return self.observed

    def bind(self, name: str, category: Category, value: Any) -> Binding:
        if category == Category.OBSERVED:
            raise ValueError("Observed data is attached with `observe()`, not bound as a new name.")
        if name in self:
            raise DuplicateBindingError(f"Name `{name}` is already bound as {self.lookup(name).category.value}.", sp_token=name)
        if category == Category.RANDOM_VARIABLE and not isinstance(value, DistributionApplication):
            raise TypeMismatchError(f"Random variable `{name}` must be bound to a distribution, got {type(value).__name__}.", sp_token=name)
        binding = Binding(category, value)
        self._category_map(category)[name] = binding
        return binding

    def observe(self, name: str, data: AlignmentLiteral) -> Binding:
        if name not in self:
            raise UndefinedNameError(f"Cannot observe `{name}`, no such random variable.", sp_token=name)
        if (target := self.random_variables.get(name)) is None:
            raise TypeMismatchError(f"Cannot observe `{name}`, it is bound as {self.lookup(name).category.value}.", sp_token=name)
        if target.value.generates != schemas.ALIGNMENT:
            raise TypeMismatchError(f"Cannot observe alignment on `{name}`, which generates {target.value.generates}.", sp_token=name)
        if name in self.observed:
            raise DuplicateBindingError(f"Random variable `{name}` already has observed data.", sp_token=name)
        binding = Binding(Category.OBSERVED, data)
        self.observed[name] = binding
        return binding

    def lookup(self, name: str) -> Binding:
        for mapping in (self.random_variables, self.deterministic, self.constraints):
            if (binding := mapping.get(name)) is not None:
                return binding
        raise UndefinedNameError(f"Name `{name}` is not bound.", sp_token=name)

    def observation(self, name: str) -> AlignmentLiteral | None:
        binding = self.observed.get(name)
        return None if binding is None else binding.value

    def __contains__(self, name: str) -> bool:
        return name in self.random_variables or name in self.deterministic or name in self.constraints

    def __iter__(self) -> Iterator[tuple[str, Binding]]:
        """All named bindings, random variables first, then deterministic, then constraints."""
        for mapping in (self.random_variables, self.deterministic, self.constraints):
            yield from mapping.items()

    def __len__(self) -> int:
        return len(self.random_variables) + len(self.deterministic) + len(self.constraints)

    def names(self) -> list[str]:
        return [name for name, _ in self]

    def __repr__(self):
        return f"Environment(random_variables={list(self.random_variables)}, deterministic={list(self.deterministic)}, " \
               f"constraints={list(self.constraints)}, observed={list(self.observed)})"
