## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Parameter schemas for every model constructor, grouped by the kind of value they build.
#

import math
from dataclasses import dataclass


# Type tags used both for literal shape checks and for generated / returned values.
REAL, INTEGER, VECTOR, TAXA, MATRIX = 'Real', 'Integer', 'Vector', 'Taxa', 'Matrix'
TREE, QMATRIX, ALIGNMENT, TEXT = 'Tree', 'QMatrix', 'Alignment', 'Text'
DISTRIBUTION, ANY = 'Distribution', 'Any'

# Which tags of an incoming reference a parameter of the given tag will accept.
COMPATIBLE: dict[str, set[str]] = {
    REAL: {REAL, INTEGER},
    INTEGER: {INTEGER, REAL},
    VECTOR: {VECTOR},
    TAXA: {TAXA, VECTOR},
    MATRIX: {QMATRIX, VECTOR},
    TREE: {TREE},
    QMATRIX: {QMATRIX},
    TEXT: {TEXT},
    DISTRIBUTION: {DISTRIBUTION},
}


@dataclass(frozen=True)
class Schema:
    group: str                        # "distribution", "function", "constraint" or "math".
    name: str                         # Name used in the exported document.
    params: tuple[tuple[str, str], ...]
    result: str | None = None         # Generated or returned tag; None for constraints.
    token: str | None = None

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def key(self) -> str:
        return (self.token or self.name).lower()


def _dist(name, generates, **params):
    return Schema('distribution', name, tuple(params.items()), generates)

def _func(name, returns, **params):
    return Schema('function', name, tuple(params.items()), returns)

def _cons(name, **params):
    return Schema('constraint', name, tuple(params.items()))

def _math(name, returns, token=None, **params):
    return Schema('math', name, tuple(params.items()), returns, token=token)


DISTRIBUTIONS = [
    _dist('Normal', REAL, mean=REAL, sd=REAL),
    _dist('LogNormal', REAL, meanlog=REAL, sdlog=REAL),
    _dist('Exponential', REAL, rate=REAL),
    _dist('Gamma', REAL, shape=REAL, rate=REAL),
    _dist('Beta', REAL, alpha=REAL, beta=REAL),
    _dist('Uniform', REAL, lower=REAL, upper=REAL),
    _dist('Dirichlet', VECTOR, alpha=VECTOR),
    _dist('Yule', TREE, birthRate=REAL),
    _dist('BirthDeath', TREE, birthRate=REAL, deathRate=REAL),
    _dist('Coalescent', TREE, populationSize=REAL),
    _dist('FossilBirthDeath', TREE, birthRate=REAL, deathRate=REAL, samplingRate=REAL, rho=REAL),
    _dist('PhyloCTMC', ALIGNMENT, tree=TREE, Q=QMATRIX),
    _dist('PhyloBM', VECTOR, tree=TREE, sigma=REAL, rootValue=REAL),
    _dist('PhyloOU', VECTOR, tree=TREE, sigma=REAL, alpha=REAL, optimum=REAL),
    _dist('DiscreteGamma', VECTOR, shape=REAL, categories=INTEGER),
    _dist('DiscreteGammaVector', VECTOR, shape=REAL, categories=INTEGER, dimension=INTEGER),
]

FUNCTIONS = [
    # Substitution models.
    _func('jc69', QMATRIX),
    _func('k80', QMATRIX, kappa=REAL),
    _func('f81', QMATRIX, baseFrequencies=VECTOR),
    _func('hky', QMATRIX, kappa=REAL, frequencies=VECTOR),
    _func('gtr', QMATRIX, rates=VECTOR, frequencies=VECTOR),
    _func('wag', QMATRIX),
    _func('jtt', QMATRIX),
    _func('lg', QMATRIX),
    _func('gy94', QMATRIX, omega=REAL, kappa=REAL, codonFrequencies=VECTOR),
    # Rate heterogeneity and clocks.
    _func('freeRates', VECTOR, rates=VECTOR, weights=VECTOR),
    _func('invariantSites', VECTOR, proportion=REAL),
    _func('strictClock', VECTOR, rate=REAL),
    _func('uncorrelatedLognormal', VECTOR, mean=REAL, stdev=REAL),
    _func('uncorrelatedExponential', VECTOR, mean=REAL),
    # Tree queries.
    _func('mrca', REAL, tree=TREE, taxa=TAXA),
    _func('treeHeight', REAL, tree=TREE),
    _func('nodeAge', REAL, tree=TREE, node=ANY),
    _func('branchLength', REAL, tree=TREE, node=ANY),
    _func('distanceMatrix', VECTOR, tree=TREE),
    _func('descendantTaxa', TAXA, tree=TREE, node=ANY),
]

CONSTRAINTS = [
    _cons('LessThan', left=REAL, right=REAL),
    _cons('GreaterThan', left=REAL, right=REAL),
    _cons('Equals', left=ANY, right=ANY),
    _cons('Bounded', variable=REAL, lower=REAL, upper=REAL),
    _cons('SumTo', variables=VECTOR, target=REAL),
    _cons('Monophyly', taxa=TAXA, tree=TREE),
    _cons('Calibration', node=ANY, distribution=DISTRIBUTION),
]

MATH = [
    _math('add', REAL, token='+', left=REAL, right=REAL),
    _math('sub', REAL, token='-', left=REAL, right=REAL),
    _math('mul', REAL, token='*', left=REAL, right=REAL),
    _math('div', REAL, token='/', left=REAL, right=REAL),
    _math('negate', REAL, x=REAL),
    _math('sqrt', REAL, x=REAL),
    _math('exp', REAL, x=REAL),
    _math('log', REAL, x=REAL),
    _math('sum', REAL, vector=VECTOR),
    _math('product', REAL, vector=VECTOR),
    _math('normalize', VECTOR, vector=VECTOR),
    _math('scale', VECTOR, vector=VECTOR, factor=REAL),
    _math('vectorElement', REAL, vector=VECTOR, index=INTEGER),
    _math('matrixElement', REAL, matrix=MATRIX, row=INTEGER, column=INTEGER),
]


def _div(left, right):
    if right == 0: raise ZeroDivisionError("division by zero")
    return left / right

def _sqrt(x):
    if x < 0: raise ValueError(f"square root of negative number {x}")
    return math.sqrt(x)

def _log(x):
    if x <= 0: raise ValueError(f"logarithm of non-positive number {x}")
    return math.log(x)

def _normalize(vector):
    if (total := math.fsum(vector)) == 0: raise ValueError("cannot normalize a vector summing to zero")
    return [v / total for v in vector]

def _element(vector, index):
    if not 0 <= index < len(vector): raise IndexError(f"index {index} outside vector of length {len(vector)}")
    return vector[index]


# Eager implementations, applied only when every operand is a literal.
MATH_EVAL = {
    'add': lambda l, r: l + r,
    'sub': lambda l, r: l - r,
    'mul': lambda l, r: l * r,
    'div': _div,
    'negate': lambda x: -x,
    'sqrt': _sqrt,
    'exp': math.exp,
    'log': _log,
    'sum': math.fsum,
    'product': math.prod,
    'normalize': _normalize,
    'scale': lambda v, f: [x * f for x in v],
    'vectorElement': _element,
    'matrixElement': lambda m, r, c: _element(_element(m, r), c),
}


def all_schemas():
    yield from DISTRIBUTIONS
    yield from FUNCTIONS
    yield from CONSTRAINTS
    yield from MATH
