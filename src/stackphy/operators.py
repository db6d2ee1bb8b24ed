## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import math
from typing import Any, TypeVar

from .types import Sequence, AlignmentLiteral
from .errors import TypeMismatchError


# STACK OPERATIONS
X, Y, Z = (TypeVar(v, bound=Any) for v in ('X', 'Y', 'Z'))
def op_dup(x: X) -> tuple[X, X]: return (x, x)
def op_swap(b: Y, a: X) -> tuple[X, Y]: return (a, b)
def op_drop(_: Any) -> None: return None
def op_over(b: Y, a: X) -> tuple[Y, X, Y]: return (b, a, b)
def op_rot(c: Z, b: Y, a: X) -> tuple[Y, X, Z]: return (b, a, c)
def op_nip(b: Y, a: X) -> X: return a
def op_tuck(b: Y, a: X) -> tuple[X, Y, X]: return (a, b, a)
# CONSTANTS
def op_pi() -> float: return math.pi
# SEQUENCE DATA
def op_sequence(taxon: str, residues: str) -> Sequence: return Sequence(taxon, residues)

def op_alignment(x: list) -> AlignmentLiteral:
    """Collect a vector of sequences into an alignment keyed by taxon, in declaration order."""
    sequences = {}
    for item in x:
        if not isinstance(item, Sequence):
            raise TypeMismatchError(f"`alignment` expects a vector of sequences, found {item!r}.", sp_token='alignment')
        if item.taxon in sequences:
            raise TypeMismatchError(f"`alignment` found taxon `{item.taxon}` more than once.", sp_token='alignment')
        sequences[item.taxon] = item.residues
    return AlignmentLiteral(sequences)
