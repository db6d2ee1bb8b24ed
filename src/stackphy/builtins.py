## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from . import operators
from . import combinators as C
from . import schemas
from .library import Library, get_op_name


def load_builtins_library():
    combinators = {
        '[': C.comb_mark,
        ']': C.comb_vector,
        'pick': C.comb_pick,
        'var': C.comb_var,
        '~': C.comb_sample,
        '=': C.comb_assign,
        'constraint': C.comb_constraint,
        'observe': C.comb_observe,
    }
    aliases = {
        'add': '+', 'sub': '-', 'mul': '*', 'div': '/', 'neg': 'negate', 'pop': 'drop',
    }

    lib = Library(functions={}, combinators=combinators, aliases=aliases)

    # Functions (wrapped via Library helper)
    for k in dir(operators):
        if not k.startswith('op_'): continue
        lib.add_function(get_op_name(k), getattr(operators, k))

    # Distributions, deterministic functions, constraints and math, all driven by their schema.
    for schema in schemas.all_schemas():
        lib.add_constructor(schema)

    lib.ensure_consistent()
    return lib
