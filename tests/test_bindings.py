## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from stackphy.types import Category, Statement, NamedRef, FunctionCall, AlignmentLiteral
from stackphy.errors import StackUnderflowError, UndefinedNameError, TypeMismatchError, DuplicateBindingError
from stackphy.interpreter import EvaluationContext, evaluate
from stackphy.builtins import load_builtins_library
from stackphy.runtime import Runtime


def _context():
    return EvaluationContext(load_builtins_library())


def test_sample_binds_random_variable():
    env = Runtime().run('1.0 0.5 lognormal "kappa" ~')
    binding = env.random_variables["kappa"]
    assert binding.category == Category.RANDOM_VARIABLE
    assert binding.value.kind == "LogNormal"
    assert binding.value.generates == "Real"
    assert binding.value.parameters == {"meanlog": 1.0, "sdlog": 0.5}


def test_sample_on_empty_stack_leaves_no_binding():
    ctx = _context()
    with pytest.raises(StackUnderflowError):
        evaluate([Statement.operator("~")], context=ctx)
    assert len(ctx.environment) == 0


def test_sample_with_only_a_name_leaves_no_binding():
    ctx = _context()
    with pytest.raises(StackUnderflowError):
        evaluate([Statement.literal("x"), Statement.operator("~")], context=ctx)
    assert "x" not in ctx.environment


def test_sample_requires_distribution():
    with pytest.raises(TypeMismatchError):
        Runtime().run('1.0 "x" ~')


def test_sample_requires_text_name():
    with pytest.raises(TypeMismatchError):
        Runtime().run('1.0 1.0 normal 2.0 ~')


def test_var_pushes_reference_not_copy():
    ctx = _context()
    evaluate([Statement.literal(1.0), Statement.operator("exponential"), Statement.literal("rate"), Statement.operator("~"),
              Statement.literal("rate"), Statement.operator("var")], context=ctx)
    assert ctx.stack.head == NamedRef("rate")


def test_var_of_unbound_name_fails():
    with pytest.raises(UndefinedNameError) as exc:
        Runtime().run('"ghost" var')
    assert exc.value.sp_token == "ghost"


def test_assign_binds_deterministic_function():
    env = Runtime().run('2.0 "kappa" = "kappa" var k80 "Q" =')
    assert env.deterministic["kappa"].value == 2.0
    q = env.deterministic["Q"].value
    assert isinstance(q, FunctionCall)
    assert q.function == "k80" and q.arguments == {"kappa": NamedRef("kappa")}


def test_assign_of_constraint_goes_to_constraints():
    env = Runtime().run('1.0 1.0 normal "a" ~ "a" var 10.0 lessThan "a_small" =')
    assert "a_small" in env.constraints
    assert env.constraints["a_small"].category == Category.CONSTRAINT


def test_constraint_operator_requires_constraint():
    env = Runtime().run('1.0 1.0 normal "a" ~ "a" var 0.0 greaterThan "pos" constraint')
    assert env.constraints["pos"].value.kind == "GreaterThan"
    with pytest.raises(TypeMismatchError):
        Runtime().run('1.0 "c" constraint')


def test_names_are_unique_across_categories():
    with pytest.raises(DuplicateBindingError):
        Runtime().run('1.0 1.0 normal "x" ~ 2.0 "x" =')
    with pytest.raises(DuplicateBindingError):
        Runtime().run('2.0 "x" = 3.0 "x" =')


def test_assign_rejects_unterminated_vector():
    with pytest.raises(TypeMismatchError):
        Runtime().run('[ "x" =')


MODEL = '''
    1.0 yule "tree" ~
    1.0 0.5 lognormal "kappa" ~
    [ 1.0 1.0 1.0 1.0 ] dirichlet "freqs" ~
    "kappa" var "freqs" var hky "Q" =
    "tree" var "Q" var phyloctmc "seq" ~
'''

def test_observe_attaches_alignment():
    env = Runtime().run(MODEL + '''
        [ "human" "ACGT" sequence "chimp" "ACGT" sequence ] alignment "seq" observe
    ''')
    assert env.observation("seq") == AlignmentLiteral({"human": "ACGT", "chimp": "ACGT"})
    assert env.observed["seq"].category == Category.OBSERVED
    # Observation is an attachment, not a new name.
    assert "seq" in env.random_variables and len(env) == 5


def test_observe_accepts_vector_of_sequences():
    env = Runtime().run(MODEL + '[ "human" "ACGT" sequence ] "seq" observe')
    assert env.observation("seq").sequences == {"human": "ACGT"}


def test_observe_unknown_variable():
    with pytest.raises(UndefinedNameError):
        Runtime().run('[ "human" "ACGT" sequence ] alignment "seq" observe')


def test_observe_requires_alignment_generating_variable():
    with pytest.raises(TypeMismatchError):
        Runtime().run('1.0 1.0 normal "x" ~ [ "human" "ACGT" sequence ] alignment "x" observe')
    with pytest.raises(TypeMismatchError):
        Runtime().run('2.0 "x" = [ "human" "ACGT" sequence ] alignment "x" observe')


def test_observe_requires_alignment_value():
    with pytest.raises(TypeMismatchError):
        Runtime().run(MODEL + '"ACGT" "seq" observe')


def test_observe_twice_is_rejected():
    with pytest.raises(DuplicateBindingError):
        Runtime().run(MODEL + '''
            [ "human" "ACGT" sequence ] alignment "seq" observe
            [ "chimp" "ACGT" sequence ] alignment "seq" observe
        ''')


def test_errors_carry_statement_context():
    with pytest.raises(StackUnderflowError) as exc:
        Runtime().run('1.0 2.0 normal\n"x" ~ ~', filename='<test>')
    assert exc.value.sp_meta['line'] == 2
    assert exc.value.sp_meta['filename'] == '<test>'
    assert exc.value.sp_stack is not None
