## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from stackphy.types import NamedRef, FunctionCall, DistributionApplication, ConstraintApplication
from stackphy.errors import StackUnderflowError, TypeMismatchError, DomainError, IndexOutOfRangeError
from stackphy.runtime import Runtime
from stackphy import schemas


def _top(source):
    ctx = (rt := Runtime()).context()
    rt.run(source, context=ctx)
    return ctx.stack.head


@pytest.mark.parametrize("source, kind, parameters", [
    ('0.0 1.0 normal', 'Normal', {'mean': 0.0, 'sd': 1.0}),
    ('2.0 exponential', 'Exponential', {'rate': 2.0}),
    ('2.0 0.5 gamma', 'Gamma', {'shape': 2.0, 'rate': 0.5}),
    ('0.0 10.0 uniform', 'Uniform', {'lower': 0.0, 'upper': 10.0}),
    ('[ 1.0 2.0 ] dirichlet', 'Dirichlet', {'alpha': [1.0, 2.0]}),
    ('0.5 4.0 discreteGamma', 'DiscreteGamma', {'shape': 0.5, 'categories': 4}),
])
def test_distribution_parameters_bind_in_push_order(source, kind, parameters):
    dist = _top(source)
    assert isinstance(dist, DistributionApplication)
    assert dist.kind == kind
    assert dist.parameters == parameters
    assert list(dist.parameters) == list(parameters)


def test_integer_parameters_are_normalized():
    dist = _top('0.5 4.0 discreteGamma')
    assert isinstance(dist.parameters['categories'], int)
    with pytest.raises(TypeMismatchError):
        _top('0.5 4.5 discreteGamma')


def test_dirichlet_requires_numeric_vector():
    with pytest.raises(TypeMismatchError):
        _top('[ 1.0 "a" ] dirichlet')
    with pytest.raises(TypeMismatchError):
        _top('1.0 dirichlet')


def test_normal_rejects_text():
    with pytest.raises(TypeMismatchError):
        _top('"zero" 1.0 normal')


def test_constructor_underflow_reports_depth():
    with pytest.raises(StackUnderflowError) as exc:
        _top('1.0 normal')
    assert (exc.value.depth, exc.value.needed) == (1, 2)


def test_constructor_rejects_unterminated_vector():
    with pytest.raises(TypeMismatchError):
        _top('[ 1.0 normal')


def test_references_are_checked_by_type():
    # A tree where a rate matrix is expected.
    with pytest.raises(TypeMismatchError):
        _top('1.0 yule "t" ~ "t" var "t" var phyloctmc')
    # A real-valued variable where a vector is expected.
    with pytest.raises(TypeMismatchError):
        _top('1.0 exponential "r" ~ "r" var dirichlet')


def test_references_of_matching_type_are_accepted():
    call = _top('1.0 exponential "k" ~ "k" var k80')
    assert call == FunctionCall('k80', 'QMatrix', {'kappa': NamedRef('k')})


def test_vector_may_hold_real_references():
    dist = _top('1.0 exponential "a" ~ [ "a" var 1.0 ] dirichlet')
    assert dist.parameters['alpha'] == [NamedRef('a'), 1.0]


def test_functions_without_parameters():
    for name in ('jc69', 'wag', 'jtt', 'lg'):
        call = _top(name)
        assert call.function == name and call.arguments == {} and call.returns == 'QMatrix'


def test_gtr_parameters():
    call = _top('[ 1.0 2.0 1.0 1.0 2.0 1.0 ] [ 0.25 0.25 0.25 0.25 ] gtr')
    assert list(call.arguments) == ['rates', 'frequencies']


def test_mrca_takes_taxa_names():
    call = _top('1.0 yule "t" ~ "t" var [ "human" "chimp" ] mrca')
    assert call.arguments == {'tree': NamedRef('t'), 'taxa': ['human', 'chimp']}
    with pytest.raises(TypeMismatchError):
        _top('1.0 yule "t" ~ "t" var [ 1.0 2.0 ] mrca')


def test_constraints_build_applications():
    con = _top('1.0 exponential "r" ~ "r" var 0.0 5.0 bounded')
    assert con == ConstraintApplication('Bounded', {'variable': NamedRef('r'), 'lower': 0.0, 'upper': 5.0})


def test_calibration_takes_a_distribution():
    con = _top('1.0 yule "t" ~ "t" var [ "a" "b" ] mrca 10.0 1.0 normal calibration')
    assert isinstance(con.operands['distribution'], DistributionApplication)


def test_math_on_references_stays_symbolic():
    call = _top('1.0 exponential "r" ~ "r" var 2.0 *')
    assert call == FunctionCall('mul', 'Real', {'left': NamedRef('r'), 'right': 2.0})
    nested = _top('1.0 exponential "r" ~ "r" var 2.0 * 1.0 +')
    assert nested.function == 'add' and nested.arguments['left'].function == 'mul'


def test_math_domain_errors():
    with pytest.raises(DomainError):
        _top('1.0 0.0 /')
    with pytest.raises(DomainError):
        _top('-1.0 sqrt')
    with pytest.raises(DomainError):
        _top('0.0 log')
    with pytest.raises(DomainError):
        _top('[ 0.0 0.0 ] normalize')
    with pytest.raises(IndexOutOfRangeError):
        _top('[ 1.0 ] 3.0 vectorElement')


def test_every_schema_is_registered():
    ops = Runtime().list_operations()
    for schema in schemas.all_schemas():
        assert schema.key in ops, schema.name


@pytest.mark.parametrize("source", [
    '1e308 10.0 *',
    '1e400 1e400 -',
    '1000.0 exp',
    '[ 1e308 ] 10.0 scale',
])
def test_math_rejects_non_finite_results(source):
    with pytest.raises(DomainError):
        _top(source)
