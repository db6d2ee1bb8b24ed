## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import pytest

from stackphy.errors import StackUnderflowError, UnknownOperationError, DuplicateBindingError, RecursiveProcedureError
from stackphy.runtime import Runtime


def _stack(source, isolated=False):
    ctx = (rt := Runtime(isolated=isolated)).context()
    rt.run(source, context=ctx)
    return list(reversed(rt.from_stack(ctx.stack))), ctx


def test_procedure_runs_on_shared_stack():
    stack, _ = _stack(': double ( x -- y ) 2 * ;  3 double')
    assert stack == [6.0]


def test_procedure_signature_is_recorded():
    _, ctx = _stack(': hky-prior ( kappa freqs -- q ) hky ;')
    proc = ctx.procedures['hky-prior']
    assert (proc.inputs, proc.outputs, proc.arity) == (['kappa', 'freqs'], ['q'], 2)


def test_shared_stack_may_reach_below_declared_inputs():
    stack, _ = _stack(': sw ( a -- b ) swap ;  1 2 sw')
    assert stack == [2.0, 1.0]


def test_isolated_frame_only_sees_declared_inputs():
    with pytest.raises(StackUnderflowError):
        _stack(': sw ( a -- b ) swap ;  1 2 sw', isolated=True)


def test_isolated_results_return_to_caller():
    stack, _ = _stack(': twin ( a -- a a ) dup ;  7 1 twin', isolated=True)
    assert stack == [7.0, 1.0, 1.0]


def test_isolated_call_needs_its_inputs():
    with pytest.raises(StackUnderflowError) as exc:
        _stack(': add3 ( a b c -- d ) + + ;  1 2 add3', isolated=True)
    assert (exc.value.depth, exc.value.needed) == (2, 3)


def test_procedure_can_bind_names():
    _, ctx = _stack(': rate-prior ( name -- ) 1 exponential swap ~ ;  "mu" rate-prior "nu" rate-prior')
    assert list(ctx.environment.random_variables) == ['mu', 'nu']


def test_procedures_are_case_sensitive():
    with pytest.raises(UnknownOperationError):
        _stack(': Twice 2 * ;  1 twice')


def test_procedure_cannot_shadow_builtins():
    with pytest.raises(DuplicateBindingError):
        _stack(': dup 1 ;')
    with pytest.raises(DuplicateBindingError):
        _stack(': Normal 0 1 normal ;')


def test_procedure_cannot_be_redefined():
    with pytest.raises(DuplicateBindingError):
        _stack(': f 1 ;  : f 2 ;')


def test_recursion_is_rejected():
    with pytest.raises(RecursiveProcedureError):
        _stack(': loop loop ;  loop')


def test_mutual_recursion_is_rejected():
    with pytest.raises(RecursiveProcedureError) as exc:
        _stack(': ping pong ;  : pong ping ;  ping')
    assert 'ping -> pong -> ping' in str(exc.value)


def test_errors_inside_procedures_point_at_the_body():
    with pytest.raises(StackUnderflowError) as exc:
        Runtime().run(': bad ( -- )\n  drop ;\nbad', filename='<test>')
    assert exc.value.sp_meta['line'] == 2


def test_procedure_may_be_called_many_times():
    stack, _ = _stack(': inc ( x -- y ) 1 + ;  0 inc inc inc')
    assert stack == [3.0]
