"""
Tests for parameter sets, models and circuit bookkeeping
"""

import pytest
import thistle.circuit as cir
from thistle import simulator
from thistle.paramset import ParamSet, ParamError, Model
from thistle.globalVars import glVar, reset_options

paramDict = dict(
    x = ('Some length', 'm', float, 1.),
    n = ('Some count', '', int, 3),
    name = ('Some name', '', str, 'abc')
    )


def test_paramset_values():
    ps = ParamSet(paramDict)
    ps.set_param('x', 2)
    assert ps.valueDict['x'] == 2.
    assert isinstance(ps.valueDict['x'], float)
    assert ps.is_set('x')
    assert not ps.is_set('n')
    ps.set_attributes()
    assert ps.x == 2.
    assert ps.n == 3
    assert ps.name == 'abc'
    ps.clean_attributes()
    assert not hasattr(ps, 'x')


def test_paramset_errors():
    ps = ParamSet(paramDict)
    with pytest.raises(ParamError):
        ps.set_param('y', 1.)
    with pytest.raises(ParamError):
        ps.set_param('n', 1.5)


def test_describe_parameters():
    ps = ParamSet(paramDict)
    desc = ps.describe_parameters()
    for key in paramDict:
        assert key in desc
    assert 'Some length' in ps.describe_parameters('x')
    assert 'not found' in ps.describe_parameters('y')


def test_reset_options():
    glVar.reltol = 1e-6
    glVar.maxiter = 5
    reset_options()
    assert glVar.reltol == 1e-3
    assert glVar.maxiter == 100


#-----------------------------------------------------------------------
def test_model_parameters(build):
    ckt = cir.Circuit('model')
    proto = simulator.new_elem('diode', 'proto')
    model = Model('dmod', 'diode', proto.paramDict)
    model.set_param('isat', 1e-15)
    model.set_param('n', 1.5)
    cir.add_model(model)
    d1 = build(ckt, 'diode', 'd1', ['1', 'gnd'], 'dmod')
    # Instance parameters have priority over the model
    d2 = build(ckt, 'diode', 'd2', ['1', 'gnd'], 'dmod', n = 1.2)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    ckt.init()
    assert d1.isat == d2.isat == 1e-15
    assert d1.n == 1.5
    assert d2.n == 1.2
    assert d1.is_set('n')
    assert not d1.is_set('cj0')
    with pytest.raises(cir.CircuitError):
        cir.add_model(Model('dmod', 'diode', proto.paramDict))


def test_model_type_mismatch(build):
    ckt = cir.Circuit('mismatch')
    build(ckt, 'diode', 'd1', ['1', 'gnd'], 'shared')
    with pytest.raises(cir.CircuitError):
        build(ckt, 'res', 'r1', ['1', 'gnd'], 'shared', r = 1e3)


def test_duplicate_names(build):
    ckt = cir.Circuit('dup')
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    with pytest.raises(cir.CircuitError):
        build(ckt, 'res', 'r1', ['1', 'gnd'], r = 2e3)
    with pytest.raises(cir.CircuitError):
        cir.Circuit('dup')


def test_reference_aliases(build):
    ckt = cir.Circuit('ground')
    build(ckt, 'res', 'r1', ['1', '0'], r = 1e3)
    assert ckt.has_term('gnd')
    assert ckt.get_term('0') is ckt.get_term('gnd')


def test_remove_element(build):
    ckt = cir.Circuit('remove')
    d1 = build(ckt, 'diode', 'd1', ['1', 'gnd'], rs = 5.)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    build(ckt, 'res', 'r2', ['1', 'gnd'], r = 2e3)
    ckt.init()
    assert len(ckt.get_internal_terms()) == 1
    ckt.remove_elem('diode:d1')
    assert 'diode:d1' not in ckt.elemDict
    assert d1 not in ckt.get_term('1').neighbour
    ckt.init()
    assert ckt.get_internal_terms() == []
    with pytest.raises(cir.CircuitError):
        ckt.remove_elem('diode:d1')


def test_main_circuit():
    main = cir.get_mainckt()
    assert main is cir.get_mainckt()
    assert main.name == 'main'


def test_init_connected_circuit(build):
    ckt = cir.Circuit('init')
    d1 = build(ckt, 'diode', 'd1', ['1', '2'], rs = 5.)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    build(ckt, 'res', 'r2', ['2', 'gnd'], r = 2e3)
    assert not ckt._initialized
    ckt.init()
    assert ckt._initialized
    assert ckt.get_internal_terms() == d1.get_internal_terms()
    assert len(ckt.get_internal_terms()) == 1
