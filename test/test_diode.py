"""
Tests for the diode model
"""

import numpy as np
import pytest
import thistle.circuit as cir
from thistle import simulator
from thistle.devices.diode import grading_factor, grading_general


def test_grading_square_root():
    args = np.concatenate((np.logspace(-9., 0., 200),
                           np.linspace(.01, 1., 100)))
    for arg in args:
        fast = grading_factor(arg, .5)
        general = grading_general(arg, .5)
        assert abs(fast - general) <= 1e-12 * general


def test_grading_other_coefficients():
    for m in (.33, .4, .7):
        assert grading_factor(.25, m) == grading_general(.25, m)
        assert abs(grading_general(.25, m) - .25**(-m)) < 1e-12


def test_unusual_grading_warns(build):
    ckt = cir.Circuit('grading')
    build(ckt, 'diode', 'd1', ['1', 'gnd'], cj0 = 1e-12, m = .95)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    with pytest.warns(UserWarning, match = 'grading'):
        ckt.init()


def test_series_resistance_terminal(build):
    ckt = cir.Circuit('rs')
    d1 = build(ckt, 'diode', 'd1', ['1', 'gnd'], rs = 10.)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    ckt.init()
    assert len(d1.get_internal_terms()) == 1
    # A second initialization does not add terminals
    ckt.init()
    assert len(d1.get_internal_terms()) == 1


def test_invalid_parameters(build):
    ckt = cir.Circuit('invalid')
    build(ckt, 'diode', 'd1', ['1', 'gnd'], isat = -1e-14)
    with pytest.raises(cir.CircuitError):
        ckt.init()


def test_depletion_charge_continuous(build):
    ckt = cir.Circuit('charge')
    d1 = build(ckt, 'diode', 'd1', ['1', 'gnd'], cj0 = 1e-12, vj = .8)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    ckt.init()
    # The forward-bias linearization starts at fc * vj
    vdep = .5 * .8
    qlo, clo = d1.jtn.get_qd(vdep - 1e-9)
    qhi, chi = d1.jtn.get_qd(vdep)
    assert abs(qhi - qlo) < 1e-20
    assert abs(chi - clo) < 1e-6 * chi
    # Zero-bias capacitance
    assert abs(d1.jtn.get_qd(0.)[1] - 1e-12) < 1e-24


def test_diode_op_info(diode_circuit):
    result = simulator.new_analysis('op').run(diode_circuit)
    assert result
    op = diode_circuit.elemDict['diode:d1'].OP
    vd = diode_circuit.get_term('a').nD_vOP
    assert abs(op['VD'] - vd) < 1e-12
    assert abs(op['ID'] - (1. - vd) / 1e3) < 2e-3 * op['ID']
