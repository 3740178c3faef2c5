"""
Tests for the integration methods

The order of accuracy of each method is checked through the transient
analysis in test_analyses.py
"""

import numpy as np
import pytest
from thistle.analyses.integration import methodDict


@pytest.mark.parametrize('method', ['be', 'trap', 'gear'])
def test_linear_charge_derivative(method):
    # q = t: every method gives the exact current after each step
    integ = methodDict[method]()
    cs = integ.new_charge()
    cs.init(0.)
    t = 0.
    for h in (.1, .1, .2, .05):
        integ.set_h(h)
        t += h
        cs.integrate(t, 1., t)
        assert abs(cs.current() - 1.) < 1e-12
        integ.accept()


def test_order_after_first_step():
    integ = methodDict['trap']()
    integ.set_h(1e-3)
    assert integ.order == 1
    integ.accept()
    integ.set_h(1e-3)
    assert integ.order == 2
    assert integ.a0 == 2. / 1e-3


def test_reject_restores_history():
    integ = methodDict['gear']()
    cs = integ.new_charge()
    slot = integ.new_slot(2)
    cs.init(1e-12)
    slot.init(.5)
    integ.set_h(1e-6)
    cs.integrate(2e-12, 1e-12, 2.)
    slot.value = .7
    integ.accept()
    integ.set_h(1e-6)
    cs.integrate(5e-12, 1e-12, 5.)
    slot.value = .9
    integ.reject()
    assert cs.q.value == 2e-12
    assert list(cs.q.history) == [2e-12, 1e-12, 1e-12]
    assert slot.value == .7
    assert list(slot.history) == [.7, .5]
    assert integ.nsteps == 1


def test_truncate_needs_history():
    integ = methodDict['trap']()
    cs = integ.new_charge()
    cs.init(1.)
    t = 0.
    suggested = []
    for i in range(4):
        integ.set_h(.01)
        t += .01
        cs.integrate(np.exp(-t), 1., np.exp(-t))
        suggested.append(integ.truncate())
        integ.accept()
    assert suggested[:2] == [None, None]
    for newh in suggested[2:]:
        assert 0. < newh < np.inf


def test_truncate_constant_charge():
    integ = methodDict['gear']()
    cs = integ.new_charge()
    cs.init(1e-9)
    for i in range(3):
        integ.set_h(1e-6)
        cs.integrate(1e-9, 1e-12, 1e3)
        integ.accept()
    integ.set_h(1e-6)
    cs.integrate(1e-9, 1e-12, 1e3)
    # No change: the step may grow a lot
    assert integ.truncate() > 1e-3


def test_state_roundtrip():
    integ = methodDict['trap']()
    charges = [integ.new_charge(), integ.new_charge()]
    slot = integ.new_slot(2)
    for k, cs in enumerate(charges):
        cs.init(float(k))
    slot.init(3.)
    for h in (1e-3, 2e-3):
        integ.set_h(h)
        for cs in charges:
            cs.integrate(cs.q.history[0] + h, 1., 0.)
        slot.value += 1.
        integ.accept()
    state = integ.get_state()
    assert state['qhist'].shape == (2, 4)
    assert state['iqhist'].shape == (2, 3)

    other = methodDict['trap']()
    otherCharges = [other.new_charge(), other.new_charge()]
    otherSlot = other.new_slot(2)
    other.set_state(state)
    assert other.nsteps == integ.nsteps == 2
    assert np.array_equal(other.deltaOld, integ.deltaOld)
    for cs, ocs in zip(charges, otherCharges):
        assert np.array_equal(cs.q.history, ocs.q.history)
        assert np.array_equal(cs.iq.history, ocs.iq.history)
    assert np.array_equal(slot.history, otherSlot.history)
    # Both continue identically
    for method, chs in ((integ, charges), (other, otherCharges)):
        method.set_h(1e-3)
        chs[0].integrate(5., 1., 0.)
    assert charges[0].current() == otherCharges[0].current()


def test_state_mismatch():
    integ = methodDict['be']()
    integ.new_charge()
    state = integ.get_state()
    other = methodDict['be']()
    with pytest.raises(ValueError):
        other.set_state(state)
