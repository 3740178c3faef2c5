"""
:mod:`integration` -- Integration methods for ODEs
--------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

This module implement different integration methods to be used in
transient analysis. Each method object owns the state history slots
created by devices (see ``new_slot()`` and ``new_charge()``). Slot
histories only advance when a time step is accepted, so a rejected
step leaves no trace.

A charge-bearing branch with charge :math:`q(v)` and capacitance
:math:`C = dq/dv` is replaced in each step by a companion model: a
conductance :math:`g_{eq} = a_0 C` in parallel with a current source
:math:`i_{eq} = \\dot{q} - g_{eq} v`.

The local truncation error is estimated from divided differences of
the charge history. The suggested step is:

.. math::

    h_{new} = \\left(\\frac{trtol \\cdot tol}
                     {\\max(abstol, k |DD_{p+1}|)}\\right)^{1/p}

where :math:`p` is the order and :math:`DD_{p+1}` is the divided
difference of order p+1.
"""

import numpy as np
from thistle.globalVars import glVar

class StateSlot:
    """
    Scalar value plus history of accepted values

    ``value`` is the trial value for the current step. ``history[0]``
    is the last accepted value, ``history[1]`` the one before, etc.
    """
    def __init__(self, depth):
        self.value = 0.
        self.history = np.zeros(depth)

    def init(self, value):
        """
        Set value and the full history to value (equilibrium)
        """
        self.value = value
        self.history[:] = value

    def accept(self):
        self.history[1:] = self.history[:-1]
        self.history[0] = self.value

    def reject(self):
        self.value = self.history[0]


class ChargeState:
    """
    Charge and charge derivative (current) of one branch
    """
    def __init__(self, integ):
        self.integ = integ
        # Enough history for the second-order error estimate
        self.q = StateSlot(3)
        self.iq = StateSlot(2)

    def init(self, q):
        """
        Initialize from DC charge (zero current)
        """
        self.q.init(q)
        self.iq.init(0.)

    def integrate(self, q, cap, v):
        """
        Store trial charge and return companion model

        q: charge at trial voltage v
        cap: dq/dv at v

        Returns (geq, ceq) such that the branch current is
        approximated by geq * v' + ceq
        """
        self.q.value = q
        self.iq.value = self.integ.derivative(self)
        geq = self.integ.a0 * cap
        return (geq, self.iq.value - geq * v)

    def current(self):
        return self.iq.value

    def accept(self):
        self.q.accept()
        self.iq.accept()

    def reject(self):
        self.q.reject()
        self.iq.reject()


#---------------------------------------------------------------------
class _Method:
    """
    Base class for integration methods

    Keeps the list of slots and the history of step sizes
    """
    # Error coefficients indexed by order - 1
    errCoeff = (.5, .5)
    maxOrder = 1

    def __init__(self):
        self.slotList = []
        self.chargeList = []
        # deltaOld[0] is the current step, deltaOld[1] the previous...
        self.deltaOld = np.zeros(3)
        # Number of accepted steps
        self.nsteps = 0
        self.order = 1
        self.h = 0.
        self.a0 = 0.

    def new_slot(self, depth = 1):
        slot = StateSlot(depth)
        self.slotList.append(slot)
        return slot

    def new_charge(self):
        cs = ChargeState(self)
        self.chargeList.append(cs)
        return cs

    def set_h(self, h):
        """
        Set time step size to h
        """
        self.h = h
        self.deltaOld[0] = h
        # First step always uses first order
        self.order = min(self.maxOrder, self.nsteps + 1)
        self._set_coefficients()

    def accept(self):
        """
        Advance all histories after an accepted step
        """
        for cs in self.chargeList:
            cs.accept()
        for slot in self.slotList:
            slot.accept()
        self.deltaOld[1:] = self.deltaOld[:-1]
        self.nsteps += 1

    def reject(self):
        """
        Restore trial values after a rejected step
        """
        for cs in self.chargeList:
            cs.reject()
        for slot in self.slotList:
            slot.reject()

    def truncate(self):
        """
        Returns the step size suggested by the truncation error of
        the trial step (or None if there is not enough history)
        """
        order = self.order
        # Need order + 2 points
        if self.nsteps < order:
            return None
        h = self.h
        factor = self.errCoeff[order - 1]
        newh = np.inf
        for cs in self.chargeList:
            q = np.concatenate(([cs.q.value], cs.q.history))
            currtol = glVar.abstol + glVar.reltol * max(
                abs(cs.iq.value), abs(cs.iq.history[0]))
            chargetol = glVar.reltol * max(
                abs(q[0]), abs(q[1]), glVar.chgtol) / h
            tol = max(currtol, chargetol)
            diff = q[:order + 2].copy()
            deltmp = self.deltaOld[:order + 1].copy()
            j = order
            while True:
                for i in range(j + 1):
                    diff[i] = (diff[i] - diff[i + 1]) / deltmp[i]
                j -= 1
                if j < 0:
                    break
                for i in range(j + 1):
                    deltmp[i] = deltmp[i + 1] + self.deltaOld[i]
            delta = glVar.trtol * tol / max(glVar.abstol,
                                             factor * abs(diff[0]))
            if order > 1:
                delta = delta ** (1. / order)
            newh = min(newh, delta)
        return newh

    # Checkpoint support
    def get_state(self):
        """
        Returns a dictionary of arrays with the full integration state
        """
        qhist = np.array([np.concatenate(([cs.q.value], cs.q.history))
                          for cs in self.chargeList]).reshape(-1, 4)
        iqhist = np.array([np.concatenate(([cs.iq.value], cs.iq.history))
                           for cs in self.chargeList]).reshape(-1, 3)
        slots = [np.concatenate(([slot.value], slot.history))
                 for slot in self.slotList]
        if slots:
            slothist = np.concatenate(slots)
        else:
            slothist = np.zeros(0)
        return dict(qhist = qhist, iqhist = iqhist, slothist = slothist,
                    deltaOld = np.copy(self.deltaOld),
                    nsteps = self.nsteps)

    def set_state(self, stateDict):
        """
        Restore state saved with get_state()

        Slots must have been created in the same order
        """
        qhist = stateDict['qhist']
        iqhist = stateDict['iqhist']
        slothist = stateDict['slothist']
        nslot = sum(len(slot.history) + 1 for slot in self.slotList)
        if len(qhist) != len(self.chargeList) or len(slothist) != nslot:
            raise ValueError('Checkpoint does not match circuit states')
        for cs, qh, iqh in zip(self.chargeList, qhist, iqhist):
            cs.q.value = qh[0]
            cs.q.history[:] = qh[1:]
            cs.iq.value = iqh[0]
            cs.iq.history[:] = iqh[1:]
        pos = 0
        for slot in self.slotList:
            slot.value = slothist[pos]
            depth = len(slot.history)
            slot.history[:] = slothist[pos + 1:pos + 1 + depth]
            pos += depth + 1
        self.deltaOld[:] = stateDict['deltaOld']
        self.nsteps = int(stateDict['nsteps'])


class BEuler(_Method):
    r"""
    Implements Backwards Euler method:

    .. math::

        \dot{q_{n+1}} = (q_{n+1} - q_n) / h

    """
    def _set_coefficients(self):
        self.a0 = 1. / self.h

    def derivative(self, cs):
        return self.a0 * (cs.q.value - cs.q.history[0])


class Trapezoidal(_Method):
    r"""
    Implements Trapezoidal method:

    .. math::

        \dot{q_{n+1}} = \frac{2}{h} (q_{n+1} - q_n) - \dot{q_n}

    The first step uses Backwards Euler.
    """
    errCoeff = (.5, 1. / 12.)
    maxOrder = 2

    def _set_coefficients(self):
        if self.order == 1:
            self.a0 = 1. / self.h
        else:
            self.a0 = 2. / self.h

    def derivative(self, cs):
        if self.order == 1:
            return self.a0 * (cs.q.value - cs.q.history[0])
        return self.a0 * (cs.q.value - cs.q.history[0]) - cs.iq.history[0]


class Gear2(_Method):
    r"""
    Implements variable-step second order Gear (BDF2) method:

    .. math::

        \dot{q_{n+1}} = a_0 q_{n+1} + a_1 q_n + a_2 q_{n-1}

    with :math:`r = h_{n+1} / h_n`, :math:`a_0 = (1+2r)/(h(1+r))`,
    :math:`a_1 = -(1+r)/h` and :math:`a_2 = r^2/(h(1+r))`.

    The first step uses Backwards Euler.
    """
    errCoeff = (.5, 2. / 9.)
    maxOrder = 2

    def _set_coefficients(self):
        h = self.h
        if self.order == 1:
            self.a0 = 1. / h
            self.a1 = -1. / h
            self.a2 = 0.
        else:
            r = h / self.deltaOld[1]
            self.a0 = (1. + 2. * r) / (h * (1. + r))
            self.a1 = -(1. + r) / h
            self.a2 = r * r / (h * (1. + r))

    def derivative(self, cs):
        return self.a0 * cs.q.value + self.a1 * cs.q.history[0] \
            + self.a2 * cs.q.history[1]


methodDict = dict(be = BEuler, trap = Trapezoidal, gear = Gear2)
