"""
:mod:`nodal` -- Nodal Analysis
------------------------------

.. module:: nodal
.. moduleauthor:: Carlos Christoffersen

This module contains basic classes/functions for nodal analysis. These
are part of the standard analyses but they can also be used
independently::

    make_nodal_circuit(ckt)
    dc = DCNodal(ckt)
    result = solve(dc.get_guess(), dc.convergence_helpers)
    dc.save_OP(result.x)

The equations are assembled in a ``SparseSystem`` by the devices
themselves (see :mod:`thistle.devices.roles`), so the same system
serves DC, transient and (with complex values) AC analysis.

"""

import numpy as np
from thistle.analyses.spsystem import SparseSystem, SingularMatrixError
from thistle.analyses.variables import make_nodal_circuit
from thistle.analyses.fsolve import IterationState, newton_solve, \
    Converged, NotConverged
from thistle.devices.roles import supports

__all__ = ['make_nodal_circuit', 'DCNodal', 'run_AC']


#---------------------------------------------------------------------------

class DCNodal:
    """
    Solves the DC equations of a circuit

    The sparse system is allocated and bound to all elements here.
    Requires a nodal-ready Circuit instance (ckt) instance (see
    make_nodal_circuit())
    """

    def __init__(self, ckt):
        # Save ckt instance
        self.ckt = ckt
        # Make sure circuit is ready (analysis should take care)
        assert ckt.nD_ref
        self.devList = ckt.nD_elemList
        self.system = SparseSystem(ckt.nD_dimension)
        for elem in self.devList:
            elem.bind(self.system)
        # List here the functions that can be used to solve equations
        self.convergence_helpers = [self.solve_simple,
                                    self.solve_homotopy_gmin,
                                    self.solve_homotopy_source]

    def get_guess(self):
        """
        Returns the initial guess vector (all zeros)

        Nonlinear devices use their own junction voltages in the
        first iteration
        """
        return np.zeros(self.ckt.nD_dimension)

    def _newton(self, x0, initMode = 'float', gshunt = 0., srcFactor = 1.):
        state = IterationState(x0, initMode = initMode, gshunt = gshunt,
                               srcFactor = srcFactor)
        return newton_solve(self.system, self.devList, state)

    @staticmethod
    def _gshunt(_lambda):
        """
        Returns gmin value given lambda (used for homotopy)

        Range of lambda: [1e-4, 1]
        Range of gmin: [10, 0]
        """
        gbase = 1e-3
        return gbase / _lambda - gbase

    def _homotopy(self, _lambda, f, x0):
        """
        Controls _lambda and the homotopy flow

        The lambda parameter is varied from 0 to 1. 0 corresponds to a
        problem easy to solve and 1 correstponds to the original problem.
        Uses bisection to find lambda step step size to reach 1.

        Inputs:

            _lambda: Initial value for lambda
            f: f(x, lambda, initMode) runs Newton's method for a given
               lambda
            x0: initial guess

        Output: Converged or NotConverged instance
        """
        stack = [0., 1.]
        step = _lambda
        small = 1e-4
        x = np.copy(x0)
        xgood = np.copy(x0)
        initMode = 'junction'
        totIter = 0
        result = None
        sepline = '===================================================='
        print('    lambda      |   Iterations    |   Status')
        print(sepline)
        while stack:
            result = f(x, _lambda, initMode)
            print('{0:15} | {1:15} | '.format(_lambda, result.iterations),
                  end='')
            totIter += result.iterations
            if result:
                print('converged')
                initMode = 'float'
                x = np.copy(result.x)
                # Save result
                xgood[:] = x
                # Recover value of lambda_ from stack
                step = stack[-1] - _lambda
                _lambda = stack.pop()
            else:
                print(result.reason + '  <--- Backtracking')
                # Restore previous better guess
                x[:] = xgood
                # push _lambda into stack
                stack.append(_lambda)
                step *= .5
                _lambda -= step
                if (_lambda < small) or (step < small):
                    break
        print(sepline)
        print('Total iterations: ', totIter)
        if result:
            return Converged(xgood, totIter)
        return NotConverged(x, totIter, 'homotopy step too small',
                            result.device)

    # The following functions used to solve equations, originally from
    # pycircuit but since they have evolved quite a bit
    def solve_simple(self, x0):
        #"""Simple Newton's method"""
        # Docstring removed to avoid printing this all the time
        return self._newton(x0, initMode = 'junction')

    def solve_continuation(self, x0):
        #"""Newton's method starting from a previous solution"""
        # Devices keep the bias state of the last solution, so no
        # canned junction voltages are used
        return self._newton(x0, initMode = 'float')

    def solve_homotopy_gmin(self, x0):
        """Newton's method with gmin stepping"""
        def f(x, _lambda, initMode):
            return self._newton(x, initMode,
                                gshunt = self._gshunt(_lambda))
        return self._homotopy(0.5, f, x0)

    def solve_homotopy_source(self, x0):
        """Newton's method with source stepping"""
        def f(x, _lambda, initMode):
            return self._newton(x, initMode, srcFactor = _lambda)
        return self._homotopy(0.5, f, x0)

    def save_OP(self, xVec):
        """
        Save nodal voltages in terminals and set OP in elements

        The following attributes are created:

        ckt.nD_xOP: solution vector

        term.nD_vOP: nodal voltage (or internal variable value)

        elem.OP: operating point dictionary (see get_OP())
        """
        self.ckt.nD_xOP = xVec
        self.ckt.nD_ref.nD_vOP = 0.
        for term in self.ckt.nD_termList:
            term.nD_vOP = xVec[term.nD_namRC]
        for elem in self.devList:
            elem.get_OP(xVec)


#---------------------------------------------------------------------------

def run_AC(ckt, system, xOP, fvec):
    """
    Solve the small-signal equations for each frequency in fvec

    system: real SparseSystem bound to all elements (the complex
    system shares its structure). xOP: operating point.

    Returns a matrix with one complex solution vector per row. The
    result for each terminal is also saved in ``term.aC_V``.
    """
    acSystem = system.like(complex)
    state = IterationState(xOP)
    acList = [elem for elem in ckt.nD_elemList if supports(elem, 'ac')]
    xVec = np.zeros((len(fvec), ckt.nD_dimension), dtype = complex)
    for k, f in enumerate(fvec):
        omega = 2. * np.pi * f
        acSystem.clear()
        for elem in acList:
            elem.load_ac(acSystem, state, omega)
        status, x = acSystem.solve()
        if x is None:
            raise SingularMatrixError(
                'Singular AC matrix at f = {0} Hz'.format(f))
        xVec[k] = x
    for term in ckt.nD_termList:
        term.aC_V = xVec[:, term.nD_namRC]
    return xVec
