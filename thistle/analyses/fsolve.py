"""
:mod:`fsolve` -- Nonlinear equation solve functions
---------------------------------------------------

.. module:: fsolve
.. moduleauthor:: Carlos Christoffersen and others

This module provides the Newton-Raphson iteration used by all nodal
analyses and the main function that tries different equation solving
strategies provided by an object passed as an argument.

In each iteration every device stamps its linearized model around the
present trial solution, the linear system is solved and the result
becomes the next trial solution. An iteration is converged when no
device limited a controlling voltage and every device agrees that
the currents predicted by its linearization match the currents at
the new solution.

The outcome of a solve is a value: ``Converged`` or
``NotConverged``. Only a singular matrix raises an exception.
"""

import logging
import numpy as np
from thistle.globalVars import glVar
from thistle.analyses.analysis import AnalysisError
from thistle.analyses.spsystem import SolveStatus, SingularMatrixError
from thistle.devices.roles import supports

logger = logging.getLogger(__name__)


class NoConvergenceError(AnalysisError):
    """
    Raised when every solution strategy fails

    ``result`` holds the last NotConverged instance (if any)
    """
    def __init__(self, msg, result = None):
        AnalysisError.__init__(self, msg)
        self.result = result


class Converged:
    """
    Successful solve: solution vector and number of iterations
    """
    success = True

    def __init__(self, x, iterations):
        self.x = x
        self.iterations = iterations

    def __bool__(self):
        return True

    def __repr__(self):
        return 'Converged(iterations={0})'.format(self.iterations)


class NotConverged:
    """
    Failed solve

    x is the last trial solution, reason a short description and
    device the name of the element that failed the last check (None
    if unknown)
    """
    success = False

    def __init__(self, x, iterations, reason, device = None):
        self.x = x
        self.iterations = iterations
        self.reason = reason
        self.device = device

    def __bool__(self):
        return False

    def __str__(self):
        msg = 'No convergence after {0} iterations: {1}'.format(
            self.iterations, self.reason)
        if self.device:
            msg += ' (' + self.device + ')'
        return msg

    def __repr__(self):
        return 'NotConverged(iterations={0}, reason={1!r}, device={2!r})'\
            .format(self.iterations, self.reason, self.device)


class IterationState:
    """
    Everything a device needs to know about the current iteration

    x: trial solution (full vector, x[0] is the reference)

    initMode: 'junction' to use canned junction voltages in the first
    iteration, 'float' otherwise

    gmin: conductance added in parallel to junctions

    gshunt: conductance from every node to ground (gmin stepping)

    srcFactor: source scaling factor (source stepping)

    isTransient, integ, time: transient analysis information
    """
    def __init__(self, x, initMode = 'float', gmin = None, gshunt = 0.,
                 srcFactor = 1., isTransient = False, integ = None,
                 time = 0.):
        self.x = x
        self.initMode = initMode
        if gmin is None:
            gmin = glVar.gmin
        self.gmin = gmin
        self.gshunt = gshunt
        self.srcFactor = srcFactor
        self.isTransient = isTransient
        self.integ = integ
        self.time = time


def load_devices(system, devList, state):
    """
    Clear system and stamp every device

    Returns the first device that limited a voltage (or None)
    """
    system.clear()
    limitedDev = None
    for dev in devList:
        if dev.load(system, state) and limitedDev is None:
            limitedDev = dev
        if state.isTransient and supports(dev, 'transient'):
            dev.load_transient(system, state)
    if state.gshunt:
        for handle in system.diagonal_handles():
            system.accumulate(handle, state.gshunt)
    return limitedDev


def newton_solve(system, devList, state, maxiter = None):
    r"""
    Solves the circuit equations with Newton-Raphson's method.

    In each iteration the linear system:

    .. math::

            J(x_n) x_{n+1} = J(x_n) x_n - F(x_n) \; ,

    assembled by the devices is solved for :math:`x_{n+1}`.

    system: SparseSystem bound to all devices in devList

    devList: devices in evaluation order (must be deterministic)

    state: IterationState. state.x holds the initial guess on input
    and the last trial solution on output

    Returns Converged or NotConverged. Raises SingularMatrixError if
    the matrix can not be factored.
    """
    if maxiter is None:
        maxiter = glVar.maxiter
    reason = 'iteration limit reached'
    device = None
    for iteration in range(1, maxiter + 1):
        limitedDev = load_devices(system, devList, state)
        status, xnew = system.solve()
        if status == SolveStatus.SINGULAR:
            row = system.singular_row()
            msg = 'Singular matrix'
            if row is not None:
                msg += ' (check connections of variable {0})'.format(row)
            raise SingularMatrixError(msg)
        if glVar.verbose:
            logger.debug('iteration %d: max |dx| = %g', iteration,
                         max(abs(xnew - state.x)))
        state.x = xnew
        # Canned voltages are used only once
        state.initMode = 'float'
        if limitedDev is not None:
            reason = 'voltage limiting'
            device = limitedDev.nodeName
            continue
        # Check convergence at new solution
        for dev in devList:
            if not dev.is_convergent(state):
                reason = getattr(dev, 'convReason', 'current residual')
                device = dev.nodeName
                break
        else:
            return Converged(state.x, iteration)
    logger.warning('Newton iteration failed: %s (%s)', reason, device)
    return NotConverged(state.x, maxiter, reason, device)


def solve(x0, convergence_helpers):
    """
    Attempt solving circuit equations using several strategies

    x0: initial guess

    convergence_helpers: list of functions that can be used to solve
    equations. Each one takes x0 and returns a Converged or
    NotConverged instance. Example of helper functions::

        solve_simple(x0)
        solve_homotopy_gmin(x0)
        solve_homotopy_source(x0)

    Returns the first Converged result. Raises NoConvergenceError if
    all strategies fail.

    This function originally adapted from pycircuit
    (https://github.com/henjo/pycircuit)
    """
    result = None
    for algorithm in convergence_helpers:
        if algorithm.__doc__:
            print('\nTrying ' + algorithm.__doc__)
        result = algorithm(np.copy(x0))
        if result:
            return result
        print(str(result))
    if result is None:
        raise NoConvergenceError('No solution methods available')
    raise NoConvergenceError(
        'Giving up. No convergence with any method. Last failure: '
        + str(result), result)
