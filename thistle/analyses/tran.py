"""
:mod:`tran` -- Transient Analysis
---------------------------------

.. module:: tran
.. moduleauthor:: Carlos Christoffersen

"""

import sys
import logging
import numpy as np

from thistle.paramset import ParamSet
from thistle.globalVars import glVar
from thistle.analyses.analysis import AnalysisError, print_header
from thistle.analyses.integration import methodDict
from thistle.analyses.fsolve import solve, newton_solve, load_devices, \
    IterationState, NoConvergenceError
from thistle.devices.roles import supports
import thistle.analyses.nodal as nd

logger = logging.getLogger(__name__)

class Analysis(ParamSet):
    """
    Transient Analysis
    ------------------

    Solves nodal equations starting from the DC operating point at
    ``t=0`` up to ``tstop``. Three integration methods are supported:
    Backwards Euler (``method=be``), trapezoidal (``method=trap``)
    and second order Gear (``method=gear``). If ``method`` is not
    given ``glVar.method`` is used.

    The first step size is ``tstep``. After each step the local
    truncation error of every charge is estimated and the step is
    rejected (and retried with a smaller size) if the suggested step
    is less than 90% of the step just taken. Otherwise the step is
    accepted and the next one is allowed to grow up to
    ``glVar.maxgrowth`` times, limited by ``tmax``. If Newton's method
    does not converge in ``glVar.tranmaxiter`` iterations the step is
    discarded and retried with one eighth of its size. The last step
    is adjusted to end exactly at ``tstop``. After Newton's method
    converges the devices are loaded once more at the solution, so
    that the charges kept in the integration history correspond to
    the accepted solution.

    The analysis fails if the step size goes below ``1e-9 tmax`` or
    if the number of attempted steps exceeds ``glVar.maxsteps``.

    The final state (solution vector plus all integration state
    histories) can be saved to a numpy ``.npz`` file with the
    ``checkpoint`` parameter and used to continue the analysis with
    the ``restore`` parameter (the circuit must be the same).

    Results are saved in ``circuit.tran_timevec`` and in each
    terminal as ``term.tran_v``.

    Example::

        tran = anClass['tran']()
        tran.set_param('tstop', 1e-3)
        tran.set_param('tstep', 1e-6)
        tran.set_param('method', 'gear')
        tran.set_attributes()
        tran.run(ckt)

    """

    # antype is the name of the analysis
    anType = "tran"

    # Define parameters as follows
    paramDict = dict(
        tstop = ('Simulation stop time', 's', float, 1e-3),
        tstep = ('Initial time step size', 's', float, 1e-5),
        tmax = ('Maximum time step size (default: min(tstep, tstop/50))',
                's', float, 0.),
        method = ('Integration method: trap, gear or be', '', str, ''),
        lte = ('Control step size with truncation error', '', bool, True),
        checkpoint = ('File name to save final state', '', str, ''),
        restore = ('File name with state to continue from', '', str, ''),
        verbose = ('Show iterations for each point', '', bool, False)
        )

    def __init__(self):
        # Just init the base class
        ParamSet.__init__(self, self.paramDict)

    def run(self, circuit):
        """
        Calculates transient analysis by solving nodal equations

        Returns (timeVec, xVec): xVec has one solution vector per row
        """
        print_header('Transient analysis', circuit)

        if not circuit._initialized:
            circuit.init()

        # Select integration method
        method = self.method or glVar.method
        try:
            imo = methodDict[method]()
        except KeyError:
            raise AnalysisError(
                'Unknown integration method: {0}'.format(method))
        if self.tstep <= 0. or self.tstop <= 0.:
            raise AnalysisError('tstep and tstop must be positive')

        # Create nodal objects and solve for initial state
        nd.make_nodal_circuit(circuit)
        dc = nd.DCNodal(circuit)
        devList = dc.devList
        tranList = [elem for elem in devList if supports(elem, 'transient')]
        # States must be created in the same order for a checkpoint
        for elem in tranList:
            elem.create_states(imo)

        h = self.tstep
        if self.restore:
            with np.load(self.restore) as data:
                x = data['x']
                if len(x) != circuit.nD_dimension:
                    raise AnalysisError(
                        'Checkpoint does not match circuit: ' + self.restore)
                try:
                    imo.set_state(data)
                except ValueError as ve:
                    raise AnalysisError(str(ve) + ': ' + self.restore)
                t = float(data['time'])
                h = float(data['h'])
            # Seed bias state of devices
            load_devices(dc.system, devList,
                         IterationState(x, initMode = 'junction'))
            print('Continuing from t = {0} s\n'.format(t))
        else:
            # solve DC equations
            try:
                print('Calculating DC operating point ... ', end='')
                sys.stdout.flush()
                result = solve(dc.get_guess(), dc.convergence_helpers)
                print('Succeded.\n')
            except NoConvergenceError as ce:
                print('Failed.\n')
                print(ce)
                return None
            x = result.x
            dc.save_OP(x)
            t = 0.
            state = IterationState(x)
            for elem in tranList:
                elem.init_states(state)

        tmax = self.tmax or min(self.tstep, self.tstop / 50.)
        hmin = 1e-9 * tmax
        h = min(h, tmax)
        timeList = [t]
        xList = [x]
        tIter = 0
        nsteps = 0
        nreject = 0
        dots = 50
        print('System dimension: {0}'.format(circuit.nD_dimension))
        print('Integration method: {0}'.format(method))
        if self.verbose:
            print('-------------------------------------------------')
            print(' Step    | Time (s)     | Iter.    | h (s)       ')
            print('-------------------------------------------------')
        else:
            print('Printing one dot every {0} steps:'.format(dots))
            sys.stdout.flush()

        while t < self.tstop:
            if nsteps >= glVar.maxsteps:
                raise AnalysisError(
                    'Maximum number of time steps reached at t = {0}'.format(
                        t))
            nsteps += 1
            # Land exactly on tstop without leaving a sliver step
            remaining = self.tstop - t
            if remaining - h < hmin:
                h = remaining
            elif remaining - h < .1 * h:
                h = .5 * remaining
            imo.set_h(h)
            state = IterationState(x, isTransient = True, integ = imo,
                                   time = t + h)
            result = newton_solve(dc.system, devList, state,
                                  glVar.tranmaxiter)
            tIter += result.iterations
            if not result:
                # Discard step and try a smaller one
                imo.reject()
                nreject += 1
                logger.info('t = %g: %s, h = %g -> %g', t, result.reason,
                            h, h / 8.)
                h /= 8.
                if h < hmin:
                    raise AnalysisError(
                        'Time step too small at t = {0}: {1}'.format(
                            t, result))
                continue
            # Charges (and device bias state) must correspond to the
            # accepted solution, not to the last linearization point
            load_devices(dc.system, devList,
                         IterationState(result.x, isTransient = True,
                                        integ = imo, time = t + h))
            newh = None
            if self.lte:
                newh = imo.truncate()
            if newh is not None and newh < .9 * h:
                imo.reject()
                nreject += 1
                logger.info('t = %g: truncation error, h = %g -> %g',
                            t, h, newh)
                h = newh
                if h < hmin:
                    raise AnalysisError(
                        'Time step too small at t = {0}'.format(t))
                continue
            # Step accepted
            imo.accept()
            if h == remaining:
                t = self.tstop
            else:
                t += h
            x = result.x
            timeList.append(t)
            xList.append(x)
            if self.verbose:
                print('{0:8} | {1:12} | {2:8} | {3:12}'.format(
                        len(timeList) - 1, t, result.iterations, h))
            elif not len(timeList) % dots:
                print('.', end='')
                sys.stdout.flush()
            if newh is None:
                newh = glVar.maxgrowth * h
            h = min(newh, glVar.maxgrowth * h, tmax)

        timeVec = np.array(timeList)
        xVec = np.array(xList)
        naccept = len(timeList) - 1
        print('\nAccepted steps: {0}'.format(naccept))
        print('Rejected steps: {0}'.format(nreject))
        if naccept:
            print('Average iterations: {0}\n'.format(float(tIter) / nsteps))

        if self.checkpoint:
            np.savez(self.checkpoint, x = x, time = t, h = h,
                     **imo.get_state())

        # Save results
        circuit.tran_timevec = timeVec
        circuit.nD_ref.tran_v = np.zeros(len(timeVec))
        for term in circuit.nD_termList:
            term.tran_v = xVec[:, term.nD_namRC]
        return (timeVec, xVec)
