"""
:mod:`ac` -- AC sweep Analysis
------------------------------

.. module:: ac
.. moduleauthor:: Carlos Christoffersen

"""

import sys
import numpy as np
from thistle.paramset import ParamSet
from thistle.analyses.analysis import print_header
from thistle.analyses.fsolve import solve, NoConvergenceError
import thistle.analyses.nodal as nd

class Analysis(ParamSet):
    r"""
    AC Sweep
    --------

    Calculates a AC sweep of a circuit using the nodal approach. After
    the analysis is complete, nodal voltages are saved in circuit and
    terminals with the ``aC_`` prefix.

    An OP analysis is performed first to obtain the Jacobian from
    nonlinear devices. Each device then writes a complex stamp
    linearized around the operating point and one linear system is
    solved per frequency (no iteration). Sources are excited with
    their ``acmag`` and ``acphase`` parameters.

    Convergence parameters for the Newton method are controlled using
    the global variables in ``glVar``.

    Example::

        ac = anClass['ac']()
        ac.set_param('start', 100.)
        ac.set_param('stop', 1e6)
        ac.set_param('log', True)
        ac.set_attributes()
        ac.run(ckt)

    """
    # antype is the name of the analysis
    anType = "ac"

    # Define parameters as follows
    paramDict = dict(
        start = ('Frequency sweep start value', 'Hz', float, 1.),
        stop = ('Frequency sweep stop value', 'Hz', float, 10.),
        log = ('Use logarithmic scale', '', bool, False),
        num = ('Number of points in sweep', '', int, 50)
        )

    def __init__(self):
        # Just init the base class
        ParamSet.__init__(self, self.paramDict)

    def run(self, circuit):
        """
        Calculates a AC sweep by solving nodal equations around the
        operating point

        Returns a matrix with one complex solution vector per row (or
        None if the operating point can not be found)
        """
        print_header('AC sweep analysis', circuit)

        if not circuit._initialized:
            circuit.init()

        nd.make_nodal_circuit(circuit)
        dc = nd.DCNodal(circuit)
        x0 = dc.get_guess()
        print('System dimension: {0}'.format(circuit.nD_dimension))
        # solve equations
        try:
            print('Calculating DC operating point ... ', end='')
            sys.stdout.flush()
            result = solve(x0, dc.convergence_helpers)
            print('Succeded.\n')
        except NoConvergenceError as ce:
            print('Failed.\n')
            print(ce)
            return None
        dc.save_OP(result.x)

        # Create frequency vector
        if self.log:
            fvec = np.logspace(start = np.log10(self.start),
                               stop = np.log10(self.stop),
                               num = self.num)
        else:
            fvec = np.linspace(start = self.start,
                               stop = self.stop,
                               num = self.num)
        circuit.aC_sweep = fvec
        # Perform analysis
        return nd.run_AC(circuit, dc.system, result.x, fvec)
