"""
:mod:`dc` -- DC sweep Analysis
------------------------------

.. module:: dc
.. moduleauthor:: Carlos Christoffersen

"""

import numpy as np

from thistle.paramset import ParamSet
from thistle.analyses.analysis import AnalysisError, print_header
from thistle.analyses.fsolve import solve, NoConvergenceError
from thistle.devices.roles import supports
import thistle.analyses.nodal as nd

class Analysis(ParamSet):
    """
    DC Sweep
    --------

    Calculates a DC sweep of a circuit using the nodal approach. After
    the analysis is complete, nodal voltages are saved in circuit and
    terminals with the ``dC_`` prefix.

    The following parameters can be swept:

      * Any device parameter of ``float`` type (device name must be
        specified in this case)

      * Global temperature (no device specified): sweep temperature of
        all devices that do not explicitly have ``temp`` set.

    The solution of each point is used as the initial guess for the
    next one, with devices starting from their last bias state. The
    regular convergence helpers are used only if that fails. The
    number of iterations of each point is saved in ``circuit.dC_iter``.
    Convergence parameters for the Newton method are
    controlled using the global variables in ``glVar``.

    Examples::

        # Device parameter sweep
        dc = anClass['dc']()
        dc.set_param('device', 'vdc:v1')
        dc.set_param('param', 'vdc')
        dc.set_param('start', -2.)
        dc.set_param('stop', 2.)
        dc.set_attributes()
        dc.run(ckt)

        # Global temperature sweep
        dc.set_param('param', 'temp')

    """

    # antype is the name of the analysis
    anType = "dc"

    # Define parameters as follows
    paramDict = dict(
        device = ('Instance name of device to sweep variable', '', str, ''),
        param = ('Parameter to sweep', '', str, ''),
        start = ('Sweep start value', '(variable)', float, 0.),
        stop = ('Sweep stop value', '(variable)', float, 0.),
        num = ('Number of points in sweep', '', int, 50),
        verbose = ('Show iterations for each point', '', bool, False)
        )


    def __init__(self):
        # Just init the base class
        ParamSet.__init__(self, self.paramDict)


    def run(self, circuit):
        """
        Calculates a DC sweep by solving nodal equations

        The parameter to be swept is specified in the analysis options

        Returns a matrix with one solution vector per row
        """
        print_header('DC sweep analysis', circuit)

        if not circuit._initialized:
            circuit.init()

        # get device (if any)
        paramunit = None
        # tempFlag indicates if we are doing a global temperature sweep
        tempFlag = False
        if self.device:
            # Device specified, try to find it
            try:
                dev = circuit.elemDict[self.device]
            except KeyError:
                raise AnalysisError('Could not find: {0}'.format(self.device))
            if self.param:
                try:
                    pinfo = dev.paramDict[self.param]
                except KeyError:
                    raise AnalysisError('Unrecognized parameter: '
                                        + self.param)
                else:
                    if not pinfo[2] == float:
                        raise AnalysisError('Parameter must be float: '
                                            + self.param)
            else:
                raise AnalysisError("Don't know what parameter to sweep!")
            paramunit = pinfo[1]
        else:
            # No device, check if temperature sweep
            if self.param != 'temp':
                raise AnalysisError(
                    'Only temperature sweep supported if no device specified')
            paramunit = 'C'
            tempFlag = True

        sweepvar = np.linspace(start = self.start, stop = self.stop,
                               num = self.num)
        circuit.dC_sweep = sweepvar
        if tempFlag:
            circuit.dC_var = 'Global temperature sweep: temp'
        else:
            circuit.dC_var = 'Device: ' + dev.nodeName \
                + '  Parameter: ' + self.param
        circuit.dC_unit = paramunit

        nd.make_nodal_circuit(circuit)
        print('System dimension: {0}'.format(circuit.nD_dimension))
        print('Sweep: ', circuit.dC_var)

        if not tempFlag:
            savedValues = dict(dev.valueDict)
        x = np.zeros(circuit.nD_dimension)
        xVec = np.zeros((self.num, circuit.nD_dimension))
        iterVec = np.zeros(self.num, dtype = int)
        tIter = 0
        try:
            for i, value in enumerate(sweepvar):
                if tempFlag:
                    for elem in circuit.nD_elemList:
                        # Only sweep temperature if not explicitly given
                        # for a device
                        if supports(elem, 'temperature') \
                                and not elem.is_set('temp'):
                            elem.set_temp_vars(value)
                else:
                    # Internal terminals are re-created by init()
                    dev.set_param(self.param, float(value))
                    dev.init()
                # Variable numbering does not change from point to point
                nd.make_nodal_circuit(circuit)
                dc = nd.DCNodal(circuit)
                helpers = dc.convergence_helpers
                if i:
                    # Continue from the previous point, fall back to
                    # the regular helpers if that fails
                    helpers = [dc.solve_continuation] + helpers
                # solve equations
                try:
                    result = solve(x, helpers)
                except NoConvergenceError as ce:
                    print('{0} = {1}'.format(self.param, value))
                    print(ce)
                    return None
                x = result.x
                # Save result
                xVec[i] = x
                # Keep some info about iterations
                iterVec[i] = result.iterations
                tIter += result.iterations
                if self.verbose:
                    print('{0} = {1}'.format(self.param , value))
                    print('Number of iterations = ', result.iterations)
        finally:
            # Restore original attribute values
            if tempFlag:
                for elem in circuit.nD_elemList:
                    if supports(elem, 'temperature') \
                            and not elem.is_set('temp'):
                        elem.set_temp_vars(elem.temp)
            else:
                dev.valueDict = savedValues
                dev.init()
            nd.make_nodal_circuit(circuit)

        # Calculate average iterations
        avei = tIter / len(sweepvar)
        print('Average iterations: {0}\n'.format(avei))
        circuit.dC_iter = iterVec

        # Save results in nodes
        circuit.nD_ref.dC_v = np.zeros(self.num)
        for term in circuit.nD_termList:
            term.dC_v = xVec[:, term.nD_namRC]
        return xVec
