"""
:mod:`op` -- Operating Point Analysis
-------------------------------------

.. module:: op
.. moduleauthor:: Carlos Christoffersen

"""

from thistle.paramset import ParamSet
from thistle.analyses.analysis import print_header
from thistle.analyses.fsolve import solve, NoConvergenceError
import thistle.analyses.nodal as nd

class Analysis(ParamSet):
    r"""
    DC Operating Point
    ------------------

    Calculates the DC operating point of a circuit using the nodal
    approach. After the analysis is complete, nodal voltages are saved
    in circuit and terminals with the ``nD_`` prefix.

    By default the voltage at all external voltages is printed after
    the analysis is complete. Optionally the operating points of
    all elements can be printed.

    Equations are first solved with plain Newton's method. If that
    fails gmin stepping and then source stepping are tried. If all of
    them fail the last trial solution is printed together with the
    name of the device that failed the convergence check.

    Convergence parameters for the Newton method are controlled using
    the global variables in ``glVar``.

    Example::

        op = anClass['op']()
        op.set_param('elemop', True)
        op.set_attributes()
        result = op.run(ckt)

    """

    # antype is the name of the analysis
    anType = "op"

    # Define parameters as follows
    paramDict = dict(
        intvars = ('Print internal element nodal variables', '', bool, False),
        elemop = ('Print element operating points', '', bool, False)
        )


    def __init__(self):
        # Just init the base class
        ParamSet.__init__(self, self.paramDict)


    def run(self, circuit):
        """
        Calculates the operating point by solving nodal equations

        The state of all devices is determined by the values of the
        voltages at the controlling ports.

        Returns the Converged instance or None if no method converged
        """
        print_header('Operating point analysis', circuit)

        if not circuit._initialized:
            circuit.init()

        # Create nodal object
        nd.make_nodal_circuit(circuit)
        dc = nd.DCNodal(circuit)
        x0 = dc.get_guess()
        # solve equations
        try:
            result = solve(x0, dc.convergence_helpers)
        except NoConvergenceError as ce:
            print(ce)
            if ce.result is not None:
                print('\nLast trial solution:\n')
                for term in circuit.nD_termList:
                    print('{0:10} | {1:20} | {2}'.format(
                            term.get_label(), ce.result.x[term.nD_namRC],
                            term.unit))
            return None
        dc.save_OP(result.x)

        print('Number of iterations = ', result.iterations)

        print('\n Node      |  Value               | Unit ')
        print('----------------------------------------')
        for key in sorted(circuit.termDict):
            term = circuit.termDict[key]
            print('{0:10} | {1:20} | {2}'.format(key, term.nD_vOP, term.unit))

        if self.intvars or self.elemop:
            for elem in circuit.nD_elemList:
                print('\nElement: ', elem.nodeName)
                if self.intvars:
                    print('\n    Internal nodal variables:\n')
                    for term in elem.get_internal_terms():
                        print('    {0:10} : {1:20} {2}'.format(
                                term.nodeName, term.nD_vOP, term.unit))
                if self.elemop:
                    print('\n    Operating point info:\n')
                    for line in elem.format_OP().splitlines():
                        print('    ' + line.replace('|',':'))
        print('\n')
        return result
