"""
:mod:`noise` -- Noise Analysis
------------------------------

.. module:: noise
.. moduleauthor:: Carlos Christoffersen

"""

import numpy as np
from thistle.paramset import ParamSet
from thistle.analyses.analysis import AnalysisError, print_header
from thistle.analyses.spsystem import SolveStatus, SingularMatrixError
from thistle.analyses.fsolve import solve, IterationState, NoConvergenceError
from thistle.devices.roles import supports
import thistle.analyses.nodal as nd

class Analysis(ParamSet):
    r"""
    Noise Analysis
    --------------

    Calculates the noise voltage spectral density at one terminal
    over a frequency sweep. An OP analysis is performed first. Then,
    for each frequency, the small-signal system is linearized around
    the operating point and the transposed (adjoint) system is solved
    once with a unit excitation at the output:

    .. math::

        A^T y = e_{out}

    The transfer from a noise current source connected between
    variables :math:`n_1` and :math:`n_2` to the output is
    :math:`y_{n_1} - y_{n_2}`, so the output spectral density is:

    .. math::

        S_{out} = \sum_k S_k |y_{n_1} - y_{n_2}|^2

    Noise sources are obtained from the ``get_noise()`` method of
    each device (thermal, shot and flicker noise). After the analysis
    the frequency vector is saved in ``circuit.nO_sweep``, the output
    density in ``circuit.nO_out`` and each contribution in the
    ``circuit.nO_contrib`` dictionary, keyed by (element name, source
    name).

    Example::

        noise = anClass['noise']()
        noise.set_param('output', 'out')
        noise.set_param('start', 10.)
        noise.set_param('stop', 1e6)
        noise.set_param('log', True)
        noise.set_attributes()
        noise.run(ckt)

    """
    # antype is the name of the analysis
    anType = "noise"

    # Define parameters as follows
    paramDict = dict(
        output = ('Output terminal name', '', str, ''),
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
        Calculates output noise spectral density

        Returns the output spectral density vector in V^2/Hz (or None
        if the operating point can not be found)
        """
        print_header('Noise analysis', circuit)

        if not circuit._initialized:
            circuit.init()
        if not circuit.has_term(self.output):
            raise AnalysisError('Output terminal not found: '
                                + repr(self.output))

        nd.make_nodal_circuit(circuit)
        outRow = circuit.get_term(self.output).nD_namRC
        if outRow == 0:
            raise AnalysisError('Output terminal can not be the reference')
        dc = nd.DCNodal(circuit)
        try:
            result = solve(dc.get_guess(), dc.convergence_helpers)
        except NoConvergenceError as ce:
            print(ce)
            return None
        dc.save_OP(result.x)

        if self.log:
            fvec = np.logspace(start = np.log10(self.start),
                               stop = np.log10(self.stop),
                               num = self.num)
        else:
            fvec = np.linspace(start = self.start,
                               stop = self.stop,
                               num = self.num)

        acSystem = dc.system.like(complex)
        state = IterationState(result.x)
        acList = [elem for elem in circuit.nD_elemList
                  if supports(elem, 'ac')]
        noiseList = [elem for elem in circuit.nD_elemList
                     if supports(elem, 'noise')]
        eOut = np.zeros(circuit.nD_dimension, dtype = complex)
        eOut[outRow] = 1.
        outPSD = np.zeros(len(fvec))
        contrib = dict()
        for k, f in enumerate(fvec):
            acSystem.clear()
            for elem in acList:
                elem.load_ac(acSystem, state, 2. * np.pi * f)
            if acSystem.factor() == SolveStatus.SINGULAR:
                raise SingularMatrixError(
                    'Singular AC matrix at f = {0} Hz'.format(f))
            y = acSystem.back_substitute(eOut, trans = True)
            for elem in noiseList:
                for name, n1, n2, psd in elem.get_noise(f):
                    s = psd * abs(y[n1] - y[n2])**2
                    key = (elem.nodeName, name)
                    try:
                        contrib[key][k] = s
                    except KeyError:
                        contrib[key] = np.zeros(len(fvec))
                        contrib[key][k] = s
                    outPSD[k] += s

        circuit.nO_sweep = fvec
        circuit.nO_out = outPSD
        circuit.nO_contrib = contrib

        print('Output terminal: ', self.output)
        print('\n Source                         | Integrated V^2 ')
        print('----------------------------------------------------')
        for key in sorted(contrib):
            if len(fvec) > 1:
                c = contrib[key]
                total = np.sum(.5 * (c[1:] + c[:-1]) * np.diff(fvec))
            else:
                total = contrib[key][0]
            print('{0:30} | {1}'.format(':'.join(key), total))
        print('\n')
        return outPSD
