"""
:mod:`diode` -- Diode model including charge and series resistance
------------------------------------------------------------------

.. module:: diode
.. moduleauthor:: Carlos Christoffersen

This model is based on PN Juction class, also defined here. The
junction class can be re-used for other models with PN junctions
"""

from warnings import warn
import numpy as np
from thistle.globalVars import const, glVar
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Transient, \
    Frequency, Noise
from thistle.devices.limiting import pnjlim, vcrit, vconverged
from thistle.devices.helperf import MAX_EXP_ARG

#-----------------------------------------------------------------------
def grading_general(arg, m):
    """
    Returns arg^(-m) for a depletion capacitance with grading
    coefficient m
    """
    return np.exp(-m * np.log(arg))

def grading_factor(arg, m):
    """
    Same as grading_general() but uses a square root when m == .5
    (the most common case)
    """
    if m == .5:
        return 1. / np.sqrt(arg)
    return grading_general(arg, m)

def check_grading(name, m, fc):
    """
    Warn if depletion capacitance parameters are unusual
    """
    if not .1 <= m <= .9:
        warn('{0}: unusual grading coefficient: {1}'.format(name, m))
    if fc >= .95:
        warn('{0}: fc = {1} too close to 1'.format(name, fc))

def safe_exp(x):
    """
    exp(x) with linear extrapolation above MAX_EXP_ARG

    Returns (exp(x), d exp(x) / dx)
    """
    if x > MAX_EXP_ARG:
        e = np.exp(MAX_EXP_ARG)
        return (e * (1. + x - MAX_EXP_ARG), e)
    e = np.exp(x)
    return (e, e)

#-----------------------------------------------------------------------
class Junction:
    """
    P-N Juction model.

    Based on carrot source, in turn based on spice/freeda diode
    model. This is intended to model any regular P-N junction such as
    Drain-Bulk, diodes, Collector-Bulk, etc.

    Breakdown and area effects not included
    """
    def process_params(self, isat, n, fc, cj0, vj, m, xti, eg0, Tnomabs):
        """
        Calculate variables dependent on parameter values only
        """
        # Saturation current
        self.isat = isat
        # Emission coefficient
        self.n = n
        # Coefficient for forward-bias depletion capacitance
        self.fc = fc
        # Zero-bias depletion capacitance
        self.cj0 = cj0
        # Built-in junction potential
        self.vj = vj
        # PN junction grading coefficient
        self.m = m
        # Set some handy variables
        self._k1 = xti / self.n
        self._k2 = const.q * eg0 / self.n / const.k / Tnomabs
        self._k3 = const.q * eg0 / self.n / const.k
        self._k4 = 1. - self.m

    def set_temp_vars(self, obj):
        """
        Calculate temperature-dependent variables for temp given in C

        obj is an object instance containing the following attributes:
        tnratio, Tabs, Tnomabs, vt, egapn, egap_t
        """
        self._t_is = self.isat * pow(obj.tnratio, self._k1) \
            * np.exp(self._k2 - self._k3 / obj.Tabs)
        self._kexp = obj.vt * self.n
        self.vcrit = vcrit(self._kexp, self._t_is)
        if self.cj0:
            self._t_vj = self.vj * obj.tnratio \
                - 3. * obj.vt * np.log(obj.tnratio) \
                - obj.tnratio * obj.egapn + obj.egap_t
            self._t_cj0 = self.cj0 * (1. + self.m
                                     * (.0004 * (obj.Tabs - obj.Tnomabs)
                                         + 1. - self._t_vj / self.vj))
            # Forward-bias linearization constants
            self._f1 = self._t_vj * (1. - pow(1. - self.fc, self._k4)) \
                / self._k4
            self._f2 = pow(1. - self.fc, 1. + self.m)
            self._f3 = 1. - self.fc * (1. + self.m)
            self._depCap = self.fc * self._t_vj

    def get_id(self, vd):
        """
        Returns junction current and conductance

        vd: diode voltage
        """
        e, de = safe_exp(vd / self._kexp)
        return (self._t_is * (e - 1.), self._t_is * de / self._kexp)

    def get_qd(self, vd):
        """
        Returns junction depletion charge and capacitance

        vd: diode voltage
        """
        if not self.cj0:
            return (0., 0.)
        if vd < self._depCap:
            arg = 1. - vd / self._t_vj
            sarg = grading_factor(arg, self.m)
            qd = self._t_vj * self._t_cj0 * (1. - arg * sarg) / self._k4
            cd = self._t_cj0 * sarg
        else:
            vdc = self._depCap
            qd = self._t_cj0 * (self._f1 + (
                    self._f3 * (vd - vdc)
                    + .5 * self.m / self._t_vj * (vd * vd - vdc * vdc))
                                / self._f2)
            cd = self._t_cj0 * (self._f3 + self.m * vd / self._t_vj) \
                / self._f2
        return (qd, cd)


#-----------------------------------------------------------------------
class Device(cir.Element, Temperature, Biasing, Transient, Frequency,
             Noise):
    r"""
    Diode device (based on spice model)::

               o  0
               |
             --+--
              \ /
             '-+-'
               |
               o  1

    Includes depletion and diffusion charges.

    Example::

        d1 = devClass['diode']('d1')
        ckt.add_elem(d1, 'dmodel1')
        ckt.connect(d1, ['1', 'gnd'])
        get_model('dmodel1').set_param('cj0', 10e-12)

    Internal Topology
    +++++++++++++++++

    The internal representation is the following::

        0  o
           |
           \
           / Rs
           \
           /
           |   t2
           o---------+
                     | i(vin)+dq/dt
          +         /|\
        vin        | | |
          -         \V/
                     |
        1  o---------+

    Terminal t2 not present if Rs = 0

    Convergence
    +++++++++++

    The junction voltage is limited with ``pnjlim()`` and a
    conductance ``gmin`` is added in parallel with the junction. In
    the first iteration of an operating point the junction voltage is
    set to its critical voltage.
    """

    # devtype is the 'model' name
    devType = "diode"

    # Number of terminals
    numTerms = 2

    isNonlinear = True

    # Define parameters (note most parameters defined in Junction)
    paramDict = dict(
        cir.Element.tempItem,
        isat = ('Saturation current', 'A', float, 1e-14),
        n = ('Emission coefficient', ' ', float, 1.),
        fc = ('Coefficient for forward-bias depletion capacitance', ' ',
              float, .5),
        cj0 = ('Zero-bias depletion capacitance', 'F', float, 0.),
        vj = ('Built-in junction potential', 'V', float, 1.),
        m = ('PN junction grading coefficient', ' ', float, .5),
        tt = ('Transit time', 's', float, 0.),
        xti = ('Is temperature exponent', ' ', float, 3.),
        eg0 = ('Energy bandgap', 'eV', float, 1.11),
        tnom = ('Nominal temperature', 'C', float, 27.),
        ibv = ('Current at reverse breakdown voltage', 'A', float, 1e-10),
        bv = ('Breakdown voltage', 'V', float, 0.),
        area = ('Area multiplier', ' ', float, 1.),
        rs = ('Series resistance', 'Ohms', float, 0.),
        kf = ('Flicker noise coefficient', '', float, 0.),
        af = ('Flicker noise exponent', '', float, 1.),
       )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)
        self.jtn = Junction()
        self._vd = 0.

    def process_params(self):
        # Called once the external terminals have been connected and
        # the non-default parameters have been set. Make sanity checks
        # here. Internal terminals/devices should also be defined
        # here.  Raise cir.CircuitError if a fatal error is found.
        if self.isat <= 0. or self.n <= 0. or self.area <= 0.:
            raise cir.CircuitError(
                self.nodeName + ': isat, n and area must be positive')
        if self.rs < 0.:
            raise cir.CircuitError(
                self.nodeName + ': series resistance is negative')
        # Define topology first
        if self.rs:
            # Need 1 internal terminal
            self._t2 = self.add_internal_term('Vd_int', 'V')
            self._gs = self.area / self.rs
        else:
            self._t2 = 0
        if self.cj0:
            check_grading(self.nodeName, self.m, self.fc)
        self._qd = bool(self.tt or self.cj0)

        # Absolute nominal temperature
        self.Tnomabs = self.tnom + const.T0
        self.egapn = self.eg0 - .000702 * (self.Tnomabs**2) \
            / (self.Tnomabs + 1108.)

        # Calculate variables in junction
        self.jtn.process_params(self.isat, self.n, self.fc, self.cj0, self.vj,
                                self.m, self.xti, self.eg0, self.Tnomabs)
        # Calculate temperature-dependent variables
        self.set_temp_vars(self.temp)

    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables for temp given in C
        """
        # Absolute temperature
        self.Tabs = temp + const.T0
        # Thermal voltage
        self.vt = const.k * self.Tabs / const.q
        # Temperature-adjusted egap
        self.egap_t = self.eg0 - .000702 * (self.Tabs**2) / (self.Tabs + 1108.)
        if self.rs:
            self._Sthermal = 4. * const.k * self.Tabs * self._gs
        else:
            self._Sthermal = 0.
        # Normalized temp
        self.tnratio = self.Tabs / self.Tnomabs
        # Everything else is handled by the PN junction
        self.jtn.set_temp_vars(self)

    #---------------------------------------------------------------
    # Evaluation
    #---------------------------------------------------------------
    def eval_id(self, vd, gmin):
        """
        Models intrinsic diode current

        Returns (id, gd) including breakdown and gmin
        """
        iD, gD = self.jtn.get_id(vd)
        # add breakdown current
        if self.bv > 0.:
            e, de = safe_exp(-(vd + self.bv) / self.jtn._kexp)
            iD -= self.ibv * e
            gD += self.ibv * de / self.jtn._kexp
        return (iD * self.area + gmin * vd, gD * self.area + gmin)

    def eval_qd(self, vd):
        """
        Models depletion and diffusion charge

        Returns (qd, cd)
        """
        qD, cD = self.jtn.get_qd(vd)
        if self.tt:
            iD, gD = self.jtn.get_id(vd)
            qD += self.tt * iD
            cD += self.tt * gD
        return (qD * self.area, cD * self.area)

    def _vdiode(self, x):
        return x[self.nodes[self._t2]] - x[self.nodes[1]]

    #---------------------------------------------------------------
    # Analysis roles
    #---------------------------------------------------------------
    def bind(self, system):
        Biasing.bind(self, system)
        n0, n1 = self.nodes[:2]
        n2 = self.nodes[self._t2]
        self._hj = system.bind_quad(n2, n2, n1, n1)
        if self.rs:
            self._hrs = system.bind_quad(n0, n0, n2, n2)

    def load(self, system, state):
        if state.initMode == 'junction':
            vd = self.jtn.vcrit
            limited = True
        else:
            vd, limited = pnjlim(self._vdiode(state.x), self._vd,
                                 self.jtn._kexp, self.jtn.vcrit)
        iD, gD = self.eval_id(vd, state.gmin)
        self._vd, self._id, self._gd = vd, iD, gD
        # Stamp
        if self.rs:
            system.add_quad(self._hrs, self._gs)
        system.add_quad(self._hj, gD)
        ieq = iD - gD * vd
        system.sub_rhs(self.nodes[self._t2], ieq)
        system.add_rhs(self.nodes[1], ieq)
        return limited

    def is_convergent(self, state):
        vd = self._vdiode(state.x)
        if not vconverged(vd, self._vd):
            self.convReason = \
                'diode voltage: used {0:.6e}, new {1:.6e}'.format(
                self._vd, vd)
            return False
        cdhat = self._id + self._gd * (vd - self._vd)
        cd = self.eval_id(vd, state.gmin)[0]
        tol = glVar.reltol * max(abs(cdhat), abs(cd)) + glVar.abstol
        if abs(cdhat - cd) > tol:
            self.convReason = \
                'diode current: predicted {0:.6e}, actual {1:.6e}'.format(
                cdhat, cd)
            return False
        return True

    def create_states(self, integ):
        if self._qd:
            self._qstate = integ.new_charge()

    def init_states(self, state):
        if self._qd:
            self._qstate.init(self.eval_qd(self._vdiode(state.x))[0])

    def load_transient(self, system, state):
        if not self._qd:
            return
        vd = self._vd
        qD, cD = self.eval_qd(vd)
        geq, ceq = self._qstate.integrate(qD, cD, vd)
        system.add_quad(self._hj, geq)
        system.sub_rhs(self.nodes[self._t2], ceq)
        system.add_rhs(self.nodes[1], ceq)

    def load_ac(self, system, state, omega):
        vd = self._vdiode(state.x)
        y = self.eval_id(vd, state.gmin)[1]
        if self._qd:
            y += 1j * omega * self.eval_qd(vd)[1]
        if self.rs:
            system.add_quad(self._hrs, self._gs)
        system.add_quad(self._hj, y)

    def get_OP(self, x):
        """
        Calculates operating point information

        Output: dictionary with OP variables
        """
        vd = self._vdiode(x)
        iD, gD = self.eval_id(vd, glVar.gmin)
        self.OP = dict(
            VD = vd,
            ID = iD,
            gd = gD,
            Sthermal = self._Sthermal,
            Sshot = 2. * const.q * abs(iD),
            kSflicker = self.kf * pow(abs(iD), self.af)
            )
        # Add capacitor
        if self._qd:
            self.OP['Cd'] = self.eval_qd(vd)[1]
        return self.OP

    def get_noise(self, f):
        """
        Return noise spectral density at frequency f

        Requires a previous call to get_OP()
        """
        n1 = self.nodes[1]
        n2 = self.nodes[self._t2]
        sj = self.OP['Sshot'] + self.OP['kSflicker'] / f
        noiseList = [('shot+flicker', n2, n1, sj)]
        if self.rs:
            noiseList.append(('thermal', self.nodes[0], n2,
                              self.OP['Sthermal']))
        return noiseList
