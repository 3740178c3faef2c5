"""
:mod:`mosLevel2` -- SPICE Level-2 MOSFET model
----------------------------------------------

.. module:: mosLevel2
.. moduleauthor:: Carlos Christoffersen

Grove-Frohman long channel model with short- and narrow-channel
threshold corrections, field-dependent mobility, velocity saturation
(Baum), channel length modulation and a weak-inversion
(subthreshold) current. Bulk junctions are modelled as diodes with
depletion capacitance and the gate capacitances follow Meyer's model.

All voltages used by the channel equations are normalized with the
channel type (multiplied by +1 for N-channel and -1 for P-channel)
so a single set of equations serves both types.
"""

from enum import Enum
from types import SimpleNamespace
import numpy as np
from thistle.globalVars import const, glVar
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Transient, \
    Frequency, Noise
from thistle.devices.limiting import fetlim, limvds, pnjlim, vcrit, qmeyer, \
    vconverged
from thistle.devices.diode import grading_factor, check_grading
from thistle.devices.helperf import MAX_EXP_ARG

# Silicon permittivity and oxide capacitance constant used by the
# model equations
EPSSI = 11.7 * 8.854214871e-12
EPSOX = 3.9 * 8.854214871e-12
# Bandgap of silicon at 300.15 K divided by 2 k Tref (eV)
EGREF = 1.1150877


class Region(Enum):
    """
    Channel operating region
    """
    CUTOFF = 'cutoff'
    SUBTHRESHOLD = 'subthreshold'
    LINEAR = 'linear'
    SATURATION = 'saturation'


#-----------------------------------------------------------------------
def depletion_charge(v, czb, czbsw, pb, mj, mjsw, depCap, f2, f3, f4):
    """
    Bulk junction depletion charge and capacitance

    v: junction voltage (bulk to source/drain, type normalized)

    czb, czbsw: zero-bias bottom and sidewall capacitance

    pb: junction potential, depCap: forward bias linearization
    voltage (fc * pb), f2, f3, f4: linearization coefficients

    Returns (q, c)
    """
    if not (czb or czbsw):
        return (0., 0.)
    if v < depCap:
        arg = 1. - v / pb
        sarg = grading_factor(arg, mj)
        if mjsw == mj:
            sargsw = sarg
        else:
            sargsw = grading_factor(arg, mjsw)
        q = pb * (czb * (1. - arg * sarg) / (1. - mj)
                  + czbsw * (1. - arg * sargsw) / (1. - mjsw))
        c = czb * sarg + czbsw * sargsw
    else:
        q = f4 + v * (f2 + v * f3 / 2.)
        c = f2 + f3 * v
    return (q, c)


def linearization_coefficients(czb, czbsw, pb, mj, mjsw, fc):
    """
    Returns (f2, f3, f4) used by depletion_charge() above fc * pb
    """
    arg = 1. - fc
    sarg = np.exp(-mj * np.log(arg))
    sargsw = np.exp(-mjsw * np.log(arg))
    depCap = fc * pb
    f2 = czb * (1. - fc * (1. + mj)) * sarg / arg \
        + czbsw * (1. - fc * (1. + mjsw)) * sargsw / arg
    f3 = czb * mj * sarg / arg / pb + czbsw * mjsw * sargsw / arg / pb
    f4 = czb * pb * (1. - arg * sarg) / (1. - mj) \
        + czbsw * pb * (1. - arg * sargsw) / (1. - mjsw) \
        - f3 / 2. * depCap * depCap - depCap * f2
    return (f2, f3, f4)


def junction_current(v, isat, vt, gmin):
    """
    Bulk junction current and conductance (includes gmin)
    """
    if v <= -3. * vt:
        return (gmin * v - isat, gmin)
    e = np.exp(min(MAX_EXP_ARG, v / vt))
    return (isat * (e - 1.) + gmin * v, isat * e / vt + gmin)


class MeyerGate:
    """
    Gate charges of Meyer's capacitance model (gs, gd and gb)

    The capacitance used in a time step is the sum of the (half)
    Meyer capacitance at the present and at the last accepted step
    plus the overlap capacitance. The charge is advanced from the
    last accepted charge:

        q = (v - v_1) C + q_1
    """
    def __init__(self, integ):
        self.qstates = [integ.new_charge() for i in range(3)]
        self.caps = [integ.new_slot() for i in range(3)]
        self.volts = [integ.new_slot() for i in range(3)]

    def init(self, meyer, overlap, voltages):
        """
        Initialize histories from an operating point

        meyer: (cgs, cgd, cgb) half capacitances
        overlap: overlap capacitances in the same order
        voltages: (vgs, vgd, vgb)
        """
        for qs, cs, vs, c, ov, v in zip(self.qstates, self.caps, self.volts,
                                        meyer, overlap, voltages):
            qs.init((2. * c + ov) * v)
            cs.init(c)
            vs.init(v)

    def integrate(self, meyer, overlap, voltages):
        """
        Returns a list with the companion model (geq, ceq) of each
        capacitance
        """
        companions = []
        for qs, cs, vs, c, ov, v in zip(self.qstates, self.caps, self.volts,
                                        meyer, overlap, voltages):
            cs.value = c
            cap = c + cs.history[0] + ov
            q = (v - vs.history[0]) * cap + qs.q.history[0]
            vs.value = v
            companions.append(qs.integrate(q, cap, v))
        return companions


class DCResult:
    """
    Result of a DC evaluation at given terminal voltages

    Voltages and currents are type-normalized. ``ids`` is the channel
    current flowing from drain to source and ``id`` the total current
    entering the drain (channel minus drain junction current).
    """
    def __init__(self, vgs, vds, vbs):
        self.vgs = vgs
        self.vds = vds
        self.vbs = vbs
        self.vbd = vbs - vds
        self.vgd = vgs - vds
        self.mode = 1
        self.region = Region.CUTOFF
        self.cdrain = 0.
        self.gm = 0.
        self.gds = 0.
        self.gmbs = 0.
        self.von = 0.
        self.vdsat = 0.

    @property
    def ids(self):
        return self.mode * self.cdrain

    @property
    def id(self):
        return self.mode * self.cdrain - self.ibd


#-----------------------------------------------------------------------
class Device(cir.Element, Temperature, Biasing, Transient, Frequency,
             Noise):
    r"""
    Level-2 MOSFET
    --------------

    Terminal order: 0 Drain, 1 Gate, 2 Source, 3 Bulk::

               Drain 0
                       o
                       |
                       |
                   |---+
                   |
      Gate 1 o-----|<-----o 3 Bulk
                   |
                   |---+
                       |
                       |
                       o
              Source 2

    Example::

        m1 = devClass['mosfet2']('m1')
        ckt.add_elem(m1, 'nch')
        ckt.connect(m1, ['d', 'g', 'gnd', 'gnd'])
        m1.set_param('w', 10e-6)
        m1.set_param('l', 1e-6)
        get_model('nch').set_param('vto', .7)

    Internal topology
    +++++++++++++++++

    If ``rd`` (or ``rsh`` and ``nrd``) is given an internal drain
    terminal (``dp``) is added. The same applies to the source
    (``sp``). The channel current source, the bulk junctions and the
    gate capacitances are connected to the internal terminals.

    Operating modes
    +++++++++++++++

    The channel equations assume :math:`V_{ds} \geq 0`. When
    :math:`V_{ds} < 0` the device operates in reverse mode (``mode =
    -1``): drain and source are swapped, the equations are evaluated
    with :math:`(V_{gd}, -V_{ds}, V_{bd})` and the transconductances
    are applied to the swapped terminals.

    The operating region (``Region``) is determined first and then
    the drain current is evaluated by the function for that region.

    Convergence
    +++++++++++

    ``fetlim()`` is applied to the gate voltage, ``limvds()`` to the
    drain voltage and ``pnjlim()`` to the forward biased bulk
    junction. In the first iteration of an operating point the device
    starts at :math:`V_{bs} = -1`, :math:`V_{ds} = 0` and
    :math:`V_{gs} = V_{T0}` (all zero if ``off`` is set).
    """
    # Device category
    category = "Semiconductor devices"

    # devtype is the 'model' name
    devType = "mosfet2"

    # Number of terminals
    numTerms = 4

    isNonlinear = True

    paramDict = dict(
        cir.Element.tempItem,
        type = ('N- or P-channel MOS (n or p)', '', str, 'n'),
        l = ('Gate length', 'm', float, 1e-4),
        w = ('Gate width', 'm', float, 1e-4),
        ad = ('Drain area', 'm^2', float, 0.),
        asrc = ('Source area', 'm^2', float, 0.),
        pd = ('Drain perimeter', 'm', float, 0.),
        ps = ('Source perimeter', 'm', float, 0.),
        nrd = ('Number of squares in drain', 'squares', float, 1.),
        nrs = ('Number of squares in source', 'squares', float, 1.),
        off = ('Device initially off', '', bool, False),
        tnom = ('Nominal temperature', 'C', float, None),
        vto = ('Zero-bias threshold voltage', 'V', float, 0.),
        kp = ('Transconductance parameter', 'A/V^2', float, 2e-5),
        gamma = ('Bulk threshold parameter', 'V^{1/2}', float, 0.),
        phi = ('Surface inversion potential', 'V', float, .6),
        lambd = ('Channel length modulation', '1/V', float, 0.),
        rd = ('Drain ohmic resistance', 'Ohms', float, 0.),
        rs = ('Source ohmic resistance', 'Ohms', float, 0.),
        cbd = ('B-D junction capacitance', 'F', float, 0.),
        cbs = ('B-S junction capacitance', 'F', float, 0.),
        isat = ('Bulk junction saturation current', 'A', float, 1e-14),
        pb = ('Bulk junction potential', 'V', float, .8),
        cgso = ('Gate-source overlap capacitance per meter of width',
                'F/m', float, 0.),
        cgdo = ('Gate-drain overlap capacitance per meter of width',
                'F/m', float, 0.),
        cgbo = ('Gate-bulk overlap capacitance per meter of length',
                'F/m', float, 0.),
        rsh = ('Drain and source diffusion sheet resistance', 'Ohms',
               float, 0.),
        cj = ('Bottom junction capacitance per area', 'F/m^2', float, 0.),
        mj = ('Bottom grading coefficient', '', float, .5),
        cjsw = ('Side junction capacitance per meter', 'F/m', float, 0.),
        mjsw = ('Side grading coefficient', '', float, .33),
        js = ('Bulk junction saturation current density', 'A/m^2',
              float, 0.),
        tox = ('Oxide thickness', 'm', float, 1e-7),
        ld = ('Lateral diffusion', 'm', float, 0.),
        u0 = ('Surface mobility', 'cm^2/V/s', float, 600.),
        fc = ('Forward bias junction fit parameter', '', float, .5),
        nsub = ('Substrate doping', 'cm^{-3}', float, 0.),
        tpg = ('Gate type (1: opposite to substrate, -1: same, 0: Al)',
               '', int, 1),
        nss = ('Surface state density', 'cm^{-2}', float, 0.),
        nfs = ('Fast surface state density', 'cm^{-2}', float, 0.),
        delta = ('Width effect on threshold', '', float, 0.),
        uexp = ('Critical field exponent for mobility degradation', '',
                float, 0.),
        ucrit = ('Critical field for mobility degradation', 'V/cm',
                 float, 1e4),
        vmax = ('Maximum carrier drift velocity', 'm/s', float, 0.),
        xj = ('Junction depth', 'm', float, 0.),
        neff = ('Total channel charge coefficient', '', float, 1.),
        kf = ('Flicker noise coefficient', '', float, 0.),
        af = ('Flicker noise exponent', '', float, 1.)
        )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)
        # Voltages used in the last load()
        self._vgs = 0.
        self._vds = 0.
        self._vbs = 0.
        self._op = None

    def process_params(self):
        # Called once the external terminals have been connected and
        # the non-default parameters have been set. Make sanity checks
        # here. Internal terminals/devices should also be defined
        # here.  Raise cir.CircuitError if a fatal error is found.
        if self.type == 'n':
            self._type = 1.
        elif self.type == 'p':
            self._type = -1.
        else:
            raise cir.CircuitError(
                '{0}: unrecognized type: {1}. Valid types are "n" or "p"'
                .format(self.nodeName, self.type))
        if self.tnom is None:
            self.tnom = glVar.tnom
        if self.phi <= 0.:
            raise cir.CircuitError(self.nodeName + ': phi is not positive')
        if self.tox <= 0.:
            raise cir.CircuitError(self.nodeName + ': tox is not positive')
        self._leff = self.l - 2. * self.ld
        if self._leff <= 0.:
            raise cir.CircuitError(
                self.nodeName + ': effective channel length less than zero')
        if self.w <= 0.:
            raise cir.CircuitError(self.nodeName + ': width is not positive')
        if self.cj or self.cjsw or self.cbd or self.cbs:
            check_grading(self.nodeName, self.mj, self.fc)
            if self.cjsw:
                check_grading(self.nodeName, self.mjsw, self.fc)

        # Drain/source series conductances
        self._gdpr = self._series_conductance('rd', self.nrd)
        self._gspr = self._series_conductance('rs', self.nrs)
        # Internal terminals (index 0 and 2 are the external ones)
        if self._gdpr:
            self._tdp = self.add_internal_term('dp', 'V')
        else:
            self._tdp = 0
        if self._gspr:
            self._tsp = self.add_internal_term('sp', 'V')
        else:
            self._tsp = 2

        self._model_vars()
        self.set_temp_vars(self.temp)

    def _series_conductance(self, rname, squares):
        r = getattr(self, rname)
        if self.is_set(rname):
            if r:
                return 1. / r
            return 0.
        if self.is_set('rsh') and self.rsh and squares:
            return 1. / (self.rsh * squares)
        return 0.

    def _model_vars(self):
        """
        Variables that depend only on model parameters and tnom

        Process parameters (phi, gamma, vto, kp) are derived from
        physical parameters only when they were not given.
        """
        self._tnomabs = self.tnom + const.T0
        self._factor1 = self._tnomabs / const.Tref
        self._vtnom = self._tnomabs * const.k / const.q
        kt1 = const.k * self._tnomabs
        self._egfet1 = 1.16 - (7.02e-4 * self._tnomabs**2) \
            / (self._tnomabs + 1108.)
        arg1 = -self._egfet1 / (kt1 + kt1) \
            + EGREF / (const.k * (const.Tref + const.Tref))
        self._pbfact1 = -2. * self._vtnom \
            * (1.5 * np.log(self._factor1) + const.q * arg1)
        self._coxFactor = EPSOX / self.tox

        if self.is_set('kp'):
            self._kp = self.kp
        else:
            self._kp = self.u0 * 1e-4 * self._coxFactor
        self._phi = self.phi
        self._gamma = self.gamma
        self._vto = self.vto
        self._xd = 0.
        if self.nsub:
            nsub = self.nsub * 1e6
            if nsub <= 1.45e16:
                raise cir.CircuitError(self.nodeName + ': nsub < ni')
            if not self.is_set('phi'):
                self._phi = max(.1, 2. * self._vtnom * np.log(nsub / 1.45e16))
            fermis = self._type * .5 * self._phi
            wkfng = 3.2
            if self.tpg:
                fermig = self._type * self.tpg * .5 * self._egfet1
                wkfng = 3.25 + .5 * self._egfet1 - fermig
            wkfngs = wkfng - (3.25 + .5 * self._egfet1 + fermis)
            if not self.is_set('gamma'):
                self._gamma = np.sqrt(2. * EPSSI * const.q * nsub) \
                    / self._coxFactor
            if not self.is_set('vto'):
                vfb = wkfngs - self.nss * 1e4 * const.q / self._coxFactor
                self._vto = vfb + self._type * (
                    self._gamma * np.sqrt(self._phi) + self._phi)
            self._xd = np.sqrt((EPSSI + EPSSI) / (const.q * nsub))

    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables for temp given in C
        """
        T = temp + const.T0
        self.vt = T * const.k / const.q
        ratio = T / self._tnomabs
        fact2 = T / const.Tref
        kt = T * const.k
        egfet = 1.16 - (7.02e-4 * T * T) / (T + 1108.)
        arg = -egfet / (kt + kt) + EGREF / (const.k * (const.Tref + const.Tref))
        pbfact = -2. * self.vt * (1.5 * np.log(fact2) + const.q * arg)

        ratio4 = ratio * np.sqrt(ratio)
        self._tkp = self._kp / ratio4
        phio = (self._phi - self._pbfact1) / self._factor1
        self._tphi = fact2 * phio + pbfact
        self._tvbi = self._vto - self._type * self._gamma * np.sqrt(self._phi) \
            + .5 * (self._egfet1 - egfet) \
            + self._type * .5 * (self._tphi - self._phi)
        self._tvt0 = self._tvbi + self._type * self._gamma \
            * np.sqrt(self._tphi)
        expfact = np.exp(-egfet / self.vt + self._egfet1 / self._vtnom)
        self._tSatCur = self.isat * expfact
        self._tSatCurDens = self.js * expfact

        # Junction capacitances
        pbo = (self.pb - self._pbfact1) / self._factor1
        gmaold = (self.pb - pbo) / pbo
        capfact = 1. / (1. + self.mj * (4e-4 * (self._tnomabs - const.Tref)
                                        - gmaold))
        tcbd = self.cbd * capfact
        tcbs = self.cbs * capfact
        tcj = self.cj * capfact
        capfact = 1. / (1. + self.mjsw * (4e-4 * (self._tnomabs - const.Tref)
                                          - gmaold))
        tcjsw = self.cjsw * capfact
        self._tpb = fact2 * pbo + pbfact
        gmanew = (self._tpb - pbo) / pbo
        capfact = 1. + self.mj * (4e-4 * (T - const.Tref) - gmanew)
        tcbd *= capfact
        tcbs *= capfact
        tcj *= capfact
        capfact = 1. + self.mjsw * (4e-4 * (T - const.Tref) - gmanew)
        tcjsw *= capfact
        self._depCap = self.fc * self._tpb

        # Junction saturation currents
        if self._tSatCurDens == 0. or self.ad == 0. or self.asrc == 0.:
            self._drainSatCur = self._sourceSatCur = self._tSatCur
        else:
            self._drainSatCur = self._tSatCurDens * self.ad
            self._sourceSatCur = self._tSatCurDens * self.asrc
        self._drainVcrit = vcrit(self.vt, self._drainSatCur)
        self._sourceVcrit = vcrit(self.vt, self._sourceSatCur)

        # Zero-bias junction capacitances
        if self.is_set('cbd'):
            self._czbd = tcbd
        elif self.is_set('cj'):
            self._czbd = tcj * self.ad
        else:
            self._czbd = 0.
        if self.is_set('cbs'):
            self._czbs = tcbs
        elif self.is_set('cj'):
            self._czbs = tcj * self.asrc
        else:
            self._czbs = 0.
        if self.is_set('cjsw'):
            self._czbdsw = tcjsw * self.pd
            self._czbssw = tcjsw * self.ps
        else:
            self._czbdsw = self._czbssw = 0.
        self._fd = linearization_coefficients(
            self._czbd, self._czbdsw, self._tpb, self.mj, self.mjsw, self.fc)
        self._fs = linearization_coefficients(
            self._czbs, self._czbssw, self._tpb, self.mj, self.mjsw, self.fc)

        self._oxideCap = self._coxFactor * self._leff * self.w
        self._beta = self._tkp * self.w / self._leff
        # Thermal noise of series resistances
        self._Sdpr = 4. * const.k * T * self._gdpr
        self._Sspr = 4. * const.k * T * self._gspr
        self._Tabs = T

    #---------------------------------------------------------------
    # Channel current
    #---------------------------------------------------------------
    def channel(self, lvgs, lvds, lvbs):
        """
        Drain current and derivatives for normal mode voltages
        (lvds >= 0)

        Returns a SimpleNamespace with region, cdrain, gm, gds, gmbs,
        von and vdsat
        """
        w = SimpleNamespace(lvgs = lvgs, lvds = lvds, lvbs = lvbs,
                            cdrain = 0., gm = 0., gds = 0., gmbs = 0.,
                            vdsat = 0.)
        self._threshold(w)
        subth = bool(self.nfs and self._oxideCap)
        if not subth and lvgs <= w.vbin:
            w.region = Region.CUTOFF
            return w
        self._saturation(w)
        w.region = self._classify(w, subth)
        self._regionFunc[w.region](self, w)
        return w

    def _threshold(self, w):
        """
        Threshold voltage including short and narrow channel effects
        """
        tphi = self._tphi
        phiMinVbs = tphi - w.lvbs
        w.phiMinVbs = phiMinVbs
        if w.lvbs <= 0.:
            sarg = np.sqrt(phiMinVbs)
            dsrgdb = -.5 / sarg
            d2sdb2 = .5 * dsrgdb / phiMinVbs
        else:
            sphi = np.sqrt(tphi)
            sphi3 = tphi * sphi
            sarg = sphi / (1. + .5 * w.lvbs / tphi)
            tmp = sarg / sphi3
            dsrgdb = -.5 * sarg * tmp
            d2sdb2 = -dsrgdb * tmp
        if w.lvbs - w.lvds <= 0.:
            barg = np.sqrt(phiMinVbs + w.lvds)
            dbrgdb = -.5 / barg
            d2bdb2 = .5 * dbrgdb / (phiMinVbs + w.lvds)
        else:
            sphi = np.sqrt(tphi)
            sphi3 = tphi * sphi
            barg = sphi / (1. + .5 * (w.lvbs - w.lvds) / tphi)
            tmp = barg / sphi3
            dbrgdb = -.5 * barg * tmp
            d2bdb2 = -dbrgdb * tmp

        # Narrow channel effect
        factor = .125 * self.delta * 2. * np.pi * EPSSI / self._oxideCap \
            * self._leff
        eta = 1. + factor
        vbin = self._tvbi * self._type + factor * phiMinVbs
        leff = self._leff
        xd = self._xd
        dgddb2 = dgddvb = dgdvds = 0.
        if self._gamma > 0. or self.nsub > 0.:
            xwd = xd * barg
            xws = xd * sarg
            # Short channel effect with vds != 0
            argss = argsd = dbargs = dbargd = 0.
            if self.xj > 0.:
                tmp = 2. / self.xj
                argxs = 1. + xws * tmp
                argxd = 1. + xwd * tmp
                args = np.sqrt(argxs)
                argd = np.sqrt(argxd)
                tmp = .5 * self.xj / leff
                argss = tmp * (args - 1.)
                argsd = tmp * (argd - 1.)
            gamasd = self._gamma * (1. - argss - argsd)
            dbxwd = xd * dbrgdb
            dbxws = xd * dsrgdb
            if self.xj > 0.:
                tmp = .5 / leff
                dbargs = tmp * dbxws / args
                dbargd = tmp * dbxwd / argd
                dasdb2 = -xd * (d2sdb2 + dsrgdb * dsrgdb * xd
                                / (self.xj * argxs)) / (leff * args)
                daddb2 = -xd * (d2bdb2 + dbrgdb * dbrgdb * xd
                                / (self.xj * argxd)) / (leff * argd)
                dgddb2 = -.5 * self._gamma * (dasdb2 + daddb2)
            dgddvb = -self._gamma * (dbargs + dbargd)
            if self.xj > 0.:
                dgdvds = self._gamma * .5 * dbxwd / (leff * argd)
        else:
            gamasd = self._gamma

        von = vbin + gamasd * sarg
        w.vth = von
        w.xn = 0.
        w.argg = 0.
        if self.nfs and self._oxideCap:
            cfs = const.q * self.nfs * 1e4
            cdonco = -(gamasd * dsrgdb + dgddvb * sarg) + factor
            w.xn = 1. + cfs / self._oxideCap * self.w * leff + cdonco
            tmp = self.vt * w.xn
            von += tmp
            w.argg = 1. / tmp
        w.von = von
        w.vgst = w.lvgs - von
        w.sarg, w.dsrgdb, w.d2sdb2 = sarg, dsrgdb, d2sdb2
        w.barg, w.dbrgdb = barg, dbrgdb
        w.factor, w.eta, w.vbin = factor, eta, vbin
        w.gamasd, w.dgddvb, w.dgdvds, w.dgddb2 = gamasd, dgddvb, dgdvds, dgddb2

    def _saturation(self, w):
        """
        Mobility, saturation voltage and effective channel length
        """
        sarg = w.sarg
        phiMinVbs = w.phiMinVbs
        factor, eta, vbin = w.factor, w.eta, w.vbin
        vt = self.vt
        leff = self._leff
        xd = self._xd
        w.sarg3 = sarg * sarg * sarg
        gammad = w.gamasd
        dgdvbs = w.dgddvb
        w.body = w.barg * w.barg * w.barg - w.sarg3
        w.gdbdv = 2. * gammad * (w.barg * w.barg * w.dbrgdb
                                 - sarg * sarg * w.dsrgdb)
        w.dodvbs = -factor + dgdvbs * sarg + gammad * w.dsrgdb
        w.dodvds = w.dxndvd = w.dxndvb = 0.
        if self.nfs and self._oxideCap:
            w.dxndvb = 2. * dgdvbs * w.dsrgdb + gammad * w.d2sdb2 \
                + w.dgddb2 * sarg
            w.dodvbs += vt * w.dxndvb
            w.dxndvd = w.dgdvds * w.dsrgdb
            w.dodvds = w.dgdvds * sarg + vt * w.dxndvd

        # Effective mobility
        ufact = 1.
        dudvgs = dudvbs = 0.
        if self._oxideCap > 0.:
            udenom = w.vgst
            tmp = self.ucrit * 100. * EPSSI / self._coxFactor
            if udenom > tmp:
                ufact = np.exp(self.uexp * np.log(tmp / udenom))
                dudvgs = -ufact * self.uexp / udenom
                dudvbs = self.uexp * ufact * w.dodvbs / w.vgst
        ueff = self.u0 * 1e-4 * ufact
        w.ufact, w.dudvgs, w.dudvds, w.dudvbs = ufact, dudvgs, 0., dudvbs

        # Saturation voltage (Grove-Frohman)
        vgsx = w.lvgs
        gammad = w.gamasd / eta
        if self.nfs and self._oxideCap:
            vgsx = max(w.lvgs, w.von)
        if gammad > 0.:
            gammd2 = gammad * gammad
            argv = (vgsx - vbin) / eta + phiMinVbs
            if argv <= 0.:
                vdsat = dsdvgs = dsdvbs = 0.
            else:
                arg = np.sqrt(1. + 4. * argv / gammd2)
                vdsat = max((vgsx - vbin) / eta + gammd2 * (1. - arg) / 2., 0.)
                dsdvgs = (1. - 1. / arg) / eta
                dsdvbs = (gammad * (1. - arg) + 2. * argv / (gammad * arg)) \
                    / eta * dgdvbs + 1. / arg + factor * dsdvgs
        else:
            vdsat = max((vgsx - vbin) / eta, 0.)
            dsdvgs = 1.
            dsdvbs = 0.
        if self.vmax > 0.:
            vdsat = self._baum_vdsat(vdsat, vgsx, gammad, ueff, w)

        # Effective channel length
        xlamda = self.lambd
        dldvgs = dldvds = dldvbs = 0.
        w.bsarg = w.bodys = w.gdbdvs = 0.
        lvds = w.lvds
        if lvds != 0.:
            gammad = w.gamasd
            if w.lvbs - vdsat <= 0.:
                bsarg = np.sqrt(vdsat + phiMinVbs)
                dbsrdb = -.5 / bsarg
            else:
                sphi = np.sqrt(self._tphi)
                sphi3 = self._tphi * sphi
                bsarg = sphi / (1. + .5 * (w.lvbs - vdsat) / self._tphi)
                dbsrdb = -.5 * bsarg * bsarg / sphi3
            w.bsarg = bsarg
            w.bodys = bsarg * bsarg * bsarg - w.sarg3
            w.gdbdvs = 2. * gammad * (bsarg * bsarg * dbsrdb
                                      - sarg * sarg * w.dsrgdb)
            if self.vmax <= 0.:
                if self.nsub and xlamda <= 0.:
                    argv = (lvds - vdsat) / 4.
                    sargv = np.sqrt(1. + argv * argv)
                    arg = np.sqrt(argv + sargv)
                    xlfact = xd / (leff * lvds)
                    xlamda = xlfact * arg
                    dldsat = lvds * xlamda / (8. * sargv)
                    dldvgs = dldsat * dsdvgs
                    dldvds = -xlamda + dldsat
                    dldvbs = dldsat * dsdvbs
            else:
                argv = (vgsx - vbin) / eta - vdsat
                xdv = xd / np.sqrt(self.neff)
                xlv = self.vmax * xdv / (2. * ueff)
                vqchan = argv - gammad * bsarg
                dqdsat = -1. + gammad * dbsrdb
                vl = self.vmax * leff
                dfunds = vl * dqdsat - ueff * vqchan
                dfundg = (vl - ueff * vdsat) / eta
                dfundb = -vl * (1. + dqdsat - factor / eta) \
                    + ueff * (w.gdbdvs - dgdvbs * w.bodys / 1.5) / eta
                if dfunds:
                    dsdvgs = -dfundg / dfunds
                    dsdvbs = -dfundb / dfunds
                if self.nsub and xlamda <= 0.:
                    argv = max(lvds - vdsat, 0.)
                    xls = np.sqrt(xlv * xlv + argv)
                    dldsat = xdv / (2. * xls)
                    xlfact = xdv / (leff * lvds)
                    xlamda = xlfact * (xls - xlv)
                    dldsat /= leff
                    dldvgs = dldsat * dsdvgs
                    dldvds = -xlamda + dldsat
                    dldvbs = dldsat * dsdvbs

        # Limit channel shortening at punch-through
        xwb = xd * np.sqrt(self._tpb)
        xld = leff - xwb
        clfact = 1. - xlamda * lvds
        dldvds = -xlamda - dldvds
        xleff = leff * clfact
        deltal = xlamda * lvds * leff
        if not self.nsub:
            xwb = .25e-6
        if xleff < xwb:
            xleff = xwb / (1. + (deltal - xld) / xwb)
            clfact = xleff / leff
            dfact = xleff * xleff / (xwb * xwb)
            dldvgs *= dfact
            dldvds *= dfact
            dldvbs *= dfact
        w.vdsat = vdsat
        w.dsdvgs, w.dsdvbs = dsdvgs, dsdvbs
        w.clfact = clfact
        w.dldvgs, w.dldvds, w.dldvbs = dldvgs, dldvds, dldvbs
        w.beta1 = self._beta * ufact / clfact

    def _baum_vdsat(self, vdsat, vgsx, gammad, ueff, w):
        """
        Saturation voltage from Baum's theory of scattering velocity
        saturation (positive root of a quartic)

        Returns vdsat unchanged if no valid root is found
        """
        v1 = (vgsx - w.vbin) / w.eta + w.phiMinVbs
        v2 = w.phiMinVbs
        xv = self.vmax * self._leff / ueff
        a1 = gammad / .75
        b1 = -2. * (v1 + xv)
        c1 = -2. * gammad * xv
        d1 = 2. * v1 * (v2 + xv) - v2 * v2 - 4. / 3. * gammad * w.sarg3
        a = -b1
        b = a1 * c1 - 4. * d1
        c = -d1 * (a1 * a1 - 4. * b1) - c1 * c1
        r = -a * a / 3. + b
        s = 2. * a * a * a / 27. - a * b / 3. + c
        r3 = r * r * r
        s2 = s * s
        p = s2 / 4. + r3 / 27.
        p0 = abs(p)
        p2 = np.sqrt(p0)
        if p < 0.:
            ro = np.cbrt(np.sqrt(s2 / 4. + p0))
            if s == 0.:
                fi = -np.pi / 2.
            else:
                fi = np.arctan(-2. * p2 / s)
            y3 = 2. * ro * np.cos(fi / 3.) - a / 3.
        else:
            p3 = np.cbrt(abs(-s / 2. + p2))
            p4 = np.cbrt(abs(-s / 2. - p2))
            y3 = p3 + p4 - a / 3.
        arg3 = a1 * a1 / 4. - b1 + y3
        argb3 = y3 * y3 / 4. - d1
        if arg3 < 0. or argb3 < 0.:
            return vdsat
        a3 = np.sqrt(arg3)
        b3 = np.sqrt(argb3)
        roots = []
        for sig1, sig2 in ((1., 1.), (-1., 1.), (1., -1.), (-1., -1.)):
            a4 = a1 / 2. + sig1 * a3
            b4 = y3 / 2. + sig2 * b3
            delta4 = a4 * a4 / 4. - b4
            if delta4 < 0.:
                continue
            tmp = np.sqrt(delta4)
            roots += [-a4 / 2. + tmp, -a4 / 2. - tmp]
        xvalid = None
        for x in roots:
            if x <= 0.:
                continue
            poly4 = x**4 + a1 * x**3 + b1 * x * x + c1 * x + d1
            if abs(poly4) > 1e-6:
                continue
            if xvalid is None or x < xvalid:
                xvalid = x
        if xvalid is None:
            return vdsat
        return xvalid * xvalid - w.phiMinVbs

    @staticmethod
    def _classify(w, subth):
        """
        Returns the operating region
        """
        if w.lvds <= 1e-10:
            if w.lvgs <= w.von:
                if subth:
                    return Region.SUBTHRESHOLD
                return Region.CUTOFF
            return Region.LINEAR
        if subth and w.lvgs <= w.von:
            return Region.SUBTHRESHOLD
        if w.lvds <= w.vdsat:
            return Region.LINEAR
        return Region.SATURATION

    #---------------------------------------------------------------
    # One function per region
    #---------------------------------------------------------------
    def _eval_cutoff(self, w):
        pass

    def _eval_subthreshold(self, w):
        gammad = w.gamasd
        if w.lvds <= 1e-10:
            w.gds = w.beta1 * (w.von - w.vbin - gammad * w.sarg) \
                * np.exp(w.argg * (w.lvgs - w.von))
            return
        if w.vdsat <= 0.:
            return
        lvds, vdsat = w.lvds, w.vdsat
        vdson = min(vdsat, lvds)
        if lvds > vdsat:
            barg, body, gdbdv = w.bsarg, w.bodys, w.gdbdvs
        else:
            barg, body, gdbdv = w.barg, w.body, w.gdbdv
        beta1, eta, vbin = w.beta1, w.eta, w.vbin
        cdson = beta1 * ((w.von - vbin - eta * vdson * .5) * vdson
                         - gammad * body / 1.5)
        didvds = beta1 * (w.von - vbin - eta * vdson - gammad * barg)
        gdson = -cdson * w.dldvds / w.clfact \
            - beta1 * w.dgdvds * body / 1.5
        if lvds < vdsat:
            gdson += didvds
        gbson = -cdson * w.dldvbs / w.clfact + beta1 * (
            w.dodvbs * vdson + w.factor * vdson
            - w.dgddvb * body / 1.5 - gdbdv)
        if lvds > vdsat:
            gbson += didvds * w.dsdvbs
        expg = np.exp(w.argg * (w.lvgs - w.von))
        w.cdrain = cdson * expg
        gmw = w.cdrain * w.argg
        w.gm = gmw
        if lvds > vdsat:
            w.gm = gmw + didvds * w.dsdvgs * expg
        tmp = gmw * (w.lvgs - w.von) / w.xn
        w.gds = gdson * expg - w.gm * w.dodvds - tmp * w.dxndvd
        w.gmbs = gbson * expg - w.gm * w.dodvbs - tmp * w.dxndvb

    def _eval_linear(self, w):
        gammad = w.gamasd
        lvgs, lvds = w.lvgs, w.lvds
        beta1, eta, vbin = w.beta1, w.eta, w.vbin
        if lvds <= 1e-10:
            w.gds = beta1 * (lvgs - vbin - gammad * w.sarg)
            return
        cd = beta1 * ((lvgs - vbin - eta * lvds / 2.) * lvds
                      - gammad * w.body / 1.5)
        w.cdrain = cd
        w.gm = cd * (w.dudvgs / w.ufact - w.dldvgs / w.clfact) \
            + beta1 * lvds
        w.gds = cd * (w.dudvds / w.ufact - w.dldvds / w.clfact) \
            + beta1 * (lvgs - vbin - eta * lvds - gammad * w.barg
                       - w.dgdvds * w.body / 1.5)
        w.gmbs = cd * (w.dudvbs / w.ufact - w.dldvbs / w.clfact) \
            - beta1 * (w.gdbdv + w.dgddvb * w.body / 1.5 - w.factor * lvds)

    def _eval_saturation(self, w):
        gammad = w.gamasd
        lvgs, vdsat = w.lvgs, w.vdsat
        beta1, eta, vbin = w.beta1, w.eta, w.vbin
        cd = beta1 * ((lvgs - vbin - eta * vdsat / 2.) * vdsat
                      - gammad * w.bodys / 1.5)
        w.cdrain = cd
        didvs = beta1 * (lvgs - vbin - eta * vdsat - gammad * w.bsarg)
        w.gm = cd * (w.dudvgs / w.ufact - w.dldvgs / w.clfact) \
            + beta1 * vdsat + didvs * w.dsdvgs
        w.gds = -cd * w.dldvds / w.clfact \
            - beta1 * w.dgdvds * w.bodys / 1.5
        w.gmbs = cd * (w.dudvbs / w.ufact - w.dldvbs / w.clfact) \
            - beta1 * (w.gdbdvs + w.dgddvb * w.bodys / 1.5
                       - w.factor * vdsat) + didvs * w.dsdvbs

    _regionFunc = {
        Region.CUTOFF: _eval_cutoff,
        Region.SUBTHRESHOLD: _eval_subthreshold,
        Region.LINEAR: _eval_linear,
        Region.SATURATION: _eval_saturation
        }

    #---------------------------------------------------------------
    # Terminal-level evaluation
    #---------------------------------------------------------------
    def eval_dc(self, vgs, vds, vbs, gmin = None):
        """
        DC evaluation at type-normalized terminal voltages

        Handles reverse mode: if vds < 0 the channel equations are
        evaluated with drain and source swapped.

        Returns a DCResult instance
        """
        if gmin is None:
            gmin = glVar.gmin
        res = DCResult(vgs, vds, vbs)
        res.ibs, res.gbs = junction_current(vbs, self._sourceSatCur,
                                            self.vt, gmin)
        res.ibd, res.gbd = junction_current(res.vbd, self._drainSatCur,
                                            self.vt, gmin)
        if vds >= 0.:
            res.mode = 1
            w = self.channel(vgs, vds, vbs)
        else:
            res.mode = -1
            w = self.channel(res.vgd, -vds, res.vbd)
        res.region = w.region
        res.cdrain = w.cdrain
        res.gm = w.gm
        res.gds = w.gds
        res.gmbs = w.gmbs
        res.von = w.von
        res.vdsat = w.vdsat
        return res

    def _local_voltages(self, x):
        """
        Type-normalized (vgs, vds, vbs) from solution vector
        """
        n = self.nodes
        vs = x[n[self._tsp]]
        return (self._type * (x[n[1]] - vs),
                self._type * (x[n[self._tdp]] - vs),
                self._type * (x[n[3]] - vs))

    def _limit(self, x):
        """
        Apply limiting to voltages from x

        Returns (vgs, vds, vbs, limited)
        """
        vgs, vds, vbs = self._local_voltages(x)
        vbd = vbs - vds
        vgd = vgs - vds
        vgdo = self._vgs - self._vds
        if self._op is None:
            von = self._tvt0 * self._type
        else:
            von = self._op.von
        if self._vds >= 0.:
            vgs, lim1 = fetlim(vgs, self._vgs, von)
            vds = vgs - vgd
            vds, lim2 = limvds(vds, self._vds)
        else:
            vgd, lim1 = fetlim(vgd, vgdo, von)
            vds = vgs - vgd
            mvds, lim2 = limvds(-vds, -self._vds)
            vds = -mvds
            vgs = vgd + vds
        if vds >= 0.:
            vbs, lim3 = pnjlim(vbs, self._vbs, self.vt, self._sourceVcrit)
        else:
            vbd, lim3 = pnjlim(vbd, self._vbs - self._vds, self.vt,
                               self._drainVcrit)
            vbs = vbd + vds
        return (vgs, vds, vbs, lim1 or lim2 or lim3)

    #---------------------------------------------------------------
    # Analysis roles
    #---------------------------------------------------------------
    def bind(self, system):
        Biasing.bind(self, system)
        d, g, s, b = self.nodes[:4]
        dp = self.nodes[self._tdp]
        sp = self.nodes[self._tsp]
        pairs = [(d, d), (g, g), (s, s), (b, b), (dp, dp), (sp, sp),
                 (d, dp), (g, b), (g, dp), (g, sp), (s, sp), (b, g),
                 (b, dp), (b, sp), (dp, d), (dp, g), (dp, b), (dp, sp),
                 (sp, g), (sp, s), (sp, b), (sp, dp)]
        self._hY = [system.bind(row, col) for row, col in pairs]
        self._hgs = system.bind_quad(g, g, sp, sp)
        self._hgd = system.bind_quad(g, g, dp, dp)
        self._hgb = system.bind_quad(g, g, b, b)
        self._hbs = system.bind_quad(b, b, sp, sp)
        self._hbd = system.bind_quad(b, b, dp, dp)

    def _stamp_y(self, system, op, gbd, gbs, ygs, ygd, ygb):
        """
        Stamp the conductance matrix (real or complex)
        """
        gdpr = self._gdpr
        gspr = self._gspr
        gm, gds, gmbs = op.gm, op.gds, op.gmbs
        if op.mode >= 0:
            xnrm, xrev = 1., 0.
        else:
            xnrm, xrev = 0., 1.
        values = (
            gdpr,
            ygd + ygs + ygb,
            gspr,
            gbd + gbs + ygb,
            gdpr + gds + gbd + xrev * (gm + gmbs) + ygd,
            gspr + gds + gbs + xnrm * (gm + gmbs) + ygs,
            -gdpr,
            -ygb,
            -ygd,
            -ygs,
            -gspr,
            -ygb,
            -gbd,
            -gbs,
            -gdpr,
            (xnrm - xrev) * gm - ygd,
            -gbd + (xnrm - xrev) * gmbs,
            -gds - xnrm * (gm + gmbs),
            -(xnrm - xrev) * gm - ygs,
            -gspr,
            -gbs - (xnrm - xrev) * gmbs,
            -gds - xrev * (gm + gmbs)
            )
        for handle, value in zip(self._hY, values):
            system.accumulate(handle, value)

    def load(self, system, state):
        if state.initMode == 'junction':
            if self.off:
                vgs = vds = vbs = 0.
            else:
                vgs = self._type * self._tvt0
                vds = 0.
                vbs = -1.
            limited = True
        else:
            vgs, vds, vbs, limited = self._limit(state.x)
        op = self.eval_dc(vgs, vds, vbs, state.gmin)
        self._vgs, self._vds, self._vbs = vgs, vds, vbs
        self._op = op
        self._stamp_y(system, op, op.gbd, op.gbs, 0., 0., 0.)
        # Equivalent current sources
        tp = self._type
        ceqbs = tp * (op.ibs - op.gbs * vbs)
        ceqbd = tp * (op.ibd - op.gbd * op.vbd)
        if op.mode >= 0:
            cdreq = tp * (op.cdrain - op.gds * vds - op.gm * vgs
                          - op.gmbs * vbs)
        else:
            cdreq = -tp * (op.cdrain + op.gds * vds - op.gm * op.vgd
                           - op.gmbs * op.vbd)
        n = self.nodes
        dp = n[self._tdp]
        sp = n[self._tsp]
        system.sub_rhs(n[3], ceqbs + ceqbd)
        system.add_rhs(dp, ceqbd - cdreq)
        system.add_rhs(sp, cdreq + ceqbs)
        return limited

    def is_convergent(self, state):
        op = self._op
        vgs, vds, vbs = self._local_voltages(state.x)
        for name, v, vold in (('vgs', vgs, op.vgs), ('vds', vds, op.vds),
                              ('vbs', vbs, op.vbs)):
            if not vconverged(v, vold):
                self.convReason = '{0}: used {1:.6e}, new {2:.6e}'.format(
                    name, vold, v)
                return False
        vbd = vbs - vds
        vgd = vgs - vds
        delvbs = vbs - op.vbs
        delvbd = vbd - op.vbd
        delvgs = vgs - op.vgs
        delvds = vds - op.vds
        delvgd = vgd - op.vgd
        if op.mode >= 0:
            cdhat = op.id - op.gbd * delvbd + op.gmbs * delvbs \
                + op.gm * delvgs + op.gds * delvds
        else:
            cdhat = op.id - (op.gbd - op.gmbs) * delvbd \
                - op.gm * delvgd + op.gds * delvds
        cbhat = op.ibs + op.ibd + op.gbd * delvbd + op.gbs * delvbs
        new = self.eval_dc(vgs, vds, vbs, state.gmin)
        tol = glVar.reltol * max(abs(cdhat), abs(new.id)) + glVar.abstol
        if abs(cdhat - new.id) >= tol:
            self.convReason = \
                'drain current: predicted {0:.6e}, actual {1:.6e}'.format(
                cdhat, new.id)
            return False
        cb = new.ibs + new.ibd
        tol = glVar.reltol * max(abs(cbhat), abs(cb)) + glVar.abstol
        if abs(cbhat - cb) > tol:
            self.convReason = \
                'bulk current: predicted {0:.6e}, actual {1:.6e}'.format(
                cbhat, cb)
            return False
        return True

    #---------------------------------------------------------------
    # Charges
    #---------------------------------------------------------------
    def junction_charges(self, vbs, vbd):
        """
        Returns ((qbs, capbs), (qbd, capbd))
        """
        f2s, f3s, f4s = self._fs
        f2d, f3d, f4d = self._fd
        return (depletion_charge(vbs, self._czbs, self._czbssw, self._tpb,
                                 self.mj, self.mjsw, self._depCap,
                                 f2s, f3s, f4s),
                depletion_charge(vbd, self._czbd, self._czbdsw, self._tpb,
                                 self.mj, self.mjsw, self._depCap,
                                 f2d, f3d, f4d))

    def meyer_caps(self, op):
        """
        Meyer gate capacitances (half values) for operating point op

        Returns (cgs, cgd, cgb)
        """
        vgb = op.vgs - op.vbs
        if op.mode > 0:
            return qmeyer(op.vgs, op.vgd, vgb, op.von, op.vdsat,
                          self._tphi, self._oxideCap)
        capgd, capgs, capgb = qmeyer(op.vgd, op.vgs, vgb, op.von, op.vdsat,
                                     self._tphi, self._oxideCap)
        return (capgs, capgd, capgb)

    def _overlap_caps(self):
        return (self.cgso * self.w, self.cgdo * self.w,
                self.cgbo * self._leff)

    def create_states(self, integ):
        self._qbs = integ.new_charge()
        self._qbd = integ.new_charge()
        self._gate = MeyerGate(integ)

    def init_states(self, state):
        vgs, vds, vbs = self._local_voltages(state.x)
        op = self.eval_dc(vgs, vds, vbs, state.gmin)
        (qbs, cbs), (qbd, cbd) = self.junction_charges(vbs, op.vbd)
        self._qbs.init(qbs)
        self._qbd.init(qbd)
        self._gate.init(self.meyer_caps(op), self._overlap_caps(),
                        (vgs, op.vgd, vgs - vbs))

    def load_transient(self, system, state):
        op = self._op
        tp = self._type
        n = self.nodes
        g, b = n[1], n[3]
        dp = n[self._tdp]
        sp = n[self._tsp]
        # Bulk junctions
        (qbs, cbs), (qbd, cbd) = self.junction_charges(op.vbs, op.vbd)
        geq, ceq = self._qbs.integrate(qbs, cbs, op.vbs)
        system.add_quad(self._hbs, geq)
        system.sub_rhs(b, tp * ceq)
        system.add_rhs(sp, tp * ceq)
        geq, ceq = self._qbd.integrate(qbd, cbd, op.vbd)
        system.add_quad(self._hbd, geq)
        system.sub_rhs(b, tp * ceq)
        system.add_rhs(dp, tp * ceq)
        # Gate capacitances
        companions = self._gate.integrate(
            self.meyer_caps(op), self._overlap_caps(),
            (op.vgs, op.vgd, op.vgs - op.vbs))
        for (geq, ceq), handles, nn in zip(
            companions, (self._hgs, self._hgd, self._hgb), (sp, dp, b)):
            system.add_quad(handles, geq)
            system.sub_rhs(g, tp * ceq)
            system.add_rhs(nn, tp * ceq)

    def load_ac(self, system, state, omega):
        vgs, vds, vbs = self._local_voltages(state.x)
        op = self.eval_dc(vgs, vds, vbs, state.gmin)
        (qbs, cbs), (qbd, cbd) = self.junction_charges(vbs, op.vbd)
        cgs, cgd, cgb = self.meyer_caps(op)
        ovs, ovd, ovb = self._overlap_caps()
        jw = 1j * omega
        self._stamp_y(system, op, op.gbd + jw * cbd, op.gbs + jw * cbs,
                      jw * (2. * cgs + ovs), jw * (2. * cgd + ovd),
                      jw * (2. * cgb + ovb))

    def get_OP(self, x):
        """
        Calculates operating point information

        Output: dictionary with OP variables
        """
        vgs, vds, vbs = self._local_voltages(x)
        op = self.eval_dc(vgs, vds, vbs)
        tp = self._type
        self.OP = dict(
            VGS = tp * vgs,
            VDS = tp * vds,
            VBS = tp * vbs,
            ids = tp * op.ids,
            id = tp * op.id,
            ibs = tp * op.ibs,
            ibd = tp * op.ibd,
            gm = op.gm,
            gds = op.gds,
            gmbs = op.gmbs,
            gbs = op.gbs,
            gbd = op.gbd,
            von = tp * op.von,
            vdsat = tp * op.vdsat,
            region = op.region.value,
            mode = op.mode,
            Sthermal = 4. * const.k * self._Tabs * 2. / 3. * abs(op.gm),
            kSflicker = self.kf * pow(abs(op.cdrain), self.af)
            / (self._coxFactor * self._leff * self._leff)
            )
        return self.OP

    def get_noise(self, f):
        """
        Return noise spectral density at frequency f

        Requires a previous call to get_OP()
        """
        n = self.nodes
        dp = n[self._tdp]
        sp = n[self._tsp]
        noiseList = [('channel', dp, sp,
                      self.OP['Sthermal'] + self.OP['kSflicker'] / f)]
        if self._gdpr:
            noiseList.append(('rd', n[0], dp, self._Sdpr))
        if self._gspr:
            noiseList.append(('rs', n[2], sp, self._Sspr))
        return noiseList
