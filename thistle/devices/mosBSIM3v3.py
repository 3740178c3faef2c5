"""
:mod:`mosBSIM3v3` -- Intrinsic BSIM3v3 MOSFET model
---------------------------------------------------

.. module:: mosBSIM3v3
.. moduleauthor:: Carlos Christoffersen

Size-dependent parameters (effective dimensions, binned parameters
and the quantities derived from them) depend only on the model
parameters and the instance geometry. They are computed once per
``(w, l)`` pair and kept in a ``SizeDependCache`` shared by all the
elements that reference the same model.
"""

import threading
from types import SimpleNamespace
import numpy as np
from thistle.globalVars import const, glVar
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Transient, \
    Frequency, Noise
from thistle.devices.limiting import fetlim, limvds, qmeyer, vconverged
from thistle.devices.helperf import EXP_THRESHOLD, MAX_EXP, \
    limited_exp, log1pexp, eval_and_deriv
from thistle.devices.mosLevel2 import Region, DCResult, MeyerGate

# Parameters with length (l), width (w) and cross (p) dependence
binParams = ('vth0', 'k1', 'k2', 'u0', 'vsat', 'ua', 'ub', 'uc',
             'dvt0', 'dvt1', 'eta0', 'pclm')


class SizeDependCache:
    """
    Size-dependent parameter sets keyed by geometry

    Entries are created on first use by a factory function and never
    modified afterwards. Creation is serialized by a lock so that
    each entry is computed only once even if several threads request
    the same key at the same time.
    """
    def __init__(self):
        self._lock = threading.Lock()
        self._entries = dict()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries

    def get(self, key, factory):
        """
        Returns the entry for key, calling factory() to create it if
        needed
        """
        try:
            return self._entries[key]
        except KeyError:
            pass
        with self._lock:
            # Another thread may have created it while we waited
            entry = self._entries.get(key)
            if entry is None:
                entry = factory()
                self._entries[key] = entry
            return entry

    def clear(self):
        with self._lock:
            self._entries = dict()


#-----------------------------------------------------------------------
class Device(cir.Element, Temperature, Biasing, Transient, Frequency,
             Noise):
    r"""
    Intrinsic BSIM3 MOSFET Model (version 3.2.4)
    --------------------------------------------

    Drain current from the BSIM3v3 equations (threshold voltage with
    short/narrow channel and DIBL effects, smooth effective gate and
    drain voltages, mobility degradation, velocity saturation,
    channel length modulation and substrate current induced body
    effect on the output resistance). Gate charges use Meyer's model
    with the oxide capacitance of the effective channel. Junctions
    and the substrate current are not included.

    The drain current is a single smooth expression, so the reported
    region is informational only. Derivatives are calculated by
    central differences.

    Default parameters listed for NMOS type. For PMOS ``u0`` defaults
    to 250 cm^2/V/s.

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

        m1 = devClass['bsim3']('m1')
        ckt.add_elem(m1, 'nch3')
        ckt.connect(m1, ['d', 'g', 'gnd', 'gnd'])
        m1.set_param('w', 10e-6)
        m1.set_param('l', 1e-6)

    Binning
    +++++++

    For each parameter P in ``binParams`` the value used is:

    .. math::

        P + P_L / L_{eff} + P_W / W_{eff} + P_P / (L_{eff} W_{eff})

    with lengths in microns if ``binunit`` is 1 (meters otherwise).
    The binning coefficients are given as ``l<name>``, ``w<name>``
    and ``p<name>``. For ``vth0`` they apply to the absolute value
    of the threshold.
    """
    # Device category
    category = "Semiconductor devices"

    devType = "bsim3"

    numTerms = 4

    isNonlinear = True

    paramDict = dict(
        cir.Element.tempItem,
        type = ('N- or P-channel MOS (n or p)', '', str, 'n'),
        k1enable = ('Enable k1, k2 internal calculation', '', bool, False),
        off = ('Device initially off', '', bool, False),
        binunit = ('Bin unit selector (1: microns)', '', int, 1),
        vth0 = (
            'Threshold voltage of long channel device at Vbs=0 and small Vds',
            'V', float, 0.7),
        l = ('Length', 'm', float, 1e-06),
        w = ('Width', 'm', float, 1e-06),
        tox = ('Gate oxide thickness', 'm', float, 1.5e-08),
        toxm = ('Gate oxide thickness used in extraction', 'm', float,
                1.5e-08),
        cdsc = ('Drain/Source and channel coupling capacitance', 'F/m^2',
                float, 0.00024),
        cdscb = ('Body-bias dependence of cdsc', 'F/V/m^2', float, 0.),
        cdscd = ('Drain-bias dependence of cdsc', 'F/V/m^2', float, 0.),
        cit = ('Interface state capacitance', 'F/m^2', float, 0.),
        nfactor = ('Subthreshold swing coefficient', '', float, 1.),
        xj = ('Junction depth', 'm', float, 1.5e-07),
        vsat = ('Saturation velocity at tnom', 'm/s', float, 80000.),
        at = ('Temperature coefficient of vsat', 'm/s', float, 33000.),
        a0 = ('Non-uniform depletion width effect coefficient', '',
              float, 1.),
        ags = ('Gate bias coefficient of Abulk', '1/V', float, 0.),
        a1 = ('Non-saturation effect coefficient', '1/V', float, 0.),
        a2 = ('Non-saturation effect coefficient', '', float, 1.),
        keta = ('Body-bias coefficient of non-uniform depletion width effect',
                '1/V', float, -0.047),
        nsub = ('Substrate doping concentration', 'cm^{-3}', float, 6e+16),
        nch = ('Channel doping concentration', 'cm^{-3}', float, 1.7e+17),
        vbm = ('Maximum body voltage', 'V', float, -3.),
        xt = ('Doping depth', 'm', float, 1.55e-07),
        kt1 = ('Temperature coefficient of Vth', 'V', float, -0.11),
        kt1l = ('Temperature coefficient of Vth', 'V m', float, 0.),
        kt2 = ('Body-coefficient of kt1', '', float, 0.022),
        k3 = ('Narrow width effect coefficient', '', float, 80.),
        k3b = ('Body effect coefficient of k3', '1/V', float, 0.),
        w0 = ('Narrow width effect parameter', 'm', float, 2.5e-06),
        nlx = ('Lateral non-uniform doping effect', 'm', float, 1.74e-07),
        dvt0 = ('Short channel effect coefficient 0', '', float, 2.2),
        dvt1 = ('Short channel effect coefficient 1', '', float, 0.53),
        dvt2 = ('Short channel effect coefficient 2', '1/V', float, -0.032),
        dvt0w = ('Narrow width effect coefficient 0', '1/m', float, 0.),
        dvt1w = ('Narrow width effect coefficient 1', '1/m', float,
                 5.3e+06),
        dvt2w = ('Narrow width effect coefficient 2', '1/V', float, -0.032),
        drout = ('DIBL coefficient of output resistance', '', float, 0.56),
        dsub = ('DIBL coefficient in the subthreshold region', '', float,
                0.56),
        ua = ('Linear gate dependence of mobility', 'm/V', float, 2.25e-09),
        ub = ('Quadratic gate dependence of mobility', '(m/V)^2',
              float, 5.87e-19),
        uc = ('Body-bias dependence of mobility', 'm/V^2', float,
              -4.65e-11),
        u0 = ('Low-field mobility at Tnom', 'cm^2/V/s', float, 670.),
        voff = ('Threshold voltage offset', 'V', float, -0.08),
        tnom = ('Nominal temperature', 'C', float, 27.),
        delta = ('Effective Vds parameter', 'V', float, 0.01),
        rdsw = ('Source-drain resistance per width', 'Ohm um', float, 0.),
        prwg = ('Gate-bias effect on parasitic resistance', '1/V', float,
                0.),
        prwb = ('Body-effect on parasitic resistance', '1/V^{0.5}', float,
                0.),
        prt = ('Temperature coefficient of parasitic resistance', 'Ohm um',
               float, 0.),
        eta0 = ('Subthreshold region DIBL coefficient', '', float, 0.08),
        etab = ('Body-bias coefficient of subthreshold DIBL', '1/V', float,
                -0.07),
        pclm = ('Channel length modulation coefficient', '', float, 1.3),
        pdibl1 = ('Drain-induced barrier lowering coefficient', '', float,
                  0.39),
        pdibl2 = ('Drain-induced barrier lowering coefficient', '',
                  float, 0.0086),
        pdiblb = ('Body-effect on drain induced barrier lowering', '1/V',
                  float, 0.),
        pscbe1 = ('Substrate current body-effect coefficient 1', 'V/m',
                  float, 4.24e+08),
        pscbe2 = ('Substrate current body-effect coefficient 2', 'm/V',
                  float, 1e-05),
        pvag = ('Gate dependence of output resistance parameter', '',
                float, 0.),
        vfb = ('Flat band voltage', 'V', float, -1.),
        lint = ('Length reduction parameter', 'm', float, 0.),
        ll = ('Length reduction parameter', 'm^{lln}', float, 0.),
        lln = ('Length reduction parameter', '', float, 1.),
        lw = ('Length reduction parameter', 'm^{lwn}', float, 0.),
        lwn = ('Length reduction parameter', '', float, 1.),
        lwl = ('Length reduction parameter', 'm^{lwn+lln}', float, 0.),
        wr = ('Width dependence of rds', '', float, 1.),
        wint = ('Width reduction parameter', 'm', float, 0.),
        dwg = ('Width reduction parameter', 'm/V', float, 0.),
        dwb = ('Width reduction parameter', 'm/V^{0.5}', float, 0.),
        wl = ('Width reduction parameter', 'm^{wln}', float, 0.),
        wln = ('Width reduction parameter', '', float, 1.),
        ww = ('Width reduction parameter', 'm^{wwn}', float, 0.),
        wwn = ('Width reduction parameter', '', float, 1.),
        wwl = ('Width reduction parameter', 'm^{wwn+wln}', float, 0.),
        b0 = ('Abulk narrow width parameter', 'm', float, 0.),
        b1 = ('Abulk narrow width parameter', 'm', float, 0.),
        ute = ('Temperature coefficient of mobility', '', float, -1.5),
        k1 = ('First order body effect coefficient', 'V^{0.5}', float, 0.53),
        k2 = ('Second order body effect coefficient', '', float, -0.0186),
        ua1 = ('Temperature coefficient for ua', 'm/V', float, 4.31e-09),
        ub1 = ('Temperature coefficient for ub', '(m/V)^2', float,
               -7.61e-18),
        uc1 = ('Temperature coefficient for uc', 'm/V^2', float, -5.6e-11),
        cgso = ('Gate-source overlap capacitance per meter of width',
                'F/m', float, 0.),
        cgdo = ('Gate-drain overlap capacitance per meter of width',
                'F/m', float, 0.),
        cgbo = ('Gate-bulk overlap capacitance per meter of length',
                'F/m', float, 0.),
        kf = ('Flicker noise coefficient', '', float, 0.),
        af = ('Flicker noise exponent', '', float, 1.)
        )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)
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
            self._tf = 1.
        elif self.type == 'p':
            self._tf = -1.
            # Change parameter default values
            if not self.is_set('u0'):
                self.u0 = 250.
        else:
            raise cir.CircuitError(
                '{0}: unrecognized type: {1}. Valid types are "n" or "p"'
                .format(self.nodeName, self.type))
        if self.tox <= 0.:
            raise cir.CircuitError(self.nodeName + ': tox is not positive')
        self._model_vars()
        # Size-dependent parameters are shared with other elements of
        # the same model unless this instance overrides model
        # parameters other than the geometry
        if self.dotModel and set(self.valueDict) <= set(('w', 'l', 'temp')):
            cache = self.dotModel.shared.setdefault('sizeCache',
                                                    SizeDependCache())
            self._size = cache.get((self.w, self.l), self._size_params)
        else:
            self._size = self._size_params()
        # Calculate temperature-dependent variables
        self.set_temp_vars(self.temp)

    def _model_vars(self):
        """
        Quantities that depend only on model parameters
        """
        # Nominal abs temperature
        self._Tn = const.T0 + self.tnom
        # Nominal Thermal voltage
        self._Vtn = const.k * self._Tn / const.q

        self.factor1 = np.sqrt(const.epSi / const.epOx * self.tox)
        Eg0 = 1.16 - 7.02e-4 * (self._Tn**2) / (self._Tn + 1108.0)
        ni = const.ni300 * (self._Tn / 300.15) * np.sqrt(self._Tn / 300.15) \
            * np.exp(21.5565981 - Eg0 / (2. * self._Vtn))
        self.cox = const.epOx / self.tox

        self.phi = 2. * self._Vtn * np.log(self.nch / ni)
        self.sqrtPhi = np.sqrt(self.phi)
        self.phis3 = self.sqrtPhi * self.phi

        self.Xdep0 = np.sqrt(2. * const.epSi /
                             (const.q * self.nch * 1e6)) * self.sqrtPhi
        self.litl = np.sqrt(3. * self.xj * self.tox)
        self.vbi = self._Vtn * np.log(1.0e20 * self.nch / (ni**2))
        self.cdep0 = np.sqrt(const.q * const.epSi * self.nch * 1e6
                             / 2. / self.phi)

        if not self.is_set('toxm'):
            self.toxm = self.tox
        if not self.is_set('dsub'):
            self.dsub = self.drout

        if self.k1enable and not (self.is_set('k1') or self.is_set('k2')):
            vbx = self.phi - 7.7348e-4 * self.nch * self.xt**2
            vbx = -abs(vbx)
            Vbm = -abs(self.vbm)
            gamma1 = 5.753e-12 * np.sqrt(self.nch) / self.cox
            gamma2 = 5.753e-12 * np.sqrt(self.nsub) / self.cox
            T0 = gamma1 - gamma2
            T1 = np.sqrt(self.phi - vbx) - self.sqrtPhi
            T2 = np.sqrt(self.phi * (self.phi - Vbm)) - self.phi
            self._k2 = T0 * T1 / (2. * T2 + Vbm)
            self._k1 = gamma2 - 2. * self._k2 * np.sqrt(self.phi - Vbm)
        else:
            self._k1 = self.k1
            self._k2 = self.k2

        if not self.is_set('vth0'):
            self._vth0 = self.vfb + self.phi + self._k1 * self.sqrtPhi
        else:
            self._vth0 = abs(self.vth0)
        # Used by the output resistance calculation
        self._T1rout = np.sqrt(const.epSi / const.epOx * self.tox
                               * self.Xdep0)

    def _size_params(self):
        """
        Calculate parameters that depend on w and l

        Returns a SimpleNamespace. Must only use model parameters and
        the geometry as the result may be shared.
        """
        t0 = pow(self.l, self.lln)
        t1 = pow(self.w, self.lwn)
        dl = self.lint + self.ll / t0 + self.lw / t1 + self.lwl / (t0 * t1)
        t2 = pow(self.l, self.wln)
        t3 = pow(self.w, self.wwn)
        dw = self.wint + self.wl / t2 + self.ww / t3 + self.wwl / (t2 * t3)
        leff = self.l - 2. * dl
        weff = self.w - 2. * dw
        if leff <= 0.:
            raise cir.CircuitError(
                self.nodeName + ': effective channel length less than zero')
        if weff <= 0.:
            raise cir.CircuitError(
                self.nodeName + ': effective channel width less than zero')
        sp = SimpleNamespace(leff = leff, weff = weff, dl = dl, dw = dw)

        # Binning
        if self.binunit == 1:
            invL = 1e-6 / leff
            invW = 1e-6 / weff
        else:
            invL = 1. / leff
            invW = 1. / weff
        base = dict((name, getattr(self, name)) for name in binParams)
        base['vth0'] = self._vth0
        base['k1'] = self._k1
        base['k2'] = self._k2
        for name in binParams:
            setattr(sp, name, base[name]
                    + getattr(self, 'l' + name) * invL
                    + getattr(self, 'w' + name) * invW
                    + getattr(self, 'p' + name) * invL * invW)
        if sp.u0 > 1.:
            sp.u0 *= 1e-4

        sp.k1ox = sp.k1 * self.tox / self.toxm
        sp.k2ox = sp.k2 * self.tox / self.toxm

        #Calculation of vbsc(Vbc) and Vbseff
        if sp.k2 < 0.:
            vbsc = .9 * (self.phi - (.5 * sp.k1 / sp.k2)**2)
            sp.vbsc = min(-3., max(-30., vbsc))
        else:
            sp.vbsc = -30.

        T0 = limited_exp(-0.5 * self.dsub * leff / self._T1rout)
        sp.theta0vb0 = T0 + 2.0 * T0**2
        T0 = limited_exp(-.5 * self.drout * leff / self._T1rout)
        sp.thetaRout = self.pdibl1 * (T0 + 2. * T0**2) + self.pdibl2
        sp.oxideCap = self.cox * weff * leff
        return sp

    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables, given temp in deg. C
        """
        sp = self._size
        # Absolute temperature (note self.temp is in deg. C)
        self._Tabs = const.T0 + temp
        # Thermal voltage
        self._Vt = const.k * self._Tabs / const.q
        self._ToTnm1 = self._Tabs / self._Tn - 1.

        self.vsattemp = sp.vsat - self.at * self._ToTnm1
        self.rds0 = (self.rdsw + self.prt * self._ToTnm1) \
            / pow(sp.weff * 1e6, self.wr)
        self.V0 = self.vbi - self.phi

        #Mobility calculation
        self._ua = sp.ua + self.ua1 * self._ToTnm1
        self._ub = sp.ub + self.ub1 * self._ToTnm1
        self._uc = sp.uc + self.uc1 * self._ToTnm1
        self.u0temp = sp.u0 * pow(self._Tabs / self._Tn, self.ute)

    #---------------------------------------------------------------
    # Channel current
    #---------------------------------------------------------------
    def _threshold(self, VDS, VBS):
        """
        Returns (Vth, n, Vbseff, sqrtPhis, Xdep)
        """
        sp = self._size
        T0 = VBS - sp.vbsc - 0.001
        T1 = np.sqrt(T0 * T0 - 0.004 * sp.vbsc)
        Vbseff = max(VBS, sp.vbsc + .5 * (T0 + T1))

        #Calculation of Phis, sqrtPhis and Xdep
        if Vbseff > 0.:
            sqrtPhis = self.phis3 / (self.phi + 0.5 * Vbseff)
        else:
            sqrtPhis = np.sqrt(self.phi - Vbseff)
        Xdep = self.Xdep0 * sqrtPhis / self.sqrtPhi

        #Calculation of Threshold voltage-vth
        T3 = np.sqrt(Xdep)
        T0 = self.dvt2 * Vbseff
        if T0 >= -.5:
            T1 = 1. + T0
        else:
            T1 = (1. + 3. * T0) / (3. + 8. * T0)
        ltl = self.factor1 * T3 * T1

        T0 = self.dvt2w * Vbseff
        if T0 >= -.5:
            T1 = 1. + T0
        else:
            T1 = (1. + 3. * T0) / (3. + 8. * T0)
        ltw = self.factor1 * T3 * T1

        T2 = limited_exp(-.5 * sp.dvt1 * sp.leff / ltl)
        Theta0 = T2 * (1. + 2. * T2)
        Delt_vth = sp.dvt0 * Theta0 * self.V0

        T2 = limited_exp(-.5 * self.dvt1w * sp.weff * sp.leff / ltw)
        T2 *= (1. + 2. * T2)
        T2 = self.dvt0w * T2 * self.V0

        T0 = np.sqrt(1. + self.nlx / sp.leff)
        T1 = sp.k1ox * (T0 - 1.) * self.sqrtPhi \
            + (self.kt1 + self.kt1l / sp.leff + self.kt2 * Vbseff) \
            * self._ToTnm1
        TMP2 = self.tox * self.phi / (sp.weff + self.w0)

        T3 = sp.eta0 + self.etab * Vbseff
        if T3 < 1.0e-4:
            T3 = (2.0e-4 - T3) / (3. - 2.0e4 * T3)
        DIBL_Sft = T3 * sp.theta0vb0 * VDS

        Vth = sp.vth0 - sp.k1 * self.sqrtPhi + sp.k1ox * sqrtPhis \
            - sp.k2ox * Vbseff - Delt_vth - T2 \
            + (self.k3 + self.k3b * Vbseff) * TMP2 + T1 - DIBL_Sft

        #Calculate n
        tmp2 = self.nfactor * const.epSi / Xdep
        tmp3 = self.cdsc + self.cdscb * Vbseff + self.cdscd * VDS
        tmp4 = (tmp2 + tmp3 * Theta0 + self.cit) / self.cox
        if tmp4 >= -.5:
            n = 1. + tmp4
        else:
            n = (1. + 3. * tmp4) / (3. + 8. * tmp4)
        return (Vth, n, Vbseff, sqrtPhis, Xdep)

    def _vgsteff(self, Vgst, n):
        """
        Effective gate voltage overdrive (smooth from weak to strong
        inversion)
        """
        Vt = self._Vt
        T10 = 2. * n * Vt
        VgstNVt = Vgst / T10
        ExpArg = (2. * self.voff - Vgst) / T10
        if VgstNVt > EXP_THRESHOLD:
            return Vgst
        if ExpArg > EXP_THRESHOLD:
            T0 = (Vgst - self.voff) / (n * Vt)
            return Vt * self.cdep0 / self.cox * np.exp(T0)
        T1 = T10 * log1pexp(VgstNVt)
        T2 = 1. + T10 * self.cox * np.exp(ExpArg) / Vt / self.cdep0
        return T1 / T2

    def channel(self, VGS, VDS, VBS):
        """
        Drain current for normal mode voltages (VDS >= 0)

        Returns (Ids, Vth, Vdsat, Vgst)
        """
        sp = self._size
        Vth, n, Vbseff, sqrtPhis, Xdep = self._threshold(VDS, VBS)
        Vgst = VGS - Vth
        Vgsteff = self._vgsteff(Vgst, n)

        # Calculate Effective Channel Geometry
        T9 = sqrtPhis - self.sqrtPhi
        T0 = sp.weff - 2. * (self.dwg * Vgsteff + self.dwb * T9)
        if T0 >= 2e-8:
            Weff = T0
        else:
            Weff = 2e-8 * (4e-8 - T0) / (6e-8 - 2. * T0)

        T0 = self.prwg * Vgsteff + self.prwb * T9
        if T0 >= -.9:
            Rds = self.rds0 * (1. + T0)
        else:
            Rds = self.rds0 * (.8 + T0) / (17. + 20. * T0)

        #Calculate Abulk
        T1 = 0.5 * sp.k1ox / sqrtPhis
        T9 = np.sqrt(self.xj * Xdep)
        T5 = sp.leff / (sp.leff + 2. * T9)
        T2 = (self.a0 * T5) + self.b0 / (sp.weff + self.b1)
        T7 = T5 * T5 * T5
        Abulk0 = 1. + T1 * T2
        Abulk = Abulk0 - T1 * self.ags * self.a0 * T7 * Vgsteff
        if Abulk < .1:
            Abulk = (.2 - Abulk) / (3. - 20. * Abulk)
        T2 = self.keta * Vbseff
        if T2 >= -.9:
            T0 = 1. / (1. + T2)
        else:
            T0 = (17. + 20. * T2) / (.8 + T2)
        Abulk *= T0

        # Mobility
        T0 = Vgsteff + 2. * Vth
        T2 = self._ua + self._uc * Vbseff
        T3 = T0 / self.tox
        T5 = T3 * (T2 + self._ub * T3)
        if T5 >= -.8:
            Denomi = 1. + T5
        else:
            Denomi = (.6 + T5) / (7. + 10. * T5)
        ueff = self.u0temp / Denomi
        Esat = 2. * self.vsattemp / ueff
        EsatL = Esat * sp.leff

        if self.a1 == 0.:
            Lambda = self.a2
        elif self.a1 > 0.:
            T0 = 1. - self.a2
            T1 = T0 - self.a1 * Vgsteff - 0.0001
            T2 = np.sqrt(T1 * T1 + 0.0004 * T0)
            Lambda = self.a2 + T0 - 0.5 * (T1 + T2)
        else:
            T1 = self.a2 + self.a1 * Vgsteff - 0.0001
            T2 = np.sqrt(T1 * T1 + 0.0004 * self.a2)
            Lambda = 0.5 * (T1 + T2)

        # Saturation Drain Voltage Vdsat
        WVCox = Weff * self.vsattemp * self.cox
        WVCoxRds = WVCox * Rds
        Vgst2Vtm = Vgsteff + 2. * self._Vt
        if Rds == 0. and Lambda == 1.:
            Vdsat = EsatL * Vgst2Vtm / (Abulk * EsatL + Vgst2Vtm)
        else:
            T9 = Abulk * WVCoxRds
            T7 = Vgst2Vtm * T9
            T6 = Vgst2Vtm * WVCoxRds
            T0 = 2. * Abulk * (T9 - 1. + 1. / Lambda)
            T1 = Vgst2Vtm * (2. / Lambda - 1.) + Abulk * EsatL + 3. * T7
            T2 = Vgst2Vtm * (EsatL + 2. * T6)
            T3 = np.sqrt(T1 * T1 - 2. * T0 * T2)
            Vdsat = (T1 - T3) / T0

        # Effective Vds(Vdseff) Calculation
        T1 = Vdsat - VDS - self.delta
        T2 = np.sqrt(T1**2 + 4. * self.delta * Vdsat)
        Vdseff = min(Vdsat - .5 * (T1 + T2), VDS)

        # Calculate Vasat
        T6 = 1. - .5 * Abulk * Vdsat / Vgst2Vtm
        T0 = EsatL + Vdsat + 2. * WVCoxRds * Vgsteff * T6
        T1 = 2. / Lambda - 1. + WVCoxRds * Abulk
        Vasat = T0 / T1

        diffVds = VDS - Vdseff

        #Calculate VACLM
        if self.pclm > 0. and diffVds > 1.0e-10:
            VACLM = sp.leff * (Abulk + Vgsteff / EsatL) * diffVds \
                / (sp.pclm * Abulk * self.litl)
        else:
            VACLM = MAX_EXP

        #Calculate VADIBL
        if sp.thetaRout > 0.:
            T8 = Abulk * Vdsat
            VADIBL = (Vgst2Vtm - Vgst2Vtm * T8 / (Vgst2Vtm + T8)) \
                / sp.thetaRout
            T7 = self.pdiblb * Vbseff
            if T7 >= -.9:
                VADIBL /= (1. + T7)
            else:
                VADIBL *= (17. + 20. * T7) / (.8 + T7)
        else:
            VADIBL = MAX_EXP

        #Calculate Va
        T9 = self.pvag / EsatL * Vgsteff
        if T9 > -.9:
            T0 = 1. + T9
        else:
            T0 = (.8 + T9) / (17. + 20. * T9)
        Va = Vasat + T0 * VACLM * VADIBL / (VACLM + VADIBL)

        #Calculate VASCBE
        if diffVds > self.pscbe1 * self.litl / EXP_THRESHOLD:
            rcpVASCBE = self.pscbe2 \
                * np.exp(-self.pscbe1 * self.litl / diffVds) / sp.leff
        else:
            rcpVASCBE = self.pscbe2 / (MAX_EXP * sp.leff)

        #Calculate Ids
        beta = ueff * self.cox * Weff / sp.leff
        fgche1 = Vgsteff * (1. - .5 * Abulk * Vdseff / Vgst2Vtm)
        fgche2 = 1. + Vdseff / EsatL
        gche = beta * fgche1 / fgche2
        Idl = gche * Vdseff / (1. + gche * Rds)
        Idsa = Idl * (1. + diffVds / Va)
        Ids = Idsa * (1. + diffVds * rcpVASCBE)
        return (Ids, Vth, Vdsat, Vgst)

    def eval_ids(self, VGS, VDS, VBS):
        """
        Drain current only (normal mode)
        """
        return self.channel(VGS, VDS, VBS)[0]

    def eval_dc(self, vgs, vds, vbs, gmin = None):
        """
        DC evaluation at type-normalized terminal voltages

        If vds < 0 the channel is evaluated with drain and source
        swapped. Returns a DCResult instance.
        """
        res = DCResult(vgs, vds, vbs)
        res.ibs = res.gbs = res.ibd = res.gbd = 0.
        if vds >= 0.:
            res.mode = 1
            v = np.array([vgs, vds, vbs])
        else:
            res.mode = -1
            v = np.array([res.vgd, -vds, res.vbd])
        f = lambda u: np.array([self.eval_ids(u[0], u[1], u[2])])
        y, J = eval_and_deriv(f, v)
        ids, vth, vdsat, vgst = self.channel(v[0], v[1], v[2])
        res.cdrain = ids
        res.gm, res.gds, res.gmbs = J[0]
        res.von = vth
        res.vdsat = vdsat
        if vgst < 0.:
            res.region = Region.SUBTHRESHOLD
        elif v[1] < vdsat:
            res.region = Region.LINEAR
        else:
            res.region = Region.SATURATION
        return res

    def _local_voltages(self, x):
        """
        Type-normalized (vgs, vds, vbs) from solution vector
        """
        n = self.nodes
        vs = x[n[2]]
        return (self._tf * (x[n[1]] - vs),
                self._tf * (x[n[0]] - vs),
                self._tf * (x[n[3]] - vs))

    def _limit(self, x):
        """
        Apply limiting to voltages from x

        Returns (vgs, vds, vbs, limited)
        """
        vgs, vds, vbs = self._local_voltages(x)
        vgd = vgs - vds
        vgdo = self._vgs - self._vds
        if self._op is None:
            von = self._size.vth0
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
        return (vgs, vds, vbs, lim1 or lim2)

    #---------------------------------------------------------------
    # Analysis roles
    #---------------------------------------------------------------
    def bind(self, system):
        Biasing.bind(self, system)
        d, g, s, b = self.nodes
        self._hch = dict(((row, col), system.bind(row, col))
                         for row in (d, s) for col in (g, d, s, b))
        self._hgs = system.bind_quad(g, g, s, s)
        self._hgd = system.bind_quad(g, g, d, d)
        self._hgb = system.bind_quad(g, g, b, b)

    def _stamp_channel(self, system, op):
        """
        Stamp channel transconductances

        The current flows from the effective drain (a) to the
        effective source (c)
        """
        d, g, s, b = self.nodes
        if op.mode >= 0:
            a, c = d, s
        else:
            a, c = s, d
        gm, gds, gmbs = op.gm, op.gds, op.gmbs
        for row, sign in ((a, 1.), (c, -1.)):
            h = self._hch
            system.accumulate(h[(row, g)], sign * gm)
            system.accumulate(h[(row, a)], sign * gds)
            system.accumulate(h[(row, c)], -sign * (gm + gds + gmbs))
            system.accumulate(h[(row, b)], sign * gmbs)
        return (a, c)

    def load(self, system, state):
        if state.initMode == 'junction':
            if self.off:
                vgs = vds = vbs = 0.
            else:
                vgs = self._size.vth0
                vds = .1
                vbs = 0.
            limited = True
        else:
            vgs, vds, vbs, limited = self._limit(state.x)
        op = self.eval_dc(vgs, vds, vbs)
        self._vgs, self._vds, self._vbs = vgs, vds, vbs
        self._op = op
        a, c = self._stamp_channel(system, op)
        if op.mode >= 0:
            ieq = op.cdrain - op.gm * vgs - op.gds * vds - op.gmbs * vbs
        else:
            ieq = op.cdrain - op.gm * op.vgd + op.gds * vds \
                - op.gmbs * op.vbd
        ieq *= self._tf
        system.sub_rhs(a, ieq)
        system.add_rhs(c, ieq)
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
        delvgs = vgs - op.vgs
        delvds = vds - op.vds
        delvbs = vbs - op.vbs
        if op.mode >= 0:
            idhat = op.cdrain + op.gm * delvgs + op.gds * delvds \
                + op.gmbs * delvbs
        else:
            delvgd = delvgs - delvds
            delvbd = delvbs - delvds
            idhat = -(op.cdrain + op.gm * delvgd - op.gds * delvds
                      + op.gmbs * delvbd)
        new = self.eval_dc(vgs, vds, vbs)
        tol = glVar.reltol * max(abs(idhat), abs(new.ids)) + glVar.abstol
        if abs(idhat - new.ids) >= tol:
            self.convReason = \
                'drain current: predicted {0:.6e}, actual {1:.6e}'.format(
                idhat, new.ids)
            return False
        return True

    #---------------------------------------------------------------
    # Charges
    #---------------------------------------------------------------
    def meyer_caps(self, op):
        """
        Meyer gate capacitances (half values) for operating point op

        Returns (cgs, cgd, cgb)
        """
        vgb = op.vgs - op.vbs
        cox = self._size.oxideCap
        if op.mode > 0:
            return qmeyer(op.vgs, op.vgd, vgb, op.von, op.vdsat,
                          self.phi, cox)
        capgd, capgs, capgb = qmeyer(op.vgd, op.vgs, vgb, op.von, op.vdsat,
                                     self.phi, cox)
        return (capgs, capgd, capgb)

    def _overlap_caps(self):
        return (self.cgso * self._size.weff, self.cgdo * self._size.weff,
                self.cgbo * self._size.leff)

    def create_states(self, integ):
        self._gate = MeyerGate(integ)

    def init_states(self, state):
        vgs, vds, vbs = self._local_voltages(state.x)
        op = self.eval_dc(vgs, vds, vbs)
        self._gate.init(self.meyer_caps(op), self._overlap_caps(),
                        (vgs, op.vgd, vgs - vbs))

    def load_transient(self, system, state):
        op = self._op
        tf = self._tf
        d, g, s, b = self.nodes
        companions = self._gate.integrate(
            self.meyer_caps(op), self._overlap_caps(),
            (op.vgs, op.vgd, op.vgs - op.vbs))
        for (geq, ceq), handles, nn in zip(
            companions, (self._hgs, self._hgd, self._hgb), (s, d, b)):
            system.add_quad(handles, geq)
            system.sub_rhs(g, tf * ceq)
            system.add_rhs(nn, tf * ceq)

    def load_ac(self, system, state, omega):
        vgs, vds, vbs = self._local_voltages(state.x)
        op = self.eval_dc(vgs, vds, vbs)
        self._stamp_channel(system, op)
        jw = 1j * omega
        for handles, c, ov in zip((self._hgs, self._hgd, self._hgb),
                                  self.meyer_caps(op),
                                  self._overlap_caps()):
            system.add_quad(handles, jw * (2. * c + ov))

    def get_OP(self, x):
        """
        Calculates operating point information

        Output: dictionary with OP variables
        """
        vgs, vds, vbs = self._local_voltages(x)
        op = self.eval_dc(vgs, vds, vbs)
        tf = self._tf
        self.OP = dict(
            VGS = tf * vgs,
            VDS = tf * vds,
            VBS = tf * vbs,
            ids = tf * op.ids,
            gm = op.gm,
            gds = op.gds,
            gmbs = op.gmbs,
            vth = tf * op.von,
            vdsat = tf * op.vdsat,
            region = op.region.value,
            mode = op.mode,
            leff = self._size.leff,
            weff = self._size.weff,
            Sthermal = 4. * const.k * self._Tabs * 2. / 3. * abs(op.gm),
            kSflicker = self.kf * pow(abs(op.cdrain), self.af)
            / (self.cox * self._size.leff**2)
            )
        return self.OP

    def get_noise(self, f):
        """
        Return noise spectral density at frequency f

        Requires a previous call to get_OP()
        """
        return [('channel', self.nodes[0], self.nodes[2],
                 self.OP['Sthermal'] + self.OP['kSflicker'] / f)]


def add_binning_params(paramDict, names):
    """
    Add length, width and cross-term binning coefficients for names
    """
    for name in names:
        desc, unit = paramDict[name][:2]
        for prefix, what, bunit in (('l', 'Length', ' m'),
                                    ('w', 'Width', ' m'),
                                    ('p', 'Cross-term', ' m^2')):
            paramDict[prefix + name] = (
                '{0} dependence of {1}'.format(what, name),
                (unit + bunit).strip(), float, 0.)

add_binning_params(Device.paramDict, binParams)
