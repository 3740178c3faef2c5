"""
:mod:`resistor` -- Resistor model
---------------------------------

.. module:: resistor
.. moduleauthor:: Carlos Christoffersen

Linear resistor
"""

from thistle.globalVars import const
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Frequency, Noise

class Device(cir.Element, Temperature, Biasing, Frequency, Noise):
    r"""
    Resistor
    --------

    Connection diagram::

                    R
      0 o--------/\/\/\/---------o 1

    Temperature dependence:

    .. math::

      R(T) = R(T_{nom}) (1 + t_{c1} \Delta T + t_{c2} \Delta T^2)

    Thermal noise current spectral density: :math:`4 k T / R`

    Example::

        r1 = devClass['res']('r1')
        r1.set_param('r', 1e3)
        ckt.add_elem(r1)
        ckt.connect(r1, ['1', 'gnd'])

    """
    # Device category
    category = "Basic components"

    # devtype is the 'model' name
    devType = "res"

    # Number of terminals
    numTerms = 2

    paramDict = dict(
        cir.Element.tempItem,
        r = ('Resistance', 'Ohms', float, 0.),
        rsh = ('Sheet resistance', 'Ohms', float, 0.),
        l = ('Lenght', 'm', float, 0.),
        w = ('Width', 'm', float, 0.),
        narrow = ('Narrowing due to side etching', 'm', float, 0.),
        tnom = ('Nominal temperature', 'C', float, 27.),
        tc1 = ('Temperature coefficient 1', '1/C', float, 0.),
        tc2 = ('Temperature coefficient 2', '1/C^2', float, 0.)
        )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)


    def process_params(self):
        # Called once the external terminals have been connected and
        # the non-default parameters have been set. Make sanity checks
        # here. Internal terminals/devices should also be defined
        # here.  Raise cir.CircuitError if a fatal error is found.
        if not self.r and not (self.rsh and self.l and self.w):
            raise cir.CircuitError(self.nodeName
                                   + ': Resistance can not be zero')

        if self.r:
            # if R is given it overrides rsh et ale
            self._gnom = 1. / self.r
        else:
            if self.l <= self.narrow or self.w <= self.narrow:
                raise cir.CircuitError(
                    self.nodeName + ': effective dimensions must be positive')
            self._gnom = (self.w-self.narrow) / (self.l-self.narrow) \
                / self.rsh

        # Adjust according to temperature
        self.set_temp_vars(self.temp)

    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables for temp given in C
        """
        deltaT = temp - self.tnom
        self.g = self._gnom / (1. + (self.tc1 + self.tc2 * deltaT) * deltaT)
        self._St =  4. * const.k * (temp + const.T0) * self.g

    def bind(self, system):
        Biasing.bind(self, system)
        n0, n1 = self.nodes
        self._hquad = system.bind_quad(n0, n0, n1, n1)

    def load(self, system, state):
        system.add_quad(self._hquad, self.g)
        return False

    def load_ac(self, system, state, omega):
        system.add_quad(self._hquad, self.g)

    def get_OP(self, x):
        """
        Calculates operating point information

        Output: dictionary with OP variables
        """
        vr = x[self.nodes[0]] - x[self.nodes[1]]
        self.OP = {'R': 1./self.g, 'v': vr, 'i': self.g * vr,
                   'Sthermal': self._St}
        return self.OP

    def get_noise(self, f):
        """
        Return noise spectral density (constant)
        """
        return [('thermal', self.nodes[0], self.nodes[1], self._St)]
