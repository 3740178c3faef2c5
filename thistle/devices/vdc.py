"""
:mod:`vdc` -- DC voltage source
-------------------------------

.. module:: vdc
.. moduleauthor:: Carlos Christoffersen
"""

import numpy as np
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Frequency

class Device(cir.Element, Temperature, Biasing, Frequency):
    r"""
    DC voltage source
    -----------------

    Schematic::
                          
                   ,---,  vdc       Rint
       1 o--------( - + )---------/\/\/\/\--------o 0
                   '---'  
   
    Rint is independent of temperature. Teperature dependence of vdc
    is as follows:

    .. math::
        
      v_{DC}(T) = v_{DC}(T_{nom}) (1 + t_{c1} \Delta T + t_{c2} \Delta T^2)

      \Delta T = T - T_{nom}

    Example::

        vdd = devClass['vdc']('vdd')
        vdd.set_param('vdc', 3.)
        ckt.connect(vdd, ['vddnode', 'gnd'])

    Internal Topology
    +++++++++++++++++

    If Rint is zero an internal unknown (``i``, in A) holds the
    current entering terminal 0 and the branch equation is added to
    the system::

        v(0) - v(1) = vdc

    Otherwise a Norton equivalent circuit is used.

    """
    # Device category
    category = "Sources"

    # devtype is the 'model' name
    devType = "vdc"

    # Number of terminals
    numTerms = 2
    
    isDCSource = True

    paramDict = dict(
        cir.Element.tempItem,
        vdc = ('DC voltage', 'V', float, 0.),
        rint = ('Internal resistance', 'Ohms', float, 0.),
        acmag = ('AC magnitude', 'V', float, 0.),
        acphase = ('AC phase', 'degrees', float, 0.),
        tnom = ('Nominal temperature', 'C', float, 27.),
        tc1 = ('Voltage temperature coefficient 1', '1/C', float, 0.),
        tc2 = ('Voltage temperature coefficient 2', '1/C^2', float, 0.)
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
        if self.rint < 0.:
            raise cir.CircuitError(self.nodeName
                                   + ': internal resistance is negative')
        if self.rint == 0.:
            # Connect internal terminal
            self._ti = self.add_internal_term('i', 'A')
        else:
            self._ti = None

        # Adjust according to temperature
        self.set_temp_vars(self.temp)


    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables for temp given in C
        """
        deltaT = temp - self.tnom
        self._adjVdc = self.vdc \
            * (1. + (self.tc1 + self.tc2 * deltaT) * deltaT)

    def bind(self, system):
        Biasing.bind(self, system)
        n0, n1 = self.nodes[:2]
        if self._ti is None:
            self._hquad = system.bind_quad(n0, n0, n1, n1)
        else:
            ni = self.nodes[self._ti]
            self._h0i = system.bind(n0, ni)
            self._h1i = system.bind(n1, ni)
            self._hi0 = system.bind(ni, n0)
            self._hi1 = system.bind(ni, n1)

    def _stamp(self, system, v):
        n0, n1 = self.nodes[:2]
        if self._ti is None:
            g = 1. / self.rint
            system.add_quad(self._hquad, g)
            system.add_rhs(n0, v * g)
            system.sub_rhs(n1, v * g)
        else:
            system.accumulate(self._h0i, 1.)
            system.subtract(self._h1i, 1.)
            system.accumulate(self._hi0, 1.)
            system.subtract(self._hi1, 1.)
            system.add_rhs(self.nodes[self._ti], v)

    def load(self, system, state):
        self._stamp(system, state.srcFactor * self._adjVdc)
        return False

    def load_ac(self, system, state, omega):
        self._stamp(system, self.acmag * np.exp(1j * np.radians(self.acphase)))

    def get_OP(self, x):
        n0, n1 = self.nodes[:2]
        v = x[n0] - x[n1]
        if self._ti is None:
            i = (v - self._adjVdc) / self.rint
        else:
            i = x[self.nodes[self._ti]]
        self.OP = {'v': v, 'i': i}
        return self.OP
