"""
:mod:`idc` -- DC current source
-------------------------------

.. module:: idc
.. moduleauthor:: Carlos Christoffersen
"""

import numpy as np
import thistle.circuit as cir
from thistle.devices.roles import Temperature, Biasing, Frequency

class Device(cir.Element, Temperature, Biasing, Frequency):
    r"""
    DC current source
    -----------------

    Schematic::

                    idc
                   ,---,    
        0 o-------( --> )---------o 1
                   `---`     

    Current flows from terminal 0 through the source into terminal 1.

    Temperature dependence:

    .. math::
        
      i_{DC}(T) = i_{DC}(T_{nom}) (1 + t_{c1} \Delta T + t_{c2} \Delta T^2)

      \Delta T = T - T_{nom}

    The DC value is scaled by the source stepping factor. For AC
    analysis the source has a magnitude (``acmag``) and phase
    (``acphase``, in degrees).

    Example::

        is1 = devClass['idc']('is1')
        is1.set_param('idc', 2e-3)
        ckt.connect(is1, ['gnd', '4'])

    """
    # Device category
    category = "Sources"

    # devtype is the 'model' name
    devType = "idc"

    # Number of terminals
    numTerms = 2
    
    isDCSource = True

    paramDict = dict(
        cir.Element.tempItem,
        idc = ('DC current', 'A', float, 0.),
        acmag = ('AC magnitude', 'A', float, 0.),
        acphase = ('AC phase', 'degrees', float, 0.),
        tnom = ('Nominal temperature', 'C', float, 27.),
        tc1 = ('Current temperature coefficient 1', '1/C', float, 0.),
        tc2 = ('Current temperature coefficient 2', '1/C^2', float, 0.)
        )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)


    def process_params(self):
        # Adjust according to temperature
        self.set_temp_vars(self.temp)


    def set_temp_vars(self, temp):
        """
        Calculate temperature-dependent variables for temp given in C
        """
        deltaT = temp - self.tnom
        self._adjIdc = self.idc * (1. + (self.tc1 + self.tc2 * deltaT) * deltaT)

    def load(self, system, state):
        i = state.srcFactor * self._adjIdc
        system.sub_rhs(self.nodes[0], i)
        system.add_rhs(self.nodes[1], i)
        return False

    def load_ac(self, system, state, omega):
        i = self.acmag * np.exp(1j * np.radians(self.acphase))
        system.sub_rhs(self.nodes[0], i)
        system.add_rhs(self.nodes[1], i)

    def get_OP(self, x):
        self.OP = {'i': self._adjIdc,
                   'v': x[self.nodes[1]] - x[self.nodes[0]]}
        return self.OP
