"""
:mod:`capacitor` -- Linear capacitor
------------------------------------

.. module:: capacitor
.. moduleauthor:: Carlos Christoffersen

"""

import thistle.circuit as cir
from thistle.devices.roles import Biasing, Transient, Frequency

class Device(cir.Element, Biasing, Transient, Frequency):
    """
    Linear Capacitor
    ----------------

    Connection diagram::

                   || C
      0 o----------||---------o 1
                   ||

    Open circuit in DC. In transient analysis the charge :math:`q =
    C v` is integrated by the selected method and replaced by its
    companion model.

    Example::

        c1 = devClass['cap']('c1')
        c1.set_param('c', 10e-6)

    """

    # devtype is the 'model' name
    devType = "cap"

    # Number of terminals
    numTerms = 2

    paramDict = dict(
        c = ('Capacitance', 'F', float, 0.)
        )

    def __init__(self, instanceName):
        """
        Here the Element constructor must be called. Do not connect
        internal nodes here.
        """
        cir.Element.__init__(self, instanceName)


    def process_params(self):
        # Raise cir.CircuitError if a fatal error is found.
        if not self.c:
            raise cir.CircuitError(self.nodeName
                                   + ': Capacitance can not be zero')

    def bind(self, system):
        Biasing.bind(self, system)
        n0, n1 = self.nodes
        self._hquad = system.bind_quad(n0, n0, n1, n1)

    def _vc(self, x):
        return x[self.nodes[0]] - x[self.nodes[1]]

    def create_states(self, integ):
        self._qstate = integ.new_charge()

    def init_states(self, state):
        self._qstate.init(self.c * self._vc(state.x))

    def load_transient(self, system, state):
        v = self._vc(state.x)
        geq, ceq = self._qstate.integrate(self.c * v, self.c, v)
        system.add_quad(self._hquad, geq)
        system.sub_rhs(self.nodes[0], ceq)
        system.add_rhs(self.nodes[1], ceq)

    def load_ac(self, system, state, omega):
        system.add_quad(self._hquad, 1j * omega * self.c)

    def get_OP(self, x):
        self.OP = {'C': self.c, 'v': self._vc(x), 'q': self.c * self._vc(x)}
        return self.OP
