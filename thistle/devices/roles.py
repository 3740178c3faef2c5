"""
:mod:`roles` -- Analysis roles a device may support
---------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

A device class declares the analyses it takes part in by inheriting
from the capability classes defined here, in addition to
``circuit.Element``. For example a linear capacitor is::

    class Device(cir.Element, Biasing, Transient, Frequency):
        ...

Roles
+++++

``Temperature``
    ``set_temp_vars(temp)``: recompute temperature-dependent derived
    attributes. Must only write derived attributes so that it can be
    called any number of times.

``Biasing`` (every device)
    ``bind(system)``: request matrix handles, called once per topology.

    ``load(system, state)``: stamp Jacobian and rhs for the trial
    solution in ``state.x``. Returns True if a controlling voltage was
    limited.

    ``is_convergent(state)``: compare the currents predicted by the
    last linearization against the currents evaluated at the new
    solution ``state.x``. When the check fails a short description is
    left in ``self.convReason``.

    ``get_OP(x)``: operating point information (dictionary).

``Transient``
    ``create_states(integ)``: allocate state history slots from the
    integration method.

    ``init_states(state)``: compute initial charges from the DC
    solution.

    ``load_transient(system, state)``: stamp companion models of
    charge-storage elements (called after ``load()``).

``Frequency``
    ``load_ac(system, state, omega)``: complex small-signal stamp
    around the last operating point.

``Noise``
    ``get_noise(f)``: list of noise sources, each one a tuple
    ``(name, n1, n2, psd)`` where n1 and n2 are variable indices and
    psd is a current spectral density in A^2/Hz.

Variable indices for each terminal (after ``bind()``) are kept in
``self.nodes``. Position 0 in any vector corresponds to the reference
so stamps involving ground need no special case.
"""


class Temperature:
    """
    Temperature-dependent device
    """
    def set_temp_vars(self, temp):
        pass


class Biasing:
    """
    Device that contributes to DC/operating point equations
    """
    # Set to True if load() depends nonlinearly on x
    isNonlinear = False
    # Set to True if the device scales with source stepping
    isDCSource = False

    def bind(self, system):
        self.nodes = [term.nD_namRC for term in self.neighbour]

    def load(self, system, state):
        return False

    def is_convergent(self, state):
        return True

    def get_OP(self, x):
        return dict()


class Transient:
    """
    Device with charge storage
    """
    def create_states(self, integ):
        pass

    def init_states(self, state):
        pass

    def load_transient(self, system, state):
        pass


class Frequency:
    """
    Device with small-signal (AC) stamp
    """
    def load_ac(self, system, state, omega):
        pass


class Noise:
    """
    Device that generates noise
    """
    def get_noise(self, f):
        return []


roleDict = dict(
    temperature = Temperature,
    bias = Biasing,
    transient = Transient,
    ac = Frequency,
    noise = Noise
    )


def supports(dev, role):
    """
    Returns True if device (class or instance) supports role

    role: one of 'temperature', 'bias', 'transient', 'ac', 'noise'
    """
    if not isinstance(dev, type):
        dev = type(dev)
    return issubclass(dev, roleDict[role])
