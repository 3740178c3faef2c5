"""
Common fixtures for thistle tests

Every test starts with no circuits, no models and default global
options.
"""

import pytest
from thistle import simulator
import thistle.circuit as cir
from thistle.globalVars import const


# Thermal voltage used by the diode tests
VT = 0.02585


@pytest.fixture(autouse = True)
def clean_simulator():
    simulator.reset_all()
    yield
    simulator.reset_all()


@pytest.fixture
def build():
    """
    Returns a function to create, add and connect one element::

        r1 = build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    """
    def add(ckt, elemType, name, terms, modelName = None, **params):
        elem = simulator.new_elem(elemType, name, **params)
        ckt.add_elem(elem, modelName)
        ckt.connect(elem, terms)
        return elem
    return add


@pytest.fixture
def diode_circuit(build):
    """
    1 V source, 1 kOhm resistor and a diode with Vt = 25.85 mV
    """
    # Device temperature that gives the required thermal voltage
    temp = VT * const.q / const.k - const.T0
    ckt = cir.Circuit('diode')
    build(ckt, 'vdc', 'v1', ['in', 'gnd'], vdc = 1.)
    build(ckt, 'res', 'r1', ['in', 'a'], r = 1e3)
    build(ckt, 'diode', 'd1', ['a', 'gnd'], isat = 1e-14, n = 1.,
          temp = temp, tnom = temp)
    return ckt
