"""
Tests for variable allocation and nodal numbering
"""

import pytest
import thistle.circuit as cir
from thistle.analyses.variables import VariableSpace, make_nodal_circuit


def test_ground_is_zero():
    space = VariableSpace()
    assert len(space) == 1
    assert space.ground.index == 0
    assert space.find('gnd') is space[0]


def test_create_is_idempotent():
    space = VariableSpace()
    v1 = space.create('out')
    i1 = space.create('vdc:v1:i', 'A')
    assert (v1.index, i1.index) == (1, 2)
    assert space.create('out') is v1
    assert space.names() == ['gnd', 'out', 'vdc:v1:i']
    assert space.units() == ['V', 'V', 'A']
    assert space.find('nothere') is None
    space.clear()
    assert len(space) == 1


def test_nodal_numbering(build):
    ckt = cir.Circuit('numbering')
    build(ckt, 'vdc', 'v1', ['b', 'gnd'], vdc = 1.)
    build(ckt, 'res', 'r1', ['b', 'a'], r = 1e3)
    build(ckt, 'res', 'r2', ['a', 'gnd'], r = 1e3)
    ckt.init()
    make_nodal_circuit(ckt)
    # External terminals sorted by name, then internal terminals
    assert ckt.get_term('gnd').nD_namRC == 0
    assert ckt.get_term('a').nD_namRC == 1
    assert ckt.get_term('b').nD_namRC == 2
    assert ckt.nD_vars.names() == ['gnd', 'a', 'b', 'vdc:v1:i']
    assert ckt.nD_vars[3].unit == 'A'
    assert ckt.nD_dimension == 4
    assert ckt.nD_nterms == 2
    # Renumbering gives the same result
    make_nodal_circuit(ckt)
    assert ckt.nD_vars.names() == ['gnd', 'a', 'b', 'vdc:v1:i']


def test_floating_node(build):
    ckt = cir.Circuit('floating')
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    build(ckt, 'res', 'r2', ['2', '3'], r = 1e3)
    with pytest.warns(UserWarning):
        with pytest.raises(cir.CircuitError):
            ckt.init()


def test_wrong_number_of_terminals(build):
    ckt = cir.Circuit('terminals')
    build(ckt, 'res', 'r1', ['1', '2', 'gnd'], r = 1e3)
    with pytest.raises(cir.CircuitError):
        ckt.init()
