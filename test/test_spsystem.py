"""
Tests for the sparse equation system
"""

import numpy as np
import pytest
from thistle.analyses.spsystem import SparseSystem, SolveStatus


def conductance_pair(dtype = float):
    """
    Two nodes: 1 mS from node 1 to ground, 2 mS between nodes 1 and 2,
    1 mA injected into node 2
    """
    system = SparseSystem(3, dtype)
    h11 = system.bind(1, 1)
    quad = system.bind_quad(1, 1, 2, 2)
    system.clear()
    system.accumulate(h11, 1e-3)
    system.add_quad(quad, 2e-3)
    system.add_rhs(2, 1e-3)
    return system


def test_ground_handles():
    system = SparseSystem(4)
    assert system.bind(0, 2) == 0
    assert system.bind(3, 0) == 0
    assert system.bind_quad(0, 0, 2, 2)[:3] == (0, 0, 0)


def test_bind_twice_same_handle():
    system = SparseSystem(4)
    h1 = system.bind(1, 2)
    system.bind(2, 2)
    assert system.bind(1, 2) == h1
    assert system.nnz == 2


def test_solve_pair():
    system = conductance_pair()
    status, x = system.solve()
    assert status == SolveStatus.SUCCESS
    assert x[0] == 0.
    # v1 = 1 mA * 1 kOhm, v2 = v1 + 1 mA * 500 Ohm
    assert abs(x[1] - 1.) < 1e-12
    assert abs(x[2] - 1.5) < 1e-12
    assert np.max(abs(system.residual(x))) < 1e-15


def test_handles_survive_new_positions():
    system = SparseSystem(3)
    h11 = system.bind(1, 1)
    system.clear()
    system.accumulate(h11, 5.)
    # Structure changes after values were stored
    h12 = system.bind(1, 2)
    h21 = system.bind(2, 1)
    system.clear()
    system.accumulate(h11, 2.)
    system.accumulate(h12, -1.)
    system.subtract(h21, 1.)
    M = system.matrix()
    assert np.array_equal(M, np.array([[2., -1.], [-1., 0.]]))


def test_ground_stamps_discarded():
    system = SparseSystem(2)
    quad = system.bind_quad(1, 1, 0, 0)
    system.clear()
    system.add_quad(quad, 1.)
    system.add_rhs(0, 10.)
    system.add_rhs(1, 1.)
    status, x = system.solve()
    assert status == SolveStatus.SUCCESS
    assert x[0] == 0.
    assert x[1] == 1.


def test_singular():
    system = SparseSystem(3)
    h11 = system.bind(1, 1)
    system.bind(2, 2)
    system.clear()
    system.accumulate(h11, 1.)
    status, x = system.solve()
    assert status == SolveStatus.SINGULAR
    assert x is None
    assert system.singular_row() == 2


def test_ill_conditioned():
    system = SparseSystem(3)
    h11, h22 = system.diagonal_handles()
    system.clear()
    system.accumulate(h11, 1.)
    system.accumulate(h22, 1e-15)
    system.add_rhs(2, 1e-15)
    with pytest.warns(UserWarning):
        status, x = system.solve()
    assert status == SolveStatus.ILL_CONDITIONED
    assert abs(x[2] - 1.) < 1e-9


def test_transposed_solve():
    system = SparseSystem(3)
    h12 = system.bind(1, 2)
    h11, h22 = system.diagonal_handles()
    system.clear()
    system.accumulate(h11, 1.)
    system.accumulate(h22, 1.)
    system.accumulate(h12, 2.)
    assert system.factor() == SolveStatus.SUCCESS
    b = np.array([0., 0., 1.])
    # A = [[1, 2], [0, 1]]
    assert np.allclose(system.back_substitute(b), [0., -2., 1.])
    # A^T = [[1, 0], [2, 1]]
    assert np.allclose(system.back_substitute(b, trans = True),
                       [0., 0., 1.])


def test_complex_like():
    real = conductance_pair()
    acSystem = real.like(complex)
    h11, h22 = acSystem.diagonal_handles()
    acSystem.clear()
    acSystem.accumulate(h11, 1j)
    acSystem.accumulate(h22, 1.)
    acSystem.add_rhs(1, 1.)
    acSystem.add_rhs(2, 1.)
    status, x = acSystem.solve()
    assert status == SolveStatus.SUCCESS
    assert x.dtype == complex
    assert abs(x[1] + 1j) < 1e-12
    assert abs(x[2] - 1.) < 1e-12
    # The real system is not affected
    assert abs(real.matrix()[0, 0] - 3e-3) < 1e-15
