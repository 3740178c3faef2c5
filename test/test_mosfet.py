"""
Tests for the MOSFET models (Level 2 and BSIM3v3)
"""

import threading
import time
import pytest
import thistle.circuit as cir
from thistle import simulator
from thistle.devices.mosLevel2 import Region
from thistle.devices.mosBSIM3v3 import SizeDependCache

LEVEL2 = dict(vto = .7, kp = 2e-5, gamma = .5, phi = .6, lambd = .02,
              w = 10e-6, l = 2e-6, tox = 2e-8)

# (vgs, vds, vbs): exact binary fractions so that swapping is exact
POINTS = [(2., .5, 0.), (1.5, 2., -1.), (3., .25, -.5), (1., 4., 0.),
          (2.5, 1., -2.), (.5, 1., 0.), (1.25, .125, -.25)]


def single_device(build, elemType, name = 'm1', modelName = None,
                  **params):
    ckt = cir.Circuit(name)
    m = build(ckt, elemType, name, ['d', 'g', 's', 'b'], modelName,
              **params)
    m.init()
    return m


def check_mode_swap(m):
    for vgs, vds, vbs in POINTS:
        fwd = m.eval_dc(vgs, vds, vbs)
        # Same bias with drain and source terminals exchanged
        rev = m.eval_dc(vgs - vds, -vds, vbs - vds)
        assert fwd.mode == 1
        assert rev.mode == -1
        assert rev.ids == pytest.approx(-fwd.ids, rel = 1e-12, abs = 1e-20)
        assert rev.gm == pytest.approx(fwd.gm, rel = 1e-12, abs = 1e-20)
        assert rev.gds == pytest.approx(fwd.gds, rel = 1e-12, abs = 1e-20)
        assert rev.gmbs == pytest.approx(fwd.gmbs, rel = 1e-12, abs = 1e-20)
        assert rev.region == fwd.region
        assert rev.vdsat == fwd.vdsat
        assert rev.von == fwd.von


#-----------------------------------------------------------------------
# Level 2
#-----------------------------------------------------------------------
def test_level2_mode_swap(build):
    check_mode_swap(single_device(build, 'mosfet2', **LEVEL2))


def test_level2_mode_swap_subthreshold(build):
    params = dict(LEVEL2, nfs = 1e11)
    check_mode_swap(single_device(build, 'mosfet2', **params))


def test_level2_regions(build):
    m = single_device(build, 'mosfet2', **LEVEL2)
    assert m.eval_dc(0., 1., 0.).region == Region.CUTOFF
    assert m.eval_dc(0., 1., 0.).ids == 0.
    lin = m.eval_dc(3., .1, 0.)
    assert lin.region == Region.LINEAR
    sat = m.eval_dc(3., 4., 0.)
    assert sat.region == Region.SATURATION
    assert 0. < sat.vdsat < 4.
    assert sat.ids > lin.ids > 0.
    # Output conductance in saturation is small compared to gm
    assert 0. < sat.gds < sat.gm


def test_level2_subthreshold_region(build):
    m = single_device(build, 'mosfet2', nfs = 1e11, **LEVEL2)
    res = m.eval_dc(.3, 1., 0.)
    assert res.region == Region.SUBTHRESHOLD
    assert res.ids > 0.


def test_level2_invalid_geometry(build):
    with pytest.raises(cir.CircuitError):
        single_device(build, 'mosfet2', l = 1e-6, ld = .6e-6)


def test_level2_invalid_type(build):
    with pytest.raises(cir.CircuitError):
        single_device(build, 'mosfet2', type = 'x')


def test_level2_operating_point(build):
    ckt = cir.Circuit('amplifier')
    build(ckt, 'vdc', 'vdd', ['vdd', 'gnd'], vdc = 5.)
    build(ckt, 'vdc', 'vg', ['g', 'gnd'], vdc = 2.)
    build(ckt, 'res', 'rl', ['vdd', 'd'], r = 1e4)
    m = build(ckt, 'mosfet2', 'm1', ['d', 'g', 'gnd', 'gnd'], **LEVEL2)
    result = simulator.new_analysis('op').run(ckt)
    assert result
    vd = ckt.get_term('d').nD_vOP
    assert 0. < vd < 5.
    iload = (5. - vd) / 1e4
    assert abs(m.OP['id'] - iload) < 2e-3 * iload
    assert m.OP['mode'] == 1


def test_pmos_operating_point(build):
    ckt = cir.Circuit('pmos')
    build(ckt, 'vdc', 'vdd', ['vdd', 'gnd'], vdc = 5.)
    build(ckt, 'res', 'rl', ['d', 'gnd'], r = 1e4)
    params = dict(LEVEL2, type = 'p', vto = -.7)
    m = build(ckt, 'mosfet2', 'm1', ['d', 'gnd', 'vdd', 'vdd'], **params)
    result = simulator.new_analysis('op').run(ckt)
    assert result
    vd = ckt.get_term('d').nD_vOP
    assert 0. < vd < 5.
    # Current flows out of the drain
    assert abs(m.OP['id'] + vd / 1e4) < 2e-3 * vd / 1e4


#-----------------------------------------------------------------------
# BSIM3v3
#-----------------------------------------------------------------------
def test_bsim3_mode_swap(build):
    check_mode_swap(single_device(build, 'bsim3', w = 10e-6, l = 1e-6))


def test_bsim3_regions(build):
    m = single_device(build, 'bsim3', w = 10e-6, l = 1e-6)
    off = m.eval_dc(0., 1., 0.)
    on = m.eval_dc(1.5, 1., 0.)
    assert off.region == Region.SUBTHRESHOLD
    assert 0. < off.ids < 1e-3 * on.ids
    assert on.gm > 0.
    assert on.gds > 0.


def test_bsim3_operating_point(build):
    ckt = cir.Circuit('bsim3')
    build(ckt, 'vdc', 'vdd', ['vdd', 'gnd'], vdc = 3.)
    build(ckt, 'vdc', 'vg', ['g', 'gnd'], vdc = 1.2)
    build(ckt, 'res', 'rl', ['vdd', 'd'], r = 1e3)
    m = build(ckt, 'bsim3', 'm1', ['d', 'g', 'gnd', 'gnd'],
              w = 10e-6, l = 1e-6)
    result = simulator.new_analysis('op').run(ckt)
    assert result
    vd = ckt.get_term('d').nD_vOP
    iload = (3. - vd) / 1e3
    assert abs(m.OP['ids'] - iload) < 2e-3 * iload


def test_size_cache_shared_by_model(build):
    ckt = cir.Circuit('cache')
    terms = ['d', 'g', 'gnd', 'gnd']
    m1 = build(ckt, 'bsim3', 'm1', terms, 'nch', w = 10e-6, l = 1e-6)
    m2 = build(ckt, 'bsim3', 'm2', terms, 'nch', w = 10e-6, l = 1e-6)
    m3 = build(ckt, 'bsim3', 'm3', terms, 'nch', w = 20e-6, l = 1e-6)
    # Overrides a model parameter: can not share
    m4 = build(ckt, 'bsim3', 'm4', terms, 'nch', w = 10e-6, l = 1e-6,
               vth0 = .5)
    build(ckt, 'res', 'r1', ['d', 'g'], r = 1e3)
    ckt.init()
    model = cir.get_model('nch')
    cache = model.shared['sizeCache']
    assert len(cache) == 2
    assert (10e-6, 1e-6) in cache
    assert m1._size is m2._size
    assert m3._size is not m1._size
    assert m4._size is not m1._size
    assert m4._size.vth0 == .5
    assert m1._size.vth0 == m1._vth0
    # Changing the model discards derived quantities
    model.set_param('vth0', .6)
    assert 'sizeCache' not in model.shared
    ckt.init()
    assert m1._size is m2._size
    assert m1._size.vth0 == .6


def test_size_cache_single_computation():
    cache = SizeDependCache()
    calls = []
    results = []
    barrier = threading.Barrier(8)

    def factory():
        calls.append(1)
        time.sleep(.01)
        return object()

    def worker():
        barrier.wait()
        results.append(cache.get((1e-6, 1e-6), factory))

    threads = [threading.Thread(target = worker) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(calls) == 1
    assert len(results) == 8
    assert all(entry is results[0] for entry in results)
    cache.clear()
    assert len(cache) == 0
