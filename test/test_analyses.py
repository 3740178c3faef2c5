"""
Tests for the DC sweep, AC, noise and transient analyses
"""

import numpy as np
import pytest
import thistle.circuit as cir
from thistle import simulator
from thistle.globalVars import glVar, const
from thistle.analyses import AnalysisError


def rc_circuit(build, vdc = 1., acmag = 0., r = 1e3, c = 1e-6,
               name = 'rc'):
    ckt = cir.Circuit(name)
    build(ckt, 'vdc', 'v1', ['in', 'gnd'], vdc = vdc, acmag = acmag)
    build(ckt, 'res', 'r1', ['in', 'out'], r = r)
    build(ckt, 'cap', 'c1', ['out', 'gnd'], c = c)
    return ckt


#-----------------------------------------------------------------------
# DC sweep
#-----------------------------------------------------------------------
def test_dc_current_sweep(build):
    ckt = cir.Circuit('sweep')
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    i1 = build(ckt, 'idc', 'i1', ['gnd', '1'], idc = 1e-3)
    dc = simulator.new_analysis('dc', device = 'idc:i1', param = 'idc',
                                start = 0., stop = 1e-3, num = 5)
    xVec = dc.run(ckt)
    assert xVec.shape == (5, ckt.nD_dimension)
    expected = np.linspace(0., 1., 5)
    assert np.allclose(ckt.get_term('1').dC_v, expected, atol = 1e-9)
    assert np.array_equal(ckt.dC_sweep, np.linspace(0., 1e-3, 5))
    # Original value restored
    assert i1.idc == 1e-3


def test_dc_source_sweep_internal_variable(build):
    ckt = cir.Circuit('vsweep')
    build(ckt, 'vdc', 'v1', ['1', 'gnd'], vdc = 1.)
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 2e3)
    dc = simulator.new_analysis('dc', device = 'vdc:v1', param = 'vdc',
                                start = -2., stop = 2., num = 3)
    dc.run(ckt)
    assert np.allclose(ckt.get_term('1').dC_v, [-2., 0., 2.], atol = 1e-9)
    ivar = ckt.elemDict['vdc:v1'].get_internal_terms()[0]
    assert np.allclose(ivar.dC_v, [1e-3, 0., -1e-3], atol = 1e-12)


def test_dc_sweep_continues_from_previous_point(diode_circuit):
    dc = simulator.new_analysis('dc', device = 'vdc:v1', param = 'vdc',
                                start = 1., stop = 1.01, num = 5)
    dc.run(diode_circuit)
    iters = diode_circuit.dC_iter
    assert len(iters) == 5
    # Only the first point starts from canned junction voltages
    assert iters[0] > iters[1]
    assert np.all(iters[1:] <= 2)
    va = diode_circuit.get_term('a').dC_v
    assert np.all(np.diff(va) > 0.)


def test_dc_temperature_sweep(build):
    ckt = cir.Circuit('temp')
    r1 = build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3, tc1 = 1e-2)
    build(ckt, 'idc', 'i1', ['gnd', '1'], idc = 1e-3)
    dc = simulator.new_analysis('dc', param = 'temp', start = 27.,
                                stop = 127., num = 3)
    dc.run(ckt)
    assert np.allclose(ckt.get_term('1').dC_v, [1., 1.5, 2.], atol = 1e-9)
    # Device temperature restored
    assert abs(r1.g - 1e-3) < 1e-15


@pytest.mark.parametrize('kwargs', [
        dict(device = 'res:nothere', param = 'r'),
        dict(device = 'res:r1', param = 'nothere'),
        dict(device = 'res:r1'),
        dict(param = 'r')])
def test_dc_sweep_errors(build, kwargs):
    ckt = cir.Circuit('errors')
    build(ckt, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    build(ckt, 'idc', 'i1', ['gnd', '1'], idc = 1e-3)
    dc = simulator.new_analysis('dc', **kwargs)
    with pytest.raises(AnalysisError):
        dc.run(ckt)


#-----------------------------------------------------------------------
# AC
#-----------------------------------------------------------------------
def test_ac_rc_lowpass(build):
    ckt = rc_circuit(build, vdc = 0., acmag = 1.)
    ac = simulator.new_analysis('ac', start = 10., stop = 1e4, log = True,
                                num = 7)
    xVec = ac.run(ckt)
    assert xVec.shape == (7, ckt.nD_dimension)
    fvec = ckt.aC_sweep
    expected = 1. / (1. + 2j * np.pi * fvec * 1e-3)
    assert np.max(abs(ckt.get_term('out').aC_V - expected)) < 1e-9
    assert np.allclose(ckt.get_term('in').aC_V, 1.)


#-----------------------------------------------------------------------
# Noise
#-----------------------------------------------------------------------
def test_noise_resistor(build):
    ckt = cir.Circuit('noise')
    build(ckt, 'res', 'r1', ['out', 'gnd'], r = 1e3)
    noise = simulator.new_analysis('noise', output = 'out', start = 1.,
                                   stop = 1e3, num = 3)
    psd = noise.run(ckt)
    expected = 4. * const.k * (glVar.temp + const.T0) * 1e3
    assert np.allclose(psd, expected, rtol = 1e-12)
    assert list(ckt.nO_contrib) == [('res:r1', 'thermal')]


def test_noise_parallel_resistors(build):
    ckt = cir.Circuit('noise')
    build(ckt, 'res', 'r1', ['out', 'gnd'], r = 1e3)
    build(ckt, 'res', 'r2', ['out', 'gnd'], r = 3e3)
    noise = simulator.new_analysis('noise', output = 'out', num = 2)
    psd = noise.run(ckt)
    kT4 = 4. * const.k * (glVar.temp + const.T0)
    assert np.allclose(psd, kT4 * 750., rtol = 1e-12)
    # Each contribution: (4kT / R) * Rp^2
    contrib = ckt.nO_contrib
    assert np.allclose(contrib[('res:r1', 'thermal')],
                       kT4 / 1e3 * 750.**2, rtol = 1e-12)
    assert np.allclose(contrib[('res:r2', 'thermal')],
                       kT4 / 3e3 * 750.**2, rtol = 1e-12)


@pytest.mark.parametrize('output', ['gnd', 'nothere', ''])
def test_noise_bad_output(build, output):
    ckt = cir.Circuit('noise')
    build(ckt, 'res', 'r1', ['out', 'gnd'], r = 1e3)
    noise = simulator.new_analysis('noise', output = output)
    with pytest.raises(AnalysisError):
        noise.run(ckt)


#-----------------------------------------------------------------------
# Transient
#-----------------------------------------------------------------------
@pytest.mark.parametrize('method', ['trap', 'gear', 'be'])
def test_tran_steady_state(build, method):
    ckt = rc_circuit(build)
    tran = simulator.new_analysis('tran', tstop = 1e-4, tstep = 1e-6,
                                  method = method)
    timeVec, xVec = tran.run(ckt)
    assert timeVec[0] == 0.
    assert abs(timeVec[-1] - 1e-4) < 1e-12
    assert np.all(np.diff(timeVec) > 0.)
    assert np.allclose(xVec[-1], xVec[0], atol = 1e-9)
    assert abs(ckt.get_term('out').tran_v[-1] - 1.) < 1e-9


def test_tran_nonlinear_steady_state(build):
    ckt = cir.Circuit('nonlinear')
    build(ckt, 'vdc', 'vdd', ['vdd', 'gnd'], vdc = 5.)
    build(ckt, 'vdc', 'vg', ['g', 'gnd'], vdc = 2.)
    build(ckt, 'res', 'rl', ['vdd', 'd'], r = 1e4)
    build(ckt, 'mosfet2', 'm1', ['d', 'g', 'gnd', 'gnd'], vto = .7,
          kp = 2e-5, w = 10e-6, l = 2e-6, tox = 2e-8, cgso = 1e-10,
          cgdo = 1e-10, cbd = 1e-14, cbs = 1e-14)
    build(ckt, 'diode', 'd1', ['d', 'gnd'], cj0 = 1e-12, tt = 1e-9)
    tran = simulator.new_analysis('tran', tstop = 1e-6, tstep = 1e-8)
    timeVec, xVec = tran.run(ckt)
    assert np.allclose(xVec[-1], xVec[0], rtol = 1e-5, atol = 1e-7)


def test_tran_checkpoint_restore(build, tmp_path):
    ckt = rc_circuit(build)
    first = str(tmp_path / 'first.npz')
    tran = simulator.new_analysis('tran', tstop = 1e-5, tstep = 1e-6,
                                  checkpoint = first)
    timeVec, xVec = tran.run(ckt)
    t0 = timeVec[-1]

    # Edit the saved state: capacitor discharged and charging at t0
    with np.load(first) as data:
        state = {k: data[k].copy() for k in data.files}
    outRow = ckt.get_term('out').nD_namRC
    ivar = ckt.elemDict['vdc:v1'].get_internal_terms()[0]
    x = state['x']
    x[outRow] = 0.
    x[ivar.nD_namRC] = -1e-3
    d = state['deltaOld']
    state['qhist'][0] = [0., 0., -1e-3 * d[1], -1e-3 * (d[1] + d[2])]
    state['iqhist'][0] = [1e-3, 1e-3, 1e-3]
    second = str(tmp_path / 'second.npz')
    np.savez(second, **state)

    tran = simulator.new_analysis('tran', tstop = t0 + 2e-3, tstep = 1e-5,
                                  restore = second)
    timeVec, xVec = tran.run(ckt)
    assert timeVec[0] == t0
    vout = ckt.get_term('out').tran_v
    expected = 1. - np.exp(-(timeVec - t0) / 1e-3)
    assert np.max(abs(vout - expected)) < 2e-3
    assert abs(vout[-1] - (1. - np.exp(-2.))) < 1e-3


def rc_charging_error(build, tmp_path, method, h):
    """
    Error at t0 + tau of an RC circuit (tau = 1 ms) charging from
    0 V, integrated with a fixed step h

    The saved state is edited so that the charge history is exact
    """
    tau = 1e-3
    name = '{0}_{1:g}'.format(method, h)
    ckt = rc_circuit(build, name = name)
    first = str(tmp_path / (name + '_first.npz'))
    tran = simulator.new_analysis('tran', tstop = 1e-5, tstep = 1e-6,
                                  method = method, checkpoint = first)
    timeVec, xVec = tran.run(ckt)
    t0 = timeVec[-1]
    with np.load(first) as data:
        state = {k: data[k].copy() for k in data.files}
    ivar = ckt.elemDict['vdc:v1'].get_internal_terms()[0]
    state['x'][ckt.get_term('out').nD_namRC] = 0.
    state['x'][ivar.nD_namRC] = -1e-3
    state['h'] = np.array(h)
    state['deltaOld'][:] = h
    # v(t) = 1 - exp(-(t - t0) / tau) extended before t0
    state['qhist'][0] = 1e-6 * (1. - np.exp(np.array([0., 0., h, 2. * h])
                                             / tau))
    state['iqhist'][0] = 1e-3 * np.exp(np.array([0., 0., h]) / tau)
    second = str(tmp_path / (name + '_second.npz'))
    np.savez(second, **state)

    tran = simulator.new_analysis('tran', tstop = t0 + tau, tstep = h,
                                  tmax = h, lte = False, method = method,
                                  restore = second)
    timeVec, xVec = tran.run(ckt)
    assert timeVec[-1] == t0 + tau
    assert np.allclose(np.diff(timeVec), h, rtol = 1e-6)
    vout = ckt.get_term('out').tran_v
    return abs(vout[-1] - (1. - np.exp(-1.)))


def test_tran_trapezoidal_second_order(build, tmp_path):
    e1 = rc_charging_error(build, tmp_path, 'trap', 2e-5)
    e2 = rc_charging_error(build, tmp_path, 'trap', 1e-5)
    assert e1 < 1e-4
    assert 3.6 < e1 / e2 < 4.4


def test_tran_gear_second_order(build, tmp_path):
    e1 = rc_charging_error(build, tmp_path, 'gear', 2e-5)
    e2 = rc_charging_error(build, tmp_path, 'gear', 1e-5)
    assert e1 < 2e-4
    assert 3.6 < e1 / e2 < 4.4


def test_tran_backward_euler_first_order(build, tmp_path):
    e1 = rc_charging_error(build, tmp_path, 'be', 2e-5)
    e2 = rc_charging_error(build, tmp_path, 'be', 1e-5)
    assert e1 < 1e-2
    assert 1.8 < e1 / e2 < 2.2


def test_tran_ends_at_tstop(build):
    ckt = cir.Circuit('nonlinear')
    build(ckt, 'vdc', 'vdd', ['vdd', 'gnd'], vdc = 5.)
    vg = build(ckt, 'vdc', 'vg', ['g', 'gnd'], vdc = 2.)
    build(ckt, 'res', 'rl', ['vdd', 'd'], r = 1e4)
    build(ckt, 'mosfet2', 'm1', ['d', 'g', 'gnd', 'gnd'], vto = .7,
          kp = 2e-5, w = 10e-6, l = 2e-6, tox = 2e-8, cgso = 1e-10,
          cgdo = 1e-10, cbd = 1e-14, cbs = 1e-14)
    build(ckt, 'diode', 'd1', ['d', 'gnd'], cj0 = 1e-12, tt = 1e-9)
    tran = simulator.new_analysis('tran', tstop = 1e-4, tstep = 1e-6)
    timeVec, xVec = tran.run(ckt)
    assert timeVec[-1] == 1e-4
    # No sliver step before tstop
    assert np.min(np.diff(timeVec)) > 1e-9
    ig = vg.get_internal_terms()[0].tran_v
    assert abs(ig[-1] - ig[0]) < 1e-9


def test_tran_restore_other_circuit(build, tmp_path):
    ckt = rc_circuit(build)
    fileName = str(tmp_path / 'state.npz')
    simulator.new_analysis('tran', tstop = 1e-5, tstep = 1e-6,
                           checkpoint = fileName).run(ckt)
    other = cir.Circuit('other')
    build(other, 'res', 'r1', ['1', 'gnd'], r = 1e3)
    build(other, 'idc', 'i1', ['gnd', '1'], idc = 1e-3)
    tran = simulator.new_analysis('tran', tstop = 1e-4, restore = fileName)
    with pytest.raises(AnalysisError):
        tran.run(other)


def test_tran_unknown_method(build):
    ckt = rc_circuit(build)
    tran = simulator.new_analysis('tran', method = 'rk4')
    with pytest.raises(AnalysisError):
        tran.run(ckt)


def test_tran_maximum_steps(build):
    ckt = rc_circuit(build)
    glVar.maxsteps = 3
    tran = simulator.new_analysis('tran', tstop = 1e-3, tstep = 1e-5)
    with pytest.raises(AnalysisError):
        tran.run(ckt)


#-----------------------------------------------------------------------
def test_run_analyses(build):
    ckt = rc_circuit(build)
    good = simulator.new_analysis('op')
    bad = simulator.new_analysis('tran', method = 'rk4')
    results = simulator.run_analyses([good, bad], ckt)
    assert len(results) == 2
    assert results[0]
    assert results[1] is None
