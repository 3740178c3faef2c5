"""
:mod:`limiting` -- Per-iteration voltage limiting functions
-----------------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

Functions here bound the change of a controlling voltage between two
Newton iterations. They keep exponential expressions from overflowing
and prevent unphysical jumps in the solution.

All functions are pure and never fail: they take the proposed value
(vnew) and the value used in the previous iteration (vold) and return
a tuple ``(v, limited)`` where ``limited`` is True if the proposed
value was changed. A device reports limiting to the Newton engine,
which then refuses to declare convergence in that iteration.

Also includes the voltage convergence test used by nonlinear devices
and the Meyer gate capacitance model shared by the MOSFET models.
"""

import numpy as np
from thistle.globalVars import const, glVar


def vcrit(vt, isat):
    r"""
    Critical voltage of a junction

    .. math::

        V_{crit} = V_t \ln(V_t / (\sqrt{2} I_s))

    Above this voltage junction limiting uses logarithmic
    extrapolation
    """
    return vt * np.log(vt / (const.root2 * isat))


def fetlim(vnew, vold, vto):
    """
    Limit change of a gate voltage relative to threshold (vto)

    Different bounds are used if the device was on, off or in the
    region just above threshold in the previous iteration
    """
    v = vnew
    vtsthi = abs(2. * (vold - vto)) + 2.
    vtstlo = vtsthi / 2. + 2.
    vtox = vto + 3.5
    delv = vnew - vold
    if vold >= vto:
        if vold >= vtox:
            if delv <= 0.:
                # going off
                if vnew >= vtox:
                    if -delv > vtstlo:
                        v = vold - vtstlo
                else:
                    v = max(vnew, vto + 2.)
            elif delv >= vtsthi:
                # staying on
                v = vold + vtsthi
        else:
            # middle region
            if delv <= 0.:
                v = max(vnew, vto - .5)
            else:
                v = min(vnew, vto + 4.)
    else:
        # off
        if delv <= 0.:
            if -delv > vtsthi:
                v = vold - vtsthi
        else:
            vtemp = vto + .5
            if vnew <= vtemp:
                if delv > vtstlo:
                    v = vold + vtstlo
            else:
                v = vtemp
    return (v, v != vnew)


def limvds(vnew, vold):
    """
    Limit change of drain to source voltage

    Avoids sign flips of vds that make the iteration thrash
    """
    v = vnew
    if vold >= 3.5:
        if vnew > vold:
            v = min(vnew, 3. * vold + 2.)
        elif vnew < 3.5:
            v = max(vnew, 2.)
    else:
        if vnew > vold:
            v = min(vnew, 4.)
        else:
            v = max(vnew, -.5)
    return (v, v != vnew)


def pnjlim(vnew, vold, vt, vcrit):
    """
    Limit change of an exponential junction voltage

    vt: thermal voltage times emission coefficient

    vcrit: critical voltage (see ``vcrit()``)
    """
    if vnew > vcrit and abs(vnew - vold) > 2. * vt:
        if vold > 0.:
            arg = 1. + (vnew - vold) / vt
            if arg > 0.:
                v = vold + vt * np.log(arg)
            else:
                v = vcrit
        else:
            v = vt * np.log(vnew / vt)
        return (v, True)
    return (vnew, False)


def vconverged(vnew, vold):
    """
    True if the change of a controlling voltage is within tolerance

    vnew: voltage at the new solution
    vold: voltage used in the last linearization
    """
    return abs(vnew - vold) <= glVar.reltol * max(abs(vnew), abs(vold)) \
        + glVar.vntol


def qmeyer(vgs, vgd, vgb, von, vdsat, phi, cox):
    """
    Meyer gate capacitances (half values)

    Returns (capgs, capgd, capgb). The transient charge of each
    capacitance uses the sum of the present and the previous value.
    """
    vgst = vgs - von
    if vgst <= -phi:
        return (0., 0., cox / 2.)
    elif vgst <= -phi / 2.:
        return (0., 0., -vgst * cox / (2. * phi))
    elif vgst <= 0.:
        return (vgst * cox / (1.5 * phi) + cox / 3., 0.,
                -vgst * cox / (2. * phi))
    vds = vgs - vgd
    if vdsat <= vds:
        return (cox / 3., 0., 0.)
    vddif = 2. * vdsat - vds
    vddif1 = vdsat - vds
    vddif2 = vddif * vddif
    capgd = cox * (1. - vdsat * vdsat / vddif2) / 3.
    capgs = cox * (1. - vddif1 * vddif1 / vddif2) / 3.
    return (capgs, capgd, 0.)
