"""
:mod:`globalVars` -- Global simulator variables and physical constants
----------------------------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

Physical constants are from http://physics.nist.gov/cuu/Constants/

Usage example::

    from thistle.globalVars import const, glVar

    # Calculate thermal voltage (Vt) at default temperature
    vt = const.k * (glVar.temp + const.T0) / const.q

Options may be changed directly (``glVar.reltol = 1e-4``) or through
``set_param()`` followed by ``set_attributes()``. Use
``reset_options()`` to go back to defaults.
"""

import numpy as np
from thistle.paramset import ParamSet

# Physical constants
constDict = dict(
    k = ('Boltzmann constant', 'J K^{-1}', float, 1.380649e-23),
    q = ('Elementary charge', 'C', float, 1.602176634e-19),
    epsilon0 = ('Permittivity of free space', 'F m^{-1}', 
                float, 8.854187817e-12),
    T0 = ('Zero degree Celsius temperature', 'K', float, 273.15),
    Tref = ('Reference temperature (27 C)', 'K', float, 300.15),
    epSi = ('Permitivity of silicon', 'F m^{-1}', float, 1.0359431e-10),
    epOx = ('Permitivity of silicon oxide', 'F m^{-1}', float, 3.4531479e-11),
    ni300 = ('Intrinsic carrier concentration at 300 K', 'cm^{-3}', 
             float, 1.45e10),
    root2 = ('Square root of 2', '', float, np.sqrt(2.))
    )

const = ParamSet(constDict)
const.set_attributes()

globDict = dict(
    temp = ('Ambient temperature', 'C', float, 27.),
    tnom = ('Nominal temperature for model parameters', 'C', float, 27.),
    abstol = ('Absolute current tolerance', 'A', float, 1e-12),
    vntol = ('Absolute voltage tolerance', 'V', float, 1e-6),
    reltol = ('Relative tolerance', '', float, 1e-3),
    chgtol = ('Charge tolerance', 'C', float, 1e-14),
    trtol = ('Truncation error overestimation factor', '', float, 7.),
    gmin = ('Minimum conductance added to junctions', 'S', float, 1e-12),
    maxiter = ('Maximum number of Newton iterations (DC)', '', int, 100),
    tranmaxiter = ('Maximum number of Newton iterations per time step',
                   '', int, 20),
    maxsteps = ('Maximum number of transient time steps', '', int, 100000),
    maxgrowth = ('Maximum time step growth factor', '', float, 2.),
    method = ('Integration method: trap, gear or be', '', str, 'trap'),
    pivtol = ('Pivot ratio below which matrix is ill-conditioned', '',
              float, 1e-13),
    verbose = ('Log Newton iteration details', '', bool, False)
)

glVar = ParamSet(globDict)
glVar.set_attributes()


def reset_options():
    """
    Set all global options back to their default values
    """
    glVar.clean_attributes()
    glVar.reset()
    glVar.set_attributes()
