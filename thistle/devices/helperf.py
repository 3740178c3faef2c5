"""
Miscellany helper functions for device models

Includes numerically safe exponentials and a finite-difference
derivative helper used by models that do not provide analytic
derivatives.
"""

import numpy as np

# Exponential limits (same as used in SPICE device code)
EXP_THRESHOLD = 34.0
MAX_EXP = 5.834617425e14
MIN_EXP = 1.713908431e-15
MAX_EXP_ARG = 709.0

def safe_exp(x):
    """
    Same as exp() except when x is greater than threshold. It has
    continuous derivatives.
    """
    threshold = 50.
    if x < threshold:
        return np.exp(x)
    else:
        return np.exp(threshold) * (x - threshold + 1.)


def limited_exp(x):
    """
    exp(x) clipped to [MIN_EXP, MAX_EXP] (BSIM style)
    """
    if x > EXP_THRESHOLD:
        return MAX_EXP
    elif x < -EXP_THRESHOLD:
        return MIN_EXP
    return np.exp(x)


def log1pexp(x):
    """
    Smooth max(0, x): log(1 + exp(x)) without overflow
    """
    if x > EXP_THRESHOLD:
        return x
    elif x < -EXP_THRESHOLD:
        return np.exp(x)
    return np.log1p(np.exp(x))


def eval_and_deriv(f, x, rel = 1e-6, absdelta = 1e-9):
    """
    Evaluate f(x) and its Jacobian by central differences

    f: function taking a 1-D array and returning a 1-D array
    x: evaluation point

    Returns (y, J) with ``J[i, j] = dy_i / dx_j``
    """
    x = np.asarray(x, dtype = float)
    y = np.asarray(f(x), dtype = float)
    J = np.empty((len(y), len(x)))
    for j in range(len(x)):
        dx = rel * abs(x[j]) + absdelta
        xp = np.copy(x)
        xm = np.copy(x)
        xp[j] += dx
        xm[j] -= dx
        J[:, j] = (np.asarray(f(xp)) - np.asarray(f(xm))) / (2. * dx)
    return (y, J)
