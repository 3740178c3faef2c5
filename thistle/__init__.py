"""
Thistle circuit simulator core
------------------------------

.. module:: thistle
.. moduleauthor:: Carlos Christoffersen

The following modules and packages are available:

  simulator: high-level functions
  circuit: circuit representation
  globalVars: global variables and constants
  paramset: parameter handling for elements, models and analyses

  devices: device models
  analyses: sparse system, Newton solver, integration, OP, DC, AC,
            transient and noise analyses

"""

__all__ = ['simulator', 'circuit', 'globalVars', 'paramset',
           'analyses', 'devices']
