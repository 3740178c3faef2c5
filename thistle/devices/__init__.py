"""
:mod:`devices` -- Device Library
--------------------------------

The ``devices`` package contains a library with device models.  Device
classes are imported into a dictionary. Keys are the device types. To
create a new device use the following::

    devices.devClass['devType']('instancename')

Example::

    from thistle.devices import devClass
    # Create device instance
    m1 = devClass['mosfet2']('m1n')

Making a device model to be recognized by this package
++++++++++++++++++++++++++++++++++++++++++++++++++++++

Suppose the new model is implemented in a file named
``newmodel.py``. Save this file in the ``devices`` directory and edit
``devices/__init__.py``. Add your module name to ``netElemList`` as
shown below::

    # Regular 'netlist' elements must be listed here
    netElemList = ['resistor', 'capacitor', 'idc', 'vdc', 'diode',
                   'mosLevel2', 'mosBSIM3v3', 'newmodel']

The module must define a ``Device`` class with a ``devType``
attribute. Analysis roles supported by the device are declared by
inheriting from the classes in :mod:`thistle.devices.roles`.

"""
import importlib

# Regular 'netlist' elements must be listed here
netElemList = ['resistor', 'capacitor', 'idc', 'vdc', 'diode',
               'mosLevel2', 'mosBSIM3v3']

# Add here any modules to be imported in addition to netElemList
__all__ = netElemList + ['roles', 'limiting', 'helperf']

devClass = {}
for modname in netElemList:
    module = importlib.import_module('thistle.devices.' + modname)
    devClass[module.Device.devType] = module.Device
