"""
Simulator High-Level Functions
------------------------------

.. module:: simulator
.. moduleauthor:: Carlos Christoffersen

High-level functions for interactive use. Example::

  from thistle import simulator as ts
  from thistle.circuit import get_mainckt

  ts.reset_all()
  ckt = get_mainckt()
  r1 = ts.new_elem('res', 'r1', r = 1e3)
  ckt.add_elem(r1)
  ckt.connect(r1, ['1', 'gnd'])
  i1 = ts.new_elem('idc', 'i1', idc = 1e-3)
  ckt.add_elem(i1)
  ckt.connect(i1, ['gnd', '1'])
  ts.run_analyses([ts.new_analysis('op')], ckt)

"""
import time
from thistle.globalVars import reset_options
import thistle.circuit as cir
from thistle import analyses
from thistle import devices

copyright = '2011, 2012, 2013, Carlos Christoffersen and others'

# The short X.Y version.
version = '0.1'
# The full version, including alpha/beta/rc tags.
release = '0.1.0'


def reset_all():
    """
    Clean all circuits and reset global options
    """
    # Set global variables to default values
    reset_options()
    # Erase circuits
    cir.reset_allckt()


def run_analyses(analysisQueue, ckt = None):
    """
    Run all analyses in analysisQueue applied to the provided circuit
    (or 'main' if no circuit provided).

    Returns a list with the value returned by each analysis (None for
    an analysis that failed)
    """
    if not ckt:
        ckt = cir.get_mainckt()
    results = []
    # Perform requested analyses
    for an in analysisQueue:
        try:
            start = time.perf_counter()
            results.append(an.run(ckt))
            elapsed = time.perf_counter() - start
            print('{0} analysis time: {1} s\n'.format(an.anType, elapsed))
        except analyses.AnalysisError as ae:
            print(ae)
            results.append(None)
    return results


def new_elem(elemType, name, **kwargs):
    """
    Returns a new element instance

    elemType: type of device (diode, res, cap, mosfet2, etc.)
    name: instance name (without type)

    The remaining arguments should have the following format:
    <param name> = <param value>. Type of <param value> should
    exactly match the expected parameter type.

    Sample usage: new_elem('diode', 'd4', isat=2.1e-15, cj0=1e-12)

    """
    elem = devices.devClass[elemType](name)
    for key, value in kwargs.items():
        elem.set_param(key, value)
    return elem


def new_analysis(anType, **kwargs):
    """
    Returns a new analysis instance ready to run

    Sample usage: new_analysis('dc', device='vdc:v1', param='vdc')
    """
    an = analyses.anClass[anType]()
    for key, value in kwargs.items():
        an.set_param(key, value)
    an.set_attributes()
    return an
