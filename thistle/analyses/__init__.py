"""
This package contains all analyses modules.  Analysis classes are
imported into a dictionary (similarly as with the 'devices'
package). Keys are the analysis types. So to create a new analysis
just use:

analyses.anClass['analysisType']()

"""
import importlib

# Regular 'analysis' modules listed here
analysisList = ['op', 'dc', 'ac', 'tran', 'noise']

# Add here any modules to be imported in addition to analysisList
__all__ = analysisList 

from thistle.analyses.analysis import AnalysisError

anClass = {}

for modname in analysisList:
    module = importlib.import_module('thistle.analyses.' + modname)
    anClass[module.Analysis.anType] = module.Analysis
