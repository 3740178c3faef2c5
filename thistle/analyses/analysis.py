"""
This module defines some handy classes/functions for analyses
"""

class AnalysisError(Exception):
    """
    Exception class to be used for analyses. 
    """
    pass


def print_header(title, circuit):
    """
    Print the banner shown at the start of each analysis
    """
    print('******************************************************')
    print('{0:^54}'.format(title))
    print('******************************************************')
    if hasattr(circuit, 'title'):
        print('\n', circuit.title, '\n')
