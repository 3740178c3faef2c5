"""
:mod:`paramset` -- Classes for parameter handling
-------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

Handles sets of parameters used for Elements, Models, Analyses and
global options.

Each parameter is described by a tuple in a dictionary::

    paramDict = dict(
        w = ('Channel width', 'm', float, 10e-6),
        l = ('Channel length', 'm', float, 10e-6),
        vto = ('Threshold Voltage', 'V', float, 0.)
        )

Values explicitly given with ``set_param()`` are remembered
separately from defaults, so that derived quantities may depend on
whether a parameter was actually given (see ``is_set()``).

To reset parameters to the given values, use the following::

    obj.clean_attributes()
    obj.set_attributes()

"""


class ParamError(Exception):
    """
    Used for exceptions raised in this module
    """
    pass


class ParamSet:
    """
    Handles a set of parameters with values. 

    Useful for devices, analyses and anything that accepts
    parameters. Parameter values become instance attributes after
    ``set_attributes()`` is called.
    """

    def __init__(self, paramDict):
        self.paramDict = paramDict
        # Dictionary with explicitly given parameter values
        self.valueDict = dict()

    # Printing/formatting stuff -----------------------------------------

    def __str__(self):
        """
        Convert to string
        """
        desc = ' Name    |   Value    | Unit  \n'
        desc += '------------------------------\n'
        for key in sorted(self.paramDict):
            paraminfo = self.paramDict[key]
            value = getattr(self, key, self.valueDict.get(key, paraminfo[3]))
            desc += '{0:^8} | {1:^10} | {2:^5}\n'.format(key, str(value),
                                                         paraminfo[1])
        return desc

    def describe_parameters(self, paramName = None):
        """
        Returns a string with parameter information 

        If no parameter is specified all parameters are listed
        """
        line = ' =========== ============ ============ ' \
            + '===================================================== \n'
        helpstring = line
        helpstring += ' Name         Default      Unit         Description\n'
        helpstring += line
        if paramName:
            helpstring += self.format(paramName)
        else:
            for key in sorted(self.paramDict):
                helpstring += self.format(key)
        helpstring += line
        return helpstring

    def format(self, paramName):
        """
        Returns a string describing parameter named paramName
        """
        try:
            paraminfo = self.paramDict[paramName]
        except KeyError:
            return 'Parameter not found.\n'
        return ' {0:<10}   {1:<10}   {2:<10}   {3:<52} \n'.format(
            paramName, str(paraminfo[3]), paraminfo[1], paraminfo[0])

    # Individual parameter action/information ----------------------------

    def set_param(self, paramName, value):
        """ 
        Set parameter given with paramName to value

        The actual attribute is not set until set_attributes() is
        executed. Integers are accepted for float parameters.
        """
        try:
            ptype = self.paramDict[paramName][2]
        except KeyError:
            raise ParamError(
                '{0}: not a valid parameter name'.format(paramName))
        if ptype == float and type(value) == int:
            value = float(value)
        if not isinstance(value, ptype):
            raise ParamError(
                '{0}: not a valid value: {1!r}'.format(paramName, value))
        self.valueDict[paramName] = value

    def is_set(self, paramName):
        """
        Returns True if paramName is valid and manually set
        """
        return paramName in self.valueDict

    # Conversion to attributes ----------------------------------------

    def clean_attributes(self):
        """
        Delete parameter attributes
        """
        for key in self.paramDict:
            try:
                delattr(self, key)
            except AttributeError:
                pass

    def reset(self):
        """
        Forget given values (attributes are not touched)
        """
        self.valueDict = dict()

    def set_attributes(self, useDefaults = True):
        """
        Set attributes named after parameters in self.valueDict
        
        If useDefaults is True, set defaults from self.paramDict for
        parameters not already present as attributes
        """
        for key, value in self.valueDict.items():
            setattr(self, key, value)
        if useDefaults:
            for key, value in self.paramDict.items():
                # Only add these if not already set
                if not hasattr(self, key):
                    setattr(self, key, value[3])


                
#--------------------------------------------------------------------
class Model(ParamSet):
    """
    Provides '.model' functionality (used for Elements)

    All elements referencing a model share the same instance. The
    ``shared`` dictionary holds per-model state derived from
    parameters (for example a size-dependent parameter cache).
    """

    def __init__(self, name, modelType, paramDict):
        """
        name is the name of this particular set of parameters

        modelType is a string describing the type of model that uses
        this parameter set.
        """
        self.name = name
        self.modelType = modelType
        self.shared = dict()
        ParamSet.__init__(self, paramDict)

    def __str__(self):
        desc = 'Model: {0}, Type: {1}\n\n'.format(self.name, self.modelType)
        desc += ParamSet.__str__(self)
        return desc

    def set_param(self, paramName, value):
        # Derived quantities may be stale after this
        self.shared.clear()
        ParamSet.set_param(self, paramName, value)

    def set_missing_attributes(self, target):
        """
        Set attributes not present in target with values stored in self
        """
        for key, paraminfo in self.paramDict.items():
            if not hasattr(target, key):
                setattr(target, key, self.valueDict.get(key, paraminfo[3]))
