"""
:mod:`circuit` -- Classes for internal circuit representation
-------------------------------------------------------------

.. moduleauthor:: Carlos Christoffersen

Example of how to use this module
+++++++++++++++++++++++++++++++++

The following example shows how to create and add devices::

    import thistle.circuit as cir
    from thistle.devices import devClass

    # Create circuit:
    mainckt = cir.get_mainckt()

    # Element with private parameters
    r1 = devClass['res']('r1')
    r1.set_param('r', 1e3)
    mainckt.add_elem(r1)
    # connect to terminals 'vdd' and 'out', automatically created
    mainckt.connect(r1, ['vdd', 'out'])

    # Element with shared (public) model: model 'nch' is created
    # if it is not already registered
    m1 = devClass['mosfet2']('m1')
    mainckt.add_elem(m1, 'nch')
    mainckt.connect(m1, ['out', 'in', 'gnd', 'gnd'])
    cir.get_model('nch').set_param('vto', .7)

Notes
+++++

* If anything goes wrong a CircuitError exception is thrown

* The device type is automatically added to Element names. This
  prevents name conflicts from devices of different type. Example:
  'mosfet2:m1'

* Before elements can be used, the circuit should be initialized with
  init(). This checks connectivity and initializes all elements.
  Elements may add internal terminals at this point.

* .model instances have global scope: they can be referred from any
  circuit.

"""

from warnings import warn
from thistle.paramset import ParamSet, Model
from thistle.globalVars import glVar

#---------------------------------------------------------------------
class CircuitError(Exception):
    """
    Used for exceptions raised in this module
    """
    pass


#---------------------------------------------------------------------
class GraphNode:
    """
    Simple graph node base class (not circuit node)

    Used for circuit Elements and terminals.  Links are stored using
    lists.
    """

    def __init__(self, nodeName):
        self.nodeName = nodeName
        self.neighbour = []

    def __str__(self):
        desc = self.nodeName + '\n'
        desc += 'Linked nodes: '
        for n in self.neighbour:
            desc += ' ' + n.nodeName
        return desc

#---------------------------------------------------------------------
class Terminal(GraphNode):
    """
    Represent circuit terminals (i.e., nodes)

    This class should used only for 'external' terminals. See also
    InternalTerminal
    """
    # By default terminals have volts as units. Devices may change this
    unit = 'V'

    def __str__(self):
        return 'Terminal({0}): {1}'.format(self.unit, GraphNode.__str__(self))

    def get_label(self):
        return self.nodeName

#---------------------------------------------------------------------
class InternalTerminal(Terminal):
    """
    Represent terminals that are internal to one Element instance

    They only have one neighbour (the parent Element instance)
    """

    def __init__(self, element, name):
        """
        Creates and connects internal terminal

        element: parent Element instance
        name: internal name (only unique to parent Element)
        """
        Terminal.__init__(self, name)
        self.neighbour.append(element)
        element.neighbour.append(self)

    def __str__(self):
        return 'Internal Terminal ({0}): {1}'.format(self.unit,
                                                     self.get_label())

    def get_label(self):
        return self.neighbour[0].nodeName + ':' + self.nodeName


#---------------------------------------------------------------------
class Element(GraphNode, ParamSet):
    """
    Base class for circuit Elements.

    Analysis roles (bias, transient, AC, noise) are provided by the
    mixin classes in :mod:`thistle.devices.roles`.
    """
    # numTerms = 0 means do not (automatically) check number of connections
    numTerms = 0

    # temperature parameter: must be called 'temp' (if needed at all)
    tempItem = (('temp', ('Device temperature', 'C', float, None)), )

    def __init__(self, instanceName):
        """
        The name of the element is formed by combining the given
        instanceName and the device type.

        Example: diode:d1
        """
        GraphNode.__init__(self, self.devType + ':' + instanceName)
        # Note: paramDict must be defined by the derived class
        ParamSet.__init__(self, self.paramDict)
        # Default is not to have a separate model
        self.dotModel = False

    # Printing and info-related functions ----------------------------------
    def __str__(self):
        desc = 'Element ' + GraphNode.__str__(self)
        desc += '\nDevice type: ' + self.devType + '\n'
        if self.dotModel:
            desc += 'Model: {0}\n'.format(self.dotModel.name)
        return desc

    def format_OP(self):
        """
        Return OP information in a formatted string
        """
        try:
            s = ''
            for key in sorted(self.OP):
                s += '{0:10} | {1}\n'.format(key, self.OP[key])
            return s
        except AttributeError:
            return ''

    # General initialization --------------------------------------------
    def init(self):
        """
        General initialization function

        Set the attribute values, check basic terminal connectivity
        and process parameters.
        """
        self.clean_attributes()
        self.set_attributes()
        self.check_terms()
        self.process_params()

    def process_params(self):
        """
        Check parameters and create internal terminals

        Raise CircuitError if a fatal error is found.
        """
        pass

    # Parameter-related functions ----------------------------------------
    def is_set(self, paramName):
        """
        Returns True if paramName is valid and manually set (either
        in the element or in its model)
        """
        if ParamSet.is_set(self, paramName):
            return True
        if self.dotModel:
            return self.dotModel.is_set(paramName)
        return False

    def set_attributes(self):
        """
        Set parameters as attributes.

        Priority is as follows: first manually set parameters, then
        manually set parameters in model (if any) and finally default
        values
        """
        if self.dotModel:
            ParamSet.set_attributes(self, useDefaults = False)
            self.dotModel.set_missing_attributes(self)
        else:
            ParamSet.set_attributes(self, useDefaults = True)
        # Device temperature defaults to the ambient temperature
        if getattr(self, 'temp', None) is None:
            self.temp = glVar.temp

    # Connectivity-related functions -----------------------------------------
    def check_terms(self):
        """
        Checks terminal connections

        If numTerms is not zero, checks that the number of connected
        terminals is equal to numTerms. Raises an exception if they do
        not match.
        """
        # Internal terminals are regenerated by process_params()
        self.clean_internal_terms()
        if self.numTerms:
            if len(self.neighbour) != self.numTerms:
                raise CircuitError(self.nodeName +
                                   ': must have ' + str(self.numTerms)
                                   + ' terminals.')
        else:
            self.numTerms = len(self.neighbour)

    def add_internal_term(self, name, unit):
        """
        Create and connect one internal terminal

        name: internal terminal name
        unit: internal variable unit

        Returns internal terminal index
        """
        term = InternalTerminal(self, name)
        term.unit = unit
        return len(self.neighbour) - 1

    def get_internal_terms(self):
        """
        Returns a list of internal terms (if any)
        """
        return self.neighbour[self.numTerms:]

    def clean_internal_terms(self):
        """
        Disconnect any internal terms

        Used before calling process_params() for a second time or
        when an element is removed from circuit.
        """
        if not self.numTerms:
            return
        for term in self.neighbour[self.numTerms:]:
            term.neighbour.remove(self)
        self.neighbour = self.neighbour[:self.numTerms]


#---------------------------------------------------------------------
class Circuit:
    """
    Holds a circuit.

    There are 2 global dictionaries defined at the class level:

    * cktDict: Contains references to all circuit instances

    * modelDict: References to all models in any circuit. Thus .model
      instances are global and can be referred anywhere

    Element and (external) Terminal references are stored in
    dictionaries: elemDict and termDict. Internal terminals must be
    accessed directly from the parent Element instance.

    Ground node: Nodes '0' and 'gnd' are considered to be the same
    and are used as the reference.
    """

    cktDict = dict()
    modelDict = dict()

    def __init__(self, name):
        self.name = name
        self._initialized = False
        if name in self.cktDict:
            raise CircuitError('Circuit "' + name + '" already exists')
        self.cktDict[name] = self
        self.termDict = dict()
        self.elemDict = dict()

    def __str__(self):
        desc = 'Circuit: {0}\n'.format(self.name)
        if hasattr(self, 'title'):
            desc = self.title + '\n'
        return desc

    # Actions on the whole circuit --------------------------------------

    def init(self):
        """
        To be used after all elements/terminals have been created. Can
        be called multiple times.

        1. Initialize all elements. This includes a check for terminal
           connections and parameter processing. Elements may add
           internal terminals at this point.

        2. Checks that no group of terminals is floating.
        """
        for elem in self.elemDict.values():
            elem.init()
        self.check_sanity()
        self._initialized = True

    def get_internal_terms(self):
        """
        Returns a list with all internal terminals

        Circuit must be initialized first.
        """
        assert self._initialized
        intTermList = []
        for elem in self.elemDict.values():
            intTermList += elem.get_internal_terms()
        return intTermList

    def check_sanity(self):
        """
        Look for terminals without a conducting path to ground

        Terminals connected to only one element produce a warning. A
        group of terminals not connected to the reference through
        any element is a fatal error.
        """
        for term in self.termDict.values():
            if len(term.neighbour) < 2 and term.nodeName != 'gnd':
                warn('Terminal {0} has less than 2 connections'.format(
                        term.nodeName))
        # Graph traversal starting from ground
        try:
            start = self.termDict['gnd']
        except KeyError:
            raise CircuitError('{0}: circuit has no reference node'.format(
                    self.name))
        visited = set([id(start)])
        stack = [start]
        while stack:
            node = stack.pop()
            for n in node.neighbour:
                if id(n) not in visited:
                    visited.add(id(n))
                    stack.append(n)
        # Called before the circuit is flagged as initialized
        allTerms = list(self.termDict.values())
        for elem in self.elemDict.values():
            allTerms += elem.get_internal_terms()
        floating = [term.get_label() for term in allTerms
                    if id(term) not in visited]
        if floating:
            raise CircuitError('Floating node(s): ' + ', '.join(floating))

    # Actions on individual elements/terminals -------------------------

    def connect(self, element, termList):
        """
        Connect an Element instance to terminals specified by a list
        of terminal names (termList). If any terminal does not exist
        in the circuit it is created and added.

        **Order in the adjacency list is important for Elements**

        For example, for a MOSFET the first node corresponds to the drain,
        the second to the gate, etc.
        """
        # This function should be used once per element
        assert not element.neighbour
        for termName in termList:
            terminal = self.get_term(termName)
            terminal.neighbour.append(element)
            element.neighbour.append(terminal)
        self._initialized = False

    def add_elem(self, elem, modelName = None):
        """
        Adds an element to a circuit.

        If modelName is not given it is assumed that no global model
        will be used. Otherwise the model is retrieved (or created if
        necessary) and assigned to elem.dotModel. This model can be
        shared with other elements.
        """
        if elem.nodeName in self.elemDict:
            raise CircuitError(elem.nodeName + ': Element already exists')
        self.elemDict[elem.nodeName] = elem

        if modelName:
            if elem.dotModel:
                raise CircuitError('{0} already has an assigned model'.format(
                        elem.nodeName))
            model = Circuit.modelDict.get(modelName)
            if model is None:
                model = Model(modelName, elem.devType, elem.paramDict)
                Circuit.modelDict[modelName] = model
            elif model.modelType != elem.devType:
                raise CircuitError(
                    'Incorrect model type "{0}" for element "{1}"'.format(
                        model.modelType, elem.nodeName))
            elem.dotModel = model
        self._initialized = False

    def remove_elem(self, elemName):
        """
        Disconnect and remove an element from a circuit. Internal
        terminals are also removed.
        """
        try:
            elem = self.elemDict.pop(elemName)
        except KeyError:
            raise CircuitError(elemName + ': Element not found' )
        elem.clean_internal_terms()
        for n1 in elem.neighbour:
            n1.neighbour.remove(elem)
        self._initialized = False

    def get_term(self, termName):
        """
        Returns an external terminal instance with the given name.

        A new instance is created if necessary
        """
        if termName == '0':
            termName = 'gnd'
        try:
            return self.termDict[termName]
        except KeyError:
            term = self.termDict[termName] = Terminal(termName)
            return term

    def has_term(self, termName):
        if termName == '0':
            termName = 'gnd'
        return termName in self.termDict


#---------------------------------------------------------------------
# Utility functions
#---------------------------------------------------------------------
def get_mainckt():
    """
    Used to get the circuit called 'main' whether it has been already
    created or not
    """
    try:
        return Circuit.cktDict['main']
    except KeyError:
        return Circuit('main')

def reset_allckt():
    """
    Erases all existing circuits and models
    """
    Circuit.cktDict = dict()
    Circuit.modelDict = dict()

def add_model(model):
    """
    Adds a public model (parameter set)

    A check is made to make sure the instance name is unique
    """
    if model.name in Circuit.modelDict:
        raise CircuitError(model.name + ': Model already exists')
    Circuit.modelDict[model.name] = model

def get_model(modelName):
    """
    Returns model reference if present, otherwise returns None.
    """
    return Circuit.modelDict.get(modelName)
