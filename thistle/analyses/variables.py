"""
:mod:`variables` -- Unknowns of the circuit equations
-----------------------------------------------------

.. module:: variables
.. moduleauthor:: Carlos Christoffersen

A ``VariableSpace`` allocates and names the unknowns solved for by the
nodal analyses: node voltages and internal branch quantities (for
example the current through a voltage source). Index 0 is reserved
for the reference (ground) and is never solved for.

``make_nodal_circuit()`` assigns one variable to each terminal in a
circuit, including internal terminals created by elements. New
attributes are added in Circuit/Terminal instances. All new attributes
start with ``nD_``.
"""


class Variable:
    """
    One unknown: stable index, name and unit
    """
    def __init__(self, index, name, unit):
        self.index = index
        self.name = name
        self.unit = unit

    def __str__(self):
        return '{0}({1}): {2}'.format(self.name, self.unit, self.index)

    def __repr__(self):
        return 'Variable({0}, {1!r}, {2!r})'.format(self.index, self.name,
                                                     self.unit)


class VariableSpace:
    """
    Ordered collection of unknowns

    Variables are created lazily and keep their index for the
    lifetime of the topology. ``len()`` includes the reference, so a
    vector holding a solution has ``len(space)`` elements with
    position 0 always equal to zero.
    """

    def __init__(self):
        self.varList = [Variable(0, 'gnd', 'V')]
        self._nameDict = {'gnd': self.varList[0]}

    def __len__(self):
        return len(self.varList)

    def __iter__(self):
        return iter(self.varList)

    def __getitem__(self, index):
        return self.varList[index]

    @property
    def ground(self):
        return self.varList[0]

    def create(self, name, unit = 'V'):
        """
        Create a new variable and return it

        If a variable with the same name already exists, it is
        returned instead (unit must agree)
        """
        try:
            var = self._nameDict[name]
        except KeyError:
            var = Variable(len(self.varList), name, unit)
            self.varList.append(var)
            self._nameDict[name] = var
            return var
        assert var.unit == unit
        return var

    def find(self, name):
        """
        Returns variable with given name or None
        """
        return self._nameDict.get(name)

    def names(self):
        return [var.name for var in self.varList]

    def units(self):
        return [var.unit for var in self.varList]

    def clear(self):
        """
        Destroy all variables except the reference
        """
        self.varList = self.varList[:1]
        self._nameDict = {'gnd': self.varList[0]}


def make_nodal_circuit(ckt, reference='gnd'):
    """
    Add attributes to Circuit/Terminals for nodal analysis

    Takes an initialized Circuit instance (ckt). The reference
    terminal gets variable index 0. Terminals are numbered in sorted
    label order so that the numbering (and thus every solve) is
    reproducible.

    Adds ``ckt.nD_vars`` (a VariableSpace), ``ckt.nD_ref``,
    ``ckt.nD_termList``, ``ckt.nD_elemList`` (sorted by name),
    ``ckt.nD_dimension`` and ``term.nD_namRC`` for every terminal.
    """
    ckt.nD_ref = ckt.get_term(reference)
    ckt.nD_ref.nD_namRC = 0
    ckt.nD_vars = VariableSpace()

    extTerms = sorted((term for term in ckt.termDict.values()
                       if term is not ckt.nD_ref),
                      key = lambda t: t.get_label())
    ckt.nD_elemList = [ckt.elemDict[name] for name in sorted(ckt.elemDict)]
    intTerms = []
    for elem in ckt.nD_elemList:
        intTerms += elem.get_internal_terms()
    ckt.nD_termList = extTerms + intTerms
    for term in ckt.nD_termList:
        var = ckt.nD_vars.create(term.get_label(), term.unit)
        term.nD_namRC = var.index
    # Dimension includes the reference
    ckt.nD_dimension = len(ckt.nD_vars)
    # Number of external terminals excluding reference
    ckt.nD_nterms = len(extTerms)
