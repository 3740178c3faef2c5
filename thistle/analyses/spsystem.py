"""
:mod:`spsystem` -- Sparse equation system with stable entry handles
-------------------------------------------------------------------

.. module:: spsystem
.. moduleauthor:: Carlos Christoffersen

Holds the Jacobian matrix and right-hand side vector of the circuit
equations. Devices request one handle per (row, column) position they
need during topology binding and then accumulate values through that
handle in every iteration, so no coordinate lookup happens in the
inner loop.

Rows and columns are variable indices (see :mod:`variables`). Index 0
is the reference: any position involving it gets handle 0, a discard
slot that is never copied into the matrix. The same applies to
``rhs[0]``.

The matrix is kept in Scipy CSC format. Handle storage is copied into
the CSC data array through a permutation computed once when the
structure is frozen. SuperLU (``scipy.sparse.linalg.splu``) is used to
factor the matrix. Usage::

    sys = SparseSystem(dimension)
    h = sys.bind(1, 2)
    sys.clear()
    sys.accumulate(h, 1e-3)
    sys.add_rhs(1, 1e-3)
    status, x = sys.solve()

"""

from warnings import warn
import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg
from thistle.globalVars import glVar
from thistle.analyses.analysis import AnalysisError


class SingularMatrixError(AnalysisError):
    """
    Raised when the circuit matrix can not be factored
    """
    pass


class SolveStatus:
    SUCCESS = 'success'
    SINGULAR = 'singular'
    ILL_CONDITIONED = 'ill-conditioned'


class SparseSystem:
    """
    Sparse linear system A x = b

    dimension is the number of variables including the reference
    (the size of the solved system is dimension - 1). dtype is float
    for DC/transient and complex for AC analysis.
    """

    def __init__(self, dimension, dtype = float):
        self.dimension = dimension
        self.dtype = dtype
        # Handle 0 is the discard slot
        self._handleDict = dict()
        self._rows = [0]
        self._cols = [0]
        self._frozen = False
        self.data = np.zeros(1, dtype = dtype)
        self.rhs = np.zeros(dimension, dtype = dtype)
        self._lu = None
        self.M = None

    def __len__(self):
        return self.dimension

    def like(self, dtype):
        """
        Returns a new system sharing the structure (and handles) of self
        """
        other = SparseSystem(self.dimension, dtype)
        other._handleDict = dict(self._handleDict)
        other._rows = list(self._rows)
        other._cols = list(self._cols)
        return other

    # Structure ----------------------------------------------------------

    def bind(self, row, col):
        """
        Returns a handle for position (row, col)

        Binding the same position twice returns the same handle. Any
        position in the reference row or column returns handle 0.
        """
        if row == 0 or col == 0:
            return 0
        assert 0 < row < self.dimension and 0 < col < self.dimension
        try:
            return self._handleDict[(row, col)]
        except KeyError:
            handle = len(self._rows)
            self._handleDict[(row, col)] = handle
            self._rows.append(row)
            self._cols.append(col)
            # Structure changed: matrix must be rebuilt
            self._frozen = False
            return handle

    def bind_quad(self, row1, col1, row2, col2):
        """
        Bind the four positions of a transconductance quad

        Returns handles in the order (row1,col1), (row1,col2),
        (row2,col1), (row2,col2)
        """
        return (self.bind(row1, col1), self.bind(row1, col2),
                self.bind(row2, col1), self.bind(row2, col2))

    def diagonal_handles(self):
        """
        Returns handles of all diagonal entries (bound if needed)
        """
        return [self.bind(i, i) for i in range(1, self.dimension)]

    @property
    def nnz(self):
        return len(self._rows) - 1

    def freeze(self):
        """
        Build the CSC structure and the handle permutation

        Called automatically by clear() after new positions are bound.
        """
        # Make sure the diagonal is always present
        self.diagonal_handles()
        n = self.dimension - 1
        nnz = self.nnz
        rows = np.array(self._rows[1:], dtype = np.intp) - 1
        cols = np.array(self._cols[1:], dtype = np.intp) - 1
        # Positions are unique: CSC data holds handle numbers
        handles = np.arange(1, nnz + 1, dtype = float)
        M = sp.csc_matrix((handles, (rows, cols)), shape = (n, n))
        M.sort_indices()
        self._perm = M.data.astype(np.intp)
        M.data = np.zeros(nnz, dtype = self.dtype)
        self.M = M
        old = self.data
        self.data = np.zeros(nnz + 1, dtype = self.dtype)
        self.data[:len(old)] = old
        self._lu = None
        self._frozen = True

    # Values -----------------------------------------------------------

    def clear(self):
        """
        Set all matrix and rhs values to zero
        """
        if not self._frozen:
            self.freeze()
        self.data[:] = 0.
        self.rhs[:] = 0.
        self._lu = None

    def accumulate(self, handle, value):
        self.data[handle] += value

    def subtract(self, handle, value):
        self.data[handle] -= value

    def add_quad(self, handles, g):
        """
        Add g with quad signs using handles from bind_quad()
        """
        self.data[handles[0]] += g
        self.data[handles[1]] -= g
        self.data[handles[2]] -= g
        self.data[handles[3]] += g

    def add_rhs(self, row, value):
        self.rhs[row] += value

    def sub_rhs(self, row, value):
        self.rhs[row] -= value

    def get_matrix(self):
        """
        Returns the assembled sparse matrix (reference row/column
        excluded)
        """
        if not self._frozen:
            self.freeze()
        self.M.data[:] = self.data[self._perm]
        return self.M

    def matrix(self):
        """
        Returns the matrix as a dense array (for diagnostics)
        """
        return self.get_matrix().toarray()

    def residual(self, x):
        """
        Returns A x - b (position 0 set to zero)

        x: full vector including the reference position
        """
        M = self.get_matrix()
        res = np.zeros(self.dimension, dtype = np.result_type(
                self.dtype, np.asarray(x).dtype))
        res[1:] = M.dot(x[1:]) - self.rhs[1:]
        return res

    # Solution ---------------------------------------------------------

    def factor(self):
        """
        Factor the matrix

        Returns a SolveStatus value. The factorization is kept until
        clear() is called.
        """
        M = self.get_matrix()
        try:
            self._lu = sp.linalg.splu(M)
        except RuntimeError:
            self._lu = None
            return SolveStatus.SINGULAR
        diag = np.abs(self._lu.U.diagonal())
        if (not diag.size) or not np.all(np.isfinite(diag)):
            self._lu = None
            return SolveStatus.SINGULAR
        dmax = max(diag)
        dmin = min(diag)
        if dmin == 0.:
            self._lu = None
            return SolveStatus.SINGULAR
        if dmin < glVar.pivtol * dmax:
            warn('Ill-conditioned matrix: pivot ratio = {0:.3e}'.format(
                    dmin / dmax))
            return SolveStatus.ILL_CONDITIONED
        return SolveStatus.SUCCESS

    def back_substitute(self, b, trans = False):
        """
        Solve using the last factorization

        b: full vector including the reference position

        trans: if True solve the transposed (adjoint) system

        Returns the full solution vector with x[0] = 0
        """
        assert self._lu is not None
        x = np.zeros(self.dimension,
                     dtype = np.result_type(self.dtype, b.dtype))
        x[1:] = self._lu.solve(np.ascontiguousarray(b[1:]),
                               trans = 'T' if trans else 'N')
        return x

    def solve(self, trans = False):
        """
        Factor the matrix and solve for the current rhs

        Returns (status, x). x is None when status is SINGULAR.
        """
        status = self.factor()
        if status == SolveStatus.SINGULAR:
            return (status, None)
        x = self.back_substitute(self.rhs, trans)
        if not np.all(np.isfinite(x)):
            self._lu = None
            return (SolveStatus.SINGULAR, None)
        return (status, x)

    def singular_row(self):
        """
        Try to identify a variable responsible for a singular matrix

        Returns the index of the first empty row or column (or None)
        """
        M = self.get_matrix()
        absM = abs(M)
        rowSum = np.asarray(absM.sum(axis = 1)).ravel()
        colSum = np.asarray(absM.sum(axis = 0)).ravel()
        for i in range(M.shape[0]):
            if rowSum[i] == 0. or colSum[i] == 0.:
                return i + 1
        return None
