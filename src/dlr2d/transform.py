# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import numpy as np
import scipy.linalg as sp_linalg

from . import _util
from .dlr import MatsubaraPoles

NCHANNELS = 3


class MatsubaraBasis2D:
    """Two-dimensional DLR basis functions on the Matsubara axis.

    For fermionic frequencies ``ν1 = π(2n+1)`` and ``ν2 = π(2m+1)``, and the
    bosonic frequency ``ν3 = -(ν1 + ν2)`` fixed by energy conservation, each
    basis function is a product of two one-dimensional Matsubara kernels
    ``KF(ν, ω) = 1/(iν - ω)`` and ``KB(ν, ω) = tanh(ω/2)/(iν - ω)`` taken at
    a pair of DLR real frequencies ``(ω[k], ω[l])``.  There is one channel
    for each cyclic pairing of the three frequencies::

        channel 0:   KF(ν1, ω[k]) * KF(ν2, ω[l])
        channel 1:   KF(ν2, ω[k]) * KB(ν3, ω[l])
        channel 2:   KB(ν3, ω[k]) * KF(ν1, ω[l])

    corresponding to the three distinct time orderings of a three-point
    function.  Each basis function is labelled by a triple
    ``(channel, k, l)``.

    Evaluating ``uhat(n, m)`` gives a matrix ``A``, where ``A[j, ...]`` is the
    ``j``-th basis function at the (broadcast) index pairs ``(n, m)``::

        uhat(n, m).shape == (uhat.size,) + np.broadcast(n, m).shape
    """
    def __init__(self, rf, basis=None):
        rf = np.asarray(rf, dtype=float)
        if rf.ndim != 1:
            raise ValueError("real frequencies must be vector")
        if basis is None:
            basis = full_basis(rf.size)
        basis = np.asarray(basis)
        if basis.ndim != 2 or basis.shape[1] != 3:
            raise ValueError("basis labels must be of shape (r, 3)")
        if not np.issubdtype(basis.dtype, np.integer):
            raise ValueError("basis labels must be integer")
        _util.check_range(basis[:, 0], 0, NCHANNELS - 1)
        _util.check_range(basis[:, 1:], 0, rf.size - 1)

        self._rf = rf
        self._basis = basis
        self._fermi = MatsubaraPoles('F', rf)
        self._bose = MatsubaraPoles('B', rf)

    @_util.ravel_arguments
    def __call__(self, n, m):
        """Evaluate basis functions at given pair of frequency indices"""
        n = _util.check_matsubara_index(n)
        m = _util.check_matsubara_index(m)
        kf1 = self._fermi(n)
        kf2 = self._fermi(m)
        kb3 = self._bose(-(n + m + 1))

        first = np.stack((kf1, kf2, kb3))
        second = np.stack((kf2, kb3, kf1))
        c, k, l = self._basis.T
        return first[c, k] * second[c, l]

    @property
    def size(self):
        """Number of basis functions"""
        return self._basis.shape[0]

    @property
    def basis(self):
        """Labels ``(channel, k, l)`` of the basis functions"""
        return self._basis

    @property
    def poles(self):
        """Pair of real frequencies ``(ω[k], ω[l])`` of each basis function"""
        return self._rf[self._basis[:, 1:]]


def full_basis(r1):
    """Labels of all ``3 * r1**2`` candidate basis functions, ordered"""
    c, k, l = np.meshgrid(np.arange(NCHANNELS), np.arange(r1), np.arange(r1),
                          indexing='ij')
    return np.stack((c.ravel(), k.ravel(), l.ravel()), axis=-1)


def build_cf2if(lambda_, rf, ifnodes, basis=None):
    """Matrix from 2D DLR coefficients to values at the Matsubara nodes.

    Entry ``(i, j)`` is the value of the ``j``-th basis function (labelled by
    ``basis[j]``, see :class:`MatsubaraBasis2D`) at the ``i``-th node.  If
    ``basis`` is omitted, all ``3 * len(rf)**2`` functions are used.
    """
    rf = _util.check_range(rf, -lambda_, lambda_)
    ifnodes = _util.check_matsubara_index(ifnodes)
    if ifnodes.ndim != 2 or ifnodes.shape[1] != 2:
        raise ValueError("nodes must be of shape (r, 2)")

    uhat = MatsubaraBasis2D(rf, basis)
    if ifnodes.shape[0] != uhat.size:
        raise ValueError(f"number of nodes ({ifnodes.shape[0]}) must equal "
                         f"number of basis functions ({uhat.size})")
    return uhat(ifnodes[:, 0], ifnodes[:, 1]).T.copy()


class FactorizedMatrix:
    """Square matrix in LU decomposed form for fast and repeated solves.

    Stores a matrix ``A`` together with its LU factorization with partial
    pivoting in LAPACK format, as returned by ``scipy.linalg.lu_factor``::

        A == P @ L @ U,     lu == L + U - 1,     piv == row interchanges

    Only the factorization is used to apply the inverse, ``A.solve(x)``.  An
    existing factorization may be passed as ``lu_result``, in which case it
    is taken verbatim.

    Both ``matmul`` and ``solve`` act on the first axis of ``x``, treating any
    remaining axes as independent columns.
    """
    def __init__(self, a, lu_result=None):
        a = np.asarray(a)
        if a.ndim != 2:
            raise ValueError("a must be of matrix form")
        if a.shape[0] != a.shape[1]:
            raise ValueError("a must be a square matrix")
        if lu_result is None:
            lu, piv = sp_linalg.lu_factor(a)
        else:
            lu, piv = _util.check_lu_result(lu_result, a.shape)

        self._a = _util.readonly(a)
        self._lu = _util.readonly(lu)
        self._piv = _util.readonly(piv)
        self._cond = None

    def matmul(self, x):
        """Compute ``A @ x`` along the first axis of x"""
        return _matop_along_first(self._a.__matmul__, x)

    def _solve(self, x):
        # getrs works in-place on column-major right hand sides, so we always
        # solve on a fresh copy in Fortran order of the promoted type.
        dtype = np.result_type(self._lu.dtype, x.dtype)
        x = np.array(x, dtype=dtype, order='F')
        return sp_linalg.lu_solve((self._lu, self._piv), x,
                                  overwrite_b=True, check_finite=False)

    def solve(self, x):
        """Return ``y`` such that ``A @ y == x`` along the first axis of x"""
        return _matop_along_first(self._solve, x)

    @property
    def a(self):
        """Full matrix"""
        return self._a

    @property
    def lu(self):
        """LU factors in LAPACK format"""
        return self._lu

    @property
    def piv(self):
        """Pivot indices (zero-based) in LAPACK format"""
        return self._piv

    @property
    def size(self):
        return self._a.shape[0]

    @property
    def cond(self):
        """Condition number of matrix"""
        if self._cond is None:
            self._cond = np.linalg.cond(self._a)
        return self._cond


class ConditioningWarning(RuntimeWarning):
    """Warns about a poorly conditioned transformation.

    This warning is issued if the matrix from DLR coefficients to values at
    the Matsubara nodes is so poorly conditioned that the transformation from
    values to coefficients cannot be expected to reach the requested
    tolerance.  This is usually a sign that the candidate grid, from which
    the nodes were selected, is too sparse or too small.
    """
    pass


def _matop_along_first(op, x):
    x = np.asarray(x)
    if x.ndim == 0:
        raise ValueError("x must be at least one-dimensional")
    batch = int(np.prod(x.shape[1:], dtype=int))
    r = op(x.reshape(x.shape[0], batch))
    return r.reshape(r.shape[:1] + x.shape[1:])
