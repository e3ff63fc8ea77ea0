# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import numpy as np
from warnings import warn

from . import _util
from . import dlr
from . import nodes
from . import transform

# Largest acceptable cond * machine_eps of a freshly computed operator
COND_LIMIT = 0.1


class ImFreqOps2D:
    """Imaginary frequency operations for the two-dimensional DLR.

    Encodes the transformation of a two-frequency object ``G(n, m)``, such as
    a three-point correlator or vertex function, from 2D DLR coefficients
    ``gc[j]`` to its values ``g[i] == G(*ifnodes[i])`` at the 2D DLR Matsubara
    nodes, together with its inverse::

             ________________                   ___________________
            |                |  coefs -> vals  |                   |
            |    2D DLR      |---------------->|     Value on      |
            |  coefficients  |<----------------|  Matsubara nodes  |
            |________________|  vals -> coefs  |___________________|

    The first dimension of all value and coefficient arrays must be the DLR
    rank ``r``; any further dimensions (e.g., orbital indices) are treated as
    independent.  Values must be ordered like :py:attr:`ifnodes`.

    Example:
        The following computes the 2D DLR of a product of two poles::

            import numpy as np
            import dlr2d

            ops = dlr2d.ImFreqOps2D(lambda_=10, eps=1e-6)
            n, m = ops.ifnodes.T
            nu1, nu2 = np.pi * (2*n + 1), np.pi * (2*m + 1)
            g = 1 / ((1j*nu1 - 0.5) * (1j*nu2 + 2.0))
            gc = ops.values_to_coefficients(g)
            g_11 = ops.coefficients_to_point_eval(gc, 1, 1)

    There are two ways to construct the operator: from cutoff ``lambda_`` and
    tolerance ``eps``, which computes nodes and transformations, or, using
    :meth:`from_parts`, from previously computed data, which is taken as-is.
    Constructing without arguments yields an empty instance, which can be
    filled exactly once by reading stored data into it, e.g., using
    ``dlr2d.serialize.load(filename, out=ops)``.  Initialized objects are
    never modified.

    The condition number of :py:attr:`cf2if` grows like ``1/eps``: the basis
    is compressed to tolerance ``eps``, so coefficients are only determined
    up to directions of size ``eps``.  For data representable to ``eps``,
    this does not affect the accuracy of values.  Therefore, a
    :class:`dlr2d.transform.ConditioningWarning` is only issued if the
    matrix is numerically singular, i.e., ``cond * machine_eps > 0.1``.

    Arguments:
        lambda_ (float):
            DLR cutoff ``Λ``, the real-frequency cutoff times the inverse
            temperature.
        eps (float):
            Error tolerance.
        reduced, niom_dense, compress:
            Choice of candidate grid and basis compression, passed on to
            :func:`dlr2d.nodes.select_nodes`.
    """
    def __init__(self, lambda_=None, eps=None, *, reduced=True,
                 niom_dense=None, compress=True):
        if lambda_ is None:
            if eps is not None:
                raise ValueError("eps given without lambda_")
            self._init_empty()
            return
        if eps is None:
            raise ValueError("tolerance eps must be given along with lambda_")

        rf = dlr.build_dlr_rf(lambda_, eps)
        ifnodes, basis = nodes.select_nodes(
            lambda_, eps, rf, reduced=reduced, niom_dense=niom_dense,
            compress=compress)
        cf2if = transform.build_cf2if(lambda_, rf, ifnodes, basis)
        matrix = transform.FactorizedMatrix(cf2if)
        self._init_parts(float(lambda_), float(eps), rf, basis, ifnodes,
                         matrix)

        # Compression to eps gives cond ~ 1/eps.  Warn only if singular.
        if matrix.cond * np.finfo(float).eps > COND_LIMIT:
            warn(f"2D DLR transformation is numerically singular "
                 f"(kappa = {matrix.cond:.2g}): values -> coefficients "
                 f"is unreliable", transform.ConditioningWarning, 2)

    @classmethod
    def from_parts(cls, lambda_, eps, rf, basis, ifnodes, cf2if, if2cf_lu,
                   if2cf_piv):
        """Reconstruct operator from previously computed data.

        Neither nodes nor the factorization are recomputed: the data is
        taken as-is, and only checked for consistent shapes.
        """
        self = cls.__new__(cls)
        self._load_parts(lambda_, eps, rf, basis, ifnodes, cf2if, if2cf_lu,
                         if2cf_piv)
        return self

    def _load_parts(self, lambda_, eps, rf, basis, ifnodes, cf2if, if2cf_lu,
                    if2cf_piv):
        rf = np.asarray(rf, dtype=float)
        basis = np.asarray(basis)
        ifnodes = np.asarray(ifnodes)
        matrix = transform.FactorizedMatrix(cf2if, (if2cf_lu, if2cf_piv))
        r = matrix.size
        if rf.ndim != 1:
            raise ValueError("real frequencies must be vector")
        if basis.shape != (r, 3):
            raise ValueError(f"basis labels must be of shape ({r}, 3)")
        if ifnodes.shape != (r, 2):
            raise ValueError(f"nodes must be of shape ({r}, 2)")
        self._init_parts(float(lambda_), float(eps), rf, basis, ifnodes,
                         matrix)

    def _init_empty(self):
        self._lambda = None
        self._eps = None
        self._rf = _util.readonly(np.zeros(0))
        self._basis = _util.readonly(np.zeros((0, 3), int))
        self._ifnodes = _util.readonly(np.zeros((0, 2), int))
        self._matrix = None
        self._uhat = None

    def _init_parts(self, lambda_, eps, rf, basis, ifnodes, matrix):
        self._lambda = lambda_
        self._eps = eps
        self._rf = _util.readonly(rf)
        self._basis = _util.readonly(basis)
        self._ifnodes = _util.readonly(ifnodes)
        self._matrix = matrix
        self._uhat = transform.MatsubaraBasis2D(self._rf, self._basis)

    def values_to_coefficients(self, g):
        """Transform values on the 2D DLR Matsubara nodes to coefficients.

        Solves ``cf2if @ gc == g`` using the stored LU factorization, treating
        all but the first dimension of ``g`` as independent right hand sides.
        """
        g = self._check_leading_dim(g, "g")
        return self._matrix.solve(g)

    def coefficients_to_values(self, gc):
        """Transform 2D DLR coefficients to values on the Matsubara nodes.

        As the transformation matrix is complex, so is the result, even for
        real coefficients.
        """
        gc = self._check_leading_dim(gc, "gc")
        return self._matrix.matmul(gc)

    def coefficients_to_point_eval(self, gc, n, m):
        """Evaluate 2D DLR expansion at arbitrary Matsubara index pairs.

        Arguments:
            gc (array):
                2D DLR coefficients, first dimension of size ``rank``.
            n, m (int or array of int):
                Fermionic Matsubara indices of the first and second frequency.
                Arrays are broadcast against each other.

        Returns:
            Array of shape ``np.broadcast(n, m).shape + gc.shape[1:]``.  For
            scalar indices and vector-valued ``gc``, a complex scalar.
        """
        gc = self._check_leading_dim(gc, "gc")
        uhat = self._uhat(n, m)
        res = np.tensordot(uhat, gc, axes=(0, 0))
        return res[()]

    def _check_leading_dim(self, x, name):
        if not self.is_initialized:
            raise RuntimeError("operator is not initialized")
        x = np.asarray(x)
        if x.ndim == 0 or x.shape[0] != self.rank:
            raise ShapeMismatchError(
                f"First dim of {name} ({x.shape[:1]}) != DLR rank {self.rank}")
        return x

    @property
    def is_initialized(self):
        """Whether the operator holds data (freshly computed or read)"""
        return self._matrix is not None

    @property
    def rank(self):
        """DLR rank: number of 2D basis functions and Matsubara nodes"""
        return self._ifnodes.shape[0]

    @property
    def lambda_(self):
        """DLR cutoff ``Λ``, or None if not initialized"""
        return self._lambda

    @property
    def eps(self):
        """Error tolerance, or None if not initialized"""
        return self._eps

    @property
    def ifnodes(self):
        """2D DLR Matsubara nodes as array of index pairs ``(n, m)``"""
        return self._ifnodes

    def ifnode(self, i):
        """The ``i``-th Matsubara node as pair ``(n, m)``"""
        n, m = self._ifnodes[i]
        return int(n), int(m)

    @property
    def rfnodes(self):
        """One-dimensional DLR real frequencies"""
        return self._rf

    def rfnode(self, i):
        """The ``i``-th one-dimensional DLR real frequency"""
        return float(self._rf[i])

    @property
    def rf2d(self):
        """Pair of real frequencies ``(ω[k], ω[l])`` of each basis function"""
        return self._uhat.poles

    @property
    def basis(self):
        """Labels ``(channel, k, l)`` of the 2D DLR basis functions"""
        return self._basis

    @property
    def uhat(self):
        """2D DLR basis functions on the Matsubara axis"""
        return self._uhat

    @property
    def cf2if(self):
        """Matrix from DLR coefficients to values at the Matsubara nodes"""
        return self._matrix.a if self.is_initialized else None

    @property
    def if2cf_lu(self):
        """LU factors (LAPACK format) of the values -> coefficients matrix"""
        return self._matrix.lu if self.is_initialized else None

    @property
    def if2cf_piv(self):
        """LU pivots (LAPACK format) of the values -> coefficients matrix"""
        return self._matrix.piv if self.is_initialized else None

    @property
    def cond(self):
        """Condition number of the coefficients -> values matrix"""
        return self._matrix.cond if self.is_initialized else None

    def __repr__(self):
        if not self.is_initialized:
            return f"{type(self).__name__}()"
        return (f"{type(self).__name__}(lambda_={self._lambda!r}, "
                f"eps={self._eps!r})")


class ShapeMismatchError(ValueError):
    """First dimension of an input array does not match the DLR rank"""
    pass
