# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
"""One-dimensional discrete Lehmann representation.

Provides the real-frequency DLR nodes, from which the two-dimensional basis
is assembled, together with the one-dimensional Matsubara kernels and
candidate grids of Matsubara indices.
"""
import numpy as np
import scipy.linalg as sp_linalg

from . import _util
from . import gauss
from . import kernel as _kernel


def build_dlr_rf(lambda_, eps):
    """Compute the DLR real frequencies for given cutoff and tolerance.

    The logistic kernel ``K(τ, ω)`` is sampled on fine composite
    Gauss-Legendre grids in both imaginary time and real frequency.  A
    rank-revealing (column-pivoted) QR factorization then selects those
    frequencies ``ω[k]`` for which ``K(τ, ω[k])`` span all columns of the
    kernel to relative accuracy ``eps``.  See:

        J. Kaye, K. Chen, O. Parcollet, Phys. Rev. B 105, 235115 (2022)

    Returns:
        Selected real frequencies in ``[-lambda_, lambda_]``, sorted
        ascendingly.  Their number is the (1D) DLR rank.
    """
    if not (lambda_ > 0):
        raise ValueError("DLR cutoff lambda must be positive")
    if not (0 < eps < 1):
        raise ValueError("DLR tolerance eps must be in (0, 1)")

    K = _kernel.LogisticKernel(lambda_)
    hints = K.dlr_hints(eps)
    rule = gauss.legendre(hints.ngauss)
    gauss_x = rule.piecewise(hints.segments_x)
    gauss_y = rule.piecewise(hints.segments_y)

    kmat = _kernel.matrix_from_gauss(K, gauss_x, gauss_y)
    piv = select_columns(kmat, eps)
    return np.sort(lambda_ * gauss_y.x[piv])


def build_dlr_if(lambda_, rf, statistics='F', nmax=None):
    """Compute the 1D DLR Matsubara nodes for given real frequencies.

    Selects ``len(rf)`` Matsubara indices from the fine grid
    ``fine_matsubara_indices(nmax)`` such that the values of a DLR expansion
    at these nodes determine its coefficients.
    """
    _util.check_statistics(statistics)
    if nmax is None:
        nmax = default_nmax(lambda_)
    rf = _util.check_range(rf, -lambda_, lambda_)

    n = fine_matsubara_indices(nmax, statistics)
    kmat = MatsubaraPoles(statistics, rf)(n)
    piv = select_columns(kmat, ncols=rf.size)
    return np.sort(n[piv])


def select_columns(a, eps=None, ncols=None):
    """Select the most linearly independent columns of a matrix.

    Performs a column-pivoted QR factorization of ``a`` and returns the
    indices of the first pivot columns.  If ``ncols`` is given, exactly that
    many columns are returned.  Otherwise, the numerical rank is determined
    from the magnitude of the diagonal of ``R`` relative to its first entry,
    and all columns above ``eps`` are returned.
    """
    a = np.asarray(a)
    if a.ndim != 2:
        raise ValueError("a must be of matrix form")
    if ncols is not None and ncols > min(a.shape):
        raise ValueError(f"cannot select {ncols} independent columns from "
                         f"matrix of shape {a.shape}")

    _, r, piv = sp_linalg.qr(a, mode='economic', pivoting=True)
    if ncols is None:
        if eps is None:
            raise ValueError("either eps or ncols must be given")
        diag = np.abs(np.diag(r))
        ncols = np.count_nonzero(diag > eps * diag[0])
    return piv[:ncols]


class MatsubaraPoles:
    """Matsubara kernel for a set of real-frequency poles.

    Evaluates ``1/(iν - ω[k])`` for fermions or ``tanh(ω[k]/2)/(iν - ω[k])``
    for bosons, where ``ν = π * (2*n + zeta)`` for Matsubara index ``n``.
    """
    def __init__(self, statistics, poles):
        self._statistics = _util.check_statistics(statistics)
        self._zeta = 1 if statistics == 'F' else 0
        self._poles = np.array(poles)

    @_util.ravel_arguments
    def __call__(self, n):
        """Evaluate basis functions at given frequency index n"""
        n = _util.check_matsubara_index(n)
        iv = 1j * np.pi * (2 * n + self._zeta)
        return matsubara_kernel(self._statistics, iv[None, :],
                                self._poles[:, None])


def matsubara_kernel(statistics, iv, omega):
    """Matsubara kernel at (broadcast) imaginary frequencies and poles"""
    denom = np.asarray(iv - omega, dtype=complex)
    if statistics == 'F':
        return 1 / denom

    # The bosonic kernel has a removable singularity at iv == omega == 0,
    # where it approaches -1/2
    num = np.broadcast_to(np.tanh(0.5 * np.asarray(omega)), denom.shape)
    res = np.full(denom.shape, -0.5, dtype=complex)
    np.divide(num, denom, out=res, where=denom != 0)
    return res


def default_nmax(lambda_):
    """Default extent of the fine Matsubara grid for given cutoff"""
    return max(int(np.ceil(lambda_)), 20)


def fine_matsubara_indices(nmax, statistics='F'):
    """Dense grid of Matsubara indices.

    For fermions, these are the ``2 * nmax`` indices ``-nmax <= n < nmax``,
    for bosons the ``2 * nmax + 1`` indices ``-nmax <= n <= nmax``.
    """
    _util.check_statistics(statistics)
    if not (nmax > 0):
        raise ValueError("nmax must be positive")
    if statistics == 'F':
        return np.arange(-nmax, nmax)
    return np.arange(-nmax, nmax + 1)
