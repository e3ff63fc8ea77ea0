# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import numpy as np

from . import _util
from . import dlr
from .transform import MatsubaraBasis2D


def select_nodes(lambda_, eps, rf=None, *, reduced=True, niom_dense=None,
                 compress=True):
    """Select 2D DLR Matsubara nodes and basis functions.

    First, all ``3 * len(rf)**2`` candidate basis functions (see
    :class:`MatsubaraBasis2D`) are evaluated on a fine grid of candidate
    frequency index pairs.  The candidate functions are numerically linearly
    dependent, so with ``compress=True``, a column-pivoted QR factorization
    selects the subset of functions which spans all others to relative
    accuracy ``eps``.  A second pivoted QR factorization, now on the rows,
    selects as many index pairs as there are basis functions, such that the
    values at these nodes determine the 2D DLR coefficients.

    Arguments:
        lambda_ (float):
            DLR cutoff.
        eps (float):
            Error tolerance.
        rf (array):
            One-dimensional DLR real frequencies.  Computed from
            ``lambda_`` and ``eps`` if omitted.
        reduced (bool):
            Select nodes from the reduced candidate grid (see
            :func:`reduced_grid`).  Otherwise, use all pairs of indices in
            ``[-niom_dense, niom_dense)``.
        niom_dense (int):
            Extent of the dense candidate grid.  Required if and only if
            ``reduced`` is false.
        compress (bool):
            Recompress the 2D DLR basis.  If false, all ``3 * len(rf)**2``
            candidate functions are kept, which typically leads to a poorly
            conditioned transformation.

    Returns:
        Tuple ``(ifnodes, basis)``, where ``ifnodes`` is an integer array of
        shape ``(r, 2)`` of index pairs ``(n, m)``, and ``basis`` is an
        integer array of shape ``(r, 3)`` of labels ``(channel, k, l)``.
        Both are sorted lexicographically.

    Note:
        If the candidate grid is too small or too sparse compared to the
        cutoff, the resulting transformation is ill-conditioned.  This is not
        detected here.
    """
    if rf is None:
        rf = dlr.build_dlr_rf(lambda_, eps)
    rf = _util.check_range(rf, -lambda_, lambda_)

    if reduced:
        if niom_dense is not None:
            raise ValueError("niom_dense is only used for the dense grid")
        candidates = reduced_grid(lambda_, rf)
    else:
        if niom_dense is None:
            raise ValueError("dense candidate grid requires niom_dense")
        candidates = dense_grid(niom_dense)

    uhat = MatsubaraBasis2D(rf)
    if not compress and candidates.shape[0] < uhat.size:
        raise ValueError(f"candidate grid has {candidates.shape[0]} points, "
                         f"but {uhat.size} basis functions must be sampled")

    amat = uhat(candidates[:, 0], candidates[:, 1]).T
    if compress:
        cols = np.sort(dlr.select_columns(amat, eps))
        amat = amat[:, cols]
    else:
        cols = np.arange(uhat.size)

    rows = dlr.select_columns(amat.T, ncols=cols.size)
    ifnodes = candidates[rows]
    ifnodes = ifnodes[np.lexsort((ifnodes[:, 1], ifnodes[:, 0]))]
    return ifnodes, uhat.basis[cols]


def dense_grid(niom):
    """All pairs of fermionic indices ``(n, m)`` in ``[-niom, niom)``"""
    f = dlr.fine_matsubara_indices(niom, 'F')
    n, m = np.meshgrid(f, f, indexing='ij')
    return np.stack((n.ravel(), m.ravel()), axis=-1)


def reduced_grid(lambda_, rf, nmax=None):
    """Reduced candidate grid of fermionic index pairs ``(n, m)``.

    Each channel of the 2D basis depends on a different pair of the three
    frequencies ``(ν1, ν2, ν3)``, and is a product of one-dimensional DLR
    functions in these variables.  For each pair, we take the tensor product
    of one-dimensional candidate sets (see :func:`axis_indices`) and map it
    back to ``(n, m)`` using ``ν3 == -(ν1 + ν2)``.  The candidate grid is the
    union of the three, sorted lexicographically.

    The grid has at most ``3 * (2*len(rf) + 2*NCORE + 1)**2`` points.  It
    depends on the cutoff only through the one-dimensional DLR rank.
    """
    f = axis_indices(lambda_, rf, 'F', nmax)
    b = axis_indices(lambda_, rf, 'B', nmax)

    # (ν1, ν2)
    n12, m12 = np.meshgrid(f, f, indexing='ij')

    # (ν2, ν3), where the bosonic index of ν3 is p == -(n + m + 1)
    m23, p23 = np.meshgrid(f, b, indexing='ij')
    n23 = -p23 - m23 - 1

    # (ν3, ν1)
    p31, n31 = np.meshgrid(b, f, indexing='ij')
    m31 = -p31 - n31 - 1

    n = np.concatenate((n12.ravel(), n23.ravel(), n31.ravel()))
    m = np.concatenate((m12.ravel(), m23.ravel(), m31.ravel()))
    return np.unique(np.stack((n, m), axis=-1), axis=0)


# Extent of the dense core of one-dimensional candidate indices
NCORE = 8


def axis_indices(lambda_, rf, statistics, nmax=None):
    """One-dimensional candidate Matsubara indices for the reduced grid.

    Union of the one-dimensional DLR Matsubara nodes for ``rf`` (see
    :func:`dlr2d.dlr.build_dlr_if`), their mirror images under ``ν -> -ν``,
    and all indices ``-NCORE <= n < NCORE``, around which the basis
    functions vary fastest.  The set is symmetric under ``ν -> -ν``.
    """
    nodes = dlr.build_dlr_if(lambda_, rf, statistics, nmax)
    mirror = -nodes - 1 if statistics == 'F' else -nodes
    core = dlr.fine_matsubara_indices(NCORE, statistics)
    return np.union1d(core, np.union1d(nodes, mirror))
