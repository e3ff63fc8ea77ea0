# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import functools
import numpy as np


def ravel_arguments(fn):
    """Wrap method operating on 1-D index arrays to allow arbitrary shapes.

    The arguments are broadcast against each other and ravelled before they
    are passed on.  The wrapped method is expected to return an array with
    the point dimension last, which is then expanded to the broadcast shape.
    """
    @functools.wraps(fn)
    def wrapper(self, *args):
        args = np.broadcast_arrays(*map(np.asarray, args))
        shape = args[0].shape
        res = fn(self, *(arg.ravel() for arg in args))
        return res.reshape(res.shape[:-1] + shape)
    return wrapper


def check_matsubara_index(n):
    """Checks that ``n`` is an (array of) integer Matsubara index.

    Note that, unlike a reduced frequency, the index labels the frequency
    ``pi * (2*n + zeta)`` with ``zeta == 1`` for fermions and ``zeta == 0``
    for bosons, so any integer is valid.
    """
    n = np.asarray(n)
    if not np.issubdtype(n.dtype, np.integer):
        nfloat = n
        n = nfloat.astype(int)
        if not (n == nfloat).all():
            raise ValueError("Matsubara index n must be integer")
    return n


def check_statistics(statistics):
    if statistics not in ('F', 'B'):
        raise ValueError("statistics must be 'F' for fermions or 'B' for bosons")
    return statistics


def check_range(x, xmin, xmax):
    """Checks each element is in range [xmin, xmax]"""
    x = np.asarray(x)
    if not (x >= xmin).all():
        raise ValueError(f"Some x violate lower bound {xmin}")
    if not (x <= xmax).all():
        raise ValueError(f"Some x violate upper bound {xmax}")
    return x


def check_lu_result(lu_result, matrix_shape):
    """Checks that argument is a valid LU pair (lu, piv) for a matrix"""
    lu, piv = lu_result
    lu = np.asarray(lu)
    piv = np.asarray(piv)
    m, n = matrix_shape
    if m != n:
        raise ValueError(f"LU factorization requires a square matrix, "
                         f"got ({m}, {n})")
    if lu.shape != (m, n):
        raise ValueError(f"shape mismatch between LU factors {lu.shape} "
                         f"and matrix ({m}, {n})")
    if piv.shape != (m,):
        raise ValueError(f"shape mismatch between pivots {piv.shape} "
                         f"and matrix ({m}, {n})")
    if not np.issubdtype(piv.dtype, np.integer):
        raise ValueError("pivots must be integer")
    return lu, piv


def readonly(a):
    """Return a non-writeable copy of the array"""
    a = np.array(a)
    a.flags.writeable = False
    return a
