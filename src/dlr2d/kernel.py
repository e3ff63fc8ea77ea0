# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import numpy as np


class LogisticKernel:
    """Imaginary-time kernel from which the DLR real frequencies are chosen.

    For inverse temperature one, the kernel is::

        K(τ, ω) == exp(-τ * ω) / (1 + exp(-ω)),     0 <= τ <= 1.

    We work in the reduced variables ``x = 2*τ - 1`` and ``y = ω/Λ``, which
    both live on ``[-1, 1]``.  On the Matsubara axis, the kernel becomes
    ``1/(iν - ω)`` for fermionic and ``tanh(ω/2)/(iν - ω)`` for bosonic
    frequencies ``ν``, up to a sign.
    """
    def __init__(self, lambda_):
        if not (lambda_ > 0):
            raise ValueError("kernel cutoff lambda must be positive")
        self.lambda_ = lambda_

    def __call__(self, x, y, x_plus=None, x_minus=None):
        """Evaluate kernel at point (x, y), broadcasting the arguments.

        If given, ``x_plus`` and ``x_minus`` must hold ``1 + x`` and ``1 - x``.
        Near ``x == -1`` and ``x == 1``, passing them avoids cancellation.
        """
        x = self._check_range(x, self.xrange, "x")
        y = self._check_range(y, self.yrange, "y")
        if x_plus is None:
            x_plus = 1 + x
        if x_minus is None:
            x_minus = 1 - x

        # With v = Λ*y, K == exp(-v * (1+x)/2) / (1 + exp(-v)).  Multiplying
        # numerator and denominator by exp(v) gives the same expression with
        # (1-x) and -v.  Only one of the two never overflows.
        v = self.lambda_ * np.asarray(y)
        abs_v = np.abs(v)
        u = 0.5 * np.where(v > 0, x_plus, x_minus)
        return np.exp(-abs_v * u) / (1 + np.exp(-abs_v))

    @staticmethod
    def _check_range(x, xrange, name):
        x = np.asarray(x)
        xmin, xmax = xrange
        if not ((x >= xmin) & (x <= xmax)).all():
            raise ValueError(f"{name} values not in range [{xmin:g},{xmax:g}]")
        return x

    def dlr_hints(self, eps):
        """Discretization of the kernel for the DLR frequency selection"""
        return DLRHints(self, eps)

    @property
    def xrange(self):
        return -1, 1

    @property
    def yrange(self):
        return -1, 1


class DLRHints:
    """Fine composite grids on which the kernel is resolved to full precision.

    Both axes are divided into panels which are refined dyadically towards
    the points where the kernel varies fastest: towards both ends of the
    imaginary time interval and towards zero frequency.
    """
    def __init__(self, kernel, eps):
        self.kernel = kernel
        self.eps = eps

    @property
    def ngauss(self):
        """Gauss-Legendre order per panel"""
        return 24 if self.eps >= 1e-12 else 32

    @property
    def nlevels_x(self):
        return max(int(np.ceil(np.log2(self.kernel.lambda_))) - 2, 1)

    @property
    def nlevels_y(self):
        return max(int(np.ceil(np.log2(self.kernel.lambda_))), 1)

    @property
    def segments_x(self):
        half = -1 + 2.0 ** -np.arange(self.nlevels_x, -1, -1)
        half = np.concatenate(([-1], half))
        return np.concatenate((half, -half[-2::-1]))

    @property
    def segments_y(self):
        pos = np.concatenate(([0], 2.0 ** -np.arange(self.nlevels_y, -1, -1)))
        return np.concatenate((-pos[:0:-1], pos))


def matrix_from_gauss(kernel, gauss_x, gauss_y):
    """Sample kernel on the nodes of two quadrature rules.

    Returns a matrix ``A`` with ``A[i, j] == K(gauss_x.x[i], gauss_y.x[j])``.
    """
    x = gauss_x.x[:, None]
    return kernel(x, gauss_y.x[None, :], gauss_x.x_forward[:, None],
                  gauss_x.x_backward[:, None])
