# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import numpy as np
import numpy.polynomial.legendre as np_legendre


class Rule:
    """Quadrature rule on the interval ``[a, b]``.

    Approximates an integral by a weighted sum over the nodes::

         ∫ f(x) dx ~ sum(f(xi) * wi for (xi, wi) in zip(x, w))

    Besides the nodes, we keep their distances to the interval ends,
    ``x_forward == x - a`` and ``x_backward == b - x``, which avoids
    cancellation in kernels that are sensitive around ``a`` or ``b``.
    """
    def __init__(self, x, w, x_forward=None, x_backward=None, a=-1, b=1):
        self.x = np.asarray(x)
        self.w = np.asarray(w)
        self.x_forward = np.asarray(self.x - a if x_forward is None
                                    else x_forward)
        self.x_backward = np.asarray(b - self.x if x_backward is None
                                     else x_backward)
        self.a = a
        self.b = b

    def reseat(self, a, b):
        """Map rule affinely onto the interval ``[a, b]``"""
        scale = (b - a) / (self.b - self.a)
        return Rule(a + scale * self.x_forward, scale * self.w,
                    scale * self.x_forward, scale * self.x_backward, a, b)

    def piecewise(self, edges):
        """Composite rule with a copy of this rule on each segment"""
        edges = np.asarray(edges)
        if not (np.diff(edges) > 0).all():
            raise ValueError("segments ends must be ordered ascendingly")
        return Rule.join(*(self.reseat(a, b)
                           for a, b in zip(edges[:-1], edges[1:])))

    @property
    def size(self):
        return self.x.size

    @staticmethod
    def join(*rules):
        """Concatenate rules on adjacent intervals"""
        if not rules:
            return Rule((), ())

        a = rules[0].a
        b = rules[-1].b
        for prev, curr in zip(rules[:-1], rules[1:]):
            if curr.a != prev.b:
                raise ValueError("Gauss rules must be ascending")

        x = np.hstack([r.x for r in rules])
        w = np.hstack([r.w for r in rules])
        x_forward = np.hstack([r.x_forward + (r.a - a) for r in rules])
        x_backward = np.hstack([r.x_backward + (b - r.b) for r in rules])
        return Rule(x, w, x_forward, x_backward, a, b)


def legendre(n):
    """Gauss-Legendre rule with ``n`` nodes on [-1, 1]"""
    if n < 1:
        raise ValueError("number of nodes must be positive")
    return Rule(*np_legendre.leggauss(n))
