"""
Discrete Lehmann representation (DLR) of two-frequency propagators
==================================================================

This library provides routines for constructing and working with the
discrete Lehmann representation of three-point correlation functions and
vertex functions on the Matsubara axis.  It provides:

 - on-the-fly computation of the 1D DLR real frequencies for arbitrary
   cutoff Λ and tolerance ε
 - selection of a near-minimal set of 2D Matsubara frequency nodes
 - transformations between 2D DLR coefficients and values at those nodes
 - persistence of the precomputed transformations to HDF5
"""
__copyright__ = "2023-2024 the dlr2d developers"
__license__ = "MIT"
__version__ = "0.3.0"

from .kernel import LogisticKernel
from .dlr import build_dlr_rf, build_dlr_if, MatsubaraPoles
from .nodes import select_nodes
from .transform import (build_cf2if, FactorizedMatrix, MatsubaraBasis2D,
                        ConditioningWarning)
from .imfreq import ImFreqOps2D, ShapeMismatchError
from .serialize import FormatMismatchError
