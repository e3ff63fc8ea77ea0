# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
#
# This file is available from EVERY test in the directory.  This is why
# we use it to compute the operators ONCE.
import pytest
import dlr2d


@pytest.fixture(scope="package")
def ifops():
    """2D DLR imaginary frequency operations for Lambda = 10, eps = 1e-5"""
    print("Precomputing 2D DLR for Lambda = 10 ...")
    return dlr2d.ImFreqOps2D(10, 1e-5)


@pytest.fixture(scope="package")
def ifops_accurate():
    """2D DLR imaginary frequency operations for Lambda = 4, eps = 1e-8"""
    print("Precomputing 2D DLR for Lambda = 4 ...")
    return dlr2d.ImFreqOps2D(4, 1e-8)
