# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
import warnings

import numpy as np
import pytest

import dlr2d


def _nu(n):
    return np.pi * (2 * np.asarray(n) + 1)


def _kf(nu, omega):
    return 1 / (1j * nu - omega)


def _kb(nu, omega):
    return np.tanh(omega / 2) / (1j * nu - omega)


def _pole_function(n, m):
    """Sum of products of poles in two different channels"""
    nu1 = _nu(n)
    nu2 = _nu(m)
    nu3 = -(nu1 + nu2)
    return (_kf(nu1, 0.7) * _kf(nu2, -1.3)
            + 0.5 * _kf(nu2, 2.1) * _kb(nu3, -0.4))


def test_shapes(ifops):
    r = ifops.rank
    assert ifops.is_initialized
    assert r > 0
    assert ifops.ifnodes.shape == (r, 2)
    assert ifops.basis.shape == (r, 3)
    assert ifops.rf2d.shape == (r, 2)
    assert ifops.cf2if.shape == (r, r)
    assert ifops.if2cf_lu.shape == (r, r)
    assert ifops.if2cf_piv.shape == (r,)
    assert ifops.uhat.size == r

    rf = ifops.rfnodes
    assert rf.ndim == 1
    assert r <= 3 * rf.size**2
    assert (np.diff(rf) > 0).all()
    assert (np.abs(rf) <= ifops.lambda_).all()
    assert ifops.lambda_ == 10
    assert ifops.eps == 1e-5


def test_nodes(ifops):
    nodes = set(map(tuple, ifops.ifnodes.tolist()))
    assert len(nodes) == ifops.rank
    assert ifops.ifnode(3) == tuple(ifops.ifnodes[3])
    assert isinstance(ifops.ifnode(0)[0], int)
    assert ifops.rfnode(1) == ifops.rfnodes[1]


def test_readonly(ifops):
    for arr in (ifops.rfnodes, ifops.basis, ifops.ifnodes, ifops.cf2if,
                ifops.if2cf_lu, ifops.if2cf_piv):
        assert not arr.flags.writeable
        with pytest.raises(ValueError):
            arr[0] = 0


def test_cf2if(ifops):
    n, m = ifops.ifnodes.T
    np.testing.assert_array_equal(ifops.cf2if, ifops.uhat(n, m).T)
    assert ifops.cond * np.finfo(float).eps <= ifops.eps


@pytest.mark.parametrize("dtype", [float, complex])
def test_roundtrip(ifops, dtype):
    rng = np.random.RandomState(1024)
    r = ifops.rank
    gc = rng.randn(r, 2, 3).astype(dtype)
    if dtype is complex:
        gc += 1j * rng.randn(r, 2, 3)

    g = ifops.coefficients_to_values(gc)
    assert g.shape == (r, 2, 3)
    assert np.iscomplexobj(g)
    gc_back = ifops.values_to_coefficients(g)
    assert gc_back.shape == (r, 2, 3)
    tol = 1e-11 * ifops.cond
    assert np.linalg.norm(gc_back - gc) <= tol * np.linalg.norm(gc)

    g_back = ifops.coefficients_to_values(gc_back)
    assert np.linalg.norm(g_back - g) <= tol * np.linalg.norm(g)


def test_values_roundtrip(ifops):
    rng = np.random.RandomState(1028)
    r = ifops.rank
    for g in (rng.randn(r, 4), rng.randn(r) + 1j * rng.randn(r)):
        g_back = ifops.coefficients_to_values(ifops.values_to_coefficients(g))
        assert g_back.shape == g.shape
        assert np.linalg.norm(g_back - g) <= ifops.eps * np.linalg.norm(g)


def test_batch_independent(ifops):
    rng = np.random.RandomState(1025)
    r = ifops.rank
    g = rng.randn(r, 3, 2) + 1j * rng.randn(r, 3, 2)
    gc = ifops.values_to_coefficients(g)
    for i in range(3):
        for j in range(2):
            gc_ij = ifops.values_to_coefficients(g[:, i, j])
            np.testing.assert_allclose(
                gc[:, i, j], gc_ij,
                atol=1e-11 * ifops.cond * np.abs(gc_ij).max())


def test_input_layout(ifops):
    rng = np.random.RandomState(1026)
    r = ifops.rank
    g = rng.randn(r, 4) + 1j * rng.randn(r, 4)
    g_orig = g.copy()
    gc = ifops.values_to_coefficients(g)
    np.testing.assert_array_equal(g, g_orig)
    np.testing.assert_allclose(
        ifops.values_to_coefficients(np.asfortranarray(g)), gc, rtol=1e-14)


def test_scalar_promotion(ifops):
    gc = np.ones((ifops.rank, 2))
    g = ifops.coefficients_to_values(gc)
    assert g.dtype == complex
    assert g.shape == (ifops.rank, 2)


def test_shape_mismatch(ifops):
    r = ifops.rank
    for x in (np.zeros(r + 1), np.zeros((r - 1, 2)), np.zeros(()), 1.0):
        with pytest.raises(dlr2d.ShapeMismatchError):
            ifops.values_to_coefficients(x)
        with pytest.raises(dlr2d.ShapeMismatchError):
            ifops.coefficients_to_values(x)
        with pytest.raises(ValueError):
            ifops.coefficients_to_point_eval(x, 0, 0)


def test_values_at_nodes(ifops):
    n, m = ifops.ifnodes.T
    g = _pole_function(n, m)
    gc = ifops.values_to_coefficients(g)
    g_back = ifops.coefficients_to_values(gc)
    assert np.abs(g_back - g).max() <= 10 * ifops.eps * np.abs(g).max()


def test_point_eval_at_nodes(ifops):
    rng = np.random.RandomState(1027)
    r = ifops.rank
    gc = rng.randn(r, 2) + 1j * rng.randn(r, 2)
    g = ifops.coefficients_to_values(gc)

    n, m = ifops.ifnodes.T
    g_eval = ifops.coefficients_to_point_eval(gc, n, m)
    assert g_eval.shape == (r, 2)
    np.testing.assert_allclose(g_eval, g, atol=1e-12 * np.abs(g).max())

    i = r // 2
    g_i = ifops.coefficients_to_point_eval(gc, *ifops.ifnode(i))
    assert g_i.shape == (2,)
    np.testing.assert_allclose(g_i, g[i], atol=1e-12 * np.abs(g).max())

    g0 = ifops.coefficients_to_point_eval(gc[:, 0], *ifops.ifnode(i))
    assert np.ndim(g0) == 0
    assert np.iscomplexobj(g0)
    np.testing.assert_allclose(g0, g[i, 0], atol=1e-12 * np.abs(g).max())


def test_point_eval_shapes(ifops):
    gc = np.ones((ifops.rank, 5))
    n = np.arange(3)[:, None]
    m = np.arange(-2, 2)
    assert ifops.coefficients_to_point_eval(gc, n, m).shape == (3, 4, 5)
    assert ifops.coefficients_to_point_eval(gc[:, 0], n, m).shape == (3, 4)


def test_point_eval_accuracy(ifops_accurate):
    ops = ifops_accurate
    n, m = ops.ifnodes.T
    gc = ops.values_to_coefficients(_pole_function(n, m))

    n = np.arange(-12, 12)[:, None]
    m = np.arange(-12, 12)[None, :]
    g_ref = _pole_function(n, m)
    g_eval = ops.coefficients_to_point_eval(gc, n, m)
    assert g_eval.shape == (24, 24)
    tol = 100 * ops.eps * np.abs(g_ref).max()
    assert np.abs(g_eval - g_ref).max() <= tol

    # far from the nodes
    g_far = ops.coefficients_to_point_eval(gc, 1000, -37)
    assert abs(g_far - _pole_function(1000, -37)) <= tol


def test_default_well_conditioned():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        ops = dlr2d.ImFreqOps2D(4, 1e-8)
    assert ops.cond * np.finfo(float).eps <= dlr2d.imfreq.COND_LIMIT

    n, m = ops.ifnodes.T
    gc = ops.values_to_coefficients(_pole_function(n, m))
    n = np.arange(-12, 12)[:, None]
    m = np.arange(-12, 12)[None, :]
    g_ref = _pole_function(n, m)
    g_eval = ops.coefficients_to_point_eval(gc, n, m)
    assert np.abs(g_eval - g_ref).max() <= 100 * 1e-8 * np.abs(g_ref).max()


def test_large_cutoff():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        ops = dlr2d.ImFreqOps2D(100, 1e-4)
    r = ops.rank
    assert r > 0
    assert r <= 3 * ops.rfnodes.size**2
    assert (np.abs(ops.rfnodes) <= 100).all()

    n, m = ops.ifnodes.T
    g = _pole_function(n, m)
    gc = ops.values_to_coefficients(g)
    np.testing.assert_allclose(ops.coefficients_to_values(gc), g,
                               atol=1e-8 * np.abs(g).max())

    n = np.arange(-30, 30)[:, None]
    m = np.arange(-30, 30)[None, :]
    g_ref = _pole_function(n, m)
    g_eval = ops.coefficients_to_point_eval(gc, n, m)
    assert np.abs(g_eval - g_ref).max() <= 100 * 1e-4 * np.abs(g_ref).max()


def test_uninitialized():
    ops = dlr2d.ImFreqOps2D()
    assert not ops.is_initialized
    assert ops.rank == 0
    assert ops.lambda_ is None and ops.eps is None
    assert ops.cf2if is None and ops.cond is None
    assert ops.ifnodes.shape == (0, 2)
    assert repr(ops) == "ImFreqOps2D()"

    with pytest.raises(RuntimeError):
        ops.values_to_coefficients(np.zeros(0))
    with pytest.raises(RuntimeError):
        ops.coefficients_to_values(np.zeros(0))
    with pytest.raises(RuntimeError):
        ops.coefficients_to_point_eval(np.zeros(0), 0, 0)


def test_invalid_construction():
    with pytest.raises(ValueError):
        dlr2d.ImFreqOps2D(10)
    with pytest.raises(ValueError):
        dlr2d.ImFreqOps2D(eps=1e-6)
    with pytest.raises(ValueError):
        dlr2d.ImFreqOps2D(-1, 1e-6)
    with pytest.raises(ValueError):
        dlr2d.ImFreqOps2D(10, 1e-6, reduced=False)


def test_from_parts(ifops):
    parts = (ifops.lambda_, ifops.eps, ifops.rfnodes, ifops.basis,
             ifops.ifnodes, ifops.cf2if, ifops.if2cf_lu, ifops.if2cf_piv)
    ops = dlr2d.ImFreqOps2D.from_parts(*parts)
    assert ops.rank == ifops.rank
    assert repr(ops) == repr(ifops)

    gc = np.arange(ifops.rank, dtype=float)
    np.testing.assert_array_equal(ops.coefficients_to_values(gc),
                                  ifops.coefficients_to_values(gc))

    r = ifops.rank
    bad_parts = [
        (3, ifops.basis[:-1]),
        (4, ifops.ifnodes[:-1]),
        (6, ifops.if2cf_lu[:-1]),
        (7, ifops.if2cf_piv[:-1]),
        (5, np.zeros((r, r + 1))),
        ]
    for pos, value in bad_parts:
        args = list(parts)
        args[pos] = value
        with pytest.raises(ValueError):
            dlr2d.ImFreqOps2D.from_parts(*args)


def test_conditioning_warning():
    # Uncompressed basis functions are numerically linearly dependent
    with pytest.warns(dlr2d.ConditioningWarning):
        ops = dlr2d.ImFreqOps2D(2, 1e-10, reduced=False, niom_dense=16,
                                compress=False)
    assert ops.cond * np.finfo(float).eps > dlr2d.imfreq.COND_LIMIT
