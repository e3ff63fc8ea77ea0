# Copyright (C) 2023-2024 the dlr2d developers
# SPDX-License-Identifier: MIT
"""Persistence of precomputed 2D DLR imaginary frequency operations.

The state of :class:`ImFreqOps2D` is stored as a flat record of named
fields together with a format tag.  The tag is checked before anything else
is read, so that data in a different format is rejected rather than
misread.  Reading never recomputes nodes or factorizations.

:func:`to_dict` and :func:`from_dict` form the backend-neutral interface;
:func:`h5_write` and :func:`h5_read` store the record in an HDF5 group.
"""
import numpy as np
import h5py

from . import __version__
from .imfreq import ImFreqOps2D

FORMAT = "dlr2d::imfreq_ops_2d"

# Order matches the arguments of ImFreqOps2D.from_parts
FIELDS = ("lambda", "eps", "rf", "basis", "if", "cf2if", "if2cf_lu",
          "if2cf_piv")


class FormatMismatchError(ValueError):
    """Stored data has a missing or unexpected format tag"""
    pass


def check_format(tag):
    """Checks that ``tag`` is the format tag of the current layout"""
    if isinstance(tag, bytes):
        tag = tag.decode()
    if tag != FORMAT:
        raise FormatMismatchError(
            f"expected format {FORMAT!r}, but found {tag!r}")


def to_dict(ops):
    """Return state of operator as flat dictionary of named fields"""
    if not ops.is_initialized:
        raise ValueError("cannot serialize uninitialized operator")
    return {
        "Format": FORMAT,
        "lambda": ops.lambda_,
        "eps": ops.eps,
        "rf": ops.rfnodes,
        "basis": ops.basis,
        "if": ops.ifnodes,
        "cf2if": ops.cf2if,
        "if2cf_lu": ops.if2cf_lu,
        "if2cf_piv": ops.if2cf_piv,
        }


def from_dict(data, out=None):
    """Reconstruct operator from a dictionary written by :func:`to_dict`.

    If ``out`` is given, it must be an empty :class:`ImFreqOps2D`, which is
    filled with the data and returned.
    """
    check_format(data.get("Format"))
    return _from_fields([data[key] for key in FIELDS], out)


def _from_fields(fields, out):
    if out is None:
        return ImFreqOps2D.from_parts(*fields)
    if out.is_initialized:
        raise RuntimeError("cannot read into initialized operator")
    out._load_parts(*fields)
    return out


def h5_write(group, name, ops):
    """Write operator to a new subgroup ``name`` of an HDF5 group or file"""
    data = to_dict(ops)
    gr = group.create_group(name)
    gr.attrs["Format"] = data.pop("Format")
    gr.attrs["Generator"] = f"dlr2d; version={__version__}"
    for key in FIELDS:
        gr[key] = data[key]
    return gr


def h5_read(group, name, out=None):
    """Read operator from subgroup ``name`` of an HDF5 group or file.

    See :func:`from_dict` for the meaning of ``out``.
    """
    gr = group[name]
    check_format(gr.attrs.get("Format"))
    fields = [np.asarray(gr[key][()]) for key in FIELDS]
    lambda_, eps = (float(x) for x in fields[:2])
    return _from_fields([lambda_, eps] + fields[2:], out)


def save(filename, ops, name="ifops", mode="w"):
    """Write operator to HDF5 file"""
    with h5py.File(filename, mode) as f:
        h5_write(f, name, ops)


def load(filename, name="ifops", out=None):
    """Read operator from HDF5 file"""
    with h5py.File(filename, "r") as f:
        return h5_read(f, name, out)
