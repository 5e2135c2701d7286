# %% -*- coding: utf-8 -*-
"""
Readers for the text exports that field records are built from. These only go
as far as a GridDescription; field_record.field_from_grid does the rest.

Two formats are understood:
- The finite-element solver export: a '%' header carrying the dimension,
  node and expression counts, whose last line names the axes and then each
  expression followed by its unit, then one row per grid point with the first
  coordinate varying fastest.
- The four-column magnetics export: rows of 'x y Ex Ey' with no header, for an
  axisymmetric problem with r along x and the symmetry axis along y. Here x is
  the slow coordinate.
"""

import logging
import os

import numpy as np

from .errors import FieldIOError, StructuralError
from .grid import AxisRange, GridDescription

logger = logging.getLogger(__name__)

# %% Grid shape inference

def leading_repeats(column: np.ndarray) -> int:
    """Number of leading entries of column equal to its first entry"""
    differs = column != column[0]
    if not np.any(differs):
        return len(column)
    return int(np.argmax(differs))

def infer_axes(coords: np.ndarray) -> tuple:
    """
    Infers the regular grid that the rows of coords were sampled on.

    An axis is active when its coordinate takes more than one value. The count
    along each active axis follows from how many times the first value of the
    column repeats, working from the slowest axis (last column) to the fastest.

    Parameters
    ----------
    coords : numpy array of shape (npoints, ndim)

    Returns
    -------
    tuple of AxisRange, one per column
    """
    npoints, ndim = coords.shape
    vmin = coords.min(axis=0)
    vmax = coords.max(axis=0)

    counts = [1] * ndim
    remaining = npoints
    for d in reversed(range(ndim)):
        if vmax[d] > vmin[d]:
            nrep = leading_repeats(coords[:, d])
            counts[d] = remaining // nrep
            remaining = nrep

    if int(np.prod(counts)) != npoints:
        raise StructuralError(f"{npoints} points do not form a regular grid with counts {counts}")

    return tuple(AxisRange.from_limits(n, lo, hi) for n, lo, hi in zip(counts, vmin, vmax))

# %% Solver export

def parse_export_header(lines: list[str]) -> dict:
    """
    Parses the '%' header lines of a solver export. Returns a dict with the
    model name, the dimension, node and expression counts, and the axis and
    expression names taken from the last header line.
    """
    if not lines:
        raise StructuralError("Export has no header")

    info = {'model': ''}

    for line in lines[:-1]:
        key, _, value = line.lstrip('%').partition(':')
        key = key.strip().lower()
        value = value.strip()
        if key == 'model':
            info['model'] = value
        elif key in ('dimension', 'nodes', 'expressions'):
            try:
                info[key] = int(value)
            except ValueError:
                raise StructuralError(f"Bad header value for {key}: '{value}'") from None

    for key in ('dimension', 'nodes', 'expressions'):
        if key not in info:
            raise StructuralError(f"Export header has no {key} line")

    tokens = lines[-1].lstrip('%').split()
    ndim, nexpr = info['dimension'], info['expressions']
    axis_names, rest = tokens[:ndim], tokens[ndim:]

    if len(rest) == 2*nexpr:
        # Expressions come with units
        expression_names = rest[0::2]
    elif len(rest) == nexpr:
        expression_names = rest
    else:
        raise StructuralError(f"Cannot match {nexpr} expressions to the names line '{lines[-1].strip()}'")

    info['axis_names'] = tuple(axis_names)
    info['expression_names'] = tuple(expression_names)
    return info

def read_solver_export(path) -> GridDescription:
    """
    Reads a solver export into a grid description.
    """
    path = os.fspath(path)
    try:
        with open(path, 'r') as f:
            header = []
            for line in f:
                if not line.startswith('%'):
                    break
                header.append(line)
            f.seek(0)
            data = np.loadtxt(f, comments='%', ndmin=2)
    except OSError as err:
        raise FieldIOError(f"Could not read export: {err}", filename=path) from err
    except ValueError as err:
        raise StructuralError(f"Malformed data row: {err}", filename=path) from err

    try:
        info = parse_export_header(header)
    except StructuralError as err:
        err.filename = path
        raise

    ndim, nexpr = info['dimension'], info['expressions']
    if data.shape[1] != ndim + nexpr:
        raise StructuralError(f"Rows have {data.shape[1]} columns, expected {ndim + nexpr}", filename=path)
    if data.shape[0] != info['nodes']:
        raise StructuralError(f"Export has {data.shape[0]} rows, header says {info['nodes']}", filename=path)

    try:
        axes = infer_axes(data[:, :ndim])
    except StructuralError as err:
        err.filename = path
        raise

    logger.info(f"Read {data.shape[0]} points of {info['expression_names']} from '{path}'")

    return GridDescription(
        axis_names=info['axis_names'],
        axes=axes,
        expression_names=info['expression_names'],
        values=np.ascontiguousarray(data[:, ndim:].T),
        model_name=info['model'],
        source_name=path,
    )

# %% Four-column export

def read_four_column_export(path) -> GridDescription:
    """
    Reads a four-column 'r z Er Ez' export of an axisymmetric problem into a
    grid description of a slice, with x the single-sample axis, y radial and z
    axial.
    """
    path = os.fspath(path)
    try:
        data = np.loadtxt(path, ndmin=2)
    except OSError as err:
        raise FieldIOError(f"Could not read export: {err}", filename=path) from err
    except ValueError as err:
        raise StructuralError(f"Malformed data row: {err}", filename=path) from err

    if data.shape[1] != 4 or data.shape[0] == 0:
        raise StructuralError(f"Expected rows of 4 columns, got shape {data.shape}", filename=path)

    nlines = data.shape[0]
    naxial = leading_repeats(data[:, 0])
    if nlines % naxial != 0:
        raise StructuralError(f"{nlines} rows do not split into runs of {naxial}", filename=path)
    nradial = nlines // naxial

    r, z = data[:, 0], data[:, 1]
    radial = AxisRange.from_limits(nradial, r.min(), r.max())
    axial = AxisRange.from_limits(naxial, z.min(), z.max())

    ## Rows run axial-fastest, the slice is stored radial-fastest
    er = data[:, 2].reshape(nradial, naxial).T.ravel()
    ez = data[:, 3].reshape(nradial, naxial).T.ravel()

    logger.info(f"Read {nradial} x {naxial} slice from '{path}'")

    return GridDescription(
        axis_names=('x', 'y', 'z'),
        axes=(AxisRange(1, 0.0, 0.0, 0.0), radial, axial),
        expression_names=('Ey', 'Ez'),
        values=np.stack((er, ez)),
        source_name=path,
    )
