# %% -*- coding: utf-8 -*-
"""
File-level operations, i.e. what the command line drivers do: convert an
export to a binary container, smooth a container, merge two containers along
z, and sample a container (or a nested field description) at a point.
"""

import logging
import os

import numpy as np

from . import config
from .fields.binary_codec import read_field_file, write_field_file
from .fields.exports import read_solver_export, read_four_column_export
from .fields.field_record import field_from_grid
from .fields.field_tree import read_field_set
from .fields.volume_merge import merge_z
from .smoothing.gauss_seidel import smooth_field
from .smoothing.geometry_handlers import read_geometry
from .smoothing.quad_average import quad_average

logger = logging.getLogger(__name__)

# Extensions treated as nested field descriptions by sample_file
DESCRIPTION_EXTENSIONS = ('.txt', '.fld')


def _with_suffix(path: str, suffix: str) -> str:
    stem, _ = os.path.splitext(path)
    return stem + suffix


def ingest_and_serialize(export_path, out_path=None, four_column: bool = False, average: bool = False) -> str:
    """
    Reads a text export, builds the field record and writes it as a binary
    container.

    Parameters
    ----------
    export_path : str
        The solver export (or four-column export if four_column is set)
    out_path : str, optional
        Where to write; defaults to the export name with a .bin extension, or
        _av.bin when averaging
    four_column : bool
        Read the four-column axisymmetric format
    average : bool
        Quadrant average the field before writing (3D fields only)

    Returns the path written.
    """
    export_path = os.fspath(export_path)
    if four_column:
        desc = read_four_column_export(export_path)
    else:
        desc = read_solver_export(export_path)

    record = field_from_grid(desc)
    if average:
        quad_average(record)

    if out_path is None:
        out_path = _with_suffix(export_path, '_av.bin' if average else '.bin')
    write_field_file(out_path, record)
    return os.fspath(out_path)


def smooth_file(path, n_pass: int = config.DEFAULT_PASSES, geometry_path=None, out_path=None,
                progress: bool = False) -> tuple[str, list[float]]:
    """
    Smooths the 3D field in the container at path, optionally holding the
    points inside the shapes of a geometry description fixed, and writes the
    result (by default next to the input, with an _sm suffix).

    Returns the path written and the per-pass errors.
    """
    path = os.fspath(path)
    record = read_field_file(path)

    geometry = read_geometry(geometry_path) if geometry_path is not None else None
    errors = smooth_field(record, n_pass, geometry=geometry, progress=progress)
    if errors:
        logger.info(f"Smoothed '{path}' with {n_pass} passes, final error {errors[-1]}")

    if out_path is None:
        out_path = _with_suffix(path, '_sm.bin')
    write_field_file(out_path, record)
    return os.fspath(out_path), errors


def merge_files(path1, path2, out_path=None) -> str:
    """
    Merges the 3D fields in two containers along z. By default the result is
    written next to the lower input as <stem>_<zmin>-<zmax>.bin.
    """
    a = read_field_file(path1)
    b = read_field_file(path2)

    if out_path is None:
        lower = a if a.axes[2].min <= b.axes[2].min else b
        stem, _ = os.path.splitext(lower.source_name)
        zmin = min(a.axes[2].min, b.axes[2].min)
        zmax = max(a.axes[2].max, b.axes[2].max)
        out_path = f"{stem}_{zmin:.2f}-{zmax:.2f}.bin"

    merged = merge_z(a, b, source_name=os.path.basename(os.fspath(out_path)))
    write_field_file(out_path, merged)
    return os.fspath(out_path)


def sample_file(path, point) -> np.ndarray:
    """
    Returns (Ex, Ey, Ez) at point from a container, or from the hierarchy in a
    nested field description when path has a .txt or .fld extension.
    """
    path = os.fspath(path)
    if path.endswith(DESCRIPTION_EXTENSIONS):
        root = read_field_set(path)
    else:
        root = read_field_file(path)

    value = root.get_field_at_point(point)
    logger.debug(f"{path} at {tuple(point)} from '{root.get_name_at_point(point)}': {value}")
    return value
