# %% -*- coding: utf-8 -*-
"""
Linear interpolation on the regular grids held by field records.

Unlike the spline interpolators one would normally reach for, these work one
point at a time and refuse (with FieldRangeError) to extrapolate, which is what
the hierarchical lookup in field_record needs.
"""

import numpy as np

from .. import config
from .errors import FieldRangeError
from .grid import AxisRange, AXIS_NAMES

# %% Bounds helpers

def point_in_bounds(point, lower, upper) -> bool:
    """
    Closed-interval test of point against the box [lower, upper] on every axis
    """
    for c, lo, hi in zip(point, lower, upper):
        if not (lo <= c <= hi):
            return False
    return True

def clip_point(point, lower, upper) -> np.ndarray:
    """
    Clamps each coordinate of point into [lower, upper] independently
    """
    return np.minimum(np.maximum(np.asarray(point, dtype=float), lower), upper)

def map_point(point, axes) -> tuple | None:
    """
    Maps point to the index of the nearest grid vertex, rounding rather than
    flooring. Returns None when the point is outside the grid.
    """
    indices = []
    for c, axis in zip(point, axes):
        if not (axis.min <= c <= axis.max):
            return None
        if axis.count > 1:
            indices.append(int((c - axis.min) / axis.delta + 0.5))
        else:
            indices.append(0)
    return tuple(indices)

def cell_index(c: float, axis: AxisRange, name: str = '') -> tuple[int, float]:
    """
    Finds the cell of axis containing coordinate c.

    Returns the index of the lower vertex of the cell and the reduced
    coordinate within the cell, which lies in [0, 1] up to a small slop for
    rounding. A coordinate sitting on the top edge belongs to the last cell.
    """
    if not (axis.min <= c <= axis.max):
        raise FieldRangeError(f"{name} = {c} is outside [{axis.min}, {axis.max}]", axis=name)

    i = int((c - axis.min) / axis.delta)
    if i == axis.count - 1:
        i -= 1
    if i < 0 or i >= axis.count - 1:
        raise FieldRangeError(f"{name} index {i} is outside the grid", axis=name)

    rc = (c - (axis.min + i*axis.delta)) / axis.delta
    if rc < -config.REDUCED_COORD_SLOP or rc > 1.0 + config.REDUCED_COORD_SLOP:
        raise FieldRangeError(f"{name} reduced coordinate {rc} is outside the cell", axis=name)

    return i, rc

def _blend(lo, hi, t):
    return lo * (1.0 - t) + hi * t

# %% Interpolators

class TrilinearInterpolator:
    """
    Trilinear interpolation of a vector field on a full 3D grid.
    """

    def __init__(self, values: np.ndarray, axes: tuple):
        """
        Parameters
        ----------
        values : numpy array of shape (nz, ny, nx, ncomp)
            Samples of the field. Note that x is the last spatial index.
        axes : tuple of AxisRange
            The x, y and z axes of the grid
        """
        self.values = values
        self.axes = axes

    def __call__(self, point) -> np.ndarray:
        try:
            (ix, tx), (iy, ty), (iz, tz) = [cell_index(c, axis, name) for c, axis, name in zip(point, self.axes, AXIS_NAMES)]
        except FieldRangeError as err:
            err.point = point
            raise

        cube = self.values[iz:iz+2, iy:iy+2, ix:ix+2, :]

        ## Interpolate along x, then y, then z
        fx = _blend(cube[:, :, 0, :], cube[:, :, 1, :], tx)
        fy = _blend(fx[:, 0, :], fx[:, 1, :], ty)
        return _blend(fy[0, :], fy[1, :], tz)


class BilinearInterpolator:
    """
    Bilinear interpolation on an axisymmetric slice, stored with the radial
    index fastest. The radial axis starts at r = 0.
    """

    def __init__(self, values: np.ndarray, radial: AxisRange, axial: AxisRange):
        """
        Parameters
        ----------
        values : numpy array of shape (naxial, nradial, 2)
            (Er, Ez) samples on the slice
        radial, axial : AxisRange
            The slice axes
        """
        self.values = values
        self.radial = radial
        self.axial = axial

    def __call__(self, r: float, z: float) -> np.ndarray:
        ir, tr = cell_index(r, self.radial, 'r')
        iz, tz = cell_index(z, self.axial, 'z')

        square = self.values[iz:iz+2, ir:ir+2, :]

        fr = _blend(square[:, 0, :], square[:, 1, :], tr)
        return _blend(fr[0, :], fr[1, :], tz)


class AxisymmetricInterpolator:
    """
    Answers 3D queries from an axisymmetric slice by rotating the slice about
    the axis through r = 0.
    """

    def __init__(self, slice_interp: BilinearInterpolator):
        self.slice_interp = slice_interp

        rmax = slice_interp.radial.max
        axial = slice_interp.axial
        self.lower = np.array([-rmax, -rmax, axial.min])
        self.upper = np.array([rmax, rmax, axial.max])

    def __call__(self, point) -> np.ndarray:
        if not point_in_bounds(point, self.lower, self.upper):
            raise FieldRangeError(f"Point {tuple(point)} is outside the body of revolution", point=point)

        x, y, z = point
        r = np.hypot(x, y)
        if r > 0.0:
            cos, sin = x / r, y / r
        else:
            cos, sin = 0.0, 0.0

        try:
            er, ez = self.slice_interp(r, z)
        except FieldRangeError as err:
            err.point = point
            raise

        return np.array([er*cos, er*sin, ez])
