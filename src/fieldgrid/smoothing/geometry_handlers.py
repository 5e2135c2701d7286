# %% -*- coding: utf-8 -*-
"""
Simple solid geometries (cylinders and tori aligned with a coordinate axis),
used to mark grid points that should be held fixed while smoothing, e.g. the
interior of electrodes.

Geometry description files look like

    BCGeom
    # xmin ymin zmin xmax ymax zmax radius potential
    icyl 0 0 -5 0 0 5 1.5 100
    torus 0 0 2 0 0 2 3.0 4.0

where the box collapses on every axis but the symmetry axis of the shape. A
cylinder takes the box and a radius (icyl lines also carry the electrode
potential), a torus the box, an inner and an outer radius.
"""

import logging
import os

import numpy as np

from typing import NamedTuple

from .. import config
from ..fields.errors import FieldIOError, StructuralError
from ..fields.grid import AXIS_NAMES

logger = logging.getLogger(__name__)

# Radial frame for each choice of axial index: (radial0, radial1, axial)
RADIAL_FRAMES = {
    0: (1, 2, 0),
    1: (2, 0, 1),
    2: (0, 1, 2),
}

# %% Shared helpers

def axis_frame(lower, upper, source: str = '') -> tuple[int, int, int]:
    """
    Works out the symmetry axis of a shape from its box: exactly one axis may
    have a nonzero extent. Returns the radial indices and the axial index.
    """
    for name, lo, hi in zip(AXIS_NAMES, lower, upper):
        if lo > hi:
            raise StructuralError(f"{source}: {name} min {lo} is greater than max {hi}")

    extended = [i for i in range(3) if upper[i] != lower[i]]
    if len(extended) != 1:
        raise StructuralError(f"{source}: exactly one axis may have an extent, got {[AXIS_NAMES[i] for i in extended]}")

    return RADIAL_FRAMES[extended[0]]

def _axial_and_radius_sq(points, lower, upper, frame):
    """
    Returns whether the points are inside the axial span, and their squared
    distance from the axis line
    """
    r0, r1, ax = frame
    points = np.asarray(points, dtype=float)

    za = points[..., ax]
    in_span = (za >= lower[ax]) & (za <= upper[ax])

    d0 = points[..., r0] - lower[r0]
    d1 = points[..., r1] - lower[r1]
    return in_span, d0*d0 + d1*d1

def _parse_box(args):
    return np.array(args[0:3], dtype=float), np.array(args[3:6], dtype=float)

# %% Shapes

class Cylinder(NamedTuple):
    """Solid cylinder about a coordinate axis"""
    lower: np.ndarray
    upper: np.ndarray
    radius_sq: float
    frame: tuple
    potential: float = 0.0

    @classmethod
    def from_args(cls, args, potential: float = 0.0) -> 'Cylinder':
        """Builds a cylinder from (xmin, ymin, zmin, xmax, ymax, zmax, radius)"""
        if len(args) != 7:
            raise StructuralError(f"A cylinder takes 7 arguments, got {len(args)}")
        lower, upper = _parse_box(args)
        frame = axis_frame(lower, upper, 'cylinder')
        return cls(lower, upper, float(args[6])**2, frame, float(potential))

    @property
    def axial_index(self) -> int:
        return self.frame[2]

    def contains(self, points, tol: float) -> np.ndarray:
        """Vectorized point_in over an array of points of shape (..., 3)"""
        in_span, rsq = _axial_and_radius_sq(points, self.lower, self.upper, self.frame)
        return in_span & (rsq < self.radius_sq + tol*tol)

    def point_in(self, point, tol: float) -> bool:
        return bool(self.contains(point, tol))


class Torus(NamedTuple):
    """Annular solid between two radii about a coordinate axis"""
    lower: np.ndarray
    upper: np.ndarray
    inner_sq: float
    outer_sq: float
    frame: tuple

    @classmethod
    def from_args(cls, args) -> 'Torus':
        """Builds a torus from (xmin, ymin, zmin, xmax, ymax, zmax, r1, r2)"""
        if len(args) != 8:
            raise StructuralError(f"A torus takes 8 arguments, got {len(args)}")
        lower, upper = _parse_box(args)
        frame = axis_frame(lower, upper, 'torus')
        return cls(lower, upper, float(args[6])**2, float(args[7])**2, frame)

    @property
    def axial_index(self) -> int:
        return self.frame[2]

    def contains(self, points, tol: float) -> np.ndarray:
        in_span, rsq = _axial_and_radius_sq(points, self.lower, self.upper, self.frame)
        tsq = tol*tol
        return in_span & (rsq > self.inner_sq - tsq) & (rsq < self.outer_sq + tsq)

    def point_in(self, point, tol: float) -> bool:
        return bool(self.contains(point, tol))


# %% Lists of shapes

class GeometryList:
    """
    Ordered collection of shapes. A point is excluded when any shape
    contains it.
    """

    def __init__(self, shapes=None):
        self.shapes = list(shapes) if shapes is not None else []

    def __len__(self):
        return len(self.shapes)

    def __iter__(self):
        return iter(self.shapes)

    def append(self, shape):
        self.shapes.append(shape)

    def point_in(self, point, tol: float) -> bool:
        for shape in self.shapes:
            if shape.point_in(point, tol):
                return True
        return False

    def contains(self, points, tol: float) -> np.ndarray:
        """Vectorized point_in over an array of points of shape (..., 3)"""
        points = np.asarray(points, dtype=float)
        excluded = np.zeros(points.shape[:-1], dtype=bool)
        for shape in self.shapes:
            excluded |= shape.contains(points, tol)
        return excluded

    @classmethod
    def from_lines(cls, lines, source: str = '') -> 'GeometryList':
        """
        Parses a geometry description. The first line must start with the
        geometry tag.
        """
        geometry = cls()
        lines = iter(lines)

        first = next(lines, '')
        if not first.startswith(config.GEOMETRY_TAG):
            raise StructuralError(f"Geometry description must start with '{config.GEOMETRY_TAG}'", filename=source)

        for lineno, line in enumerate(lines, start=2):
            tokens = line.split()
            if not tokens or tokens[0].startswith('#'):
                continue

            command, args = tokens[0], tokens[1:]
            if command not in ('icyl', 'torus'):
                logger.warning(f"{source}:{lineno}: ignoring unknown geometry command '{command}'")
                continue

            try:
                values = [float(a) for a in args]
            except ValueError:
                raise StructuralError(f"Line {lineno}: non-numeric argument in '{line.strip()}'", filename=source) from None
            if len(values) != 8:
                raise StructuralError(f"Line {lineno}: '{command}' takes 8 arguments, got {len(values)}", filename=source)

            try:
                if command == 'icyl':
                    geometry.append(Cylinder.from_args(values[:7], potential=values[7]))
                else:
                    geometry.append(Torus.from_args(values))
            except StructuralError as err:
                raise StructuralError(f"Line {lineno}: {err}", filename=source) from None

        logger.info(f"Read {len(geometry)} shapes from '{source}'")
        return geometry


def read_geometry(path) -> GeometryList:
    """Reads a geometry description file"""
    path = os.fspath(path)
    try:
        with open(path, 'r') as f:
            return GeometryList.from_lines(f, source=path)
    except FileNotFoundError as err:
        raise FieldIOError("Geometry file not found", filename=path) from err
    except OSError as err:
        raise FieldIOError(f"Could not read geometry: {err}", filename=path) from err
