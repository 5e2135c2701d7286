# %% -*- coding: utf-8 -*-
"""
Red-black Gauss-Seidel relaxation of a 3D field record toward a harmonic
field, holding the outer faces of the grid (and optionally the inside of
electrodes) fixed.

Points are coloured by the parity of ix+iy+iz. All neighbours of a point have
the other colour, so each half-sweep can update its whole colour at once and
still give exactly the sequential Gauss-Seidel result.
"""

import logging

import numpy as np
from tqdm import tqdm

from .. import config
from ..fields.errors import StructuralError
from ..fields.field_record import FieldKind, FieldRecord
from .geometry_handlers import GeometryList

logger = logging.getLogger(__name__)

# %% Weights

def relaxation_weights(deltas) -> np.ndarray:
    """
    Neighbour weights (wx, wy, wz) for grid spacings (dx, dy, dz). Each weight
    applies to both neighbours along its axis, and the six weights sum to 1.
    """
    inv_sq = 1.0 / np.asarray(deltas, dtype=float)**2
    wa = 1.0 / np.sum(inv_sq)
    return wa * inv_sq / 2

def boundary_mask(shape) -> np.ndarray:
    """
    Mask of free points for a grid of shape (nz, ny, nx): everything except
    the six outer faces
    """
    free = np.zeros(shape, dtype=bool)
    free[1:-1, 1:-1, 1:-1] = True
    return free

# %% Smoother

class SmoothableField:
    """
    Wraps a leaf 3D field record with the mask of points the smoother may
    change. Smoothing modifies the record's payload in place.
    """

    def __init__(self, record: FieldRecord):
        if record.kind != FieldKind.FULL_3D:
            raise StructuralError(f"Can only smooth 3D fields, got {record.kind.name}", filename=record.source_name)
        if not record.is_leaf:
            raise StructuralError(f"Can only smooth a leaf field, '{record.source_name}' has {len(record.children)} children", filename=record.source_name)
        if not record.has_data:
            raise StructuralError("Field has no samples to smooth", filename=record.source_name)

        self.record = record
        self.free = boundary_mask(record.payload.shape[:3])

        nz, ny, nx = self.free.shape
        iz, iy, ix = np.meshgrid(np.arange(nz), np.arange(ny), np.arange(nx), indexing='ij')
        self.parity = (ix + iy + iz) & 1

    @property
    def n_free(self) -> int:
        return int(np.count_nonzero(self.free))

    def add_geometry(self, geometry: GeometryList) -> int:
        """
        Additionally fixes every point inside geometry, using the x grid
        spacing as the tolerance. Returns how many points were newly fixed.
        """
        tol = self.record.deltas[0]
        inside = geometry.contains(self.record.grid_points(), tol)

        newly_fixed = int(np.count_nonzero(inside & self.free))
        self.free &= ~inside

        logger.info(f"Geometry fixed {newly_fixed} points, {self.n_free} free points remain")
        return newly_fixed

    def smooth(self, n_pass: int = config.DEFAULT_PASSES, progress: bool = False) -> list[float]:
        """
        Runs exactly n_pass red-black passes over the free points.

        Returns the sum of squared changes of each pass, in order.
        """
        if n_pass < 0:
            raise ValueError(f"Number of passes must be non-negative, got {n_pass}")

        a = self.record.payload
        wx, wy, wz = relaxation_weights(self.record.deltas)

        # Interior views
        centre = a[1:-1, 1:-1, 1:-1]
        colours = [self.free[1:-1, 1:-1, 1:-1] & (self.parity[1:-1, 1:-1, 1:-1] == c) for c in (0, 1)]

        errors = []
        for npass in tqdm(range(n_pass), desc='smoothing', disable=not progress):
            err = 0.0
            for sel in colours:
                ## Weighted average of the 6 neighbours, per component
                new = (wx * (a[1:-1, 1:-1, 2:] + a[1:-1, 1:-1, :-2])
                       + wy * (a[1:-1, 2:, 1:-1] + a[1:-1, :-2, 1:-1])
                       + wz * (a[2:, 1:-1, 1:-1] + a[:-2, 1:-1, 1:-1]))

                diff = new[sel] - centre[sel]
                err += float(np.sum(diff*diff))
                centre[sel] = new[sel]

            errors.append(err)
            logger.debug(f"Pass {npass} error {err}")

        return errors


def smooth_field(record: FieldRecord, n_pass: int = config.DEFAULT_PASSES,
                 geometry: GeometryList | None = None, progress: bool = False) -> list[float]:
    """
    Smooths record in place, holding its outer faces and any points inside
    geometry fixed. See SmoothableField.smooth.
    """
    smoothable = SmoothableField(record)
    if geometry is not None:
        smoothable.add_geometry(geometry)
    return smoothable.smooth(n_pass, progress=progress)
