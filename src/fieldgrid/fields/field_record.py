# %% -*- coding: utf-8 -*-
"""
Field records: vector field samples on a regular grid, with optional nested
sub-regions of finer resolution.

There are three kinds of record:
- Field3D holds (Ex, Ey, Ez) on a full 3D grid
- AxisymmetricField holds (Er, Ez) on a half-plane slice, and answers 3D
  queries by rotating the slice about the z axis
- CompositeField has no samples of its own, only children

Point queries go to the first child (in insertion order) whose box contains the
point, recursively, and only fall back on the record's own grid when no child
matches.
"""

import logging

import numpy as np

from abc import ABC, abstractmethod
from enum import IntEnum

from .. import config
from .errors import StructuralError, CompatibilityError, CapacityError, FieldRangeError
from .grid import AxisRange, GridDescription, AXIS_NAMES
from .utility import soft_point_in_bounds, box_corners, component_name
from .field_interpolators import (
    TrilinearInterpolator, BilinearInterpolator, AxisymmetricInterpolator,
    point_in_bounds, clip_point, map_point
)

logger = logging.getLogger(__name__)

# %% Record kinds

class FieldKind(IntEnum):
    """Kind of a record. The values are the codes used in the binary container."""
    AXISYMMETRIC = 0
    FULL_3D = 1
    COMPOSITE = 2


# %% Base record

class FieldRecord(ABC):
    """
    Abstract base for every kind of record. Holds the children and the
    hierarchical point lookup; subclasses supply the bounding box and sample.
    """
    kind: FieldKind
    n_components: int = 0

    def __init__(self, source_name: str = '', model_name: str = '', max_children: int = config.MAX_CHILDREN):
        self.source_name = source_name
        self.model_name = model_name
        self.max_children = max_children
        self.children: list[FieldRecord] = []
        self.payload: np.ndarray | None = None

    def __repr__(self):
        return f"{type(self).__name__}(source_name={self.source_name!r}, lower={self.lower}, upper={self.upper}, children={len(self.children)})"

    @property
    @abstractmethod
    def lower(self) -> np.ndarray:
        ...

    @property
    @abstractmethod
    def upper(self) -> np.ndarray:
        ...

    @property
    def has_data(self) -> bool:
        return self.payload is not None and self.payload.size > 0

    @property
    def is_leaf(self) -> bool:
        return len(self.children) == 0

    def corners(self) -> np.ndarray:
        return box_corners(self.lower, self.upper)

    def point_in_bounds(self, point) -> bool:
        return point_in_bounds(point, self.lower, self.upper)

    def clip_point(self, point) -> np.ndarray:
        return clip_point(point, self.lower, self.upper)

    @abstractmethod
    def sample(self, point) -> np.ndarray:
        """Interpolates this record's own grid at point, ignoring children"""

    # %% Hierarchy

    def add_child(self, child: 'FieldRecord'):
        """
        Appends child to this record. Every corner of the child's box has to
        lie inside this record's box, up to the containment tolerance, unless
        this record holds no samples of its own.
        """
        if len(self.children) >= self.max_children:
            raise CapacityError(f"Record '{self.source_name}' already has {self.max_children} children")

        if self.has_data:
            lower, upper = self.lower, self.upper
            for corner in child.corners():
                if not soft_point_in_bounds(corner, lower, upper):
                    axis = _first_outside_axis(corner, lower, upper)
                    raise CompatibilityError(
                        f"Field '{child.source_name}' is not contained in '{self.source_name}': corner {tuple(corner)} is outside along {axis}",
                        axis=axis, filename=child.source_name)

        self.children.append(child)
        logger.debug(f"Added '{child.source_name}' as child {len(self.children)} of '{self.source_name}'")

    def walk(self):
        """Iterates depth-first over this record and all of its descendants"""
        yield self
        for child in self.children:
            yield from child.walk()

    def find_record_at_point(self, point) -> 'FieldRecord | None':
        """
        Finds the record that answers queries at point: the first child whose
        box contains it, recursively, otherwise this record if it has samples
        there. Returns None when nothing matches.
        """
        for child in self.children:
            if child.point_in_bounds(point):
                return child.find_record_at_point(point)

        if self.has_data and self.point_in_bounds(point):
            return self
        return None

    def get_field_at_point(self, point) -> np.ndarray:
        """
        Returns the field vector (Ex, Ey, Ez) at point from the record that
        answers there.
        """
        record = self.find_record_at_point(point)
        if record is None:
            raise FieldRangeError(f"No field found at point {tuple(point)}", point=point)
        return record.sample(point)

    def get_name_at_point(self, point) -> str | None:
        """Source name of the record answering at point, or None"""
        record = self.find_record_at_point(point)
        if record is None:
            return None
        return record.source_name


def _first_outside_axis(corner, lower, upper) -> str:
    for name, c, lo, hi in zip(AXIS_NAMES, corner, lower, upper):
        if not soft_point_in_bounds([c], [lo], [hi]):
            return name
    return ''


# %% Record kinds

class Field3D(FieldRecord):
    """
    A vector field on a full 3D grid. The payload has shape (nz, ny, nx, 3),
    which flattens to x fastest, then y, then z, then component innermost.
    """
    kind = FieldKind.FULL_3D
    n_components = 3

    def __init__(self, axes, payload: np.ndarray, source_name: str = '', model_name: str = '', **kwargs):
        super().__init__(source_name, model_name, **kwargs)

        self.axes = tuple(AxisRange(*a) for a in axes)
        if len(self.axes) != 3:
            raise StructuralError(f"A 3D field needs 3 axes, got {len(self.axes)}", filename=source_name)
        for name, axis in zip(AXIS_NAMES, self.axes):
            if axis.count < 2 or axis.delta <= 0 or axis.max <= axis.min:
                raise StructuralError(f"Axis {name} of a 3D field must be active, got {axis}", filename=source_name)

        shape = (self.axes[2].count, self.axes[1].count, self.axes[0].count, self.n_components)
        payload = np.asarray(payload, dtype=float)
        if payload.size != np.prod(shape):
            raise StructuralError(f"Payload has {payload.size} values, expected {np.prod(shape)}", filename=source_name)
        self.payload = payload.reshape(shape)

        self.interp = TrilinearInterpolator(self.payload, self.axes)

    @property
    def lower(self) -> np.ndarray:
        return np.array([a.min for a in self.axes])

    @property
    def upper(self) -> np.ndarray:
        return np.array([a.max for a in self.axes])

    @property
    def counts(self) -> tuple:
        return tuple(a.count for a in self.axes)

    @property
    def deltas(self) -> np.ndarray:
        return np.array([a.delta for a in self.axes])

    def sample(self, point) -> np.ndarray:
        return self.interp(point)

    def map_point(self, point) -> tuple | None:
        """Nearest grid vertex (ix, iy, iz) to point, or None outside the grid"""
        return map_point(point, self.axes)

    def index_at(self, ix: int, iy: int, iz: int) -> int:
        """Flat index of vertex (ix, iy, iz), with x varying fastest"""
        nx, ny, _ = self.counts
        return (iz*ny + iy)*nx + ix

    def grid_points(self) -> np.ndarray:
        """Coordinates of every vertex, shape (nz, ny, nx, 3)"""
        xs, ys, zs = [a.coordinates() for a in self.axes]
        zz, yy, xx = np.meshgrid(zs, ys, xs, indexing='ij')
        return np.stack((xx, yy, zz), axis=-1)


class AxisymmetricField(FieldRecord):
    """
    A field that is invariant under rotation about the z axis, stored as
    (Er, Ez) on a slice through the axis. The payload has shape
    (naxial, nradial, 2), i.e. rows of length stride = nradial.

    radial_axis records which of x (0) or y (1) carried the radial coordinate
    in the export, the other one having been the single-sample axis.
    """
    kind = FieldKind.AXISYMMETRIC
    n_components = 2

    def __init__(self, radial, axial, payload: np.ndarray, radial_axis: int = 0,
                 source_name: str = '', model_name: str = '', **kwargs):
        super().__init__(source_name, model_name, **kwargs)

        self.radial = AxisRange(*radial)
        self.axial = AxisRange(*axial)
        if radial_axis not in (0, 1):
            raise StructuralError(f"Radial axis must be x or y, got {radial_axis}", filename=source_name)
        self.radial_axis = radial_axis

        for name, axis in (('r', self.radial), ('z', self.axial)):
            if axis.count < 2 or axis.delta <= 0 or axis.max <= axis.min:
                raise StructuralError(f"Axis {name} of an axisymmetric field must be active, got {axis}", filename=source_name)
        if self.radial.min != 0:
            raise StructuralError(f"Radial axis must start at 0, got {self.radial.min}", filename=source_name)

        shape = (self.axial.count, self.radial.count, self.n_components)
        payload = np.asarray(payload, dtype=float)
        if payload.size != np.prod(shape):
            raise StructuralError(f"Payload has {payload.size} values, expected {np.prod(shape)}", filename=source_name)
        self.payload = payload.reshape(shape)

        self.interp = AxisymmetricInterpolator(BilinearInterpolator(self.payload, self.radial, self.axial))

    @property
    def stride(self) -> int:
        """Length of one row of the flattened slice"""
        return self.radial.count

    @property
    def lower(self) -> np.ndarray:
        return self.interp.lower.copy()

    @property
    def upper(self) -> np.ndarray:
        return self.interp.upper.copy()

    def sample(self, point) -> np.ndarray:
        return self.interp(point)

    def sample_slice(self, r: float, z: float) -> np.ndarray:
        """(Er, Ez) on the slice itself"""
        return self.interp.slice_interp(r, z)

    def index_at(self, ir: int, iz: int) -> int:
        return iz*self.stride + ir


class CompositeField(FieldRecord):
    """
    A record without samples of its own. Its box is the union of its
    children's boxes, and is empty until the first child is added.
    """
    kind = FieldKind.COMPOSITE

    @property
    def lower(self) -> np.ndarray:
        if not self.children:
            return np.full(3, np.inf)
        return np.min([c.lower for c in self.children], axis=0)

    @property
    def upper(self) -> np.ndarray:
        if not self.children:
            return np.full(3, -np.inf)
        return np.max([c.upper for c in self.children], axis=0)

    def sample(self, point) -> np.ndarray:
        raise FieldRangeError(f"Composite record '{self.source_name}' holds no samples", point=point)


# %% Construction from a grid description

def field_from_grid(desc: GridDescription, source_name: str | None = None) -> FieldRecord:
    """
    Builds a record from a structured grid description.

    Three active axes give a Field3D with expressions (Ex, Ey, Ez). Two active
    axes give an AxisymmetricField: the inactive axis has to be x or y, and
    the expressions have to be the remaining in-plane component and Ez, i.e.
    (Ey, Ez) when x is inactive and (Ex, Ez) when y is. The slice has to sit
    on the half-plane through the axis, so the x and y minima are 0.

    The values are copied, so the description can be dropped afterwards.
    """
    name = desc.source_name if source_name is None else source_name

    if desc.n_dimensions != 3:
        raise StructuralError(f"Expected 3 dimensions, got {desc.n_dimensions}", filename=name)

    axes = tuple(AxisRange(*a) for a in desc.axes)
    npoints = int(np.prod([a.count for a in axes]))
    if desc.n_points != npoints:
        raise StructuralError(f"Description has {desc.n_points} points but the axes give {npoints}", filename=name)

    components = [component_name(e) for e in desc.expression_names]
    active = [a.active for a in axes]
    n_active = sum(active)

    if n_active == 3:
        _check_components(components, ['Ex', 'Ey', 'Ez'], name)

        # (ncomp, npoints) -> (nz, ny, nx, ncomp)
        payload = np.array(desc.values[:3].T, dtype=float, copy=True)
        record = Field3D(axes, payload, source_name=name, model_name=desc.model_name)

    elif n_active == 2:
        inactive = active.index(False)
        if inactive == 0:
            expected = ['Ey', 'Ez']
        elif inactive == 1:
            expected = ['Ex', 'Ez']
        else:
            raise StructuralError("The inactive dimension of an axisymmetric field must be x or y", filename=name)
        _check_components(components, expected, name)

        if axes[0].min != 0 or axes[1].min != 0:
            raise StructuralError(f"x and y must start at 0 for an axisymmetric field, got {axes[0].min}, {axes[1].min}", filename=name)

        radial_axis = 1 - inactive
        payload = np.array(desc.values[:2].T, dtype=float, copy=True)
        record = AxisymmetricField(axes[radial_axis], axes[2], payload, radial_axis=radial_axis,
                                   source_name=name, model_name=desc.model_name)

    else:
        raise StructuralError(f"Need 2 or 3 active dimensions, got {n_active}", filename=name)

    logger.info(f"Built {record.kind.name} field '{name}' with counts {[a.count for a in axes]}")
    return record


def _check_components(components, expected, name):
    if components != expected:
        raise StructuralError(f"Expected expressions {expected}, got {components}", filename=name)
