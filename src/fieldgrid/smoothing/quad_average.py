# %% -*- coding: utf-8 -*-
"""
Quadrant symmetrization of 3D fields from geometries with two mirror planes
(x = 0 and y = 0), to wash out mesh noise from the solver.
"""

import logging

import numpy as np

from .. import config
from ..fields.errors import StructuralError
from ..fields.field_record import FieldKind, FieldRecord

logger = logging.getLogger(__name__)

# Parity of (Ex, Ey, Ez) under x -> -x and under y -> -y
MIRROR_SIGNS = {
    'x': np.array([-1.0, 1.0, 1.0]),
    'y': np.array([1.0, -1.0, 1.0]),
}


def check_quadrant_symmetric(record: FieldRecord):
    """
    Raises StructuralError unless record is a leaf 3D field whose x and y
    ranges are equal and centred on zero.
    """
    if record.kind != FieldKind.FULL_3D or not record.is_leaf:
        raise StructuralError("Quadrant averaging needs a leaf 3D field", filename=record.source_name)

    ax, ay = record.axes[0], record.axes[1]
    tol = config.QUAD_TOLERANCE
    if (ax.count != ay.count or abs(ax.min - ay.min) > tol or abs(ax.max - ay.max) > tol
            or abs(ax.min + ax.max) > tol):
        raise StructuralError(f"x and y ranges must match and be centred on 0, got {ax} and {ay}", filename=record.source_name)


def quad_average(record: FieldRecord) -> FieldRecord:
    """
    Replaces each sample of record by the average over its four mirror images
    in the x = 0 and y = 0 planes, taking the parity of each component into
    account: Ex is odd in x and even in y, Ey even in x and odd in y, and Ez
    even in both.

    Works for odd and even counts; with an odd count the middle plane is its
    own mirror image, so the odd components vanish there. Modifies record in
    place and returns it.
    """
    check_quadrant_symmetric(record)

    ## Payload is (nz, ny, nx, 3), so axis 2 is x and axis 1 is y
    f = record.payload
    fx = f[:, :, ::-1, :] * MIRROR_SIGNS['x']
    fy = f[:, ::-1, :, :] * MIRROR_SIGNS['y']
    fxy = f[:, ::-1, ::-1, :] * MIRROR_SIGNS['x'] * MIRROR_SIGNS['y']

    # Pairs summed first so that mirror images cancel exactly on a centre plane
    f[...] = 0.25 * ((f + fx) + (fy + fxy))

    logger.info(f"Quadrant averaged '{record.source_name}'")
    return record
