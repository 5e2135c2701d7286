# %% -*- coding: utf-8 -*-
"""
Joining two 3D field records that sit on top of each other along z, e.g. two
halves of a long device exported separately.
"""

import logging

import numpy as np

from .. import config
from .errors import CompatibilityError, StructuralError
from .field_record import FieldKind, FieldRecord, Field3D
from .grid import AxisRange
from .utility import nearly_equal

logger = logging.getLogger(__name__)


def check_mergeable(a: FieldRecord, b: FieldRecord) -> tuple[Field3D, Field3D]:
    """
    Checks that a and b can be merged along z, and returns them ordered as
    (lower, higher) by z minimum.

    The x and y ranges and all three spacings have to match. The higher
    record has to start no later than the lower one ends, has to extend past
    it, and its planes have to coincide with the lower record's where they
    overlap.
    """
    for record in (a, b):
        if record.kind != FieldKind.FULL_3D or not record.is_leaf:
            raise StructuralError("Only leaf 3D fields can be merged", filename=record.source_name)

    for i, name in ((0, 'x'), (1, 'y')):
        pa, pb = a.axes[i], b.axes[i]
        if not nearly_equal(pa.min, pb.min):
            raise CompatibilityError(f"{name} mins don't match: {pa.min} and {pb.min}", axis=name)
        if not nearly_equal(pa.max, pb.max):
            raise CompatibilityError(f"{name} maxes don't match: {pa.max} and {pb.max}", axis=name)
    for i, name in enumerate(('x', 'y', 'z')):
        if not nearly_equal(a.axes[i].delta, b.axes[i].delta):
            raise CompatibilityError(f"{name} deltas don't match: {a.axes[i].delta} and {b.axes[i].delta}", axis=name)

    if b.axes[2].min <= a.axes[2].min:
        lower, higher = b, a
    else:
        lower, higher = a, b

    lz, hz = lower.axes[2], higher.axes[2]
    if lz.max < hz.min:
        raise CompatibilityError(f"z ranges leave a gap: lower ends at {lz.max}, higher starts at {hz.min}", axis='z')
    if hz.max <= lz.max:
        raise CompatibilityError(f"z range of '{higher.source_name}' lies within '{lower.source_name}'", axis='z')

    # The planes of both records have to fall on one common z grid
    steps = (lz.max - hz.min) / lz.delta
    if abs(steps - round(steps)) > config.MERGE_TOLERANCE:
        raise CompatibilityError(f"z planes don't line up: higher starts {steps:g} spacings below the lower's top", axis='z')

    return lower, higher


def merge_z(a: FieldRecord, b: FieldRecord, source_name: str = '') -> Field3D:
    """
    Merges two 3D records along z. The result runs from the lower record's z
    minimum to the higher record's z maximum. Planes of the higher record that
    coincide with planes of the lower record are dropped; the lower record's
    samples are kept there.
    """
    lower, higher = check_mergeable(a, b)
    lz, hz = lower.axes[2], higher.axes[2]

    # Index in the higher record of the plane at the lower record's z maximum
    overlap = int(round((lz.max - hz.min) / lz.delta))
    nz = lz.count + hz.count - (overlap + 1)

    payload = np.concatenate((lower.payload, higher.payload[overlap+1:]), axis=0)
    axes = (lower.axes[0], lower.axes[1], AxisRange(nz, lz.min, hz.max, lz.delta))

    logger.info(f"Merged '{lower.source_name}' and '{higher.source_name}': {overlap + 1} overlapping planes, {nz} planes in total")
    return Field3D(axes, payload, source_name=source_name, model_name=lower.model_name)
