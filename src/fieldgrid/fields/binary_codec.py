# %% -*- coding: utf-8 -*-
"""
Reading and writing field records in the binary container format.

The container is a fixed 512 byte little-endian header followed directly by
the payload as float64 values:

    uint32      magic ('CD3B')
    uint32      offset of the payload (512)
    char[64]    model name
    char[64]    source name
    int32       kind (0 = axisymmetric, 1 = full 3D)
    uint32[3]   count per axis
    float64[3]  min per axis
    float64[3]  max per axis
    float64[3]  delta per axis
    int32       stride (radial count for axisymmetric fields, else 0)
    int32       number of children (always 0, children are not stored)
    ...         zero padding

Axisymmetric fields are stored with the 3D box of the body of revolution: the
radial and the single-sample axis both span [-rmax, rmax].
"""

import logging
import os
import struct

import numpy as np

from .. import config
from .errors import FieldIOError, StructuralError, AllocationError
from .grid import AxisRange, AXIS_NAMES
from .field_record import FieldKind, FieldRecord, Field3D, AxisymmetricField

logger = logging.getLogger(__name__)

HEADER_STRUCT = struct.Struct(f'{config.BYTE_ORDER}II{config.NAME_WIDTH}s{config.NAME_WIDTH}si3I3d3d3dii')
PAYLOAD_DTYPE = np.dtype(f'{config.BYTE_ORDER}f8')

# %% Header helpers

def _encode_name(name: str) -> bytes:
    # Leave room for the terminating NUL
    return name.encode('utf-8')[:config.NAME_WIDTH - 1]

def _decode_name(raw: bytes) -> str:
    return raw.split(b'\0', 1)[0].decode('utf-8', errors='replace')

def _header_axes(record: FieldRecord) -> tuple[list, int]:
    """
    Returns the per-axis (count, min, max, delta) written to the header, and
    the stride.
    """
    if record.kind == FieldKind.FULL_3D:
        return [tuple(a) for a in record.axes], 0

    if record.kind == FieldKind.AXISYMMETRIC:
        rmax = record.radial.max
        axes = [None, None, tuple(record.axial)]
        axes[record.radial_axis] = (record.radial.count, -rmax, rmax, record.radial.delta)
        axes[1 - record.radial_axis] = (1, -rmax, rmax, 0.0)
        return axes, record.stride

    raise StructuralError(f"Cannot write a record of kind {record.kind.name}", filename=record.source_name)

def pack_header(record: FieldRecord, source_name: str | None = None) -> bytes:
    """Builds the 512 byte header for record"""
    axes, stride = _header_axes(record)
    name = record.source_name if source_name is None else source_name

    counts = [int(a[0]) for a in axes]
    mins = [float(a[1]) for a in axes]
    maxs = [float(a[2]) for a in axes]
    deltas = [float(a[3]) for a in axes]

    header = HEADER_STRUCT.pack(
        config.MAGIC, config.HEADER_LENGTH,
        _encode_name(record.model_name), _encode_name(name),
        int(record.kind), *counts, *mins, *maxs, *deltas,
        stride, 0
    )
    return header.ljust(config.HEADER_LENGTH, b'\0')

# %% Writing

def write_field(f, record: FieldRecord, source_name: str | None = None):
    """
    Writes record to the binary stream f. Children are not written.

    Parameters
    ----------
    f : binary file object
        Opened for writing
    record : FieldRecord
        A Field3D or AxisymmetricField
    source_name : str, optional
        Name stored in the header, defaults to record.source_name
    """
    header = pack_header(record, source_name)
    payload = np.ascontiguousarray(record.payload, dtype=PAYLOAD_DTYPE).tobytes()

    for what, data in (('header', header), ('payload', payload)):
        try:
            written = f.write(data)
        except OSError as err:
            raise FieldIOError(f"Failed writing {what}: {err}", filename=source_name or record.source_name) from err
        if written is not None and written != len(data):
            raise FieldIOError(f"Short write of {what}: {written} of {len(data)} bytes", filename=source_name or record.source_name)

def write_field_file(path, record: FieldRecord, source_name: str | None = None):
    """
    Writes record to the file at path. The header carries the base name of
    path unless source_name is given.
    """
    path = os.fspath(path)
    if source_name is None:
        source_name = os.path.basename(path)

    # Refuse unsupported kinds before creating the file
    _header_axes(record)

    try:
        with open(path, 'wb') as f:
            write_field(f, record, source_name)
    except FieldIOError as err:
        err.filename = path
        raise
    except OSError as err:
        raise FieldIOError(f"Could not write field: {err}", filename=path) from err

    logger.info(f"Wrote {record.kind.name} field to '{path}'")

# %% Reading

def read_field(f, source_name: str | None = None) -> FieldRecord:
    """
    Reads a record from the binary stream f.

    The record is only returned once the header has been validated and the
    whole payload read, so a failure never hands back a partial record.
    source_name overrides the name stored in the header.
    """
    raw = f.read(config.HEADER_LENGTH)
    if len(raw) < config.HEADER_LENGTH:
        raise FieldIOError(f"Short read of header: {len(raw)} of {config.HEADER_LENGTH} bytes", filename=source_name)

    (magic, offset, model_raw, name_raw, kind_code, *rest) = HEADER_STRUCT.unpack_from(raw)
    if magic != config.MAGIC:
        raise StructuralError(f"Bad magic number {magic:#010x}", filename=source_name)

    name = _decode_name(name_raw) if source_name is None else source_name
    model_name = _decode_name(model_raw)

    counts, mins, maxs, deltas = rest[0:3], rest[3:6], rest[6:9], rest[9:12]
    axes = [AxisRange(int(n), lo, hi, d) for n, lo, hi, d in zip(counts, mins, maxs, deltas)]

    try:
        kind = FieldKind(kind_code)
    except ValueError:
        raise StructuralError(f"Unknown field kind {kind_code}", filename=name) from None

    ## Cross-check the kind against the active axes
    active = [a.count > 1 for a in axes]
    n_active = sum(active)
    if kind == FieldKind.FULL_3D:
        expected_active, n_components = 3, 3
    elif kind == FieldKind.AXISYMMETRIC:
        expected_active, n_components = 2, 2
    else:
        raise StructuralError(f"Cannot read a record of kind {kind.name}", filename=name)
    if n_active != expected_active:
        raise StructuralError(f"{kind.name} field needs {expected_active} active axes, header has {n_active}", filename=name)

    for axis_name, axis in zip(AXIS_NAMES, axes):
        if axis.count > 1 and (axis.delta <= 0 or axis.max <= axis.min):
            raise StructuralError(f"Bad {axis_name} axis in header: {axis}", filename=name)

    ## Read the payload
    npoints = axes[0].count * axes[1].count * axes[2].count * n_components
    nbytes = npoints * PAYLOAD_DTYPE.itemsize

    if offset > config.HEADER_LENGTH:
        f.read(offset - config.HEADER_LENGTH)

    try:
        data = f.read(nbytes)
        payload = np.frombuffer(data, dtype=PAYLOAD_DTYPE).astype(float)
    except MemoryError as err:
        raise AllocationError(f"Could not allocate {npoints} values", filename=name) from err
    if payload.size < npoints:
        raise FieldIOError(f"Short read of payload: {payload.size} of {npoints} values", filename=name)

    if kind == FieldKind.FULL_3D:
        return Field3D(axes, payload, source_name=name, model_name=model_name)

    if not axes[2].active:
        raise StructuralError("The z axis of an axisymmetric field must be active", filename=name)
    radial_axis = 0 if axes[0].active else 1
    rad = axes[radial_axis]
    radial = AxisRange(rad.count, 0.0, rad.max, rad.delta)
    return AxisymmetricField(radial, axes[2], payload, radial_axis=radial_axis,
                             source_name=name, model_name=model_name)

def read_field_file(path, source_name: str | None = None) -> FieldRecord:
    """
    Reads a record from the file at path. The record is named after path
    unless source_name is given.
    """
    path = os.fspath(path)
    if source_name is None:
        source_name = path

    try:
        with open(path, 'rb') as f:
            record = read_field(f, source_name)
    except FileNotFoundError as err:
        raise FieldIOError("Field file not found", filename=path) from err
    except OSError as err:
        if isinstance(err, FieldIOError):
            raise
        raise FieldIOError(f"Could not read field: {err}", filename=path) from err

    logger.info(f"Read {record.kind.name} field from '{path}'")
    return record
