# %% -*- coding: utf-8 -*-
"""
Constants shared across the package: binary container layout, tolerances
and defaults.
"""

# %% Binary container

# 'CD3B' read as a big-endian multi-character constant
MAGIC = 0x43443342
HEADER_LENGTH = 512
NAME_WIDTH = 64
BYTE_ORDER = '<'

# %% Hierarchy

# Maximum number of children a field record may hold
MAX_CHILDREN = 20

# Relative tolerance for corner containment, with an absolute floor near zero
CONTAINMENT_TOLERANCE = 1e-6
CONTAINMENT_FLOOR = 1e-6

# %% Interpolation

# Slop allowed on the reduced coordinate within a cell
REDUCED_COORD_SLOP = 1e-3

# %% Merging and averaging

MERGE_TOLERANCE = 1e-6
MERGE_FLOOR = 1e-12
QUAD_TOLERANCE = 1e-6

# %% Geometry and smoothing

GEOMETRY_TAG = 'BCGeom'
DEFAULT_PASSES = 1
