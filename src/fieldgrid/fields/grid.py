# %% -*- coding: utf-8 -*-
"""
Plain data types describing regular grids: one axis at a time, and the
structured description handed over by the export readers.
"""

import numpy as np

from typing import NamedTuple

AXIS_NAMES = ('x', 'y', 'z')

# %% Axes

class AxisRange(NamedTuple):
    """
    One axis of a regular grid. delta is the spacing between samples, and is
    zero for an axis with a single sample.
    """
    count: int
    min: float
    max: float
    delta: float

    @classmethod
    def from_limits(cls, count: int, vmin: float, vmax: float) -> 'AxisRange':
        """
        Builds an axis from its sample count and limits, deriving the spacing.
        """
        count = int(count)
        if count > 1:
            delta = (vmax - vmin) / (count - 1)
        else:
            delta = 0.0
        return cls(count, float(vmin), float(vmax), float(delta))

    @property
    def active(self) -> bool:
        return self.count > 1

    def coordinates(self) -> np.ndarray:
        """Sample positions along the axis"""
        return self.min + self.delta * np.arange(self.count)


# %% Structured grid description

class GridDescription(NamedTuple):
    """
    A regular grid of samples as read from an export, before it becomes a field
    record.

    axis_names and axes have one entry per spatial dimension. values has shape
    (len(expression_names), npoints), with the points ordered so that the first
    axis varies fastest.
    """
    axis_names: tuple
    axes: tuple
    expression_names: tuple
    values: np.ndarray
    model_name: str = ''
    source_name: str = ''

    @property
    def n_dimensions(self) -> int:
        return len(self.axis_names)

    @property
    def n_points(self) -> int:
        return self.values.shape[1]
