"""
A series of utility functions
"""

import numpy as np

from .. import config


def soft_tolerance(c, fraction=config.CONTAINMENT_TOLERANCE, floor=config.CONTAINMENT_FLOOR):
    """
    Tolerance used for comparing coordinate c against a bound: relative to the
    magnitude of c, but with an absolute floor once |c| drops below it.
    """
    c = abs(c)
    if c < floor:
        return floor
    return fraction * c

def soft_point_in_bounds(point, lower, upper) -> bool:
    """
    Checks whether point lies inside the box [lower, upper] allowing for the
    soft tolerance on each coordinate.
    """
    for c, lo, hi in zip(point, lower, upper):
        eps = soft_tolerance(c)
        if (c - lo) < -eps or (c - hi) > eps:
            return False
    return True

def box_corners(lower, upper):
    """
    Returns the 8 corners of the box [lower, upper] as an array of shape (8, 3)
    """
    corners = np.empty((8, 3))
    for k in range(8):
        for i in range(3):
            corners[k, i] = upper[i] if (k >> i) & 1 else lower[i]
    return corners

def nearly_equal(a, b, fraction=config.MERGE_TOLERANCE, floor=config.MERGE_FLOOR) -> bool:
    """
    Relative comparison of two floats, scaled by the smaller magnitude. The
    absolute floor lets two zeros compare equal.
    """
    tol = max(fraction * min(abs(a), abs(b)), floor)
    return abs(a - b) <= tol

def component_name(expression: str) -> str:
    """
    Strips any solver prefix off an expression name, i.e. 'es.Ex' -> 'Ex'
    """
    return expression.rsplit('.', 1)[-1].strip()
