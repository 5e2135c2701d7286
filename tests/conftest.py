"""Shared fixtures for building small field records."""

import numpy as np
import pytest

from fieldgrid.fields.field_record import Field3D, AxisymmetricField
from fieldgrid.fields.grid import AxisRange


def build_field3d(func, lower, upper, counts, source_name='field.bin'):
    """Field3D whose samples are func(x, y, z) -> (Ex, Ey, Ez) at every vertex."""
    axes = [AxisRange.from_limits(n, lo, hi) for n, lo, hi in zip(counts, lower, upper)]
    xs, ys, zs = [a.coordinates() for a in axes]
    zz, yy, xx = np.meshgrid(zs, ys, xs, indexing='ij')
    payload = np.stack(func(xx, yy, zz), axis=-1)
    return Field3D(axes, payload, source_name=source_name, model_name='test model')


def build_axisymmetric(func, rmax, zlim, counts, radial_axis=0, source_name='slice.bin'):
    """AxisymmetricField whose samples are func(r, z) -> (Er, Ez) at every vertex."""
    radial = AxisRange.from_limits(counts[0], 0.0, rmax)
    axial = AxisRange.from_limits(counts[1], zlim[0], zlim[1])
    zz, rr = np.meshgrid(axial.coordinates(), radial.coordinates(), indexing='ij')
    payload = np.stack(func(rr, zz), axis=-1)
    return AxisymmetricField(radial, axial, payload, radial_axis=radial_axis, source_name=source_name)


def linear_func(x, y, z):
    return (1.0 + 2.0*x - 3.0*y + 0.5*z,
            -2.0 + x + y + z,
            4.0*z - 0.25*x)


@pytest.fixture
def field_factory():
    """Builder for Field3D records from an analytic function."""
    return build_field3d


@pytest.fixture
def slice_factory():
    """Builder for AxisymmetricField records from an analytic function."""
    return build_axisymmetric


@pytest.fixture
def linear_field():
    """5 x 5 x 9 field that is linear in (x, y, z), on power-of-two spacings."""
    return build_field3d(linear_func, (0.0, -1.0, 2.0), (1.0, 1.0, 4.0), (5, 5, 9))


@pytest.fixture
def index_sum_field():
    """3 x 3 x 3 field on [0, 2]^3 whose components all equal ix + iy + iz."""
    def func(x, y, z):
        s = x + y + z
        return (s, s, s)
    return build_field3d(func, (0.0, 0.0, 0.0), (2.0, 2.0, 2.0), (3, 3, 3))


@pytest.fixture
def linear_slice():
    """Axisymmetric slice with Er = r and Ez = 1 + 2z on r in [0, 2], z in [-1, 1]."""
    return build_axisymmetric(lambda r, z: (r, 1.0 + 2.0*z), 2.0, (-1.0, 1.0), (5, 9))


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
