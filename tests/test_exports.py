"""Tests for fieldgrid.fields.exports."""

import numpy as np
import numpy.testing as npt
import pytest

from fieldgrid.fields.errors import FieldIOError, StructuralError
from fieldgrid.fields.exports import (
    infer_axes, parse_export_header, read_four_column_export, read_solver_export
)
from fieldgrid.fields.field_record import FieldKind, field_from_grid
from fieldgrid.fields.grid import AxisRange


def grid_rows(xs, ys, zs):
    """Rows of (x, y, z) with x varying fastest."""
    zz, yy, xx = np.meshgrid(zs, ys, xs, indexing='ij')
    return np.column_stack((xx.ravel(), yy.ravel(), zz.ravel()))


def write_export(path, coords, values, names, model='lens.mph'):
    header = [
        f"% Model:              {model}",
        "% Version:            COMSOL 5.3",
        "% Dimension:          3",
        f"% Nodes:              {len(coords)}",
        f"% Expressions:        {len(names)}",
        "% Description:        Electric field, x component, Electric field, y component",
        "% Length unit:        mm",
        "% x   y   z   " + "   ".join(f"{n} (V/m)" for n in names),
    ]
    with open(path, 'w') as f:
        f.write("\n".join(header) + "\n")
        for c, v in zip(coords, values):
            f.write(" ".join(f"{a:.17g}" for a in (*c, *v)) + "\n")


# Fixtures

@pytest.fixture
def export_3d(tmp_path):
    """Solver export on a 3 x 2 x 4 grid with E = (x, y, z)."""
    coords = grid_rows(np.linspace(-1.0, 1.0, 3), np.array([0.0, 0.5]), np.linspace(0.0, 3.0, 4))
    path = tmp_path / 'lens.txt'
    write_export(path, coords, coords, ['es.Ex', 'es.Ey', 'es.Ez'])
    return path


@pytest.fixture
def export_slice(tmp_path):
    """Solver export of an axisymmetric slice in the y = 0 plane."""
    coords = grid_rows(np.linspace(0.0, 2.0, 5), np.array([0.0]), np.linspace(-1.0, 1.0, 3))
    values = np.column_stack((coords[:, 0], 10.0 + coords[:, 2]))
    path = tmp_path / 'slice.txt'
    write_export(path, coords, values, ['es.Ex', 'es.Ez'])
    return path


# Grid inference

class TestInferAxes:
    def test_full_grid(self):
        coords = grid_rows(np.linspace(0, 1, 4), np.linspace(-2, 2, 3), np.linspace(5, 6, 2))
        axes = infer_axes(coords)
        assert [a.count for a in axes] == [4, 3, 2]
        assert axes[1] == AxisRange(3, -2.0, 2.0, 2.0)

    def test_inactive_axis(self):
        coords = grid_rows(np.array([0.0]), np.linspace(0, 1, 3), np.linspace(0, 1, 5))
        axes = infer_axes(coords)
        assert [a.count for a in axes] == [1, 3, 5]
        assert axes[0].delta == 0.0

    def test_irregular_rows(self):
        coords = grid_rows(np.linspace(0, 1, 4), np.linspace(0, 1, 3), np.linspace(0, 1, 2))[:-1]
        with pytest.raises(StructuralError):
            infer_axes(coords)


# Solver export

class TestSolverExport:
    def test_header(self):
        info = parse_export_header([
            "% Model: a.mph\n", "% Dimension: 3\n", "% Nodes: 8\n", "% Expressions: 2\n",
            "% x y z es.Ex (V/m) es.Ez (V/m)\n",
        ])
        assert info['model'] == 'a.mph'
        assert info['axis_names'] == ('x', 'y', 'z')
        assert info['expression_names'] == ('es.Ex', 'es.Ez')

    def test_header_without_units(self):
        info = parse_export_header(["% Dimension: 3", "% Nodes: 8", "% Expressions: 1", "% x y z V"])
        assert info['expression_names'] == ('V',)

    def test_incomplete_header(self):
        with pytest.raises(StructuralError):
            parse_export_header(["% Dimension: 3", "% x y z Ex (V/m)"])

    def test_read_3d(self, export_3d):
        desc = read_solver_export(export_3d)
        assert desc.model_name == 'lens.mph'
        assert desc.n_points == 24
        assert [a.count for a in desc.axes] == [3, 2, 4]

        record = field_from_grid(desc)
        assert record.kind == FieldKind.FULL_3D
        npt.assert_allclose(record.sample((0.5, 0.25, 1.5)), [0.5, 0.25, 1.5])

    def test_read_slice(self, export_slice):
        record = field_from_grid(read_solver_export(export_slice))
        assert record.kind == FieldKind.AXISYMMETRIC
        assert record.radial_axis == 0
        npt.assert_allclose(record.sample((0.0, 1.5, 0.5)), [0.0, 1.5, 10.5], atol=1e-14)

    def test_node_count_mismatch(self, tmp_path):
        coords = grid_rows(np.linspace(0, 1, 2), np.linspace(0, 1, 2), np.linspace(0, 1, 2))
        path = tmp_path / 'bad.txt'
        write_export(path, coords, coords, ['Ex', 'Ey', 'Ez'])
        with open(path, 'a') as f:
            f.write("0 0 0 0 0 0\n")
        with pytest.raises(StructuralError):
            read_solver_export(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FieldIOError):
            read_solver_export(tmp_path / 'missing.txt')


# Four-column export

class TestFourColumnExport:
    @pytest.fixture
    def four_column(self, tmp_path):
        """r in [0, 3] (slow), z in [-1, 1] (fast), Er = 2r, Ez = z - r."""
        path = tmp_path / 'magnet.txt'
        with open(path, 'w') as f:
            for r in np.linspace(0.0, 3.0, 4):
                for z in np.linspace(-1.0, 1.0, 5):
                    f.write(f"{r} {z} {2*r} {z - r}\n")
        return path

    def test_description(self, four_column):
        desc = read_four_column_export(four_column)
        assert desc.axes[0].count == 1
        assert desc.axes[1] == AxisRange(4, 0.0, 3.0, 1.0)
        assert desc.axes[2] == AxisRange(5, -1.0, 1.0, 0.5)
        assert desc.expression_names == ('Ey', 'Ez')

    def test_slice_values(self, four_column):
        record = field_from_grid(read_four_column_export(four_column))
        assert record.kind == FieldKind.AXISYMMETRIC
        assert record.stride == 4
        for r in (0.0, 1.0, 3.0):
            for z in (-1.0, 0.5):
                npt.assert_array_equal(record.sample_slice(r, z), [2*r, z - r])

    def test_wrong_column_count(self, tmp_path):
        path = tmp_path / 'three.txt'
        path.write_text("0 0 1\n1 0 1\n")
        with pytest.raises(StructuralError):
            read_four_column_export(path)
