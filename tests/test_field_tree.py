"""Tests for fieldgrid.fields.field_tree."""

import numpy as np
import numpy.testing as npt
import pytest

from fieldgrid.fields.binary_codec import write_field_file
from fieldgrid.fields.errors import CompatibilityError, FieldIOError, StructuralError
from fieldgrid.fields.field_record import CompositeField, FieldKind
from fieldgrid.fields.field_tree import FieldTreeParser, read_field_set

from conftest import build_field3d


def constant(value):
    def func(x, y, z):
        c = np.full_like(x, value)
        return (c, c, c)
    return func


# Fixtures

@pytest.fixture
def field_dir(tmp_path):
    """Directory 'maps' holding a coarse field and two finer fields inside it."""
    maps = tmp_path / 'maps'
    maps.mkdir()
    write_field_file(maps / 'coarse.bin', build_field3d(constant(1.0), (0, 0, 0), (4, 4, 4), (5, 5, 5)))
    write_field_file(maps / 'fine_a.bin', build_field3d(constant(2.0), (0, 0, 0), (1, 1, 1), (3, 3, 3)))
    write_field_file(maps / 'fine_b.bin', build_field3d(constant(3.0), (2, 2, 2), (3, 3, 3), (3, 3, 3)))
    write_field_file(maps / 'outside.bin', build_field3d(constant(4.0), (3, 3, 3), (5, 5, 5), (3, 3, 3)))
    return tmp_path


def write_description(directory, text, name='set.fld'):
    path = directory / name
    path.write_text(text)
    return path


# Grammar

class TestFieldSet:
    def test_single_field(self, field_dir):
        path = write_description(field_dir, "fields maps\nfield coarse.bin\n")
        root = read_field_set(path)
        assert root.kind == FieldKind.FULL_3D
        assert root.source_name == 'coarse.bin'
        assert root.is_leaf

    def test_named_cfield(self, field_dir):
        text = """
        # coarse map with two refinements
        fields maps
        cfield coarse.bin
            field fine_a.bin
            field fine_b.bin
        end coarse.bin
        """
        root = read_field_set(write_description(field_dir, text))

        assert root.source_name == 'coarse.bin'
        assert [c.source_name for c in root.children] == ['fine_a.bin', 'fine_b.bin']
        assert root.get_name_at_point((0.5, 0.5, 0.5)) == 'fine_a.bin'
        assert root.get_name_at_point((2.5, 2.5, 2.5)) == 'fine_b.bin'
        npt.assert_allclose(root.get_field_at_point((3.5, 0.5, 0.5)), [1.0, 1.0, 1.0])

    def test_anonymous_cfield_and_commas(self, field_dir):
        text = "fields, maps\ncfield\n  field, fine_a.bin\n  cfield\n    field fine_b.bin\n  end\nend\n"
        root = read_field_set(write_description(field_dir, text))

        assert isinstance(root, CompositeField)
        assert not root.has_data
        assert isinstance(root.children[1], CompositeField)
        assert root.get_name_at_point((2.5, 2.5, 2.5)) == 'fine_b.bin'
        assert root.get_name_at_point((1.5, 1.5, 1.5)) is None

    def test_base_dir_argument(self, field_dir, tmp_path_factory):
        elsewhere = tmp_path_factory.mktemp('descriptions')
        path = write_description(elsewhere, "field coarse.bin\n")
        root = read_field_set(path, base_dir=str(field_dir / 'maps'))
        assert root.source_name == 'coarse.bin'


class TestFieldSetErrors:
    def test_end_tag_mismatch(self, field_dir):
        text = "fields maps\ncfield coarse.bin\nfield fine_a.bin\nend fine_a.bin\n"
        with pytest.raises(StructuralError) as exc:
            read_field_set(write_description(field_dir, text))
        assert 'Line 4' in str(exc.value)

    def test_missing_end(self, field_dir):
        text = "fields maps\ncfield coarse.bin\nfield fine_a.bin\n"
        with pytest.raises(StructuralError):
            read_field_set(write_description(field_dir, text))

    def test_unknown_command(self, field_dir):
        with pytest.raises(StructuralError):
            read_field_set(write_description(field_dir, "fields maps\nfeld coarse.bin\n"))

    def test_two_roots(self, field_dir):
        with pytest.raises(StructuralError):
            read_field_set(write_description(field_dir, "fields maps\nfield coarse.bin\nfield fine_a.bin\n"))

    def test_empty_description(self, field_dir):
        with pytest.raises(StructuralError):
            read_field_set(write_description(field_dir, "# nothing here\n\n"))

    def test_child_outside_parent(self, field_dir):
        text = "fields maps\ncfield coarse.bin\nfield outside.bin\nend coarse.bin\n"
        with pytest.raises(CompatibilityError):
            read_field_set(write_description(field_dir, text))

    def test_missing_field_file(self, field_dir):
        with pytest.raises(FieldIOError):
            read_field_set(write_description(field_dir, "field nowhere.bin\n"))

    def test_missing_description(self, tmp_path):
        with pytest.raises(FieldIOError):
            read_field_set(tmp_path / 'none.fld')

    def test_description_is_a_directory(self, tmp_path):
        with pytest.raises(FieldIOError) as exc:
            read_field_set(tmp_path)
        assert str(exc.value).startswith("Could not read field description")

    def test_missing_field_file_keeps_its_name(self, field_dir):
        with pytest.raises(FieldIOError) as exc:
            read_field_set(write_description(field_dir, "field nowhere.bin\n"))
        assert "Field file not found" in str(exc.value)
        assert exc.value.filename.endswith('nowhere.bin')


class TestParser:
    def test_custom_loader(self):
        loaded = []

        def loader(path):
            loaded.append(path)
            return build_field3d(constant(0.0), (0, 0, 0), (1, 1, 1), (2, 2, 2))

        parser = FieldTreeParser(base_dir='base', loader=loader)
        root = parser.parse(["cfield\n", "field a.bin\n", "fields sub\n", "field b.bin\n", "end\n"])

        assert len(root.children) == 2
        assert loaded[0].replace('\\', '/') == 'base/a.bin'
        assert loaded[1].replace('\\', '/') == 'base/sub/b.bin'
