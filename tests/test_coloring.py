"""Tests for palettes."""

from __future__ import annotations

import numpy as np
import pytest
import yaml

from fractal_explorer.core.errors import FractalIOError, PaletteFormatError
from fractal_explorer.rendering.coloring import (
    BACKGROUND_COLOR,
    Palette,
    PaletteEntry,
    get_builtin_palette,
    list_builtin_palettes,
)


def _entry(position, color, index=0):
    return {'position': position, 'index': index, 'label': f"stop {index}", 'color': list(color)}


def test_load_and_interpolate(two_stop_definition):
    palette = Palette.load(two_stop_definition)
    palette.rescale(10)
    assert palette.name == 'Two stop'
    assert palette.boundaries == [0, 10]
    assert palette.color_for(5) == (50, 100, 25)
    assert palette.color_for(10) == (100, 200, 50)


def test_value_at_or_below_first_boundary_is_background(two_stop_definition):
    palette = Palette.load(two_stop_definition)
    palette.rescale(10)
    assert palette.color_for(0) == BACKGROUND_COLOR


def test_values_above_last_boundary_take_last_color():
    palette = Palette.load({'palette': [_entry(0.0, (0, 0, 0), 0), _entry(0.5, (9, 8, 7), 1)]})
    palette.rescale(10)
    assert palette.boundaries == [0, 5]
    assert palette.color_for(8) == (9, 8, 7)
    assert palette.color_for(10) == (9, 8, 7)


def test_boundaries_round_half_up():
    palette = Palette.load({'palette': [_entry(0.0, (0, 0, 0), 0), _entry(0.25, (1, 1, 1), 1),
                                        _entry(1.0, (2, 2, 2), 2)]})
    palette.rescale(10)
    assert palette.boundaries == [0, 3, 10]


def test_channels_round_half_up():
    palette = Palette.load({'palette': [_entry(0.0, (0, 0, 0), 0), _entry(1.0, (1, 3, 255), 1)]})
    palette.rescale(2)
    assert palette.color_for(1) == (1, 2, 128)


def test_boundary_values_return_entry_colors():
    palette = get_builtin_palette('default')
    palette.rescale(255)
    boundaries = palette.boundaries
    assert len(set(boundaries)) == len(boundaries)
    for entry in palette.entries[1:]:
        assert palette.color_for(entry.absolute_boundary) == entry.color


def test_entries_are_sorted_by_position():
    palette = Palette.load({'palette': [_entry(1.0, (3, 3, 3), 1), _entry(0.0, (0, 0, 0), 0)]})
    assert [e.relative_position for e in palette.entries] == [0.0, 1.0]


def test_rescale_tracks_new_cap(two_stop_definition):
    palette = Palette.load(two_stop_definition)
    palette.rescale(10)
    palette.rescale(200)
    assert palette.boundaries == [0, 200]
    assert palette.max_iterations == 200


def test_colorize_uses_lookup_table(two_stop_definition):
    palette = Palette.load(two_stop_definition)
    palette.rescale(10)
    values = np.array([[0, 5], [10, 10]], dtype=np.uint32)
    rgb = palette.colorize(values, 10)
    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[0, 1]) == (50, 100, 25)
    assert tuple(rgb[1, 0]) == (100, 200, 50)
    assert tuple(rgb[0, 0]) == BACKGROUND_COLOR


@pytest.mark.parametrize("definition", [
    "palette: [",
    "just a string",
    {'name': 'no list'},
    {'palette': []},
    {'palette': ['not a mapping']},
    {'palette': [{'position': 0.0, 'index': 0, 'label': 'x'}]},
    {'palette': [{'position': 0.0, 'index': 0, 'color': [1, 2, 3]}]},
    {'palette': [_entry(1.5, (1, 2, 3))]},
    {'palette': [_entry(-0.1, (1, 2, 3))]},
    {'palette': [_entry(0.5, (1, 2, 300))]},
    {'palette': [_entry(0.5, (1, 2))]},
    {'palette': [{'position': 'half', 'index': 0, 'label': 'x', 'color': [1, 2, 3]}]},
    {'palette': [{'position': 0.5, 'index': 'one', 'label': 'x', 'color': [1, 2, 3]}]},
])
def test_malformed_definitions_are_rejected(definition):
    with pytest.raises(PaletteFormatError):
        Palette.load(definition)


def test_single_entry_palette_is_accepted(caplog):
    palette = Palette.load({'palette': [_entry(0.5, (10, 20, 30))]})
    palette.rescale(10)
    assert len(palette) == 1
    assert palette.color_for(3) == BACKGROUND_COLOR
    assert palette.color_for(7) == (10, 20, 30)
    assert "single entry" in caplog.text


def test_load_from_yaml_bytes(palette_bytes):
    palette = Palette.load(palette_bytes)
    assert len(palette) == 2
    assert palette.entries[1].label == 'Orange'


def test_gpl_palette_spreads_colors_evenly():
    text = "GIMP Palette\nName: Test\nColumns: 3\n#\n  0   0   0 Black\n255 255 255 White\n 10  20  30\n"
    palette = Palette.load(text, fmt='gpl')
    assert palette.name == 'Test'
    assert [e.relative_position for e in palette.entries] == [0.0, 0.5, 1.0]
    assert [e.color for e in palette.entries] == [(0, 0, 0), (255, 255, 255), (10, 20, 30)]
    assert palette.entries[0].label == 'Black'


@pytest.mark.parametrize("text", [
    "not a palette\n1 2 3\n",
    "GIMP Palette\nName: Empty\n",
    "GIMP Palette\n1 2\n",
    "GIMP Palette\na b c\n",
])
def test_malformed_gpl_is_rejected(text):
    with pytest.raises(PaletteFormatError):
        Palette.load(text, fmt='gpl')


@pytest.mark.parametrize("filename", ["fire.palette", "fire.gpl"])
def test_save_and_load_file(tmp_path, filename):
    original = get_builtin_palette('fire')
    path = tmp_path / filename
    original.save_to_file(path)

    loaded = Palette.load_from_file(path)
    assert loaded.name == original.name
    assert [e.color for e in loaded.entries] == [e.color for e in original.entries]
    assert [e.relative_position for e in loaded.entries] == \
        [e.relative_position for e in original.entries]


def test_saved_yaml_uses_documented_keys(tmp_path):
    path = tmp_path / "gray.palette"
    get_builtin_palette('gray').save_to_file(path)
    data = yaml.safe_load(path.read_text())
    assert data['name'] == 'Grayscale'
    assert set(data['palette'][0]) == {'position', 'index', 'label', 'color'}


def test_missing_palette_file(tmp_path):
    with pytest.raises(FractalIOError):
        Palette.load_from_file(tmp_path / "absent.palette")


def test_builtin_palettes():
    names = list_builtin_palettes()
    assert 'default' in names and 'rainbow' in names
    for name in names:
        palette = get_builtin_palette(name)
        assert len(palette) >= 2
        assert palette.entries[0].relative_position == 0.0
        assert palette.entries[-1].relative_position == 1.0
    with pytest.raises(ValueError):
        get_builtin_palette('plaid')


def test_entry_validation():
    entry = PaletteEntry(1, [1, 2, 3], "x", 4)
    assert entry.relative_position == 1.0
    assert entry.color == (1, 2, 3)
    with pytest.raises(PaletteFormatError):
        PaletteEntry(True, (1, 2, 3))
