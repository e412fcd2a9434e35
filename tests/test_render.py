"""Tests for text and raster output of character grids."""

from __future__ import annotations

import numpy as np
from PIL import Image

from artype.config import FillPolicy
from artype.grid import CharacterGrid
from artype.mapping import MappingTable
from artype.render import (
    render_gradient_preview,
    render_image,
    render_row_height,
    render_text,
    save_image,
    save_text,
)


def _grid() -> CharacterGrid:
    return CharacterGrid([[" ", "M", " "], ["I", " ", "."]])


class TestRenderText:
    def test_rows_joined_by_newlines(self):
        assert render_text(_grid()) == " M \nI ."

    def test_fill_replaces_only_blank_cells(self):
        fill = FillPolicy(fill_spaces=True, fill_char="#")
        assert render_text(_grid(), fill) == "#M#\nI#."

    def test_fill_uses_first_character(self):
        fill = FillPolicy(fill_spaces=True, fill_char="xyz")
        assert render_text(CharacterGrid.blank(1, 2), fill) == "xx"

    def test_empty_fill_char_keeps_spaces(self):
        fill = FillPolicy(fill_spaces=True, fill_char="")
        assert render_text(CharacterGrid.blank(1, 2), fill) == "  "

    def test_multi_character_overrides_pass_through(self):
        grid = CharacterGrid([["AB", " "]])
        assert render_text(grid) == "AB "


class TestRenderImage:
    def test_output_size(self):
        out = render_image(_grid(), 8, 10)
        assert out.shape == (20, 24, 3)
        assert out.dtype == np.uint8

    def test_row_height_is_rounded(self):
        assert render_row_height(10.4) == 10
        assert render_row_height(10.5) == 11
        assert render_image(CharacterGrid.blank(3, 2), 5, 7.5).shape == (24, 10, 3)

    def test_blank_grid_is_white(self):
        out = render_image(CharacterGrid.blank(2, 2), 8, 10)
        assert np.all(out == 255)

    def test_glyph_cells_get_ink(self):
        out = render_image(CharacterGrid([[" ", "M"]]), 16, 20)
        assert np.all(out[:, :16] == 255)
        assert out[:, 16:].min() < 128

    def test_fill_glyph_is_drawn(self):
        grid = CharacterGrid.blank(1, 1)
        plain = render_image(grid, 16, 20)
        filled = render_image(grid, 16, 20, FillPolicy(fill_spaces=True, fill_char="#"))
        assert np.all(plain == 255)
        assert filled.min() < 128


class TestGradientPreview:
    def test_ramp_runs_white_to_black(self):
        strip = render_gradient_preview(MappingTable())
        assert strip.shape == (32, 512, 3)
        assert tuple(strip[0, 0]) == (255, 255, 255)
        assert tuple(strip[0, -1]) == (0, 0, 0)

    def test_custom_size(self):
        strip = render_gradient_preview(["a", "b"], width=100, height=10)
        assert strip.shape == (10, 100, 3)


class TestSave:
    def test_save_text(self, tmp_path):
        path = save_text(_grid(), tmp_path / "out.txt", FillPolicy(fill_spaces=True, fill_char="·"))
        assert path.read_text(encoding="utf-8") == "·M·\nI·."

    def test_save_image(self, tmp_path):
        path = save_image(_grid(), tmp_path / "out.png", 8, 10)
        with Image.open(path) as img:
            assert img.size == (24, 20)
            assert img.mode == "RGB"
