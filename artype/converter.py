"""
Image -> character grid conversion.

Runs the full pipeline in one pass:
1. Rotate the source into its bounding buffer
2. Normalise tone (alpha gate, desaturate, brightness/contrast)
3. Sample a columns x rows grid of mean intensities
4. Quantise each intensity to a level and look up its glyph

Overrides, if given, are laid over the fresh grid afterwards.
"""

import logging
from typing import Optional

import numpy as np

from .config import TransformParams
from .geometry import rotate_to_bounds
from .grid import CharacterGrid
from .mapping import MappingTable
from .overrides import OverrideStore
from .quantize import quantize_levels
from .sampler import grid_dimensions, sample_cells
from .tone import normalize_tone

logger = logging.getLogger(__name__)


def prepare_buffer(buffer: np.ndarray, params: TransformParams) -> np.ndarray:
    """Rotate and tone-normalise ``buffer``; the input is not modified."""
    rotated = rotate_to_bounds(buffer, params.rotation)
    return normalize_tone(rotated, params)


def level_grid(buffer: np.ndarray, params: TransformParams, levels: int) -> np.ndarray:
    """Integer level index per cell, shape (rows, columns)."""
    params = params.clamped()
    prepared = prepare_buffer(buffer, params)
    bh, bw = prepared.shape[:2]
    columns, rows = grid_dimensions(
        params.columns, params.cell_width, params.cell_height, bw, bh
    )
    means = sample_cells(prepared, columns, rows, params.cell_width, params.cell_height)
    return quantize_levels(means, levels, invert=params.invert)


def convert(
    buffer: np.ndarray,
    params: TransformParams,
    mapping: MappingTable,
    overrides: Optional[OverrideStore] = None,
) -> CharacterGrid:
    """Build a fresh :class:`CharacterGrid` for ``buffer``.

    Args:
        buffer: RGBA source image (H x W x 4, uint8).
        params: Transform parameters; out-of-range values are clamped.
        mapping: Level -> glyph table.
        overrides: Optional sparse per-cell edits applied on top.
    """
    levels = level_grid(buffer, params, mapping.levels)
    grid = CharacterGrid([[mapping.get(int(lvl)) for lvl in row] for row in levels])
    logger.debug(
        "Converted %dx%d image -> %d cols x %d rows (%d levels)",
        buffer.shape[1], buffer.shape[0], grid.columns, grid.rows, mapping.levels,
    )
    if overrides:
        grid = overrides.apply(grid)
    return grid
