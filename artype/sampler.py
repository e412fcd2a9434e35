"""Partition a normalised buffer into character cells and average each one."""

import logging
import math
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Intensity reported for a cell that covers no source pixels.
EMPTY_CELL_INTENSITY = 255.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def grid_dimensions(
    columns: int,
    cell_width: int,
    cell_height: int,
    buffer_width: int,
    buffer_height: int,
) -> Tuple[int, int]:
    """Return ``(columns, rows)`` preserving the buffer's aspect ratio.

    The image is scaled so that ``columns`` cells of ``cell_width`` pixels
    span its width; the row count follows from the scaled height.
    """
    columns = max(1, int(columns))
    scaled_w = columns * cell_width
    scaled_h = buffer_height * scaled_w / buffer_width
    rows = max(1, _round_half_up(scaled_h / cell_height))
    return columns, rows


def sample_cells(
    buffer: np.ndarray,
    columns: int,
    rows: int,
    cell_width: int,
    cell_height: int,
) -> np.ndarray:
    """Mean red-channel intensity per grid cell.

    Args:
        buffer: Normalised RGBA image (R == G == B).
        columns: Grid width in cells.
        rows: Grid height in cells.
        cell_width: Cell width in scaled pixels.
        cell_height: Cell height in scaled pixels.

    Returns:
        Float array of shape (rows, columns) with values in [0, 255].
        Cells whose source rectangle is empty read as white.
    """
    bh, bw = buffer.shape[:2]
    red = buffer[:, :, 0].astype(np.float64)

    x_ratio = bw / (columns * cell_width)
    y_ratio = bh / (rows * cell_height)
    xs = [min(bw, math.floor((gx * cell_width) * x_ratio)) for gx in range(columns + 1)]
    ys = [min(bh, math.floor((gy * cell_height) * y_ratio)) for gy in range(rows + 1)]

    means = np.full((rows, columns), EMPTY_CELL_INTENSITY, dtype=np.float64)
    empty = 0
    for gy in range(rows):
        sy, ey = ys[gy], ys[gy + 1]
        for gx in range(columns):
            sx, ex = xs[gx], xs[gx + 1]
            if ey <= sy or ex <= sx:
                empty += 1
                continue
            means[gy, gx] = red[sy:ey, sx:ex].mean()

    if empty:
        logger.debug("%d cell(s) sampled no pixels and read as white", empty)
    return means
