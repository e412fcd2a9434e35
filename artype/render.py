"""Output for character grids.

Produces the two artifacts handed to the outside world:
  - Plain text, rows joined by newlines
  - A raster template: black monospace glyphs centred in white cells
plus the light-to-dark gradient strip used to preview a mapping.
"""

import logging
import math
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .config import FillPolicy
from .grid import CharacterGrid

logger = logging.getLogger(__name__)

BACKGROUND = (255, 255, 255)
FOREGROUND = (0, 0, 0)
MIN_FONT_SIZE = 6

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

MONO_FONT_CANDIDATES = [
    "DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "/usr/share/fonts/truetype/noto/NotoSansMono-Regular.ttf",
    "/System/Library/Fonts/Menlo.ttc",
    "/Library/Fonts/Courier New.ttf",
    "C:/Windows/Fonts/cour.ttf",
    "C:/Windows/Fonts/consola.ttf",
]


def load_mono_font(size: int) -> FontType:
    """Try to load a monospace system font, fall back to Pillow's default."""
    for path in MONO_FONT_CANDIDATES:
        try:
            return ImageFont.truetype(path, size)
        except (OSError, IOError):
            continue
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has no sized default font
        return ImageFont.load_default()


def fill_blank(glyph: str, fill: FillPolicy) -> str:
    if glyph == " " and fill.fill_spaces:
        return fill.glyph
    return glyph


def render_text(grid: CharacterGrid, fill: Optional[FillPolicy] = None) -> str:
    """Newline-joined rows, blanks swapped for the fill glyph when enabled."""
    fill = fill or FillPolicy()
    return "\n".join(
        "".join(fill_blank(glyph, fill) for glyph in row) for row in grid
    )


def render_row_height(cell_height: float) -> int:
    return max(1, math.floor(cell_height + 0.5))


def _draw_centered(draw: ImageDraw.ImageDraw, cx: float, cy: float, text: str,
                   font: FontType, color) -> None:
    bbox = draw.textbbox((0, 0), text, font=font)
    tw, th = bbox[2] - bbox[0], bbox[3] - bbox[1]
    draw.text((cx - tw / 2 - bbox[0], cy - th / 2 - bbox[1]), text, fill=color, font=font)


def render_image(
    grid: CharacterGrid,
    cell_width: int,
    cell_height: float,
    fill: Optional[FillPolicy] = None,
    font: Optional[FontType] = None,
) -> np.ndarray:
    """Rasterise ``grid`` into an RGB array of ``cols*cell_width x rows*round(cell_height)``.

    Args:
        grid: Character grid to draw.
        cell_width: Width of each character box in pixels.
        cell_height: Height of each character row; rounded to whole pixels.
        fill: Blank-cell policy.
        font: Font override; defaults to a monospace font sized to the row.

    Returns:
        RGB numpy array (H x W x 3, uint8).
    """
    fill = fill or FillPolicy()
    cell_width = max(1, int(cell_width))
    row_h = render_row_height(cell_height)
    out_w = max(1, grid.columns * cell_width)
    out_h = max(1, grid.rows * row_h)

    canvas = Image.new("RGB", (out_w, out_h), BACKGROUND)
    draw = ImageDraw.Draw(canvas)
    font = font or load_mono_font(max(MIN_FONT_SIZE, row_h))

    for gy, row in enumerate(grid):
        cy = gy * row_h + row_h / 2
        for gx, glyph in enumerate(row):
            glyph = fill_blank(glyph, fill)
            if not glyph.strip():
                continue
            cx = gx * cell_width + cell_width / 2
            _draw_centered(draw, cx, cy, glyph, font, FOREGROUND)

    return np.asarray(canvas)


def render_gradient_preview(
    mapping: Iterable[str],
    width: int = 512,
    height: int = 32,
    font: Optional[FontType] = None,
) -> np.ndarray:
    """Gray ramp from white (left) to black (right) with each level's glyph.

    Each glyph sits at the centre of its level's bucket; glyphs over dark
    buckets are drawn white so they stay legible.
    """
    glyphs = list(mapping)
    levels = len(glyphs)
    width = max(1, int(width))
    height = max(1, int(height))

    steps = 256
    ramp = np.empty(width, dtype=np.uint8)
    for x in range(width):
        i = min(steps - 1, int(x * steps / width))
        ramp[x] = math.floor((steps - 1 - i) / (steps - 1) * 255 + 0.5)
    strip = np.repeat(np.repeat(ramp[None, :, None], height, axis=0), 3, axis=2)

    canvas = Image.fromarray(strip)
    draw = ImageDraw.Draw(canvas)
    font = font or load_mono_font(max(10, int(height * 0.75)))
    for i, glyph in enumerate(glyphs):
        glyph = glyph or " "
        if not glyph.strip():
            continue
        gray = round((levels - 1 - i + 0.5) / levels * 255)
        color = (255, 255, 255) if gray < 140 else FOREGROUND
        _draw_centered(draw, (i + 0.5) / levels * width, height / 2, glyph, font, color)
    return np.asarray(canvas)


def save_text(grid: CharacterGrid, output_path: Path, fill: Optional[FillPolicy] = None) -> Path:
    """Write the text artifact as UTF-8. Returns the output path."""
    output_path = Path(output_path)
    output_path.write_text(render_text(grid, fill), encoding="utf-8")
    logger.info("Text template saved: %s", output_path)
    return output_path


def save_image(
    grid: CharacterGrid,
    output_path: Path,
    cell_width: int,
    cell_height: float,
    fill: Optional[FillPolicy] = None,
) -> Path:
    """Render and save the raster artifact. Returns the output path."""
    output_path = Path(output_path)
    Image.fromarray(render_image(grid, cell_width, cell_height, fill)).save(output_path)
    logger.info("Image template saved: %s", output_path)
    return output_path
