"""
Command line interface for Artype.

Converts one image into a typewriter template: a text file and, optionally,
a rendered PNG of the same grid.

Usage examples
--------------

Convert with defaults (60 columns, 8x10 cells) next to the input::

    python -m artype.cli photo.jpg

Rotate, brighten, use a custom ramp and also export a PNG::

    python -m artype.cli photo.jpg --rotation 15 --brightness 20 \\
        --charset " .:-=+*#%@" --png photo_artype.png

Pin a few cells to custom glyphs after conversion::

    python -m artype.cli logo.png --override 3,10=A --override 3,11=B
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from .config import DEFAULT_MAPPING, ArtypeConfig, load_config, save_config
from .render import render_gradient_preview, save_image, save_text
from .session import ArtypeSession, RecomputeOutcome

logger = logging.getLogger("artype")

PARAM_FLAGS = (
    "rotation",
    "brightness",
    "contrast",
    "alpha_threshold",
    "invert",
    "cell_width",
    "cell_height",
    "columns",
)


def _setup_logging(debug: bool = False, quiet: bool = False) -> None:
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_glyph(spec: str) -> Tuple[int, str]:
    """``"3=X"`` -> ``(3, "X")``."""
    index, sep, glyph = spec.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"Expected INDEX=GLYPH, got {spec!r}")
    try:
        return int(index), glyph
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Bad level index in {spec!r}") from exc


def _parse_override(spec: str) -> Tuple[int, int, str]:
    """``"2,5=AB"`` -> ``(2, 5, "AB")``."""
    cell, sep, glyph = spec.partition("=")
    parts = cell.split(",")
    if not sep or len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected ROW,COL=GLYPH, got {spec!r}")
    try:
        return int(parts[0]), int(parts[1]), glyph
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Bad cell coordinates in {spec!r}") from exc


def load_pixels(path: Path) -> np.ndarray:
    """Decode an image file into an RGBA array."""
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


def build_config(args: argparse.Namespace) -> ArtypeConfig:
    """Start from ``--config`` (or defaults) and apply explicit flags on top."""
    config = load_config(args.config) if args.config else ArtypeConfig()

    params = config.params.to_dict()
    for key in PARAM_FLAGS:
        value = getattr(args, key)
        if value is not None:
            params[key] = value

    mapping: Optional[List[str]] = config.mapping
    if args.charset is not None:
        if len(args.charset) < 2:
            raise ValueError("--charset needs at least two characters")
        mapping = list(args.charset)
    if args.glyph:
        mapping = list(mapping) if mapping is not None else list(DEFAULT_MAPPING)
        for index, glyph in args.glyph:
            if not 0 <= index < len(mapping):
                raise ValueError(f"--glyph level {index} out of range (0..{len(mapping) - 1})")
            mapping[index] = glyph or " "

    fill = config.fill.to_dict()
    if args.fill_spaces is not None:
        fill["fill_spaces"] = args.fill_spaces
    if args.fill_char is not None:
        fill["fill_char"] = args.fill_char

    return ArtypeConfig.from_dict({"params": params, "mapping": mapping, "fill": fill})


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert an image into a typewriter art template.")
    parser.add_argument("input", type=Path, help="Source image.")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Text output path (default: <input>_artype.txt next to the input).",
    )
    parser.add_argument("--png", type=Path, help="Also render the grid to this PNG.")
    parser.add_argument("--stdout", action="store_true", help="Print the text grid to stdout.")
    parser.add_argument("--config", type=Path, help="JSON config with params/mapping/fill sections.")
    parser.add_argument("--save-config", type=Path, help="Write the effective config to this JSON file.")

    tone = parser.add_argument_group("transform")
    tone.add_argument("--rotation", type=float, help="Rotation in degrees (clockwise).")
    tone.add_argument("--brightness", type=float, help="Brightness, -100..100.")
    tone.add_argument("--contrast", type=float, help="Contrast, -100..100.")
    tone.add_argument(
        "--alpha-threshold",
        action="store_true",
        default=None,
        help="Treat mostly transparent pixels as white paper.",
    )
    tone.add_argument("--no-alpha-threshold", action="store_false", dest="alpha_threshold")
    tone.add_argument("--invert", action="store_true", default=None, help="Invert the tone mapping.")
    tone.add_argument("--no-invert", action="store_false", dest="invert")
    tone.add_argument("--cell-width", type=int, help="Character cell width in pixels (default 8).")
    tone.add_argument("--cell-height", type=int, help="Character cell height in pixels (default 10).")
    tone.add_argument("--columns", type=int, help="Number of character columns (default 60).")

    glyphs = parser.add_argument_group("glyphs")
    glyphs.add_argument("--charset", help="Glyphs from lightest to darkest, one per level.")
    glyphs.add_argument(
        "--glyph",
        action="append",
        type=_parse_glyph,
        default=[],
        metavar="INDEX=GLYPH",
        help="Replace the glyph at one level (repeatable).",
    )
    glyphs.add_argument(
        "--override",
        action="append",
        type=_parse_override,
        default=[],
        metavar="ROW,COL=GLYPH",
        help="Pin a custom glyph to one cell after conversion (repeatable).",
    )
    glyphs.add_argument(
        "--fill-spaces",
        action="store_true",
        default=None,
        help="Write blank cells as the fill glyph.",
    )
    glyphs.add_argument("--no-fill-spaces", action="store_false", dest="fill_spaces")
    glyphs.add_argument("--fill-char", help="Fill glyph for blank cells (default '·').")
    glyphs.add_argument(
        "--gradient-preview",
        type=Path,
        help="Save a light-to-dark preview strip of the mapping to this PNG.",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", action="store_true", help="Verbose logging.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    _setup_logging(args.debug, args.quiet)

    try:
        config = build_config(args)
    except (OSError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    try:
        pixels = load_pixels(args.input)
    except (OSError, ValueError) as exc:
        logger.error("Cannot open input %s: %s", args.input, exc)
        return 1

    session = ArtypeSession.from_config(config)
    outcome = session.load_image(pixels)
    if outcome is not RecomputeOutcome.APPLIED:
        logger.error("Conversion did not run (%s)", outcome.value)
        return 1

    cols, rows = session.grid_size
    logger.info("Converted %s -> %d x %d characters", args.input.name, cols, rows)

    applied = 0
    for row, col, glyph in args.override:
        if session.set_override(row, col, glyph):
            applied += 1
        else:
            logger.warning("Override at (%d, %d) is outside the %dx%d grid", row, col, cols, rows)
    if applied:
        logger.info("Applied %d custom cell edit(s)", applied)

    output = args.output or args.input.with_name(f"{args.input.stem}_artype.txt")
    try:
        save_text(session.grid, output, session.fill)
        if args.png:
            save_image(
                session.grid,
                args.png,
                session.grid_params.cell_width,
                session.grid_params.cell_height,
                session.fill,
            )
        if args.gradient_preview:
            Image.fromarray(render_gradient_preview(session.mapping)).save(args.gradient_preview)
            logger.info("Gradient preview saved: %s", args.gradient_preview)
        if args.save_config:
            save_config(session.to_config(), args.save_config)
    except OSError as exc:
        logger.error("Cannot write output: %s", exc)
        return 1

    if args.stdout:
        print(session.text())
    return 0


if __name__ == "__main__":
    sys.exit(main())
