"""Map averaged intensities onto discrete glyph levels.

Level 0 is the lightest glyph. The intensity is complemented once when
``invert`` is set and then always complemented again to put it on the
light-to-dark axis, so with ``invert`` the two complements cancel out.
That composition is kept exactly as is.
"""

import math

import numpy as np


def quantize_level(value: float, levels: int, invert: bool = False) -> int:
    """Level index in ``[0, levels)`` for an intensity in ``[0, 255]``.

    >>> quantize_level(128, 8)
    3
    """
    v = 255.0 - value if invert else value
    darkness = 255.0 - v
    step = 256.0 / levels
    level = math.floor(darkness / step)
    return max(0, min(levels - 1, level))


def quantize_levels(values: np.ndarray, levels: int, invert: bool = False) -> np.ndarray:
    """Vectorised :func:`quantize_level` over an array of intensities."""
    v = np.asarray(values, dtype=np.float64)
    if invert:
        v = 255.0 - v
    darkness = 255.0 - v
    step = 256.0 / levels
    return np.clip(np.floor(darkness / step), 0, levels - 1).astype(np.int64)
