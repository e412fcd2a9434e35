"""Rotate a pixel buffer into its axis-aligned bounding buffer."""

import logging
import math
from typing import Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def as_rgba(image: np.ndarray) -> np.ndarray:
    """Promote a grayscale, RGB or RGBA array to a fresh uint8 RGBA buffer."""
    arr = np.asarray(image)
    if arr.ndim == 2:
        arr = arr[:, :, None]
    if arr.ndim != 3 or arr.shape[2] not in (1, 3, 4):
        raise ValueError(f"Expected an HxW, HxWx3 or HxWx4 image, got shape {arr.shape}")
    arr = np.clip(arr, 0, 255).astype(np.uint8)

    if arr.shape[2] == 4:
        return arr.copy()
    h, w = arr.shape[:2]
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, :3] = arr if arr.shape[2] == 3 else np.repeat(arr, 3, axis=2)
    out[:, :, 3] = 255
    return out


def bounding_size(width: int, height: int, degrees: float) -> Tuple[int, int]:
    """Size of the smallest axis-aligned box holding the rotated image."""
    angle = math.radians(degrees)
    abs_sin = abs(math.sin(angle))
    abs_cos = abs(math.cos(angle))
    # round off trig noise so quarter turns don't grow by a pixel
    bw = math.ceil(round(width * abs_cos + height * abs_sin, 6))
    bh = math.ceil(round(width * abs_sin + height * abs_cos, 6))
    return max(1, bw), max(1, bh)


def rotate_to_bounds(buffer: np.ndarray, degrees: float) -> np.ndarray:
    """Rotate ``buffer`` about its centre into the centre of its bounding buffer.

    Positive angles turn the picture clockwise as displayed (y axis pointing
    down). Pixels not covered by the source are left fully transparent.
    Colour is interpolated premultiplied by alpha, so partly covered edge
    pixels keep the colour of the source instead of fading towards black.

    Args:
        buffer: RGBA image (H x W x 4, uint8).
        degrees: Rotation angle in degrees.

    Returns:
        New RGBA array of shape (bh, bw, 4).
    """
    h, w = buffer.shape[:2]
    bw, bh = bounding_size(w, h, degrees)

    if degrees % 90 == 0:
        # quarter turns are exact pixel permutations
        quarter_turns = int(degrees // 90) % 4
        return np.rot90(buffer, k=-quarter_turns).copy()

    # cv2 puts pixel centres on integer coordinates and treats positive
    # angles as counter-clockwise, hence the half-pixel centres and the sign flip.
    matrix = cv2.getRotationMatrix2D(((w - 1) / 2.0, (h - 1) / 2.0), -degrees, 1.0)
    matrix[0, 2] += (bw - 1) / 2.0 - (w - 1) / 2.0
    matrix[1, 2] += (bh - 1) / 2.0 - (h - 1) / 2.0

    src = buffer.astype(np.float32)
    src[:, :, :3] *= src[:, :, 3:4] / 255.0
    warped = cv2.warpAffine(
        src,
        matrix,
        (bw, bh),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )

    alpha = warped[:, :, 3:4]
    rgb = np.divide(
        warped[:, :, :3] * 255.0,
        alpha,
        out=np.zeros_like(warped[:, :, :3]),
        where=alpha > 0,
    )
    rotated = np.empty((bh, bw, 4), dtype=np.uint8)
    rotated[:, :, :3] = np.clip(np.rint(rgb), 0, 255)
    rotated[:, :, 3] = np.clip(np.rint(alpha[:, :, 0]), 0, 255)
    rotated[rotated[:, :, 3] == 0, :3] = 0
    logger.debug("Rotated %dx%d by %.2f deg -> %dx%d", w, h, degrees, bw, bh)
    return rotated
