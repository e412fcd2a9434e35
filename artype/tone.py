"""Tone normalisation: alpha gate, desaturation, brightness/contrast.

The three passes always run in this order. Gating alpha first means the
pixels forced to white are averaged as real white paper later on.
"""

import logging

import numpy as np

from .config import ALPHA_THRESHOLD, TransformParams

logger = logging.getLogger(__name__)

# Rec. 709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def apply_alpha_gate(buffer: np.ndarray, threshold: int = ALPHA_THRESHOLD) -> np.ndarray:
    """Force pixels with alpha below ``threshold`` to opaque white."""
    out = buffer.copy()
    mask = out[:, :, 3] < threshold
    out[mask] = (255, 255, 255, 255)
    return out


def desaturate(buffer: np.ndarray) -> np.ndarray:
    """Replace R, G and B with the pixel's luminance."""
    out = buffer.copy()
    lum = out[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS
    # byte storage rounds half to even, same as np.rint
    lum = np.clip(np.rint(lum), 0, 255).astype(np.uint8)
    out[:, :, 0] = lum
    out[:, :, 1] = lum
    out[:, :, 2] = lum
    return out


def contrast_factor(contrast: float) -> float:
    c = contrast * 2.55
    return (259.0 * (c + 255.0)) / (255.0 * (259.0 - c))


def adjust_brightness_contrast(buffer: np.ndarray, brightness: float, contrast: float) -> np.ndarray:
    """Apply the classic brightness offset and contrast stretch around 128.

    Args:
        buffer: RGBA image; alpha is left untouched.
        brightness: -100..100, mapped to an offset of -255..255.
        contrast: -100..100.
    """
    out = buffer.copy()
    offset = brightness / 100.0 * 255.0
    factor = contrast_factor(contrast)
    rgb = out[:, :, :3].astype(np.float64)
    rgb = factor * (rgb - 128.0) + 128.0 + offset
    rgb = np.clip(rgb, 0.0, 255.0)
    out[:, :, :3] = np.floor(rgb + 0.5).astype(np.uint8)
    return out


def normalize_tone(buffer: np.ndarray, params: TransformParams) -> np.ndarray:
    """Run the alpha gate (if enabled), desaturation and brightness/contrast."""
    out = apply_alpha_gate(buffer) if params.alpha_threshold else buffer
    out = desaturate(out)
    out = adjust_brightness_contrast(out, params.brightness, params.contrast)
    logger.debug(
        "Normalised tone (alpha_gate=%s, brightness=%.1f, contrast=%.1f)",
        params.alpha_threshold, params.brightness, params.contrast,
    )
    return out
