"""Conversion configuration: transform parameters, fill policy, defaults."""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Glyph defaults
# ---------------------------------------------------------------------------
# Index 0 is the lightest glyph, the last entry the darkest.
DEFAULT_MAPPING: Tuple[str, ...] = (" ", ".", ":", "I", "V", "Z", "N", "M")

MIN_LEVELS = 2

DEFAULT_FILL_CHAR = "·"

# Pixels with alpha below this are treated as empty paper when the alpha
# gate is enabled.
ALPHA_THRESHOLD = 128

BRIGHTNESS_RANGE = (-100, 100)
CONTRAST_RANGE = (-100, 100)

CONFIRM_MESSAGE = (
    "You have custom cell edits. Changing image or controls will RESET "
    "those custom cell edits. Continue?"
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _positive_int(value) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 1
    return max(1, number)


@dataclass(frozen=True)
class TransformParams:
    """Everything that shapes the character grid apart from the mapping."""
    rotation: float = 0.0          # degrees, any real value
    brightness: float = 0.0        # -100..100
    contrast: float = 0.0          # -100..100
    alpha_threshold: bool = False  # transparent pixels become white paper
    invert: bool = False
    cell_width: int = 8            # pixels per character column
    cell_height: int = 10          # pixels per character row
    columns: int = 60

    def clamped(self) -> "TransformParams":
        """Return a copy with every numeric field forced into range."""
        return TransformParams(
            rotation=float(self.rotation),
            brightness=_clamp(float(self.brightness), *BRIGHTNESS_RANGE),
            contrast=_clamp(float(self.contrast), *CONTRAST_RANGE),
            alpha_threshold=bool(self.alpha_threshold),
            invert=bool(self.invert),
            cell_width=_positive_int(self.cell_width),
            cell_height=_positive_int(self.cell_height),
            columns=_positive_int(self.columns),
        )

    def to_dict(self) -> dict:
        return {
            "rotation": float(self.rotation),
            "brightness": float(self.brightness),
            "contrast": float(self.contrast),
            "alpha_threshold": bool(self.alpha_threshold),
            "invert": bool(self.invert),
            "cell_width": int(self.cell_width),
            "cell_height": int(self.cell_height),
            "columns": int(self.columns),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TransformParams":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known}).clamped()


@dataclass(frozen=True)
class FillPolicy:
    """How blank cells are written out by the renderer."""
    fill_spaces: bool = False
    fill_char: str = DEFAULT_FILL_CHAR

    @property
    def glyph(self) -> str:
        # Only the first character of the configured string is used.
        return self.fill_char[0] if self.fill_char else " "

    def to_dict(self) -> dict:
        return {"fill_spaces": bool(self.fill_spaces), "fill_char": str(self.fill_char)}

    @classmethod
    def from_dict(cls, d: dict) -> "FillPolicy":
        return cls(
            fill_spaces=bool(d.get("fill_spaces", False)),
            fill_char=str(d.get("fill_char", DEFAULT_FILL_CHAR)),
        )


@dataclass
class ArtypeConfig:
    """A saved conversion setup: parameters, mapping and fill policy."""
    params: TransformParams = field(default_factory=TransformParams)
    mapping: Optional[List[str]] = None
    fill: FillPolicy = field(default_factory=FillPolicy)

    def to_dict(self) -> dict:
        return {
            "params": self.params.to_dict(),
            "mapping": list(self.mapping) if self.mapping is not None else list(DEFAULT_MAPPING),
            "fill": self.fill.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ArtypeConfig":
        mapping = d.get("mapping")
        if mapping is not None:
            mapping = [str(g) for g in mapping]
            if len(mapping) < MIN_LEVELS:
                raise ValueError(
                    f"Mapping needs at least {MIN_LEVELS} glyphs, got {len(mapping)}"
                )
        return cls(
            params=TransformParams.from_dict(d.get("params", {})),
            mapping=mapping,
            fill=FillPolicy.from_dict(d.get("fill", {})),
        )


def load_config(path: Path) -> ArtypeConfig:
    """Read an :class:`ArtypeConfig` from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    config = ArtypeConfig.from_dict(data)
    logger.debug("Loaded config from %s: %s", path, config)
    return config


def save_config(config: ArtypeConfig, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(config.to_dict(), fh, indent=2, ensure_ascii=False)
    logger.info("Config saved: %s", path)
    return path
