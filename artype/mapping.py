"""Ordered level -> glyph table."""

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from .config import DEFAULT_MAPPING, MIN_LEVELS

logger = logging.getLogger(__name__)

BLANK = " "


class MappingTable:
    """Mutable glyph table, index 0 = lightest, ``levels - 1`` = darkest.

    The table length is the level count. It never drops below
    ``MIN_LEVELS``: removing a level at the floor does nothing.
    """

    def __init__(self, glyphs: Optional[Iterable[str]] = None) -> None:
        glyphs = list(DEFAULT_MAPPING if glyphs is None else glyphs)
        if len(glyphs) < MIN_LEVELS:
            raise ValueError(f"Mapping needs at least {MIN_LEVELS} glyphs, got {len(glyphs)}")
        self._glyphs: List[str] = [g or BLANK for g in glyphs]

    @property
    def levels(self) -> int:
        return len(self._glyphs)

    def __len__(self) -> int:
        return len(self._glyphs)

    def __iter__(self) -> Iterator[str]:
        return iter(self._glyphs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MappingTable):
            return NotImplemented
        return self._glyphs == other._glyphs

    def __repr__(self) -> str:
        return f"MappingTable({self._glyphs!r})"

    def get(self, level: int) -> str:
        """Glyph for ``level``; a space when the level has nothing assigned."""
        if 0 <= level < len(self._glyphs):
            return self._glyphs[level] or BLANK
        return BLANK

    def index_of(self, glyph: str) -> int:
        """First index holding ``glyph``, or -1."""
        try:
            return self._glyphs.index(glyph)
        except ValueError:
            return -1

    def set_glyph(self, index: int, value: str) -> None:
        if not 0 <= index < len(self._glyphs):
            raise IndexError(f"Level {index} out of range (0..{len(self._glyphs) - 1})")
        self._glyphs[index] = value or BLANK

    def add_level(self, glyph: str = BLANK) -> None:
        self._glyphs.append(glyph or BLANK)

    def remove_level(self) -> bool:
        """Drop the darkest level. Returns False when already at the floor."""
        if len(self._glyphs) <= MIN_LEVELS:
            logger.debug("Mapping already at %d levels; nothing removed", MIN_LEVELS)
            return False
        self._glyphs.pop()
        return True

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(self._glyphs)

    def restore(self, glyphs: Iterable[str]) -> None:
        """Replace the whole table, e.g. with an earlier :meth:`snapshot`."""
        glyphs = list(glyphs)
        if len(glyphs) < MIN_LEVELS:
            raise ValueError(f"Mapping needs at least {MIN_LEVELS} glyphs, got {len(glyphs)}")
        self._glyphs = [g or BLANK for g in glyphs]
