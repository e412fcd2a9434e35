"""
Editing session: owns the source image, parameters, mapping, grid and
custom cell edits, and routes every change through one recompute path.

Critical changes (image, transform parameters, mapping edits) regenerate
the whole grid. When custom cell edits exist the host is asked first;
if it declines, or a question is already pending, the change is rolled
back and the grid and edits stay exactly as they were.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

import numpy as np

from .config import CONFIRM_MESSAGE, ArtypeConfig, FillPolicy, TransformParams
from .converter import convert
from .geometry import as_rgba
from .grid import CharacterGrid
from .mapping import BLANK, MappingTable
from .overrides import ConfirmationGate, ConfirmPort, OverrideStore, always_confirm
from .render import render_image, render_text

logger = logging.getLogger(__name__)

Undo = Callable[[], None]


class RecomputeOutcome(str, Enum):
    APPLIED = "applied"        # grid regenerated
    DECLINED = "declined"      # host answered no; change rolled back
    DROPPED = "dropped"        # a confirmation was already pending
    NOT_READY = "not_ready"    # no image loaded yet; change kept
    UNCHANGED = "unchanged"    # the edit was a no-op


_REJECTED = (RecomputeOutcome.DECLINED, RecomputeOutcome.DROPPED)


class ArtypeSession:
    """Single owner of all conversion state.

    Args:
        confirm: Confirmation port asked before custom edits are discarded.
        params: Initial transform parameters.
        mapping: Initial glyph table (lightest first).
        fill: Blank-cell policy used by the renderer.
    """

    def __init__(
        self,
        confirm: ConfirmPort = always_confirm,
        params: Optional[TransformParams] = None,
        mapping: Optional[Iterable[str]] = None,
        fill: Optional[FillPolicy] = None,
    ) -> None:
        self.params = (params or TransformParams()).clamped()
        self.mapping = MappingTable(mapping)
        self.fill = fill or FillPolicy()
        self.overrides = OverrideStore()
        self.gate = ConfirmationGate(confirm)
        self.image: Optional[np.ndarray] = None
        self.grid: Optional[CharacterGrid] = None
        self.grid_params: Optional[TransformParams] = None

    @classmethod
    def from_config(cls, config: ArtypeConfig, confirm: ConfirmPort = always_confirm) -> "ArtypeSession":
        return cls(confirm=confirm, params=config.params, mapping=config.mapping, fill=config.fill)

    def to_config(self) -> ArtypeConfig:
        return ArtypeConfig(params=self.params, mapping=list(self.mapping), fill=self.fill)

    # ------------------------------ state ----------------------------------

    @property
    def ready(self) -> bool:
        return self.image is not None

    @property
    def has_overrides(self) -> bool:
        return bool(self.overrides)

    @property
    def grid_size(self) -> Tuple[int, int]:
        """``(columns, rows)`` of the current grid, ``(0, 0)`` before the first run."""
        if self.grid is None:
            return 0, 0
        return self.grid.columns, self.grid.rows

    def _require_grid(self) -> CharacterGrid:
        if self.grid is None:
            raise ValueError("No character grid yet; load an image first.")
        return self.grid

    # ----------------------------- recompute -------------------------------

    def _regenerate(self) -> RecomputeOutcome:
        self.grid = convert(self.image, self.params, self.mapping, self.overrides)
        self.grid_params = self.params
        cols, rows = self.grid_size
        logger.debug("Grid regenerated: %d x %d", cols, rows)
        return RecomputeOutcome.APPLIED

    def _precheck(self) -> Optional[RecomputeOutcome]:
        if self.gate.busy:
            logger.debug("Recompute requested while a confirmation is pending; dropped")
            return RecomputeOutcome.DROPPED
        if not self.ready:
            logger.debug("Recompute requested before an image was loaded")
            return RecomputeOutcome.NOT_READY
        return None

    def _settle(self, answer: Optional[bool]) -> Optional[RecomputeOutcome]:
        if answer is None:
            return RecomputeOutcome.DROPPED
        if not answer:
            logger.info("Recompute cancelled; %d custom edit(s) kept", len(self.overrides))
            return RecomputeOutcome.DECLINED
        self.overrides.clear()
        return None

    def request_recompute(self) -> RecomputeOutcome:
        """Regenerate the grid, asking first if custom edits would be lost."""
        outcome = self._precheck()
        if outcome is not None:
            return outcome
        if self.overrides:
            outcome = self._settle(self.gate.request(CONFIRM_MESSAGE))
            if outcome is not None:
                return outcome
        return self._regenerate()

    async def request_recompute_async(self) -> RecomputeOutcome:
        """Same as :meth:`request_recompute` for awaitable confirmation ports."""
        outcome = self._precheck()
        if outcome is not None:
            return outcome
        if self.overrides:
            outcome = self._settle(await self.gate.request_async(CONFIRM_MESSAGE))
            if outcome is not None:
                return outcome
        return self._regenerate()

    def _commit(self, undo: Optional[Undo]) -> RecomputeOutcome:
        if undo is None:
            return RecomputeOutcome.UNCHANGED
        try:
            outcome = self.request_recompute()
        except BaseException:
            undo()
            raise
        if outcome in _REJECTED:
            undo()
        return outcome

    async def _commit_async(self, undo: Optional[Undo]) -> RecomputeOutcome:
        if undo is None:
            return RecomputeOutcome.UNCHANGED
        try:
            outcome = await self.request_recompute_async()
        except BaseException:
            undo()
            raise
        if outcome in _REJECTED:
            undo()
        return outcome

    # ------------------------- staged critical edits -----------------------

    def _stage_image(self, image: np.ndarray) -> Undo:
        previous = self.image
        self.image = as_rgba(image)

        def undo() -> None:
            self.image = previous
        return undo

    def _stage_params(self, changes: dict) -> Undo:
        previous = self.params
        self.params = replace(previous, **changes).clamped()

        def undo() -> None:
            self.params = previous
        return undo

    def _stage_mapping(self, edit: Callable[[MappingTable], object]) -> Optional[Undo]:
        before = self.mapping.snapshot()
        if edit(self.mapping) is False:
            return None
        return lambda: self.mapping.restore(before)

    # ------------------------------ commands -------------------------------

    def load_image(self, image: np.ndarray) -> RecomputeOutcome:
        """Install a new source image (grayscale, RGB or RGBA array)."""
        return self._commit(self._stage_image(image))

    def update_params(self, **changes) -> RecomputeOutcome:
        """Change transform parameters, e.g. ``update_params(rotation=15)``."""
        return self._commit(self._stage_params(changes))

    def set_glyph(self, index: int, value: str) -> RecomputeOutcome:
        return self._commit(self._stage_mapping(lambda m: m.set_glyph(index, value)))

    def add_level(self, glyph: str = BLANK) -> RecomputeOutcome:
        return self._commit(self._stage_mapping(lambda m: m.add_level(glyph)))

    def remove_level(self) -> RecomputeOutcome:
        return self._commit(self._stage_mapping(lambda m: m.remove_level()))

    async def load_image_async(self, image: np.ndarray) -> RecomputeOutcome:
        return await self._commit_async(self._stage_image(image))

    async def update_params_async(self, **changes) -> RecomputeOutcome:
        return await self._commit_async(self._stage_params(changes))

    async def set_glyph_async(self, index: int, value: str) -> RecomputeOutcome:
        return await self._commit_async(self._stage_mapping(lambda m: m.set_glyph(index, value)))

    async def add_level_async(self, glyph: str = BLANK) -> RecomputeOutcome:
        return await self._commit_async(self._stage_mapping(lambda m: m.add_level(glyph)))

    async def remove_level_async(self) -> RecomputeOutcome:
        return await self._commit_async(self._stage_mapping(lambda m: m.remove_level()))

    def set_fill(self, fill_spaces: Optional[bool] = None, fill_char: Optional[str] = None) -> None:
        """Blank-cell policy only affects output, so no recompute is needed."""
        self.fill = FillPolicy(
            fill_spaces=self.fill.fill_spaces if fill_spaces is None else bool(fill_spaces),
            fill_char=self.fill.fill_char if fill_char is None else fill_char,
        )

    def reset_to_defaults(self) -> RecomputeOutcome:
        """Restore default parameters, mapping and fill, discarding custom edits.

        This is an explicit discard, so the host is not asked.
        """
        if self.gate.busy:
            logger.debug("Reset requested while a confirmation is pending; dropped")
            return RecomputeOutcome.DROPPED
        self.params = TransformParams()
        self.mapping = MappingTable()
        self.fill = FillPolicy()
        self.overrides.clear()
        if not self.ready:
            return RecomputeOutcome.NOT_READY
        return self._regenerate()

    def set_override(self, row: int, col: int, glyph: str) -> bool:
        """Bind a custom glyph to one cell. Does not recompute."""
        if self.grid is None or not self.grid.contains(row, col):
            logger.debug("Override at (%d, %d) is outside the grid; ignored", row, col)
            return False
        self.overrides.set(row, col, glyph)
        self.grid.set_cell(row, col, self.overrides.get(row, col))
        return True

    def cycle_glyph(self, row: int, col: int) -> Optional[str]:
        """Advance one cell to the next glyph in the table, wrapping around.

        The change lives only in the current grid and is lost on the next
        recompute. Returns the new glyph, or None outside the grid.
        """
        if self.grid is None or not self.grid.contains(row, col):
            logger.debug("Cycle at (%d, %d) is outside the grid; ignored", row, col)
            return None
        idx = self.mapping.index_of(self.grid.cell(row, col))
        if idx < 0:
            idx = 0
        idx = (idx + 1) % self.mapping.levels
        glyph = self.mapping.get(idx)
        self.grid.set_cell(row, col, glyph)
        return glyph

    # ------------------------------ output ---------------------------------

    def text(self, fill: Optional[FillPolicy] = None) -> str:
        return render_text(self._require_grid(), fill or self.fill)

    def image_output(self, fill: Optional[FillPolicy] = None) -> np.ndarray:
        """Raster of the current grid.

        Cell sizes come from the parameters the grid was built with, so a
        change still waiting on confirmation does not distort it.
        """
        grid = self._require_grid()
        return render_image(
            grid,
            self.grid_params.cell_width,
            self.grid_params.cell_height,
            fill or self.fill,
        )
