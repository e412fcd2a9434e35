"""Per-cell glyph overrides and the confirmation gate that protects them.

Overrides are hand edits bound to one grid cell. They are kept in a sparse
store and laid over the regenerated grid. Before a recompute would wipe
them, the gate asks the host a yes/no question through a confirmation
port: any callable ``confirm(message) -> bool``, or one returning an
awaitable for async hosts. Only one question is ever outstanding.
"""

import inspect
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Iterator, Optional, Tuple, Union

from .grid import CharacterGrid

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]
ConfirmPort = Callable[[str], Union[bool, Awaitable[bool]]]


class OverrideStore:
    """Sparse (row, col) -> glyph mapping."""

    def __init__(self) -> None:
        self._entries: Dict[Cell, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, cell: Cell) -> bool:
        return cell in self._entries

    def __iter__(self) -> Iterator[Tuple[Cell, str]]:
        return iter(sorted(self._entries.items()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverrideStore):
            return NotImplemented
        return self._entries == other._entries

    def get(self, row: int, col: int) -> Optional[str]:
        return self._entries.get((row, col))

    def set(self, row: int, col: int, glyph: str) -> None:
        self._entries[(row, col)] = glyph or " "

    def clear(self) -> None:
        if self._entries:
            logger.debug("Clearing %d custom cell edit(s)", len(self._entries))
        self._entries.clear()

    def copy(self) -> "OverrideStore":
        clone = OverrideStore()
        clone._entries = dict(self._entries)
        return clone

    def apply(self, grid: CharacterGrid) -> CharacterGrid:
        """Return a copy of ``grid`` with every override laid on top.

        Entries outside the grid's bounds are skipped.
        """
        out = grid.copy()
        for (row, col), glyph in self._entries.items():
            if out.contains(row, col):
                out.set_cell(row, col, glyph)
        return out


class ConfirmationState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting_confirmation"


class ConfirmationGate:
    """Single-slot, non-reentrant yes/no prompt.

    :meth:`request` returns ``True``/``False`` for the host's answer, or
    ``None`` when a question is already outstanding and the new request
    was dropped.
    """

    def __init__(self, confirm: ConfirmPort) -> None:
        self.confirm = confirm
        self.state = ConfirmationState.IDLE

    @property
    def busy(self) -> bool:
        return self.state is ConfirmationState.AWAITING

    def request(self, message: str) -> Optional[bool]:
        if self.busy:
            logger.debug("Confirmation already pending; request dropped")
            return None
        self.state = ConfirmationState.AWAITING
        try:
            answer = self.confirm(message)
            if inspect.isawaitable(answer):
                if inspect.iscoroutine(answer):
                    answer.close()
                raise TypeError(
                    "Confirmation port returned an awaitable; use the async request path"
                )
            return bool(answer)
        finally:
            self.state = ConfirmationState.IDLE

    async def request_async(self, message: str) -> Optional[bool]:
        if self.busy:
            logger.debug("Confirmation already pending; request dropped")
            return None
        self.state = ConfirmationState.AWAITING
        try:
            answer = self.confirm(message)
            if inspect.isawaitable(answer):
                answer = await answer
            return bool(answer)
        finally:
            self.state = ConfirmationState.IDLE


class StaticConfirm:
    """Confirmation port that always gives the same answer and records prompts."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.messages = []

    def __call__(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


def always_confirm(message: str) -> bool:
    return True
