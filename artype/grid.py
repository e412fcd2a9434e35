"""The character grid produced by a conversion."""

from typing import Iterable, Iterator, List, Sequence


class CharacterGrid:
    """Row-major matrix of glyph strings."""

    def __init__(self, cells: Iterable[Sequence[str]]) -> None:
        self._cells: List[List[str]] = [list(row) for row in cells]
        widths = {len(row) for row in self._cells}
        if len(widths) > 1:
            raise ValueError(f"Ragged grid rows: widths {sorted(widths)}")

    @classmethod
    def blank(cls, rows: int, columns: int, glyph: str = " ") -> "CharacterGrid":
        return cls([[glyph] * columns for _ in range(rows)])

    @property
    def rows(self) -> int:
        return len(self._cells)

    @property
    def columns(self) -> int:
        return len(self._cells[0]) if self._cells else 0

    @property
    def shape(self):
        return self.rows, self.columns

    def contains(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.columns

    def cell(self, row: int, col: int) -> str:
        return self._cells[row][col]

    def set_cell(self, row: int, col: int, glyph: str) -> None:
        self._cells[row][col] = glyph

    def __iter__(self) -> Iterator[List[str]]:
        return (list(row) for row in self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CharacterGrid):
            return NotImplemented
        return self._cells == other._cells

    def __repr__(self) -> str:
        return f"CharacterGrid(rows={self.rows}, columns={self.columns})"

    def copy(self) -> "CharacterGrid":
        return CharacterGrid(self._cells)

    def lines(self) -> List[str]:
        return ["".join(row) for row in self._cells]

    def to_list(self) -> List[List[str]]:
        return [list(row) for row in self._cells]
