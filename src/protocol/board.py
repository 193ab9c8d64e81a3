"""The 3x3 board as stored in the game account"""

from dataclasses import dataclass
from typing import Self

from src.core.shared_types import Tile

BOARD_SIZE = 3

TILE_SYMBOLS: dict[Tile, str] = {
    Tile.EMPTY: " ",
    Tile.MARK_A: "x",
    Tile.MARK_B: "o",
}

# Creator (slot 0) places MARK_A, acceptor (slot 1) places MARK_B
SLOT_MARKS: tuple[Tile, Tile] = (Tile.MARK_A, Tile.MARK_B)

WINNING_LINES: tuple[tuple[tuple[int, int], ...], ...] = (
    *(tuple((row, col) for col in range(BOARD_SIZE)) for row in range(BOARD_SIZE)),
    *(tuple((row, col) for row in range(BOARD_SIZE)) for col in range(BOARD_SIZE)),
    tuple((i, i) for i in range(BOARD_SIZE)),
    tuple((i, BOARD_SIZE - 1 - i) for i in range(BOARD_SIZE)),
)


@dataclass(frozen=True)
class Board:
    tiles: tuple[tuple[Tile, ...], ...]

    @classmethod
    def empty(cls) -> Self:
        return cls(tuple(tuple(Tile.EMPTY for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE)))

    @classmethod
    def from_rows(cls, rows: list[list[Tile]]) -> Self:
        if len(rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in rows):
            raise ValueError(f"Board must be {BOARD_SIZE}x{BOARD_SIZE}")
        return cls(tuple(tuple(Tile(tile) for tile in row) for row in rows))

    def tile(self, row: int, col: int) -> Tile:
        return self.tiles[row][col]

    def is_empty_at(self, row: int, col: int) -> bool:
        return self.tile(row, col) == Tile.EMPTY

    def with_mark(self, row: int, col: int, mark: Tile) -> Self:
        """Copy of the board with one more mark (boards are immutable, as the tiles on the ledger are)"""
        rows = [list(r) for r in self.tiles]
        rows[row][col] = mark
        return self.from_rows(rows)

    def empty_tiles(self) -> list[tuple[int, int]]:
        return [
            (row, col)
            for row in range(BOARD_SIZE)
            for col in range(BOARD_SIZE)
            if self.is_empty_at(row, col)
        ]

    def has_line(self, mark: Tile) -> bool:
        """Three of `mark` in a row, column or diagonal"""
        return any(all(self.tile(r, c) == mark for r, c in line) for line in WINNING_LINES)

    def symbols(self) -> list[list[str]]:
        """Display form, used by the game listings and by whoever renders the board"""
        return [[TILE_SYMBOLS[tile] for tile in row] for row in self.tiles]

    def render(self) -> str:
        separator = "\n" + "+".join(["---"] * BOARD_SIZE) + "\n"
        return separator.join(
            "|".join(f" {symbol} " for symbol in row) for row in self.symbols()
        )
