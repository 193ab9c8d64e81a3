"""
Checks on a local move before a play instruction is built.

The program enforces the rules itself; this only avoids paying for transactions that are bound to fail.
"""

from src.core.exceptions import MalformedInputError, OutOfBoundsError, TileOccupiedError
from src.protocol.board import BOARD_SIZE, Board

# NOTE: older clients only rejected indices above 3. The board holds indices 0-2, so anything
# above 2 is rejected here until the program's accepted range has been confirmed.
MAX_INDEX = BOARD_SIZE - 1


def parse_move(line: str) -> tuple[int, int]:
    """'<row> <col>' -> (row, col). Only checks the shape of the input, not the bounds."""
    tokens = line.split()
    if len(tokens) != 2:
        raise MalformedInputError(
            f"Expected a row and a column separated by a space, got {line!r}"
        )
    try:
        row, col = (int(token) for token in tokens)
    except ValueError:
        raise MalformedInputError(f"Row and column must be integers, got {line!r}") from None
    return row, col


def validate_move(board: Board, row: int, col: int) -> None:
    """Raise when the move must not be sent; return nothing when it may."""
    if not (0 <= row <= MAX_INDEX and 0 <= col <= MAX_INDEX):
        raise OutOfBoundsError(
            f"Row and column must be between 0 and {MAX_INDEX}, got ({row}, {col})"
        )
    if not board.is_empty_at(row, col):
        raise TileOccupiedError(f"Tile ({row}, {col}) is already marked")


def read_move(board: Board, line: str) -> tuple[int, int]:
    """Parse + validate in one go."""
    row, col = parse_move(line)
    validate_move(board, row, col)
    return row, col
