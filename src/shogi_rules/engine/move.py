from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple, Union

from .piece import HAND_PIECE_TYPES, PIECE_TO_USI, USI_TO_PIECE, PieceType, Side


BOARD_SIZE = 9
NUM_SQUARES = BOARD_SIZE * BOARD_SIZE

RANK_LETTERS = "abcdefghi"


class Square(NamedTuple):
    """Board coordinate.

    Attributes:
        file (int): Stored column, 0 (leftmost) .. 8. Displayed as ``9 - file``.
        rank (int): Stored row, 0 (white's back rank) .. 8 (black's back rank).
    """

    file: int
    rank: int

    @property
    def index(self) -> int:
        return self.rank * BOARD_SIZE + self.file

    def to_usi(self) -> str:
        """Serialize the square in USI form, e.g. ``"7g"``."""
        return square_to_usi(self)


def in_bounds(file: int, rank: int) -> bool:
    return 0 <= file < BOARD_SIZE and 0 <= rank < BOARD_SIZE


def square_from_index(idx: int) -> Square:
    """Convert a row-major index into a ``Square``.

    Args:
        idx (int): Square index in range 0..80.

    Returns:
        Square: Coordinate for ``idx``.

    Raises:
        ValueError: If ``idx`` is outside the board.
    """
    if idx < 0 or idx >= NUM_SQUARES:
        raise ValueError(f"invalid square index: {idx}")
    return Square(idx % BOARD_SIZE, idx // BOARD_SIZE)


def square_to_usi(sq: Tuple[int, int]) -> str:
    f, r = sq
    return str(BOARD_SIZE - f) + RANK_LETTERS[r]


def square_from_usi(s: str) -> Square:
    """Parse a USI square such as ``"5e"``.

    Raises:
        ValueError: If ``s`` is not a valid square.
    """
    if len(s) != 2 or s[0] < "1" or s[0] > "9" or s[1] not in RANK_LETTERS:
        raise ValueError(f"invalid square: {s!r}")
    return Square(BOARD_SIZE - int(s[0]), RANK_LETTERS.index(s[1]))


@dataclass(frozen=True)
class BoardMove:
    """Move of a piece already on the board.

    Attributes:
        from_sq (Square): Origin square.
        to_sq (Square): Destination square.
        promote (bool): Whether the piece promotes on arrival.
    """

    from_sq: Square
    to_sq: Square
    promote: bool = False

    def to_usi(self) -> str:
        return square_to_usi(self.from_sq) + square_to_usi(self.to_sq) + ("+" if self.promote else "")


@dataclass(frozen=True)
class DropMove:
    """Placement of a hand piece on an empty square."""

    piece_type: PieceType
    to_sq: Square

    def to_usi(self) -> str:
        return PIECE_TO_USI[self.piece_type] + "*" + square_to_usi(self.to_sq)


Move = Union[BoardMove, DropMove]


@dataclass(frozen=True)
class MoveRecord:
    """Append-only log entry for one applied move."""

    side: Side
    move: Move
    piece_type: PieceType
    captured: Optional[PieceType] = None


def parse_usi(usi: str) -> Move:
    """Parse a single USI move string.

    Args:
        usi (str): Move such as ``"7g7f"``, ``"8h2b+"``, or ``"P*5e"``.

    Returns:
        Move: Parsed board move or drop.

    Raises:
        ValueError: If the string is malformed or names a non-droppable piece.
    """
    if len(usi) == 4 and usi[1] == "*":
        piece = USI_TO_PIECE.get(usi[0])
        if piece is None or piece not in HAND_PIECE_TYPES:
            raise ValueError(f"invalid drop piece: {usi[0]!r}")
        return DropMove(piece, square_from_usi(usi[2:4]))
    if len(usi) not in (4, 5):
        raise ValueError(f"invalid USI move length: {usi!r}")
    promote = False
    if len(usi) == 5:
        if usi[4] != "+":
            raise ValueError(f"invalid promotion marker: {usi[4]!r}")
        promote = True
    return BoardMove(square_from_usi(usi[0:2]), square_from_usi(usi[2:4]), promote)
