from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Final, Tuple


class Side(str, Enum):
    """The two players. Black (sente) moves first."""

    BLACK = "black"
    WHITE = "white"

    @property
    def opponent(self) -> "Side":
        return Side.WHITE if self is Side.BLACK else Side.BLACK


class PieceType(str, Enum):
    PAWN = "pawn"
    LANCE = "lance"
    KNIGHT = "knight"
    SILVER = "silver"
    GOLD = "gold"
    BISHOP = "bishop"
    ROOK = "rook"
    KING = "king"

    @property
    def promotable(self) -> bool:
        return self not in (PieceType.GOLD, PieceType.KING)


# Fixed order used for hands, position keys, and serialization
HAND_PIECE_TYPES: Final[Tuple[PieceType, ...]] = (
    PieceType.PAWN,
    PieceType.LANCE,
    PieceType.KNIGHT,
    PieceType.SILVER,
    PieceType.GOLD,
    PieceType.BISHOP,
    PieceType.ROOK,
)

PIECE_TO_USI: Final[Dict[PieceType, str]] = {
    PieceType.PAWN: "P",
    PieceType.LANCE: "L",
    PieceType.KNIGHT: "N",
    PieceType.SILVER: "S",
    PieceType.GOLD: "G",
    PieceType.BISHOP: "B",
    PieceType.ROOK: "R",
    PieceType.KING: "K",
}
USI_TO_PIECE: Final[Dict[str, PieceType]] = {v: k for k, v in PIECE_TO_USI.items()}


@dataclass(frozen=True)
class Piece:
    """A piece on the board.

    Promotion is a flag rather than a separate type so a captured piece maps
    straight back to its hand type.
    """

    side: Side
    type: PieceType
    promoted: bool = False

    def code(self) -> str:
        """Return a compact code such as ``"bP"`` or ``"w+R"``."""
        return ("b" if self.side is Side.BLACK else "w") + ("+" if self.promoted else "") + PIECE_TO_USI[self.type]

    def __str__(self) -> str:
        return self.code()
