from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .move import BOARD_SIZE, NUM_SQUARES, MoveRecord, Square, square_from_index
from .piece import HAND_PIECE_TYPES, Piece, PieceType, Side
from .position_key import position_digest, position_key


_HAND_INDEX: Dict[PieceType, int] = {t: i for i, t in enumerate(HAND_PIECE_TYPES)}

# Back rank seen from black, file 0 first
_BACK_RANK = (
    PieceType.LANCE,
    PieceType.KNIGHT,
    PieceType.SILVER,
    PieceType.GOLD,
    PieceType.KING,
    PieceType.GOLD,
    PieceType.SILVER,
    PieceType.KNIGHT,
    PieceType.LANCE,
)


@dataclass(frozen=True)
class Hand:
    """Captured pieces available for dropping, one count per hand type."""

    counts: Tuple[int, ...] = (0,) * len(HAND_PIECE_TYPES)

    @classmethod
    def from_mapping(cls, counts: Mapping[PieceType, int]) -> "Hand":
        return cls(tuple(int(counts.get(t, 0)) for t in HAND_PIECE_TYPES))

    def __getitem__(self, piece_type: PieceType) -> int:
        return self.counts[_HAND_INDEX[piece_type]]

    def add(self, piece_type: PieceType, delta: int = 1) -> "Hand":
        """Return a new hand with ``delta`` added to ``piece_type``."""
        idx = _HAND_INDEX[piece_type]
        counts = list(self.counts)
        counts[idx] += delta
        return Hand(tuple(counts))

    def items(self) -> Iterator[Tuple[PieceType, int]]:
        return zip(HAND_PIECE_TYPES, self.counts)

    def total(self) -> int:
        return sum(self.counts)


class Status(str, Enum):
    PLAYING = "playing"
    CHECKMATE = "checkmate"
    REPETITION = "repetition"


@dataclass(frozen=True)
class GameResult:
    status: Status = Status.PLAYING
    winner: Optional[Side] = None

    @classmethod
    def checkmate(cls, winner: Side) -> "GameResult":
        return cls(Status.CHECKMATE, winner)

    @property
    def is_terminal(self) -> bool:
        return self.status is not Status.PLAYING


PLAYING = GameResult()
REPETITION = GameResult(Status.REPETITION)


@dataclass(frozen=True)
class Position:
    """A complete game state.

    Positions are values: transitions return new instances and never modify
    an existing one. ``hands`` and ``position_counts`` are plain dicts for
    cheap copying; treat them as read-only.

    Attributes:
        board (Tuple[Optional[Piece], ...]): 81 squares, row-major
            (index = rank * 9 + file).
        hands (Dict[Side, Hand]): Captured pieces per side.
        turn (Side): Side to move.
        move_number (int): 1 for the initial position, +1 per move.
        history (Tuple[MoveRecord, ...]): Applied moves, oldest first, capped.
        position_counts (Dict[str, int]): Occurrences per position digest, in
            first-seen order, capped.
        result (GameResult): Playing, checkmate, or repetition.
    """

    board: Tuple[Optional[Piece], ...]
    hands: Dict[Side, Hand]
    turn: Side = Side.BLACK
    move_number: int = 1
    history: Tuple[MoveRecord, ...] = ()
    position_counts: Dict[str, int] = field(default_factory=dict)
    result: GameResult = PLAYING

    @classmethod
    def initial(cls) -> "Position":
        """Create the standard starting position."""
        board: list[Optional[Piece]] = [None] * NUM_SQUARES
        for f, kind in enumerate(_BACK_RANK):
            board[f] = Piece(Side.WHITE, kind)
            board[8 * BOARD_SIZE + f] = Piece(Side.BLACK, kind)
        for f in range(BOARD_SIZE):
            board[2 * BOARD_SIZE + f] = Piece(Side.WHITE, PieceType.PAWN)
            board[6 * BOARD_SIZE + f] = Piece(Side.BLACK, PieceType.PAWN)
        board[1 * BOARD_SIZE + 1] = Piece(Side.WHITE, PieceType.ROOK)
        board[1 * BOARD_SIZE + 7] = Piece(Side.WHITE, PieceType.BISHOP)
        board[7 * BOARD_SIZE + 1] = Piece(Side.BLACK, PieceType.BISHOP)
        board[7 * BOARD_SIZE + 7] = Piece(Side.BLACK, PieceType.ROOK)
        return cls.seeded(tuple(board), {Side.BLACK: Hand(), Side.WHITE: Hand()}, Side.BLACK)

    @classmethod
    def setup(
        cls,
        pieces: Mapping[Tuple[int, int], Piece],
        *,
        turn: Side = Side.BLACK,
        hands: Optional[Mapping[Side, Mapping[PieceType, int]]] = None,
    ) -> "Position":
        """Build a position from a sparse square → piece mapping.

        Args:
            pieces: Occupied squares as ``(file, rank)`` pairs.
            turn: Side to move.
            hands: Optional hand counts per side.

        Returns:
            Position: Fresh position with its own key counted once.

        Raises:
            ValueError: If a square lies outside the board.
        """
        board: list[Optional[Piece]] = [None] * NUM_SQUARES
        for (f, r), piece in pieces.items():
            if not (0 <= f < BOARD_SIZE and 0 <= r < BOARD_SIZE):
                raise ValueError(f"square outside board: {(f, r)!r}")
            board[r * BOARD_SIZE + f] = piece
        hands = hands or {}
        built = {s: Hand.from_mapping(hands.get(s, {})) for s in (Side.BLACK, Side.WHITE)}
        return cls.seeded(tuple(board), built, turn)

    @classmethod
    def seeded(cls, board: Tuple[Optional[Piece], ...], hands: Dict[Side, Hand], turn: Side) -> "Position":
        pos = cls(board=board, hands=hands, turn=turn)
        # Seed repetition with the starting position
        return replace(pos, position_counts={pos.digest: 1})

    @cached_property
    def key(self) -> str:
        return position_key(self)

    @cached_property
    def digest(self) -> str:
        """Short fixed-length form of ``key`` used to count occurrences."""
        return position_digest(self.key)

    def piece_at(self, sq: Tuple[int, int]) -> Optional[Piece]:
        f, r = sq
        return self.board[r * BOARD_SIZE + f]

    def hand(self, side: Side) -> Hand:
        return self.hands[side]

    def pieces(self, side: Optional[Side] = None) -> Iterator[Tuple[Square, Piece]]:
        """Yield occupied squares, optionally only those of ``side``."""
        for idx, piece in enumerate(self.board):
            if piece is not None and (side is None or piece.side is side):
                yield square_from_index(idx), piece

    @property
    def occurrences(self) -> int:
        return self.position_counts.get(self.digest, 0)
