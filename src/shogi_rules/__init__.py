"""Shogi rules engine."""

from .config import DEFAULT_LIMITS, Limits
from .engine.game import Game
from .engine.move import BoardMove, DropMove, Move, MoveRecord, Square, parse_usi
from .engine.piece import HAND_PIECE_TYPES, Piece, PieceType, Side
from .engine.position import GameResult, Hand, Position, Status
from .engine.rules import apply_move, legal_moves, try_apply_move
from .errors import InvariantViolation, ShogiError

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_LIMITS",
    "Limits",
    "Game",
    "BoardMove",
    "DropMove",
    "Move",
    "MoveRecord",
    "Square",
    "parse_usi",
    "HAND_PIECE_TYPES",
    "Piece",
    "PieceType",
    "Side",
    "GameResult",
    "Hand",
    "Position",
    "Status",
    "apply_move",
    "legal_moves",
    "try_apply_move",
    "InvariantViolation",
    "ShogiError",
]
