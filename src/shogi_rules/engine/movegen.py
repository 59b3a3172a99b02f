"""Pseudo-legal move generation.

Piece movement is a table keyed by ``(PieceType, promoted)``. Deltas are
``(d_file, d_rank)`` in black's frame, where forward is ``rank - 1``; white
uses the same table rotated by 180 degrees. Nothing here looks at checks.
"""

from __future__ import annotations

from typing import Dict, Final, List, NamedTuple, Tuple

from .move import BOARD_SIZE, BoardMove, DropMove, Square, in_bounds
from .piece import HAND_PIECE_TYPES, Piece, PieceType, Side
from .position import Position


Delta = Tuple[int, int]


class Movement(NamedTuple):
    steps: Tuple[Delta, ...]
    slides: Tuple[Delta, ...]


ORTHOGONAL: Final = ((0, -1), (-1, 0), (1, 0), (0, 1))
DIAGONAL: Final = ((-1, -1), (1, -1), (-1, 1), (1, 1))
GOLD_STEPS: Final = ((-1, -1), (0, -1), (1, -1), (-1, 0), (1, 0), (0, 1))
KING_STEPS: Final = DIAGONAL + ORTHOGONAL

_GOLD = Movement(GOLD_STEPS, ())
_KING = Movement(KING_STEPS, ())

MOVEMENT: Final[Dict[Tuple[PieceType, bool], Movement]] = {
    (PieceType.PAWN, False): Movement(((0, -1),), ()),
    (PieceType.LANCE, False): Movement((), ((0, -1),)),
    (PieceType.KNIGHT, False): Movement(((-1, -2), (1, -2)), ()),
    (PieceType.SILVER, False): Movement(((-1, -1), (0, -1), (1, -1), (-1, 1), (1, 1)), ()),
    (PieceType.GOLD, False): _GOLD,
    (PieceType.BISHOP, False): Movement((), DIAGONAL),
    (PieceType.ROOK, False): Movement((), ORTHOGONAL),
    (PieceType.KING, False): _KING,
    (PieceType.PAWN, True): _GOLD,
    (PieceType.LANCE, True): _GOLD,
    (PieceType.KNIGHT, True): _GOLD,
    (PieceType.SILVER, True): _GOLD,
    (PieceType.BISHOP, True): Movement(ORTHOGONAL, DIAGONAL),
    (PieceType.ROOK, True): Movement(DIAGONAL, ORTHOGONAL),
    # Gold and king never promote; a stray flag leaves them unchanged
    (PieceType.GOLD, True): _GOLD,
    (PieceType.KING, True): _KING,
}


def _orient(shape: Movement, side: Side) -> Movement:
    if side is Side.BLACK:
        return shape
    return Movement(
        tuple((-df, -dr) for df, dr in shape.steps),
        tuple((-df, -dr) for df, dr in shape.slides),
    )


ORIENTED: Final[Dict[Tuple[Side, PieceType, bool], Movement]] = {
    (side, kind, promoted): _orient(shape, side)
    for (kind, promoted), shape in MOVEMENT.items()
    for side in (Side.BLACK, Side.WHITE)
}


def movement_for(piece: Piece) -> Movement:
    """Return the movement of ``piece`` oriented for its side."""
    return ORIENTED[(piece.side, piece.type, piece.promoted)]


def distance_to_far_rank(side: Side, rank: int) -> int:
    """Ranks between ``rank`` and the far end of the board as seen by ``side``."""
    return rank if side is Side.BLACK else BOARD_SIZE - 1 - rank


def in_promotion_zone(side: Side, rank: int) -> bool:
    return distance_to_far_rank(side, rank) <= 2


def is_dead_end(side: Side, piece_type: PieceType, rank: int) -> bool:
    """True if an unpromoted piece on ``rank`` could never move again.

    Pawn and lance are stuck on the farthest rank, the knight on the two
    farthest. Used both for mandatory promotion and for drop restrictions.
    """
    distance = distance_to_far_rank(side, rank)
    if piece_type in (PieceType.PAWN, PieceType.LANCE):
        return distance == 0
    if piece_type is PieceType.KNIGHT:
        return distance <= 1
    return False


def expand_promotions(piece: Piece, from_sq: Square, to_sq: Square) -> List[BoardMove]:
    """Return the promote/no-promote variants of one piece step."""
    if not piece.type.promotable or piece.promoted:
        return [BoardMove(from_sq, to_sq, False)]
    if not (in_promotion_zone(piece.side, from_sq.rank) or in_promotion_zone(piece.side, to_sq.rank)):
        return [BoardMove(from_sq, to_sq, False)]
    if is_dead_end(piece.side, piece.type, to_sq.rank):
        return [BoardMove(from_sq, to_sq, True)]
    return [BoardMove(from_sq, to_sq, False), BoardMove(from_sq, to_sq, True)]


def pseudo_moves_from(position: Position, from_sq: Tuple[int, int]) -> List[BoardMove]:
    """Return pseudo-legal moves of the piece on ``from_sq``.

    Args:
        position (Position): Position to inspect.
        from_sq (Tuple[int, int]): Origin square.

    Returns:
        List[BoardMove]: Moves ignoring checks, promotion variants expanded.
            Empty when the square is empty.
    """
    board = position.board
    f, r = from_sq
    piece = board[r * BOARD_SIZE + f]
    if piece is None:
        return []
    origin = Square(f, r)
    shape = movement_for(piece)
    moves: List[BoardMove] = []

    for df, dr in shape.steps:
        tf, tr = f + df, r + dr
        if not in_bounds(tf, tr):
            continue
        target = board[tr * BOARD_SIZE + tf]
        if target is not None and target.side is piece.side:
            continue
        moves.extend(expand_promotions(piece, origin, Square(tf, tr)))

    for df, dr in shape.slides:
        tf, tr = f + df, r + dr
        while in_bounds(tf, tr):
            target = board[tr * BOARD_SIZE + tf]
            if target is not None and target.side is piece.side:
                break
            moves.extend(expand_promotions(piece, origin, Square(tf, tr)))
            if target is not None:
                break
            tf += df
            tr += dr

    return moves


def pseudo_moves(position: Position, side: Side) -> List[BoardMove]:
    """Return pseudo-legal board moves for every piece of ``side``."""
    moves: List[BoardMove] = []
    for sq, _ in position.pieces(side):
        moves.extend(pseudo_moves_from(position, sq))
    return moves


def has_unpromoted_pawn_on_file(position: Position, side: Side, file: int) -> bool:
    board = position.board
    for r in range(BOARD_SIZE):
        p = board[r * BOARD_SIZE + file]
        if p is not None and p.side is side and p.type is PieceType.PAWN and not p.promoted:
            return True
    return False


def drop_moves(position: Position, side: Side) -> List[DropMove]:
    """Return drops of ``side``'s hand pieces onto empty squares.

    Excludes drops onto a rank the piece could never leave and pawn drops onto
    a file already holding an unpromoted pawn of ``side`` (nifu). Checks and
    pawn-drop mate are left to the legal filter.
    """
    hand = position.hand(side)
    board = position.board
    drops: List[DropMove] = []
    pawn_files = [has_unpromoted_pawn_on_file(position, side, f) for f in range(BOARD_SIZE)]
    for kind in HAND_PIECE_TYPES:
        if hand[kind] <= 0:
            continue
        for r in range(BOARD_SIZE):
            if is_dead_end(side, kind, r):
                continue
            for f in range(BOARD_SIZE):
                if board[r * BOARD_SIZE + f] is not None:
                    continue
                if kind is PieceType.PAWN and pawn_files[f]:
                    continue
                drops.append(DropMove(kind, Square(f, r)))
    return drops
