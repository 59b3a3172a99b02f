from __future__ import annotations

from typing import Dict, Final, Optional, Tuple

from .move import BOARD_SIZE, Square, in_bounds, square_from_index
from .movegen import KING_STEPS, ORIENTED, movement_for
from .piece import PieceType, Side
from .position import Position


# Every step delta any piece of a side can make
_STEP_UNION: Final[Dict[Side, Tuple[Tuple[int, int], ...]]] = {
    side: tuple(sorted({d for (s, _, _), shape in ORIENTED.items() if s is side for d in shape.steps}))
    for side in (Side.BLACK, Side.WHITE)
}


def find_king(position: Position, side: Side) -> Optional[Square]:
    for idx, piece in enumerate(position.board):
        if piece is not None and piece.side is side and piece.type is PieceType.KING:
            return square_from_index(idx)
    return None


def is_square_attacked(position: Position, target: Tuple[int, int], attacker: Side) -> bool:
    """Return True if a piece of ``attacker`` has a pseudo-legal move to ``target``.

    Scans outward from ``target`` instead of generating every attacker move:
    a step attack needs the piece one delta away to own that delta, a slide
    attack needs the first piece along a ray to own that slide direction. A
    square held by ``attacker`` itself is never a destination, so it is never
    attacked.
    """
    board = position.board
    tf, tr = target
    occupant = board[tr * BOARD_SIZE + tf]
    if occupant is not None and occupant.side is attacker:
        return False

    for df, dr in _STEP_UNION[attacker]:
        sf, sr = tf - df, tr - dr
        if not in_bounds(sf, sr):
            continue
        piece = board[sr * BOARD_SIZE + sf]
        if piece is not None and piece.side is attacker and (df, dr) in movement_for(piece).steps:
            return True

    for df, dr in KING_STEPS:
        sf, sr = tf - df, tr - dr
        while in_bounds(sf, sr):
            piece = board[sr * BOARD_SIZE + sf]
            if piece is not None:
                if piece.side is attacker and (df, dr) in movement_for(piece).slides:
                    return True
                break
            sf -= df
            sr -= dr
    return False


def is_in_check(position: Position, side: Side) -> bool:
    """Return True if ``side``'s king is attacked.

    A missing king counts as check: such a position is already lost or
    invalid and must never look safe.
    """
    king = find_king(position, side)
    if king is None:
        return True
    return is_square_attacked(position, king, side.opponent)
