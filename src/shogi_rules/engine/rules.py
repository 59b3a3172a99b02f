"""Legal move filtering and position transitions.

Three layers:

- ``apply_move_raw`` applies a move without any legality check.
- ``apply_move`` adds terminal-result evaluation (repetition, checkmate).
- ``try_apply_move`` is the validated entry point: it rejects malformed input
  and anything outside the freshly generated legal set, returning ``None``
  instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from itertools import chain
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..config import DEFAULT_LIMITS, Limits
from ..errors import InvariantViolation
from .attacks import is_in_check
from .move import BOARD_SIZE, BoardMove, DropMove, Move, MoveRecord
from .movegen import drop_moves, pseudo_moves
from .piece import HAND_PIECE_TYPES, Piece, PieceType, Side
from .position import PLAYING, REPETITION, GameResult, Hand, Position


logger = logging.getLogger(__name__)


def _place(position: Position, move: Move) -> Tuple[Tuple[Optional[Piece], ...], Dict[Side, Hand], MoveRecord]:
    """Compute board, hands and record after ``move`` without touching ``position``."""
    side = position.turn
    board = list(position.board)
    hands = dict(position.hands)

    if isinstance(move, DropMove):
        to_idx = move.to_sq[1] * BOARD_SIZE + move.to_sq[0]
        if hands[side][move.piece_type] <= 0:
            raise InvariantViolation(f"no {move.piece_type.value} in {side.value} hand")
        if board[to_idx] is not None:
            raise InvariantViolation(f"drop square occupied: {move.to_usi()}")
        hands[side] = hands[side].add(move.piece_type, -1)
        board[to_idx] = Piece(side, move.piece_type)
        return tuple(board), hands, MoveRecord(side, move, move.piece_type)

    from_idx = move.from_sq[1] * BOARD_SIZE + move.from_sq[0]
    to_idx = move.to_sq[1] * BOARD_SIZE + move.to_sq[0]
    piece = board[from_idx]
    if piece is None or piece.side is not side:
        raise InvariantViolation(f"no {side.value} piece on origin square: {move.to_usi()}")
    target = board[to_idx]
    captured: Optional[PieceType] = None
    if target is not None:
        if target.side is side:
            raise InvariantViolation(f"cannot capture own piece: {move.to_usi()}")
        # Kings are never held in hand
        if target.type is not PieceType.KING:
            captured = target.type
            hands[side] = hands[side].add(captured)
    board[from_idx] = None
    board[to_idx] = Piece(side, piece.type, piece.promoted or move.promote)
    return tuple(board), hands, MoveRecord(side, move, piece.type, captured)


def _advance(position: Position, move: Move, *, limits: Limits = DEFAULT_LIMITS, bookkeeping: bool = True) -> Position:
    board, hands, record = _place(position, move)
    if not bookkeeping:
        # Speculative child for legality probing: history and counts are shared
        return Position(
            board=board,
            hands=hands,
            turn=position.turn.opponent,
            move_number=position.move_number + 1,
            history=position.history,
            position_counts=position.position_counts,
            result=position.result,
        )

    history = position.history + (record,)
    if len(history) > limits.max_history:
        history = history[len(history) - limits.max_history :]
    counts = dict(position.position_counts)
    nxt = Position(
        board=board,
        hands=hands,
        turn=position.turn.opponent,
        move_number=position.move_number + 1,
        history=history,
        position_counts=counts,
        result=position.result,
    )
    # counts is private to nxt until returned
    counts[nxt.digest] = counts.get(nxt.digest, 0) + 1
    if len(counts) > limits.max_position_counts:
        _trim_counts(counts, limits.max_position_counts, keep=nxt.digest)
    return nxt


def _trim_counts(counts: Dict[str, int], cap: int, keep: str) -> None:
    """Drop the oldest entries until ``counts`` holds ``cap`` digests.

    Positions seen once go first; ``keep`` (the current position) never goes.
    """
    # sorted() is stable, so first-seen order holds within each group
    victims = sorted((d for d in counts if d != keep), key=lambda d: counts[d] > 1)
    for digest in victims[: len(counts) - cap]:
        del counts[digest]


def apply_move_raw(position: Position, move: Move, limits: Limits = DEFAULT_LIMITS) -> Position:
    """Apply ``move`` without checking legality or evaluating the result.

    Args:
        position (Position): Position before the move; left unchanged.
        move (Move): Board move or drop, assumed legal.
        limits (Limits): History cap.

    Returns:
        Position: New position with the turn flipped, move number advanced,
            history appended and the new position's occurrence counted. The
            result is carried over unchanged.

    Raises:
        InvariantViolation: If the hand slot is empty, the drop square is
            occupied, the origin does not hold a piece of the side to move, or
            the destination holds a friendly piece.
    """
    return _advance(position, move, limits=limits)


def _iter_legal(position: Position, skip_pawn_drop_mate_check: bool) -> Iterator[Move]:
    if position.result.is_terminal:
        return
    side = position.turn
    for candidate in chain(pseudo_moves(position, side), drop_moves(position, side)):
        child = _advance(position, candidate, bookkeeping=False)
        if is_in_check(child, side):
            continue
        if not skip_pawn_drop_mate_check and _is_pawn_drop_mate(child, candidate):
            continue
        yield candidate


def _is_pawn_drop_mate(child: Position, move: Move) -> bool:
    """True if ``move`` is a pawn drop that checks and leaves no legal reply."""
    if not isinstance(move, DropMove) or move.piece_type is not PieceType.PAWN:
        return False
    if not is_in_check(child, child.turn):
        return False
    return next(_iter_legal(child, True), None) is None


def _legal_moves(position: Position, skip_pawn_drop_mate_check: bool = False) -> List[Move]:
    return list(_iter_legal(position, skip_pawn_drop_mate_check))


def legal_moves(position: Position) -> List[Move]:
    """Return every legal move for the side to move.

    Board moves come first (promotion variants adjacent), then drops. Empty
    once the result is terminal.
    """
    return _legal_moves(position)


def evaluate_result(position: Position, limits: Limits = DEFAULT_LIMITS) -> GameResult:
    """Classify ``position`` as repetition, checkmate, or still playing.

    Repetition is checked first. Checkmate needs the side to move to be in
    check with no legal move; the pawn-drop mate filter is skipped here since
    it cannot create a reply.
    """
    if position.occurrences >= limits.repetition_threshold:
        return REPETITION
    current = replace(position, result=PLAYING) if position.result.is_terminal else position
    side = current.turn
    if next(_iter_legal(current, True), None) is None and is_in_check(current, side):
        return GameResult.checkmate(side.opponent)
    return PLAYING


def apply_move(position: Position, move: Move, limits: Limits = DEFAULT_LIMITS) -> Position:
    """Apply an already-validated ``move`` and evaluate the resulting result.

    Raises:
        InvariantViolation: See ``apply_move_raw``.
    """
    nxt = apply_move_raw(position, move, limits)
    result = evaluate_result(nxt, limits)
    if result.is_terminal:
        logger.info(
            "game over",
            extra={
                "status": result.status.value,
                "winner": result.winner.value if result.winner else None,
                "move_number": nxt.move_number,
            },
        )
    return replace(nxt, result=result)


def _is_valid_square(value: Any) -> bool:
    if not isinstance(value, tuple) or len(value) != 2:
        return False
    f, r = value
    # bool is an int subclass
    if type(f) is not int or type(r) is not int:
        return False
    return 0 <= f < BOARD_SIZE and 0 <= r < BOARD_SIZE


def is_valid_move_input(move: Any) -> bool:
    """Return True if ``move`` is structurally well formed. Never raises."""
    if isinstance(move, BoardMove):
        return _is_valid_square(move.from_sq) and _is_valid_square(move.to_sq) and isinstance(move.promote, bool)
    if isinstance(move, DropMove):
        return (
            isinstance(move.piece_type, PieceType)
            and move.piece_type in HAND_PIECE_TYPES
            and _is_valid_square(move.to_sq)
        )
    return False


def try_apply_move(position: Position, move: Any, limits: Limits = DEFAULT_LIMITS) -> Optional[Position]:
    """Validate a caller-supplied move and apply it.

    Args:
        position (Position): Current position; never modified.
        move (Any): Untrusted move intent.
        limits (Limits): Limits for the transition.

    Returns:
        Optional[Position]: The next position, or ``None`` if ``move`` is
            malformed or not legal here.
    """
    if not is_valid_move_input(move):
        logger.debug("rejected malformed move", extra={"move": repr(move)})
        return None
    for candidate in legal_moves(position):
        if candidate == move:
            return apply_move(position, candidate, limits)
    logger.debug("rejected illegal move", extra={"move": move.to_usi(), "move_number": position.move_number})
    return None
