from __future__ import annotations

import random

import pytest

from shogi_rules.config import Limits
from shogi_rules.engine.attacks import is_in_check
from shogi_rules.engine.move import BoardMove, DropMove, Square
from shogi_rules.engine.movegen import has_unpromoted_pawn_on_file
from shogi_rules.engine.piece import Piece, PieceType, Side
from shogi_rules.engine.position import PLAYING, Position, Status
from shogi_rules.engine.rules import (
    apply_move,
    apply_move_raw,
    evaluate_result,
    is_valid_move_input,
    legal_moves,
    try_apply_move,
)
from shogi_rules.errors import InvariantViolation


BK = Piece(Side.BLACK, PieceType.KING)
WK = Piece(Side.WHITE, PieceType.KING)


def test_pawn_push_is_accepted_but_not_promotion() -> None:
    pos = Position.initial()
    nxt = try_apply_move(pos, BoardMove((4, 6), (4, 5)))
    assert nxt is not None
    assert nxt.piece_at((4, 5)) == Piece(Side.BLACK, PieceType.PAWN)
    assert nxt.piece_at((4, 6)) is None
    assert nxt.turn is Side.WHITE
    assert nxt.move_number == 2
    assert try_apply_move(pos, BoardMove((4, 6), (4, 5), promote=True)) is None


def test_input_position_is_left_untouched() -> None:
    pos = Position.initial()
    before = Position.initial()
    nxt = try_apply_move(pos, BoardMove(Square(2, 6), Square(2, 5)))
    assert nxt is not None
    assert pos == before
    assert pos.history == ()
    assert pos.position_counts == {pos.digest: 1}


def test_capture_adds_piece_to_hand() -> None:
    pos = Position.setup(
        {
            (8, 8): BK,
            (0, 0): WK,
            (4, 6): Piece(Side.BLACK, PieceType.PAWN),
            (3, 6): Piece(Side.BLACK, PieceType.SILVER),
            (4, 5): Piece(Side.WHITE, PieceType.PAWN),
        }
    )
    nxt = try_apply_move(pos, BoardMove((3, 6), (4, 5)))
    assert nxt is not None
    assert nxt.piece_at((4, 5)) == Piece(Side.BLACK, PieceType.SILVER)
    assert nxt.hand(Side.BLACK)[PieceType.PAWN] == 1
    record = nxt.history[-1]
    assert record.side is Side.BLACK
    assert record.piece_type is PieceType.SILVER
    assert record.captured is PieceType.PAWN


def test_captured_promoted_piece_returns_unpromoted() -> None:
    pos = Position.setup(
        {
            (8, 8): BK,
            (0, 0): WK,
            (4, 6): Piece(Side.BLACK, PieceType.GOLD),
            (4, 5): Piece(Side.WHITE, PieceType.ROOK, promoted=True),
        }
    )
    nxt = try_apply_move(pos, BoardMove((4, 6), (4, 5)))
    assert nxt is not None
    assert nxt.hand(Side.BLACK)[PieceType.ROOK] == 1
    assert nxt.history[-1].captured is PieceType.ROOK


def test_drop_places_piece_and_consumes_hand() -> None:
    pos = Position.setup({(8, 8): BK, (0, 0): WK}, hands={Side.BLACK: {PieceType.GOLD: 2}})
    nxt = try_apply_move(pos, DropMove(PieceType.GOLD, (4, 4)))
    assert nxt is not None
    assert nxt.piece_at((4, 4)) == Piece(Side.BLACK, PieceType.GOLD)
    assert nxt.hand(Side.BLACK)[PieceType.GOLD] == 1
    assert nxt.history[-1].captured is None


def test_pinned_piece_may_only_move_along_the_pin() -> None:
    pos = Position.setup(
        {
            (4, 8): BK,
            (4, 7): Piece(Side.BLACK, PieceType.SILVER),
            (4, 0): Piece(Side.WHITE, PieceType.ROOK),
            (0, 0): WK,
        }
    )
    silver_moves = [m for m in legal_moves(pos) if isinstance(m, BoardMove) and m.from_sq == (4, 7)]
    assert silver_moves == [BoardMove(Square(4, 7), Square(4, 6))]


def test_king_cannot_step_into_attack() -> None:
    pos = Position.setup({(4, 8): BK, (3, 0): Piece(Side.WHITE, PieceType.ROOK), (8, 0): WK})
    targets = {m.to_sq for m in legal_moves(pos) if m.from_sq == (4, 8)}
    assert targets == {Square(4, 7), Square(5, 7), Square(5, 8)}


def test_check_must_be_answered() -> None:
    pos = Position.setup(
        {
            (4, 8): BK,
            (0, 8): Piece(Side.BLACK, PieceType.GOLD),
            (4, 3): Piece(Side.WHITE, PieceType.LANCE),
            (8, 0): WK,
        }
    )
    assert is_in_check(pos, Side.BLACK)
    for m in legal_moves(pos):
        child = apply_move_raw(pos, m)
        assert not is_in_check(child, Side.BLACK)
    # The gold on the far file can neither block nor capture
    assert all(m.from_sq == (4, 8) for m in legal_moves(pos))


def test_legal_moves_never_leave_own_king_in_check() -> None:
    rng = random.Random(7)
    pos = Position.initial()
    for _ in range(30):
        moves = legal_moves(pos)
        if not moves:
            break
        side = pos.turn
        for m in moves:
            assert not is_in_check(apply_move_raw(pos, m), side)
            if isinstance(m, DropMove) and m.piece_type is PieceType.PAWN:
                assert not has_unpromoted_pawn_on_file(pos, side, m.to_sq.file)
        pos = apply_move(pos, rng.choice(moves))
        assert pos.turn is side.opponent


def _uchifuzume_position(with_knight: bool = True) -> Position:
    pieces = {
        (0, 0): WK,
        (1, 2): Piece(Side.BLACK, PieceType.GOLD),
        (8, 8): BK,
    }
    if with_knight:
        pieces[(2, 2)] = Piece(Side.BLACK, PieceType.KNIGHT)
    return Position.setup(pieces, hands={Side.BLACK: {PieceType.PAWN: 1, PieceType.GOLD: 1}})


def test_pawn_drop_mate_is_excluded() -> None:
    moves = legal_moves(_uchifuzume_position())
    assert DropMove(PieceType.PAWN, Square(0, 1)) not in moves
    assert DropMove(PieceType.PAWN, Square(0, 3)) in moves


def test_pawn_drop_check_with_escape_is_allowed() -> None:
    moves = legal_moves(_uchifuzume_position(with_knight=False))
    assert DropMove(PieceType.PAWN, Square(0, 1)) in moves


def test_other_drop_mates_are_allowed() -> None:
    pos = _uchifuzume_position()
    drop = DropMove(PieceType.GOLD, Square(0, 1))
    assert drop in legal_moves(pos)
    nxt = try_apply_move(pos, drop)
    assert nxt is not None
    assert nxt.result.status is Status.CHECKMATE
    assert nxt.result.winner is Side.BLACK


def _mate_in_one() -> Position:
    return Position.setup(
        {
            (4, 0): WK,
            (4, 2): Piece(Side.BLACK, PieceType.GOLD),
            (3, 2): Piece(Side.BLACK, PieceType.GOLD),
            (4, 5): Piece(Side.BLACK, PieceType.ROOK),
            (0, 8): BK,
        }
    )


def test_checkmate_ends_game() -> None:
    pos = _mate_in_one()
    assert pos.result == PLAYING
    nxt = try_apply_move(pos, BoardMove((4, 2), (4, 1)))
    assert nxt is not None
    assert nxt.result.status is Status.CHECKMATE
    assert nxt.result.winner is Side.BLACK
    assert legal_moves(nxt) == []
    assert try_apply_move(nxt, BoardMove((4, 0), (3, 0))) is None


def test_check_with_escape_is_not_mate() -> None:
    pos = _mate_in_one()
    nxt = try_apply_move(pos, BoardMove((3, 2), (3, 1)))
    assert nxt is not None
    assert nxt.result == PLAYING


def test_evaluate_result_on_stalemate_like_position_is_playing() -> None:
    # No legal move but not in check: shogi has no stalemate rule here
    pos = Position.setup(
        {
            (0, 0): WK,
            (2, 1): Piece(Side.BLACK, PieceType.GOLD),
            (1, 2): Piece(Side.BLACK, PieceType.GOLD),
            (8, 8): BK,
        },
        turn=Side.WHITE,
    )
    assert not is_in_check(pos, Side.WHITE)
    assert legal_moves(pos) == []
    assert evaluate_result(pos) == PLAYING


def test_history_is_capped() -> None:
    limits = Limits(max_history=3)
    pos = Position.initial()
    shuffle = [
        BoardMove((4, 8), (4, 7)),
        BoardMove((4, 0), (4, 1)),
        BoardMove((4, 7), (4, 8)),
        BoardMove((4, 1), (4, 0)),
        BoardMove((4, 8), (3, 7)),
    ]
    for m in shuffle:
        pos = try_apply_move(pos, m, limits)
        assert pos is not None
    assert len(pos.history) == 3
    assert pos.history[-1].move == shuffle[-1]
    assert pos.history[0].move == shuffle[2]
    assert pos.move_number == 6


@pytest.mark.parametrize(
    "move",
    [
        None,
        "7g7f",
        (4, 6, 4, 5),
        BoardMove((4, 6), (9, 5)),
        BoardMove((4, 6), (4, -1)),
        BoardMove((True, 6), (4, 5)),
        BoardMove((4.0, 6), (4, 5)),
        BoardMove([4, 6], (4, 5)),
        BoardMove((4, 6), (4, 5), promote=1),
        BoardMove((4, 6), (4, 5), promote="yes"),
        DropMove("pawn", (4, 4)),
        DropMove("SCRIPT", (4, 4)),
        DropMove(PieceType.KING, (4, 4)),
        DropMove(PieceType.PAWN, (4, 4, 0)),
    ],
)
def test_malformed_moves_are_rejected(move) -> None:
    assert not is_valid_move_input(move)
    assert try_apply_move(Position.initial(), move) is None


def test_structurally_valid_but_illegal_moves_are_rejected() -> None:
    pos = Position.initial()
    # Wrong side's piece, empty origin, own-piece capture, drop with empty hand
    assert try_apply_move(pos, BoardMove((4, 2), (4, 3))) is None
    assert try_apply_move(pos, BoardMove((4, 4), (4, 3))) is None
    assert try_apply_move(pos, BoardMove((4, 8), (3, 8))) is None
    assert try_apply_move(pos, DropMove(PieceType.PAWN, (4, 4))) is None


def test_apply_move_raw_rejects_impossible_moves() -> None:
    pos = Position.initial()
    with pytest.raises(InvariantViolation):
        apply_move_raw(pos, DropMove(PieceType.GOLD, Square(4, 4)))
    with pytest.raises(InvariantViolation):
        apply_move_raw(pos, BoardMove(Square(4, 4), Square(4, 3)))
    with pytest.raises(InvariantViolation):
        apply_move_raw(pos, BoardMove(Square(4, 2), Square(4, 3)))
    with pytest.raises(InvariantViolation):
        apply_move_raw(pos, BoardMove(Square(4, 8), Square(3, 8)))

    with_hand = Position.setup({(8, 8): BK, (0, 0): WK}, hands={Side.BLACK: {PieceType.GOLD: 1}})
    with pytest.raises(InvariantViolation):
        apply_move_raw(with_hand, DropMove(PieceType.GOLD, Square(8, 8)))


def test_invariant_violation_is_a_runtime_error() -> None:
    assert issubclass(InvariantViolation, RuntimeError)


def test_apply_move_raw_keeps_result() -> None:
    pos = Position.initial()
    nxt = apply_move_raw(pos, BoardMove(Square(2, 6), Square(2, 5)))
    assert nxt.result == pos.result
    assert nxt.occurrences == 1
