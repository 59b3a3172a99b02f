from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, Iterator, MutableMapping, Optional

from pydantic import ValidationError

from ..config import DEFAULT_LIMITS, Limits
from ..engine.move import BoardMove, DropMove, Move, MoveRecord, Square
from ..engine.piece import Piece, PieceType, Side
from ..engine.position import PLAYING, REPETITION, GameResult, Hand, Position, Status
from .schema import BoardMoveModel, CheckmateModel, MoveModel, PositionModel, RepetitionModel


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "shogi:game:v1"


class InMemoryStore(MutableMapping[str, str]):
    """Thread-safe in-memory string store.

    Stands in for any key/value backend accepted by ``load_game_state`` and
    ``save_game_state``; a single instance may be shared between sessions.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: Dict[str, str] = {}

    def __getitem__(self, key: str) -> str:
        with self._lock:
            return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("store values must be strings")
        with self._lock:
            self._data[key] = value

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._data[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


# --- Position <-> payload ---


def _square_payload(sq: Any) -> Dict[str, int]:
    f, r = sq
    return {"file": f, "rank": r}


def _move_payload(move: Move) -> Dict[str, Any]:
    if isinstance(move, DropMove):
        return {"kind": "drop", "piece_type": move.piece_type.value, "to": _square_payload(move.to_sq)}
    return {
        "kind": "move",
        "from": _square_payload(move.from_sq),
        "to": _square_payload(move.to_sq),
        "promote": move.promote,
    }


def _record_payload(record: MoveRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "side": record.side.value,
        "move": _move_payload(record.move),
        "piece_type": record.piece_type.value,
    }
    if record.captured is not None:
        out["captured"] = record.captured.value
    return out


def _result_payload(result: GameResult) -> Dict[str, Any]:
    if result.status is Status.CHECKMATE and result.winner is not None:
        return {"status": "checkmate", "winner": result.winner.value}
    return {"status": result.status.value}


def position_to_payload(position: Position) -> Dict[str, Any]:
    """Return a JSON-compatible structure describing ``position``."""
    return {
        "board": [
            None if p is None else {"side": p.side.value, "type": p.type.value, "promoted": p.promoted}
            for p in position.board
        ],
        "hands": {side.value: {t.value: n for t, n in position.hand(side).items()} for side in (Side.BLACK, Side.WHITE)},
        "turn": position.turn.value,
        "move_number": position.move_number,
        "history": [_record_payload(r) for r in position.history],
        "position_counts": dict(position.position_counts),
        "result": _result_payload(position.result),
    }


def _move_from_model(model: MoveModel) -> Move:
    if isinstance(model, BoardMoveModel):
        return BoardMove(
            Square(model.from_sq.file, model.from_sq.rank),
            Square(model.to.file, model.to.rank),
            model.promote,
        )
    return DropMove(PieceType(model.piece_type), Square(model.to.file, model.to.rank))


def _position_from_model(model: PositionModel) -> Position:
    board = tuple(
        None if p is None else Piece(Side(p.side), PieceType(p.type), p.promoted) for p in model.board
    )
    hands = {
        Side.BLACK: Hand.from_mapping({PieceType(k): v for k, v in model.hands.black.model_dump().items()}),
        Side.WHITE: Hand.from_mapping({PieceType(k): v for k, v in model.hands.white.model_dump().items()}),
    }
    history = tuple(
        MoveRecord(
            Side(r.side),
            _move_from_model(r.move),
            PieceType(r.piece_type),
            PieceType(r.captured) if r.captured is not None else None,
        )
        for r in model.history
    )
    if isinstance(model.result, CheckmateModel):
        result = GameResult.checkmate(Side(model.result.winner))
    elif isinstance(model.result, RepetitionModel):
        result = REPETITION
    else:
        result = PLAYING
    return Position(
        board=board,
        hands=hands,
        turn=Side(model.turn),
        move_number=model.move_number,
        history=history,
        position_counts=dict(model.position_counts),
        result=result,
    )


def position_from_payload(data: Any, limits: Limits = DEFAULT_LIMITS) -> Optional[Position]:
    """Validate an untrusted payload and build a ``Position`` from it.

    Args:
        data (Any): Decoded payload, typically from ``json.loads``.
        limits (Limits): Bounds for history, counts, and move number.

    Returns:
        Optional[Position]: The position, or ``None`` if ``data`` does not
            match the schema or its counts omit the position itself. Never
            raises for bad input.
    """
    try:
        model = PositionModel.model_validate(data, context={"limits": limits})
    except ValidationError as exc:
        logger.warning("rejected persisted position", extra={"error_count": exc.error_count()})
        return None
    position = _position_from_model(model)
    if position.occurrences < 1:
        logger.warning("rejected persisted position", extra={"reason": "current position not counted"})
        return None
    return position


# --- Key/value persistence ---


def _discard(store: MutableMapping[str, str], key: str, reason: str) -> None:
    logger.warning("discarding stored game", extra={"storage_key": key, "reason": reason})
    store.pop(key, None)


def load_game_state(
    store: MutableMapping[str, str],
    key: str = DEFAULT_STORAGE_KEY,
    limits: Limits = DEFAULT_LIMITS,
) -> Optional[Position]:
    """Load a saved position from ``store``.

    Anything oversized, undecodable, or failing validation is deleted from the
    store so the same corrupt entry is not retried.

    Returns:
        Optional[Position]: The stored position, or ``None`` when absent or
            rejected.
    """
    raw = store.get(key)
    if not raw:
        return None
    if not isinstance(raw, str) or len(raw) > limits.max_stored_chars:
        _discard(store, key, "oversized")
        return None
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        _discard(store, key, "undecodable")
        return None
    position = position_from_payload(data, limits)
    if position is None:
        _discard(store, key, "invalid")
    return position


def save_game_state(
    position: Position,
    store: MutableMapping[str, str],
    key: str = DEFAULT_STORAGE_KEY,
) -> bool:
    """Serialize ``position`` into ``store``; on failure the key is removed.

    Returns:
        bool: True if the payload was written.
    """
    try:
        store[key] = json.dumps(position_to_payload(position), separators=(",", ":"))
    except (TypeError, ValueError, OSError):
        logger.exception("failed to save game", extra={"storage_key": key})
        store.pop(key, None)
        return False
    return True
