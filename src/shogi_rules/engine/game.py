from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, MutableMapping, Optional, Tuple

from ..config import DEFAULT_LIMITS, Limits
from ..storage.store import DEFAULT_STORAGE_KEY, load_game_state, save_game_state
from .attacks import is_in_check
from .move import BoardMove, DropMove, Move, MoveRecord
from .piece import PieceType, Side
from .position import GameResult, Position
from .rules import legal_moves, try_apply_move


logger = logging.getLogger(__name__)


@dataclass
class Game:
    """Game session around an immutable position.

    Responsibility: hold the current position, apply validated moves, keep a
    bounded undo stack, and optionally autosave to a key/value store and
    notify observers. Rendering and input handling belong to the caller.
    """

    position: Position
    initial: Optional[Position] = None
    limits: Limits = DEFAULT_LIMITS
    store: Optional[MutableMapping[str, str]] = None
    storage_key: str = DEFAULT_STORAGE_KEY
    on_move: Optional[Callable[[MoveRecord], None]] = None
    on_result: Optional[Callable[[GameResult], None]] = None
    undo_stack: List[Position] = field(default_factory=list, repr=False)

    @classmethod
    def new(cls, **kwargs: Any) -> "Game":
        return cls(position=Position.initial(), **kwargs)

    @classmethod
    def restore(cls, store: MutableMapping[str, str], key: str = DEFAULT_STORAGE_KEY, **kwargs: Any) -> "Game":
        """Resume the game saved under ``key``, or start a new one.

        Reset returns to ``initial`` when given, else the standard starting
        position; a new game also starts there.
        """
        kwargs.setdefault("initial", Position.initial())
        limits = kwargs.get("limits", DEFAULT_LIMITS)
        loaded = load_game_state(store, key, limits)
        if loaded is None:
            return cls(position=kwargs["initial"], store=store, storage_key=key, **kwargs)
        logger.info("restored saved game", extra={"storage_key": key, "move_number": loaded.move_number})
        return cls(position=loaded, store=store, storage_key=key, **kwargs)

    def __post_init__(self) -> None:
        if self.initial is None:
            self.initial = self.position
        self._save()

    # --- Queries ---
    @property
    def turn(self) -> Side:
        return self.position.turn

    @property
    def result(self) -> GameResult:
        return self.position.result

    @property
    def history(self) -> Tuple[MoveRecord, ...]:
        return self.position.history

    def legal_moves(
        self,
        from_square: Optional[Tuple[int, int]] = None,
        piece_type: Optional[PieceType] = None,
    ) -> List[Move]:
        """Return legal moves, optionally only those from a square or of a hand piece.

        Args:
            from_square: Keep board moves starting on this square.
            piece_type: Keep drops of this hand piece type.

        Returns:
            List[Move]: Matching legal moves; all of them when no filter is
                given.
        """
        moves = legal_moves(self.position)
        if from_square is None and piece_type is None:
            return moves
        out: List[Move] = []
        for m in moves:
            if isinstance(m, BoardMove) and from_square is not None and m.from_sq == tuple(from_square):
                out.append(m)
            elif isinstance(m, DropMove) and piece_type is not None and m.piece_type is piece_type:
                out.append(m)
        return out

    def promotion_choices(self, from_sq: Tuple[int, int], to_sq: Tuple[int, int]) -> List[BoardMove]:
        """Return the legal variants of moving ``from_sq`` to ``to_sq``.

        Two entries mean the caller must ask whether to promote.
        """
        return [
            m for m in self.legal_moves(from_square=from_sq) if isinstance(m, BoardMove) and m.to_sq == tuple(to_sq)
        ]

    def in_check(self) -> bool:
        return is_in_check(self.position, self.position.turn)

    def is_over(self) -> bool:
        return self.position.result.is_terminal

    # --- Mutations ---
    def try_move(self, move: Any) -> bool:
        """Apply ``move`` if it is legal. Returns False and changes nothing otherwise."""
        nxt = try_apply_move(self.position, move, self.limits)
        if nxt is None:
            return False
        self.undo_stack.append(self.position)
        if len(self.undo_stack) > self.limits.max_undo_states:
            del self.undo_stack[0]
        self.position = nxt
        self._save()
        if self.on_move is not None and nxt.history:
            self.on_move(nxt.history[-1])
        if self.on_result is not None:
            self.on_result(nxt.result)
        return True

    def undo(self) -> bool:
        """Return to the position before the last move. False if there is none."""
        if not self.undo_stack:
            return False
        self.position = self.undo_stack.pop()
        self._save()
        return True

    def reset(self) -> None:
        self.position = self.initial if self.initial is not None else Position.initial()
        self.undo_stack.clear()
        self._save()
        if self.on_result is not None:
            self.on_result(self.position.result)

    def _save(self) -> None:
        if self.store is not None:
            save_game_state(self.position, self.store, self.storage_key)
