from __future__ import annotations

from typing import Dict

from .position import Position
from .rules import _advance, legal_moves


def perft(position: Position, depth: int) -> int:
    """Count the positions reached after exactly ``depth`` legal moves.

    Zero plies leaves the position itself, so the count is 1. At the last ply
    the legal moves are counted without applying them. Intermediate children
    come from the speculative transition: they share the parent's history and
    repetition counts, so a line that would repeat still counts as a leaf.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1
    moves = legal_moves(position)
    if depth == 1:
        return len(moves)
    return sum(perft(_advance(position, m, bookkeeping=False), depth - 1) for m in moves)


def divide(position: Position, depth: int) -> Dict[str, int]:
    """Return perft(depth - 1) per root move, keyed by USI string."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    return {
        m.to_usi(): perft(_advance(position, m, bookkeeping=False), depth - 1)
        for m in legal_moves(position)
    }
