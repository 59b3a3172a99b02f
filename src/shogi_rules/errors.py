from __future__ import annotations


class ShogiError(Exception):
    """Base class for errors raised by the engine."""


class InvariantViolation(ShogiError, RuntimeError):
    """A transition was asked to do something no legal position allows.

    Raised by the unchecked transition when the mover has no such hand piece,
    the drop square is occupied, the source square does not hold one of the
    mover's pieces, or the destination holds a friendly piece. Only callers
    that bypass ``try_apply_move`` can trigger it.
    """
