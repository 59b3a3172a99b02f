from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING

from .piece import PIECE_TO_USI, Side

if TYPE_CHECKING:  # pragma: no cover
    from .position import Position


EMPTY_CODE = "__"


def position_key(position: "Position") -> str:
    """Return the canonical key of board, hands, and side to move.

    Layout: ``<81 piece codes joined by '|'>:<black hand>/<white hand>:<turn>``
    where a hand is ``P0,L0,N0,S0,G0,B0,R0``. History, move number and result
    do not take part, so the same arrangement reached by different move orders
    shares one key.
    """
    board = "|".join(p.code() if p is not None else EMPTY_CODE for p in position.board)
    hands = "/".join(
        ",".join(f"{PIECE_TO_USI[t]}{n}" for t, n in position.hands[s].items())
        for s in (Side.BLACK, Side.WHITE)
    )
    return f"{board}:{hands}:{position.turn.value}"


def position_digest(key: str) -> str:
    """Return a 32-character hex digest of a position key.

    Repetition counts are stored per digest so persisted games stay small.
    """
    return hashlib.blake2b(key.encode("ascii"), digest_size=16).hexdigest()
