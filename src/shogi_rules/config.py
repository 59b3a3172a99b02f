"""Engine limits.

Pure values; pass a custom ``Limits`` where a caller needs different bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True)
class Limits:
    """Bounds applied by transitions, the game session, and persistence.

    Attributes:
        max_history (int): Move records kept per position; oldest are dropped.
        repetition_threshold (int): Occurrences of one position that end the
            game as a repetition.
        max_move_number (int): Largest move number accepted from storage.
        max_hand_count (int): Largest per-type hand count accepted from storage.
        max_position_counts (int): Distinct positions tracked for repetition;
            the oldest single occurrences are dropped first.
        max_position_repeat (int): Largest position-count value accepted from
            storage.
        max_position_key_length (int): Longest position key accepted from
            storage.
        max_stored_chars (int): Ceiling on the serialized payload size. A full
            history (about 150 chars per record) plus a full count map (about
            40 chars per entry) stays below it.
        max_undo_states (int): Positions a ``Game`` keeps for undo.
    """

    max_history: int = 2048
    repetition_threshold: int = 4
    max_move_number: int = 10_000
    max_hand_count: int = 18
    max_position_counts: int = 2048
    max_position_repeat: int = 16
    max_position_key_length: int = 600
    max_stored_chars: int = 512_000
    max_undo_states: int = 512


DEFAULT_LIMITS: Final = Limits()
