"""Persistence of positions into a key/value store."""

from .store import (
    DEFAULT_STORAGE_KEY,
    InMemoryStore,
    load_game_state,
    position_from_payload,
    position_to_payload,
    save_game_state,
)

__all__ = [
    "DEFAULT_STORAGE_KEY",
    "InMemoryStore",
    "load_game_state",
    "position_from_payload",
    "position_to_payload",
    "save_game_state",
]
