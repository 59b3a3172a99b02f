"""Shogi rules: positions, move generation, legality, and transitions.

Pure functions over immutable values.
"""
