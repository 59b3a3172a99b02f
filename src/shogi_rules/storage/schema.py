"""Whitelist schema for persisted positions.

Every model forbids unknown fields and uses strict scalar types, so anything that
is not one of the recognised shapes fails closed. Bounds that depend on
``Limits`` are checked against the ``limits`` entry of the validation context.
"""

from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationInfo, model_validator

from ..config import DEFAULT_LIMITS, Limits


SideName = Literal["black", "white"]
PieceTypeName = Literal["pawn", "lance", "knight", "silver", "gold", "bishop", "rook", "king"]
HandTypeName = Literal["pawn", "lance", "knight", "silver", "gold", "bishop", "rook"]


def _limits(info: ValidationInfo) -> Limits:
    ctx = info.context or {}
    return ctx.get("limits", DEFAULT_LIMITS)


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class SquareModel(_Strict):
    file: StrictInt = Field(ge=0, le=8)
    rank: StrictInt = Field(ge=0, le=8)


class PieceModel(_Strict):
    side: SideName
    type: PieceTypeName
    promoted: StrictBool

    @model_validator(mode="after")
    def _promotable(self) -> "PieceModel":
        if self.promoted and self.type in ("gold", "king"):
            raise ValueError(f"{self.type} cannot be promoted")
        return self


class BoardMoveModel(_Strict):
    kind: Literal["move"]
    from_sq: SquareModel = Field(alias="from")
    to: SquareModel
    promote: StrictBool


class DropMoveModel(_Strict):
    kind: Literal["drop"]
    piece_type: HandTypeName
    to: SquareModel


MoveModel = Annotated[Union[BoardMoveModel, DropMoveModel], Field(discriminator="kind")]


class MoveRecordModel(_Strict):
    side: SideName
    move: MoveModel
    piece_type: PieceTypeName
    captured: Optional[HandTypeName] = None


class HandModel(_Strict):
    pawn: StrictInt = Field(ge=0)
    lance: StrictInt = Field(ge=0)
    knight: StrictInt = Field(ge=0)
    silver: StrictInt = Field(ge=0)
    gold: StrictInt = Field(ge=0)
    bishop: StrictInt = Field(ge=0)
    rook: StrictInt = Field(ge=0)

    @model_validator(mode="after")
    def _within_limit(self, info: ValidationInfo) -> "HandModel":
        cap = _limits(info).max_hand_count
        for name, count in self.model_dump().items():
            if count > cap:
                raise ValueError(f"hand count for {name} exceeds {cap}")
        return self


class HandsModel(_Strict):
    black: HandModel
    white: HandModel


class PlayingModel(_Strict):
    status: Literal["playing"]


class RepetitionModel(_Strict):
    status: Literal["repetition"]


class CheckmateModel(_Strict):
    status: Literal["checkmate"]
    winner: SideName


ResultModel = Annotated[Union[PlayingModel, RepetitionModel, CheckmateModel], Field(discriminator="status")]


class PositionModel(_Strict):
    board: List[Optional[PieceModel]] = Field(min_length=81, max_length=81)
    hands: HandsModel
    turn: SideName
    move_number: StrictInt = Field(ge=1)
    history: List[MoveRecordModel]
    position_counts: Dict[StrictStr, StrictInt]
    result: ResultModel

    @model_validator(mode="after")
    def _check_bounds(self, info: ValidationInfo) -> "PositionModel":
        limits = _limits(info)
        if self.move_number > limits.max_move_number:
            raise ValueError(f"move_number exceeds {limits.max_move_number}")
        if len(self.history) > limits.max_history:
            raise ValueError(f"history longer than {limits.max_history}")
        if len(self.position_counts) > limits.max_position_counts:
            raise ValueError(f"more than {limits.max_position_counts} position counts")
        for key, count in self.position_counts.items():
            if not 0 < len(key) <= limits.max_position_key_length:
                raise ValueError("position key length out of range")
            if not 0 <= count <= limits.max_position_repeat:
                raise ValueError(f"position count out of range: {count}")
        return self

    @model_validator(mode="after")
    def _one_king_each(self) -> "PositionModel":
        kings = {"black": 0, "white": 0}
        for piece in self.board:
            if piece is None or piece.type != "king":
                continue
            kings[piece.side] += 1
        if kings["black"] != 1 or kings["white"] != 1:
            raise ValueError("board must hold exactly one king per side")
        return self
