"""Request/response schemas for the tournament endpoints."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from bracket_live.tournament.snapshot import TournamentSnapshot


class PlayerSlotSchema(BaseModel):
    """One contestant slot. Older clients send the score as "multiplier"."""

    name: str = ""
    score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("score", "multiplier"),
        allow_inf_nan=False,
    )


class MatchSchema(BaseModel):
    id: str
    player1: PlayerSlotSchema = Field(default_factory=PlayerSlotSchema)
    player2: PlayerSlotSchema = Field(default_factory=PlayerSlotSchema)
    winner: str | None = None
    completed: bool = False


class TournamentSnapshotSchema(BaseModel):
    """Whole tournament snapshot as stored and served."""

    model_config = ConfigDict(populate_by_name=True)

    size: Literal[4, 8, 16, 32]
    bracket: dict[str, list[MatchSchema]]
    champion: str | None = None
    last_updated: str = Field(default="", alias="lastUpdated")

    @model_validator(mode="after")
    def validate_layout(self) -> "TournamentSnapshotSchema":
        """Round names and match counts must form a bracket of `size`."""
        self.to_snapshot()
        return self

    def to_snapshot(self) -> TournamentSnapshot:
        return TournamentSnapshot.from_dict(self.model_dump(by_alias=True))


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human-readable error message")
