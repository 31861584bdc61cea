"""Persistence models for the data access layer.

The battle record is stored as one JSON document per battle. The turn log
inside it is append-only and is the only source of truth for match history.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_API_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class BattleStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class EndReason(StrEnum):
    VICTORY = "victory"
    FORFEIT = "forfeit"
    DRAW = "draw"
    CANCELLED = "cancelled"


class ActionType(StrEnum):
    """Built-in action vocabulary. Games can register extra types in games.yaml."""

    MOVE = "move"
    ATTACK = "attack"
    BUILD = "build"
    CAPTURE = "capture"
    WAIT = "wait"
    END_TURN = "end_turn"
    TAKE_OFF = "take_off"
    LAND = "land"
    SUPPLY = "supply"
    LOAD = "load"
    UNLOAD = "unload"
    COMBINE = "combine"


class Coordinate(BaseModel, frozen=True):
    x: int
    y: int


class Action(BaseModel):
    """One opaque unit of player intent. The service never interprets coordinates or data."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")

    type: str = Field(min_length=1, max_length=32, pattern=r"^[a-z][a-z0-9_]*$")
    unit_id: str | None = Field(default=None, max_length=64)
    from_: Coordinate | None = Field(default=None, alias="from")
    to: Coordinate | None = None
    target_id: str | None = Field(default=None, max_length=64)
    data: dict[str, Any] | None = None


class Turn(BaseModel):
    """One participant's atomic batch of actions, terminated by an end_turn action."""

    model_config = _API_CONFIG

    turn_id: str
    submitter_id: str
    turn_number: int = Field(ge=0)
    actions: list[Action]
    is_valid: bool = True
    validation_errors: list[str] = Field(default_factory=list)
    submitted_at: datetime
    state_snapshot: dict[str, Any] | None = None


class BattleRecord(BaseModel):
    """Authoritative, versioned document for one match.

    ``seq`` is the storage insertion key (assigned by the repository, used as
    the listing sort key). ``version`` increments on every successful write
    and is the compare-and-swap guard.
    """

    model_config = _API_CONFIG

    battle_id: str
    display_name: str
    game_slug: str
    player1_id: str
    player2_id: str | None = None
    status: BattleStatus = BattleStatus.PENDING
    current_turn_number: int = 0
    current_player_index: int = Field(default=0, ge=0, le=1)
    winner_id: str | None = None
    end_reason: EndReason | None = None
    map_data: dict[str, Any] = Field(default_factory=dict)
    is_private: bool = False
    current_state: dict[str, Any] | None = None
    turns: list[Turn] = Field(default_factory=list)
    last_turn_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int = 0
    seq: int | None = Field(default=None, exclude=True)

    @property
    def participants(self) -> tuple[str, ...]:
        if self.player2_id is None:
            return (self.player1_id,)
        return (self.player1_id, self.player2_id)

    def has_participant(self, player_id: str) -> bool:
        return player_id in self.participants


class BattleQuery(BaseModel, frozen=True):
    """Filter for battle listings and aggregate counts.

    Public listings hide private and abandoned battles. A participant-scoped
    query (``participant_id`` set) includes both.
    """

    game_slug: str
    participant_id: str | None = None
    include_private: bool = False
    include_abandoned: bool = False
    status: BattleStatus | None = None


class PlayerBattleStats(BaseModel, frozen=True):
    """Per-player battle statistics for one game."""

    counts: dict[BattleStatus, int]
    wins: int
    losses: int
    draws: int
    turns_submitted: int

    @property
    def total(self) -> int:
        return sum(self.counts.values())
