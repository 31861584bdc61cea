from enum import StrEnum

from pydantic import BaseModel, Field


class GameCapability(StrEnum):
    DATA = "data"
    ASYNC = "async"
    LEADERBOARD = "leaderboard"


class NameWords(BaseModel, frozen=True):
    """Word lists used to name battles and players of one game."""

    adjectives: list[str] = Field(min_length=1)
    nouns: list[str] = Field(min_length=1)


class GameConfig(BaseModel, frozen=True):
    slug: str = Field(pattern=r"^[a-z0-9][a-z0-9-]*$")
    name: str
    capabilities: list[GameCapability] = Field(min_length=1)
    haikunator: NameWords | None = None
    extra_action_types: list[str] = Field(default_factory=list)
    max_active_battles: int | None = Field(default=None, ge=1)

    @property
    def supports_battles(self) -> bool:
        return GameCapability.ASYNC in self.capabilities

    @property
    def name_adjectives(self) -> list[str]:
        return self.haikunator.adjectives if self.haikunator else []

    @property
    def name_nouns(self) -> list[str]:
        return self.haikunator.nouns if self.haikunator else []
