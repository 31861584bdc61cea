from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shared.dal.models import Action

_REQUEST_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class RegisterRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    display_name: str | None = Field(default=None, max_length=50)


class CreateBattleRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    map_data: dict[str, Any] = Field(default_factory=dict)
    is_private: bool = Field(default=False, strict=True)


class SubmitTurnRequest(BaseModel):
    """Turn body. Action count and payload sizes are checked by the engine, not here."""

    model_config = _REQUEST_CONFIG

    actions: list[Action]
    state_snapshot: dict[str, Any] | None = None
    turn_number: int | None = Field(default=None, ge=0, strict=True)
