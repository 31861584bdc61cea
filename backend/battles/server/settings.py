"""Battle server configuration via environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from battles.engine.admission import DEFAULT_MAX_ACTIVE_BATTLES
from battles.engine.turns import InvalidTurnPolicy
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class BattleServerSettings(BaseSettings):
    model_config = {"env_prefix": "BATTLES_"}

    database_path: str = Field(default="backend/battles.db", min_length=1)
    games_config_path: Path | None = None
    log_dir: str = Field(default="backend/logs/battles", min_length=1)
    cors_origins: list[str] = []
    max_active_battles: int = Field(default=DEFAULT_MAX_ACTIVE_BATTLES, ge=1)
    default_page_size: int = Field(default=9, ge=1)
    max_page_size: int = Field(default=50, ge=1)
    max_request_bytes: int = Field(default=100_000, ge=1024)
    invalid_turn_policy: InvalidTurnPolicy = InvalidTurnPolicy.RECORD

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @model_validator(mode="after")
    def validate_page_sizes(self) -> Self:
        if self.default_page_size > self.max_page_size:
            msg = f"default_page_size ({self.default_page_size}) exceeds max_page_size ({self.max_page_size})"
            raise ValueError(msg)
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
