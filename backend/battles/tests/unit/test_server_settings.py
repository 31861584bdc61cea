from pathlib import Path

import pytest
from pydantic import ValidationError

from battles.engine.turns import InvalidTurnPolicy
from battles.server.settings import BattleServerSettings

_ENV_VARS = (
    "BATTLES_DATABASE_PATH",
    "BATTLES_GAMES_CONFIG_PATH",
    "BATTLES_LOG_DIR",
    "BATTLES_CORS_ORIGINS",
    "BATTLES_MAX_ACTIVE_BATTLES",
    "BATTLES_DEFAULT_PAGE_SIZE",
    "BATTLES_MAX_PAGE_SIZE",
    "BATTLES_MAX_REQUEST_BYTES",
    "BATTLES_INVALID_TURN_POLICY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestBattleServerSettings:
    def test_defaults(self):
        settings = BattleServerSettings()
        assert settings.database_path == "backend/battles.db"
        assert settings.games_config_path is None
        assert settings.log_dir == "backend/logs/battles"
        assert settings.cors_origins == []
        assert settings.max_active_battles == 9
        assert settings.default_page_size == 9
        assert settings.max_page_size == 50
        assert settings.max_request_bytes == 100_000
        assert settings.invalid_turn_policy == InvalidTurnPolicy.RECORD

    def test_games_config_path_override(self, monkeypatch):
        monkeypatch.setenv("BATTLES_GAMES_CONFIG_PATH", "/etc/games.yaml")
        assert BattleServerSettings().games_config_path == Path("/etc/games.yaml")

    def test_numeric_overrides(self, monkeypatch):
        monkeypatch.setenv("BATTLES_MAX_ACTIVE_BATTLES", "3")
        monkeypatch.setenv("BATTLES_MAX_PAGE_SIZE", "20")
        settings = BattleServerSettings()
        assert settings.max_active_battles == 3
        assert settings.max_page_size == 20

    def test_policy_override(self, monkeypatch):
        monkeypatch.setenv("BATTLES_INVALID_TURN_POLICY", "reject")
        assert BattleServerSettings().invalid_turn_policy == InvalidTurnPolicy.REJECT

    def test_unknown_policy_raises(self, monkeypatch):
        monkeypatch.setenv("BATTLES_INVALID_TURN_POLICY", "ignore")
        with pytest.raises(ValidationError, match="invalid_turn_policy"):
            BattleServerSettings()

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("BATTLES_CORS_ORIGINS", '["http://x.com","http://y.com"]')
        assert BattleServerSettings().cors_origins == ["http://x.com", "http://y.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("BATTLES_CORS_ORIGINS", "http://x.com,http://y.com")
        assert BattleServerSettings().cors_origins == ["http://x.com", "http://y.com"]

    def test_cors_origins_blank_means_none(self, monkeypatch):
        monkeypatch.setenv("BATTLES_CORS_ORIGINS", "")
        assert BattleServerSettings().cors_origins == []

    def test_default_page_size_above_max_raises(self):
        with pytest.raises(ValidationError, match="exceeds max_page_size"):
            BattleServerSettings(default_page_size=60, max_page_size=50)

    def test_request_limit_floor(self):
        with pytest.raises(ValidationError, match="max_request_bytes"):
            BattleServerSettings(max_request_bytes=10)
