"""Shared fixtures for battle API integration tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.testclient import TestClient

from battles.server.app import create_app
from battles.server.settings import BattleServerSettings

if TYPE_CHECKING:
    from pathlib import Path


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings(tmp_path: Path, games_config: Path) -> BattleServerSettings:
    return BattleServerSettings(
        database_path=str(tmp_path / "battles.db"),
        games_config_path=games_config,
        max_request_bytes=4096,
    )


@pytest.fixture
def client(settings: BattleServerSettings):
    with TestClient(create_app(settings=settings)) as test_client:
        yield test_client


@pytest.fixture
def register(client: TestClient):
    """Register a player and return their bearer headers."""

    def _register(display_name: str | None = None, game_slug: str = "birdwars") -> dict[str, str]:
        body = {} if display_name is None else {"displayName": display_name}
        response = client.post(f"/api/{game_slug}/register", json=body)
        assert response.status_code == 201
        return auth_headers(response.json()["secretToken"])

    return _register
