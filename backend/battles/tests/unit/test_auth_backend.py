"""Tests for the BearerTokenBackend authentication backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.requests import HTTPConnection

from battles.auth.backend import BearerTokenBackend, extract_bearer_token
from battles.auth.models import AuthenticatedPlayer
from shared.auth import IdentityService
from shared.db import SqliteIdentityRepository

if TYPE_CHECKING:
    from shared.db import Database


def _conn(authorization: str | None = None) -> HTTPConnection:
    headers = [] if authorization is None else [(b"authorization", authorization.encode())]
    return HTTPConnection({"type": "http", "headers": headers})


@pytest.fixture
def identity_service(db: Database) -> IdentityService:
    return IdentityService(SqliteIdentityRepository(db))


@pytest.fixture
def backend(identity_service: IdentityService) -> BearerTokenBackend:
    return BearerTokenBackend(identity_service)


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc ", "abc"),
            ("Bearer ", None),
            ("Basic abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parsing(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestBearerTokenBackend:
    async def test_valid_token_authenticates(self, backend, identity_service):
        identity, token = await identity_service.register("birdwars", "Alice")

        result = await backend.authenticate(_conn(f"Bearer {token}"))

        assert result is not None
        credentials, user = result
        assert credentials.scopes == ["authenticated"]
        assert isinstance(user, AuthenticatedPlayer)
        assert user.is_authenticated
        assert user.player_id == identity.player_id
        assert user.game_slug == "birdwars"
        assert user.display_name == "Alice"

    async def test_missing_header_is_anonymous(self, backend):
        assert await backend.authenticate(_conn()) is None

    async def test_unknown_token_is_anonymous(self, backend):
        assert await backend.authenticate(_conn("Bearer not-a-real-token")) is None

    async def test_wrong_scheme_is_anonymous(self, backend, identity_service):
        _, token = await identity_service.register("birdwars")

        assert await backend.authenticate(_conn(f"Token {token}")) is None
