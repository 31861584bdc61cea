"""Tests for auth policy helpers and route validation."""

from __future__ import annotations

import pytest
from starlette.authentication import AuthCredentials, UnauthenticatedUser
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from battles.auth.models import AuthenticatedPlayer
from battles.auth.policy import (
    AUTH_POLICY_ATTR,
    is_game_player,
    protected_api,
    public_route,
    validate_route_auth_policy,
)


def _make_request(*, game_slug: str | None = None, path_game: str = "birdwars") -> Request:
    """Build a real Starlette Request with auth pre-set, as AuthenticationMiddleware would."""
    if game_slug is None:
        auth, user = AuthCredentials(), UnauthenticatedUser()
    else:
        auth, user = AuthCredentials(["authenticated"]), AuthenticatedPlayer("p1", game_slug, "Alice")
    scope = {
        "type": "http",
        "method": "GET",
        "path": f"/api/{path_game}/stats",
        "query_string": b"",
        "headers": [],
        "path_params": {"game_slug": path_game},
        "auth": auth,
        "user": user,
    }
    return Request(scope)


async def _dummy_handler(request: Request) -> JSONResponse:
    return JSONResponse({"ok": True})


class TestIsGamePlayer:
    def test_anonymous(self) -> None:
        assert not is_game_player(_make_request())

    def test_token_for_this_game(self) -> None:
        assert is_game_player(_make_request(game_slug="birdwars"))

    def test_token_for_another_game(self) -> None:
        assert not is_game_player(_make_request(game_slug="pentagon"))

    def test_path_slug_case_is_ignored(self) -> None:
        assert is_game_player(_make_request(game_slug="birdwars", path_game="BirdWars"))


class TestProtectedApi:
    async def test_unauthenticated_raises_401(self) -> None:
        wrapped = protected_api(_dummy_handler)

        with pytest.raises(HTTPException) as exc_info:
            await wrapped(_make_request())

        assert exc_info.value.status_code == 401

    async def test_other_game_token_raises_401(self) -> None:
        wrapped = protected_api(_dummy_handler)

        with pytest.raises(HTTPException):
            await wrapped(_make_request(game_slug="pentagon"))

    async def test_authenticated_passes_through(self) -> None:
        wrapped = protected_api(_dummy_handler)

        response = await wrapped(_make_request(game_slug="birdwars"))

        assert response.status_code == 200

    def test_sets_marker(self) -> None:
        assert getattr(protected_api(_dummy_handler), AUTH_POLICY_ATTR) == "protected_api"


class TestPublicRoute:
    async def test_passes_through_anonymous(self) -> None:
        response = await public_route(_dummy_handler)(_make_request())

        assert response.status_code == 200

    def test_marker_lives_on_wrapper(self) -> None:
        wrapped = public_route(_dummy_handler)

        assert getattr(wrapped, AUTH_POLICY_ATTR) == "public"
        assert not hasattr(_dummy_handler, AUTH_POLICY_ATTR)


class TestValidateRouteAuthPolicy:
    def test_all_classified(self) -> None:
        routes = [
            Route("/a", public_route(_dummy_handler)),
            Route("/b", protected_api(_dummy_handler)),
        ]
        validate_route_auth_policy(routes)

    def test_unclassified_route_raises(self) -> None:
        routes = [
            Route("/a", public_route(_dummy_handler)),
            Route("/b", _dummy_handler, name="bare"),
        ]

        with pytest.raises(RuntimeError, match=r"/b \(bare\)"):
            validate_route_auth_policy(routes)

    def test_mounts_are_exempt(self) -> None:
        validate_route_auth_policy([Mount("/static", routes=[])])
