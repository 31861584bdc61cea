"""Starlette AuthenticationBackend that validates per-game bearer tokens."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.authentication import AuthCredentials, AuthenticationBackend

from battles.auth.models import AuthenticatedPlayer

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from shared.auth.service import IdentityService

_BEARER_PREFIX = "bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        return None
    return authorization[len(_BEARER_PREFIX) :].strip() or None


class BearerTokenBackend(AuthenticationBackend):
    """Authenticate requests via the ``Authorization: Bearer <token>`` header.

    A missing, malformed or unknown token leaves the request anonymous; the
    route policy decides whether that is an error.
    """

    def __init__(self, identity_service: IdentityService) -> None:
        self._identity_service = identity_service

    async def authenticate(
        self,
        conn: HTTPConnection,
    ) -> tuple[AuthCredentials, AuthenticatedPlayer] | None:
        token = extract_bearer_token(conn.headers.get("authorization"))
        identity = await self._identity_service.authenticate(token)
        if identity is None:
            return None
        return AuthCredentials(["authenticated"]), AuthenticatedPlayer(
            player_id=identity.player_id,
            game_slug=identity.game_slug,
            display_name=identity.display_name,
        )
