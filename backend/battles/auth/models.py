"""User model for Starlette AuthenticationMiddleware integration."""

from __future__ import annotations

from starlette.authentication import BaseUser


class AuthenticatedPlayer(BaseUser):
    """Authenticated player for Starlette's request.user.

    Created by the auth backend from a bearer token. A player identity
    belongs to exactly one game.
    """

    def __init__(self, player_id: str, game_slug: str, display_name: str) -> None:
        self._player_id = player_id
        self._game_slug = game_slug
        self._display_name = display_name

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def display_name(self) -> str:
        return self._display_name

    @property
    def identity(self) -> str:  # pragma: no cover
        return self._player_id

    @property
    def player_id(self) -> str:
        return self._player_id

    @property
    def game_slug(self) -> str:
        return self._game_slug
