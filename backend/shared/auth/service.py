"""Identity service: per-game player registration and bearer-token validation."""

from __future__ import annotations

import hashlib
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import PlayerIdentity
from shared.names import NameKind, generate_name

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.dal.identity_repository import IdentityRepository

logger = structlog.get_logger()

DISPLAY_NAME_MAX_LENGTH = 50
PLAYER_ID_BYTES = 12
TOKEN_BYTES = 32


class IdentityError(Exception):
    """Registration or authentication failure."""


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class IdentityService:
    """Issue player identities and resolve bearer tokens back to them."""

    def __init__(self, identity_repo: IdentityRepository) -> None:
        self._identity_repo = identity_repo

    async def register(
        self,
        game_slug: str,
        display_name: str | None = None,
        *,
        name_adjectives: Sequence[str] = (),
        name_nouns: Sequence[str] = (),
    ) -> tuple[PlayerIdentity, str]:
        """Register a player for a game and return (identity, raw_token).

        A missing display name is generated from the player id. The raw token
        is returned once and never stored.
        """
        player_id = secrets.token_urlsafe(PLAYER_ID_BYTES)
        name = _normalize_display_name(display_name)
        if name is None:
            name = generate_name(player_id, NameKind.PLAYER, name_adjectives, name_nouns)

        raw_token = secrets.token_urlsafe(TOKEN_BYTES)
        identity = PlayerIdentity(
            player_id=player_id,
            game_slug=game_slug,
            display_name=name,
            token_hash=hash_token(raw_token),
            created_at=datetime.now(tz=UTC),
        )
        try:
            await self._identity_repo.create_identity(identity)
        except ValueError as e:
            raise IdentityError(str(e)) from e

        logger.info("player registered", game_slug=game_slug, player_id=player_id)
        return identity, raw_token

    async def authenticate(self, token: str | None) -> PlayerIdentity | None:
        """Return the identity owning ``token``, or None."""
        if not token:
            return None
        return await self._identity_repo.get_by_token_hash(hash_token(token))

    async def get_identities(self, game_slug: str, player_ids: Sequence[str | None]) -> dict[str, PlayerIdentity]:
        return await self._identity_repo.get_identities(game_slug, [pid for pid in player_ids if pid is not None])


def _normalize_display_name(display_name: str | None) -> str | None:
    """Trim a requested display name. Raise IdentityError when it is blank or too long."""
    if display_name is None:
        return None
    trimmed = display_name.strip()
    if not trimmed or len(trimmed) > DISPLAY_NAME_MAX_LENGTH:
        raise IdentityError(f"Display name must be between 1 and {DISPLAY_NAME_MAX_LENGTH} characters")
    return trimmed
