"""SQLite-backed player identity repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.auth.models import PlayerIdentity
from shared.dal.identity_repository import IdentityRepository

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteIdentityRepository(IdentityRepository):
    """SQLite implementation of IdentityRepository.

    Uses a single INSERT under an asyncio lock and relies on the database
    uniqueness constraints, mapping IntegrityError to ValueError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_identity(self, identity: PlayerIdentity) -> None:
        """Insert an identity. Raises ValueError on duplicate id or token hash."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO player_identities (id, game_slug, token_hash, data) VALUES (?, ?, ?, ?)",
                    (
                        identity.player_id,
                        identity.game_slug,
                        identity.token_hash,
                        identity.model_dump_json(),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                error_msg = str(exc).lower()
                if "player_identities.id" in error_msg:
                    raise ValueError(f"Player with id '{identity.player_id}' already exists") from exc
                if "token_hash" in error_msg:
                    raise ValueError("Token hash already in use") from exc
                raise ValueError(str(exc)) from exc  # pragma: no cover

    async def get_by_token_hash(self, token_hash: str) -> PlayerIdentity | None:
        row = self._db.connection.execute(
            "SELECT data FROM player_identities WHERE token_hash = ?",
            (token_hash,),
        ).fetchone()
        if row is None:
            return None
        return PlayerIdentity.model_validate_json(row[0])

    async def get_identities(self, game_slug: str, player_ids: Iterable[str]) -> dict[str, PlayerIdentity]:
        """Fetch identities by id within one game. Unknown ids are left out of the result."""
        ids = sorted(set(player_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        rows = self._db.connection.execute(
            f"SELECT data FROM player_identities WHERE game_slug = ? AND id IN ({placeholders})",  # noqa: S608
            (game_slug, *ids),
        ).fetchall()
        identities = [PlayerIdentity.model_validate_json(row[0]) for row in rows]
        return {identity.player_id: identity for identity in identities}
