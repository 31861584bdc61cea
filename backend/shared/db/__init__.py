"""SQLite database layer: connection management and repository implementations."""

from shared.db.battle_repository import SqliteBattleRepository
from shared.db.connection import Database
from shared.db.identity_repository import SqliteIdentityRepository

__all__ = [
    "Database",
    "SqliteBattleRepository",
    "SqliteIdentityRepository",
]
