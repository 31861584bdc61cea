"""SQLite-backed battle repository."""

from __future__ import annotations

import asyncio
import sqlite3
from typing import TYPE_CHECKING, Any

import structlog

from shared.dal.battle_repository import BattleRepository
from shared.dal.models import BattleRecord, BattleStatus, EndReason, PlayerBattleStats

if TYPE_CHECKING:
    from shared.dal.models import BattleQuery
    from shared.db.connection import Database

logger = structlog.get_logger()


def _where(query: BattleQuery, before_seq: int | None = None) -> tuple[str, list[Any]]:
    """Build the WHERE clause shared by listings and aggregate counts."""
    clauses = ["game_slug = ?"]
    params: list[Any] = [query.game_slug]
    if query.participant_id is not None:
        clauses.append("(player1_id = ? OR player2_id = ?)")
        params.extend([query.participant_id, query.participant_id])
    if not query.include_private:
        clauses.append("is_private = 0")
    if not query.include_abandoned:
        clauses.append("status != ?")
        params.append(BattleStatus.ABANDONED.value)
    if query.status is not None:
        clauses.append("status = ?")
        params.append(query.status.value)
    if before_seq is not None:
        clauses.append("seq < ?")
        params.append(before_seq)
    return " AND ".join(clauses), params


def _row_to_battle(row: tuple[int, str]) -> BattleRecord:
    seq, data = row
    return BattleRecord.model_validate_json(data).model_copy(update={"seq": seq})


class SqliteBattleRepository(BattleRepository):
    """SQLite implementation of BattleRepository.

    Stores each battle as a JSON document with indexed columns for queries.
    ``seq`` (AUTOINCREMENT) is never reused, so it is a stable insertion key
    for cursor pagination. Compare-and-swap is a single
    ``UPDATE ... WHERE version = ?`` whose row count tells the caller whether
    it won.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_battle(self, battle: BattleRecord) -> BattleRecord:
        """Insert a battle. Raises ValueError on a duplicate battle id."""
        async with self._lock:
            try:
                cursor = self._db.connection.execute(
                    "INSERT INTO battles "
                    "(battle_id, game_slug, player1_id, player2_id, status, is_private, version, data) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        battle.battle_id,
                        battle.game_slug,
                        battle.player1_id,
                        battle.player2_id,
                        battle.status.value,
                        int(battle.is_private),
                        battle.version,
                        battle.model_dump_json(),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError as exc:
                self._db.connection.rollback()
                raise ValueError(f"Battle with id '{battle.battle_id}' already exists") from exc
        return battle.model_copy(update={"seq": cursor.lastrowid})

    async def get_battle(self, game_slug: str, battle_id: str) -> BattleRecord | None:
        """Look up a battle by id within a game."""
        row = self._db.connection.execute(
            "SELECT seq, data FROM battles WHERE game_slug = ? AND battle_id = ?",
            (game_slug, battle_id),
        ).fetchone()
        if row is None:
            return None
        return _row_to_battle(row)

    async def compare_and_swap(self, battle: BattleRecord, expected_version: int) -> BattleRecord | None:
        """Write the battle only if the stored version still equals ``expected_version``."""
        stored = battle.model_copy(update={"version": expected_version + 1})
        async with self._lock:
            cursor = self._db.connection.execute(
                "UPDATE battles SET "
                "player2_id = ?, "
                "status = ?, "
                "is_private = ?, "
                "version = ?, "
                "data = ? "
                "WHERE game_slug = ? AND battle_id = ? AND version = ?",
                (
                    stored.player2_id,
                    stored.status.value,
                    int(stored.is_private),
                    stored.version,
                    stored.model_dump_json(),
                    stored.game_slug,
                    stored.battle_id,
                    expected_version,
                ),
            )
            self._db.connection.commit()
        if cursor.rowcount == 0:
            logger.warning(
                "compare-and-swap lost",
                battle_id=battle.battle_id,
                expected_version=expected_version,
            )
            return None
        return stored

    async def count_open_battles(self, game_slug: str, player_id: str) -> int:
        row = self._db.connection.execute(
            "SELECT COUNT(*) FROM battles "
            "WHERE game_slug = ? AND (player1_id = ? OR player2_id = ?) AND status IN (?, ?)",
            (game_slug, player_id, player_id, BattleStatus.PENDING.value, BattleStatus.ACTIVE.value),
        ).fetchone()
        return row[0]

    async def list_battles(
        self,
        query: BattleQuery,
        *,
        before_seq: int | None = None,
        limit: int | None = None,
    ) -> list[BattleRecord]:
        """Return matching battles ordered by insertion key, newest first."""
        where, params = _where(query, before_seq)
        sql = f"SELECT seq, data FROM battles WHERE {where} ORDER BY seq DESC"  # noqa: S608
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = self._db.connection.execute(sql, params).fetchall()
        return [_row_to_battle(row) for row in rows]

    async def count_by_status(self, query: BattleQuery) -> dict[BattleStatus, int]:
        where, params = _where(query)
        rows = self._db.connection.execute(
            f"SELECT status, COUNT(*) FROM battles WHERE {where} GROUP BY status",  # noqa: S608
            params,
        ).fetchall()
        return {BattleStatus(status): count for status, count in rows}

    async def get_player_stats(self, game_slug: str, player_id: str) -> PlayerBattleStats:
        """Aggregate a player's record. Uses json_each to count submitted turns."""
        conn = self._db.connection
        participant = "game_slug = ? AND (player1_id = ? OR player2_id = ?)"
        base_params = (game_slug, player_id, player_id)

        counts = {
            BattleStatus(status): count
            for status, count in conn.execute(
                f"SELECT status, COUNT(*) FROM battles WHERE {participant} GROUP BY status",  # noqa: S608
                base_params,
            ).fetchall()
        }
        wins, losses, draws = conn.execute(
            "SELECT "
            "  COALESCE(SUM(json_extract(data, '$.winner_id') = ?), 0), "
            "  COALESCE(SUM(json_extract(data, '$.winner_id') IS NOT NULL "
            "      AND json_extract(data, '$.winner_id') != ?), 0), "
            "  COALESCE(SUM(json_extract(data, '$.end_reason') = ?), 0) "
            f"FROM battles WHERE {participant} AND status = ?",  # noqa: S608
            (player_id, player_id, EndReason.DRAW.value, *base_params, BattleStatus.COMPLETED.value),
        ).fetchone()
        turns_submitted = conn.execute(
            "SELECT COUNT(*) FROM battles AS b, json_each(b.data, '$.turns') AS t "
            "WHERE b.game_slug = ? AND (b.player1_id = ? OR b.player2_id = ?) "
            "AND json_extract(t.value, '$.submitter_id') = ?",
            (*base_params, player_id),
        ).fetchone()[0]

        return PlayerBattleStats(
            counts=counts,
            wins=wins,
            losses=losses,
            draws=draws,
            turns_submitted=turns_submitted,
        )
