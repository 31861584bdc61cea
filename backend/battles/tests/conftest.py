"""Shared fixtures for battle engine tests."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from shared.dal.models import BattleRecord, BattleStatus
from shared.db import Database, SqliteBattleRepository

if TYPE_CHECKING:
    from pathlib import Path

GAMES_YAML = """\
games:
  - slug: "birdwars"
    name: "Bird Wars"
    capabilities: ["async", "data"]
    haikunator:
      adjectives: ["Molting", "Brooding"]
      nouns: ["Skirmish", "Siege"]
  - slug: "pentagon"
    name: "Pentagon"
    capabilities: ["async"]
    extra_action_types: ["rotate"]
    max_active_battles: 2
  - slug: "scoreboard"
    name: "Scoreboard Only"
    capabilities: ["leaderboard"]
"""


class InterleavingBattleRepository(SqliteBattleRepository):
    """Yields to the event loop after every read.

    Concurrent callers therefore all read the same version before any of them
    writes, which is the interleaving compare-and-swap must resolve.
    """

    async def get_battle(self, game_slug: str, battle_id: str) -> BattleRecord | None:
        battle = await super().get_battle(game_slug, battle_id)
        await asyncio.sleep(0)
        return battle


def _new_battle(
    battle_id: str = "b1",
    player1_id: str = "alice",
    game_slug: str = "birdwars",
    *,
    is_private: bool = False,
) -> BattleRecord:
    now = datetime.now(tz=UTC)
    return BattleRecord(
        battle_id=battle_id,
        display_name=f"Battle {battle_id}",
        game_slug=game_slug,
        player1_id=player1_id,
        is_private=is_private,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def games_config(tmp_path: Path) -> Path:
    path = tmp_path / "games.yaml"
    path.write_text(GAMES_YAML)
    return path


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "battles.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def repo(db: Database) -> InterleavingBattleRepository:
    return InterleavingBattleRepository(db)


@pytest.fixture
async def pending_battle(repo: SqliteBattleRepository) -> BattleRecord:
    return await repo.create_battle(_new_battle())


@pytest.fixture
async def active_battle(repo: SqliteBattleRepository) -> BattleRecord:
    created = await repo.create_battle(_new_battle())
    joined = created.model_copy(
        update={"player2_id": "bob", "status": BattleStatus.ACTIVE, "last_turn_at": created.created_at},
    )
    stored = await repo.compare_and_swap(joined, expected_version=created.version)
    assert stored is not None
    return stored


@pytest.fixture
def make_battle():
    """Factory for unsaved pending battles."""
    return _new_battle
