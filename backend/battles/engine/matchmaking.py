"""Join protocol: fill the second seat exactly once.

The join is a single compare-and-swap on the version read while the battle
was pending. Of two racing joiners one wins; the other sees the swap fail and
is told the battle was already joined.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from battles.engine.errors import JoinRejectedError
from shared.dal.models import BattleStatus

if TYPE_CHECKING:
    from shared.dal.battle_repository import BattleRepository
    from shared.dal.models import BattleRecord

logger = structlog.get_logger()


def check_joinable(battle: BattleRecord, joiner_id: str) -> None:
    if battle.status != BattleStatus.PENDING:
        raise JoinRejectedError(
            f"Battle is not in pending state (status: {battle.status})",
            code="battle_not_pending",
        )
    if battle.player2_id is not None:
        raise JoinRejectedError("Battle is already full", code="already_joined")
    if battle.player1_id == joiner_id:
        raise JoinRejectedError("Cannot join your own battle", code="self_join")


def apply_join(battle: BattleRecord, joiner_id: str, now: datetime) -> BattleRecord:
    """Return the battle as it looks after ``joiner_id`` takes the second seat."""
    check_joinable(battle, joiner_id)
    return battle.model_copy(
        update={
            "player2_id": joiner_id,
            "status": BattleStatus.ACTIVE,
            "current_turn_number": 0,
            "current_player_index": 0,
            "last_turn_at": now,
            "updated_at": now,
        },
    )


async def join_battle(repo: BattleRepository, battle: BattleRecord, joiner_id: str) -> BattleRecord:
    """Join ``battle`` (as read by the caller) or raise JoinRejectedError."""
    joined = apply_join(battle, joiner_id, datetime.now(tz=UTC))
    stored = await repo.compare_and_swap(joined, expected_version=battle.version)
    if stored is None:
        logger.warning("join lost race", battle_id=battle.battle_id, player_id=joiner_id)
        raise JoinRejectedError("Battle was already joined by another player", code="already_joined")
    logger.info("battle joined", battle_id=battle.battle_id, player_id=joiner_id)
    return stored
