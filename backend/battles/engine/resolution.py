"""Forfeit and cancellation.

These bypass the turn protocol but still write with compare-and-swap, so a
forfeit racing a turn submission makes exactly one of them win. A battle
that has already ended is never "forfeited again".
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from battles.engine import lifecycle
from battles.engine.errors import AuthorizationError, StateConflictError
from shared.dal.models import BattleStatus, EndReason

if TYPE_CHECKING:
    from shared.dal.battle_repository import BattleRepository
    from shared.dal.models import BattleRecord

logger = structlog.get_logger()


def apply_forfeit(battle: BattleRecord, player_id: str, now: datetime) -> BattleRecord:
    """Return the battle after ``player_id`` cancels (pending) or forfeits (active)."""
    lifecycle.ensure_not_terminal(battle)
    if not battle.has_participant(player_id):
        raise AuthorizationError("You are not a participant in this battle", code="not_participant")

    if battle.status == BattleStatus.PENDING:
        lifecycle.ensure_transition(battle, BattleStatus.ABANDONED)
        return battle.model_copy(
            update={
                "status": BattleStatus.ABANDONED,
                "end_reason": EndReason.CANCELLED,
                "updated_at": now,
            },
        )

    lifecycle.ensure_transition(battle, BattleStatus.COMPLETED)
    return battle.model_copy(
        update={
            "status": BattleStatus.COMPLETED,
            "end_reason": EndReason.FORFEIT,
            "winner_id": lifecycle.opponent_of(battle, player_id),
            "updated_at": now,
        },
    )


async def forfeit_battle(repo: BattleRepository, battle: BattleRecord, player_id: str) -> BattleRecord:
    resolved = apply_forfeit(battle, player_id, datetime.now(tz=UTC))
    stored = await repo.compare_and_swap(resolved, expected_version=battle.version)
    if stored is None:
        logger.warning("forfeit conflict", battle_id=battle.battle_id, player_id=player_id)
        raise StateConflictError("Battle changed while forfeiting; re-fetch and retry", code="forfeit_conflict")
    logger.info(
        "battle finished",
        battle_id=battle.battle_id,
        end_reason=stored.end_reason,
        winner_id=stored.winner_id,
        player_id=player_id,
    )
    return stored
