"""Admission control: cap the number of open battles per player and game.

Count-then-insert is not atomic. The ceiling is advisory headroom, so two
concurrent creations by the same player may overshoot it by one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from battles.engine.errors import AdmissionError

if TYPE_CHECKING:
    from shared.dal.battle_repository import BattleRepository

logger = structlog.get_logger()

DEFAULT_MAX_ACTIVE_BATTLES = 9


async def check_admission(
    repo: BattleRepository,
    game_slug: str,
    player_id: str,
    ceiling: int = DEFAULT_MAX_ACTIVE_BATTLES,
) -> int:
    """Return the player's open battle count, raising AdmissionError at or above ``ceiling``."""
    open_count = await repo.count_open_battles(game_slug, player_id)
    if open_count >= ceiling:
        logger.info("admission rejected", player_id=player_id, open_battles=open_count, ceiling=ceiling)
        raise AdmissionError(
            f"Maximum {ceiling} active battles allowed",
            details={"openBattles": open_count, "maxTotal": ceiling},
        )
    return open_count
