"""JSON shapes returned by the battle API.

Battle ids, timestamps and enums are dumped in JSON mode with camelCase keys.
Player display names are resolved per request and joined in here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from shared.dal.models import BattleStatus

if TYPE_CHECKING:
    from battles.engine.listing import BattlePage, PollResult
    from battles.registry.types import GameConfig
    from shared.auth.models import PlayerIdentity
    from shared.dal.models import BattleRecord, PlayerBattleStats, Turn

UNKNOWN_PLAYER_NAME = "Unknown Player"

_SUMMARY_EXCLUDE = {"turns", "current_state", "map_data"}
_POLL_FIELDS = {
    "battle_id",
    "status",
    "current_turn_number",
    "current_player_index",
    "current_state",
    "winner_id",
    "end_reason",
    "last_turn_at",
    "version",
}


def game_payload(game: GameConfig) -> dict[str, str]:
    return {"slug": game.slug, "name": game.name}


def winner_index(battle: BattleRecord) -> int | None:
    """Seat index (0 or 1) of the winner of a completed battle."""
    if battle.status != BattleStatus.COMPLETED or battle.winner_id is None:
        return None
    if battle.winner_id == battle.player1_id:
        return 0
    if battle.winner_id == battle.player2_id:
        return 1
    return None


def _player_names(battle: BattleRecord, players: dict[str, PlayerIdentity]) -> dict[str, str | None]:
    p1 = players.get(battle.player1_id)
    p2 = players.get(battle.player2_id) if battle.player2_id else None
    return {
        "player1DisplayName": p1.display_name if p1 else UNKNOWN_PLAYER_NAME,
        "player2DisplayName": p2.display_name if p2 else (UNKNOWN_PLAYER_NAME if battle.player2_id else None),
    }


def battle_summary(battle: BattleRecord, players: dict[str, PlayerIdentity]) -> dict[str, Any]:
    data = battle.model_dump(mode="json", by_alias=True, exclude=_SUMMARY_EXCLUDE)
    data.update(_player_names(battle, players))
    data["winner"] = winner_index(battle)
    return data


def battle_detail(battle: BattleRecord, players: dict[str, PlayerIdentity]) -> dict[str, Any]:
    """Full record without the turn log, which has its own endpoint."""
    data = battle.model_dump(mode="json", by_alias=True, exclude={"turns"})
    data.update(_player_names(battle, players))
    data["winner"] = winner_index(battle)
    return data


def turn_payload(turn: Turn) -> dict[str, Any]:
    data = turn.model_dump(mode="json", by_alias=True)
    data["actions"] = [action.model_dump(mode="json", by_alias=True, exclude_none=True) for action in turn.actions]
    return data


def page_payload(page: BattlePage, players: dict[str, PlayerIdentity]) -> dict[str, Any]:
    return {
        "battles": [battle_summary(battle, players) for battle in page.battles],
        "hasMore": page.has_more,
        "nextCursor": page.next_cursor,
        "total": page.total,
        "counts": {
            "active": page.counts.get(BattleStatus.ACTIVE, 0),
            "pending": page.counts.get(BattleStatus.PENDING, 0),
            "completed": page.counts.get(BattleStatus.COMPLETED, 0),
        },
    }


def poll_payload(result: PollResult) -> dict[str, Any]:
    data = result.battle.model_dump(mode="json", by_alias=True, include=_POLL_FIELDS)
    data["hasNewTurns"] = result.has_new_turns
    data["newTurns"] = [turn_payload(turn) for turn in result.new_turns]
    return data


def stats_payload(stats: PlayerBattleStats) -> dict[str, Any]:
    return {
        "total": stats.total,
        "counts": {status.value: stats.counts.get(status, 0) for status in BattleStatus},
        "wins": stats.wins,
        "losses": stats.losses,
        "draws": stats.draws,
        "turnsSubmitted": stats.turns_submitted,
    }
