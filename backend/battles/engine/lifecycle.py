"""Battle lifecycle state machine.

pending -> active -> completed | abandoned, plus pending -> abandoned when the
creator cancels. Terminal battles only allow reads.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from battles.engine.errors import StateConflictError
from shared.dal.models import BattleStatus

if TYPE_CHECKING:
    from shared.dal.models import BattleRecord

ALLOWED_TRANSITIONS: dict[BattleStatus, frozenset[BattleStatus]] = {
    BattleStatus.PENDING: frozenset({BattleStatus.ACTIVE, BattleStatus.ABANDONED}),
    BattleStatus.ACTIVE: frozenset({BattleStatus.COMPLETED, BattleStatus.ABANDONED}),
    BattleStatus.COMPLETED: frozenset(),
    BattleStatus.ABANDONED: frozenset(),
}

TERMINAL_STATUSES = frozenset({BattleStatus.COMPLETED, BattleStatus.ABANDONED})


def is_terminal(status: BattleStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: BattleStatus, target: BattleStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_not_terminal(battle: BattleRecord) -> None:
    if is_terminal(battle.status):
        raise StateConflictError(
            f"Battle has already ended (status: {battle.status})",
            code="battle_terminal",
        )


def ensure_transition(battle: BattleRecord, target: BattleStatus) -> None:
    """Raise StateConflictError unless ``battle`` may move to ``target``."""
    ensure_not_terminal(battle)
    if not can_transition(battle.status, target):
        raise StateConflictError(
            f"Cannot move battle from {battle.status} to {target}",
            code="illegal_transition",
        )


def current_player_id(battle: BattleRecord) -> str | None:
    """Id of the participant whose move is next, or None before the battle is full."""
    if battle.player2_id is None:
        return None
    return battle.participants[battle.current_player_index]


def opponent_of(battle: BattleRecord, player_id: str) -> str | None:
    if player_id == battle.player1_id:
        return battle.player2_id
    if player_id == battle.player2_id:
        return battle.player1_id
    return None
