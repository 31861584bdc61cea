"""Data access layer: repository interfaces and shared persistence models."""

from shared.dal.battle_repository import BattleRepository
from shared.dal.identity_repository import IdentityRepository
from shared.dal.models import (
    Action,
    ActionType,
    BattleQuery,
    BattleRecord,
    BattleStatus,
    Coordinate,
    EndReason,
    PlayerBattleStats,
    Turn,
)

__all__ = [
    "Action",
    "ActionType",
    "BattleQuery",
    "BattleRecord",
    "BattleRepository",
    "BattleStatus",
    "Coordinate",
    "EndReason",
    "IdentityRepository",
    "PlayerBattleStats",
    "Turn",
]
