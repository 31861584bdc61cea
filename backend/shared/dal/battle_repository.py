"""Abstract interface for battle record persistence.

Every state-advancing write goes through ``compare_and_swap``: the stored
record is replaced only if its version still equals the version the caller
read. Implementations must make that check and the write a single atomic step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import BattleQuery, BattleRecord, BattleStatus, PlayerBattleStats


class BattleRepository(ABC):
    """Abstract interface for battle record persistence."""

    @abstractmethod
    async def create_battle(self, battle: BattleRecord) -> BattleRecord:
        """Insert a new battle and return it with its insertion key assigned.

        Raises ValueError when the battle id is already taken.
        """

    @abstractmethod
    async def get_battle(self, game_slug: str, battle_id: str) -> BattleRecord | None: ...

    @abstractmethod
    async def compare_and_swap(self, battle: BattleRecord, expected_version: int) -> BattleRecord | None:
        """Replace the stored record if its version is still ``expected_version``.

        Returns the stored record (version bumped) on success, None when the
        record changed since it was read.
        """

    @abstractmethod
    async def count_open_battles(self, game_slug: str, player_id: str) -> int:
        """Count the player's pending and active battles in a game."""

    @abstractmethod
    async def list_battles(
        self,
        query: BattleQuery,
        *,
        before_seq: int | None = None,
        limit: int | None = None,
    ) -> list[BattleRecord]:
        """Return matching battles, newest insertion first, strictly before ``before_seq``."""

    @abstractmethod
    async def count_by_status(self, query: BattleQuery) -> dict[BattleStatus, int]: ...

    @abstractmethod
    async def get_player_stats(self, game_slug: str, player_id: str) -> PlayerBattleStats: ...
