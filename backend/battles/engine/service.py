"""Battle service: one entry point per battle operation.

Each write operation reads the battle, hands it to the engine module that
owns the transition, and lets that module perform the conditional write.
Handlers never touch the repository directly.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from battles.engine import admission, matchmaking, resolution, turns
from battles.engine.errors import InvalidRequestError, NotFoundError, StateConflictError
from battles.engine.listing import NOTHING_KNOWN, BattlePage, list_page, poll_turns
from shared.dal.models import BattleQuery, BattleRecord, BattleStatus
from shared.logging import bind_battle_context
from shared.names import NameKind, generate_name

if TYPE_CHECKING:
    from battles.engine.listing import PollResult
    from battles.registry.manager import GameRegistry
    from battles.registry.types import GameConfig
    from shared.dal.battle_repository import BattleRepository
    from shared.dal.models import PlayerBattleStats, Turn

logger = structlog.get_logger()

BATTLE_ID_BYTES = 8


class BattleService:
    def __init__(
        self,
        battle_repo: BattleRepository,
        registry: GameRegistry,
        *,
        max_active_battles: int = admission.DEFAULT_MAX_ACTIVE_BATTLES,
        default_page_size: int = 9,
        max_page_size: int = 50,
        invalid_turn_policy: turns.InvalidTurnPolicy = turns.InvalidTurnPolicy.RECORD,
    ) -> None:
        self._battle_repo = battle_repo
        self._registry = registry
        self._max_active_battles = max_active_battles
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._invalid_turn_policy = invalid_turn_policy

    def get_game(self, game_slug: str) -> GameConfig:
        """Return the registered game, or raise NotFoundError if it has no battle support."""
        game = self._registry.get_game(game_slug)
        if game is None or not game.supports_battles:
            raise NotFoundError(f"Game '{game_slug}' not found", code="game_not_found")
        return game

    def admission_ceiling(self, game: GameConfig) -> int:
        return game.max_active_battles or self._max_active_battles

    async def get_battle(self, game_slug: str, battle_id: str) -> BattleRecord:
        game = self.get_game(game_slug)
        battle = await self._battle_repo.get_battle(game.slug, battle_id)
        if battle is None:
            raise NotFoundError("Battle not found", code="battle_not_found")
        return battle

    async def create_battle(
        self,
        game_slug: str,
        creator_id: str,
        *,
        map_data: dict[str, Any] | None = None,
        is_private: bool = False,
    ) -> BattleRecord:
        game = self.get_game(game_slug)
        await admission.check_admission(self._battle_repo, game.slug, creator_id, self.admission_ceiling(game))

        battle_id = secrets.token_hex(BATTLE_ID_BYTES)
        bind_battle_context(game.slug, battle_id)
        now = datetime.now(tz=UTC)
        battle = BattleRecord(
            battle_id=battle_id,
            display_name=generate_name(battle_id, NameKind.BATTLE, game.name_adjectives, game.name_nouns),
            game_slug=game.slug,
            player1_id=creator_id,
            map_data=map_data or {},
            is_private=is_private,
            created_at=now,
            updated_at=now,
        )
        try:
            stored = await self._battle_repo.create_battle(battle)
        except ValueError as e:
            raise StateConflictError(str(e), code="battle_exists") from e

        logger.info("battle created", player_id=creator_id, is_private=is_private)
        return stored

    async def join_battle(self, game_slug: str, battle_id: str, joiner_id: str) -> BattleRecord:
        battle = await self.get_battle(game_slug, battle_id)
        bind_battle_context(battle.game_slug, battle_id)
        matchmaking.check_joinable(battle, joiner_id)
        game = self.get_game(game_slug)
        await admission.check_admission(self._battle_repo, game.slug, joiner_id, self.admission_ceiling(game))
        return await matchmaking.join_battle(self._battle_repo, battle, joiner_id)

    async def submit_turn(
        self,
        game_slug: str,
        battle_id: str,
        submitter_id: str,
        submission: turns.TurnSubmission,
    ) -> tuple[BattleRecord, Turn]:
        battle = await self.get_battle(game_slug, battle_id)
        bind_battle_context(battle.game_slug, battle_id)
        options = turns.TurnOptions(
            allowed_action_types=turns.allowed_action_types(self.get_game(game_slug).extra_action_types),
            policy=self._invalid_turn_policy,
        )
        return await turns.submit_turn(self._battle_repo, battle, submitter_id, submission, options)

    async def forfeit_battle(self, game_slug: str, battle_id: str, player_id: str) -> BattleRecord:
        battle = await self.get_battle(game_slug, battle_id)
        bind_battle_context(battle.game_slug, battle_id)
        return await resolution.forfeit_battle(self._battle_repo, battle, player_id)

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            return self._default_page_size
        return max(1, min(limit, self._max_page_size))

    async def list_battles(
        self,
        game_slug: str,
        *,
        participant_id: str | None = None,
        status: BattleStatus | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> BattlePage:
        """List a game's battles.

        Without ``participant_id`` only public, non-abandoned battles are
        listed. With it, every battle the player takes part in is.
        """
        game = self.get_game(game_slug)
        scoped = participant_id is not None
        query = BattleQuery(
            game_slug=game.slug,
            participant_id=participant_id,
            include_private=scoped,
            include_abandoned=scoped,
            status=status,
        )
        return await list_page(self._battle_repo, query, limit=self.clamp_limit(limit), cursor=cursor)

    async def count_open_battles(self, game_slug: str, player_id: str) -> int:
        game = self.get_game(game_slug)
        return await self._battle_repo.count_open_battles(game.slug, player_id)

    async def get_turns(self, game_slug: str, battle_id: str) -> list[Turn]:
        battle = await self.get_battle(game_slug, battle_id)
        return sorted(battle.turns, key=lambda turn: turn.turn_number)

    async def poll(self, game_slug: str, battle_id: str, last_known_turn: int = NOTHING_KNOWN) -> PollResult:
        if last_known_turn < NOTHING_KNOWN:
            raise InvalidRequestError("lastKnownTurn must be -1 or greater", code="invalid_last_known_turn")
        battle = await self.get_battle(game_slug, battle_id)
        return poll_turns(battle, last_known_turn)

    async def player_stats(self, game_slug: str, player_id: str) -> PlayerBattleStats:
        game = self.get_game(game_slug)
        return await self._battle_repo.get_player_stats(game.slug, player_id)
