from __future__ import annotations

import asyncio

import pytest

from battles.engine.errors import (
    AdmissionError,
    InvalidRequestError,
    JoinRejectedError,
    NotFoundError,
    StateConflictError,
)
from battles.engine.service import BattleService
from battles.engine.turns import InvalidTurnPolicy, TurnSubmission
from battles.registry.manager import GameRegistry
from shared.dal.models import Action, BattleStatus, EndReason


def _end_turn(turn_number: int | None = None) -> TurnSubmission:
    return TurnSubmission(actions=[Action(type="end_turn")], turn_number=turn_number)


@pytest.fixture
def registry(games_config):
    return GameRegistry(games_config)


@pytest.fixture
def service(repo, registry):
    return BattleService(repo, registry)


async def _active(service: BattleService, game_slug: str = "birdwars"):
    battle = await service.create_battle(game_slug, "alice")
    return await service.join_battle(game_slug, battle.battle_id, "bob")


class TestGames:
    def test_unknown_game_is_not_found(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            service.get_game("chess")
        assert exc_info.value.code == "game_not_found"

    def test_game_without_async_capability_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.get_game("scoreboard")

    def test_slug_lookup_ignores_case(self, service):
        assert service.get_game("BirdWars").slug == "birdwars"

    def test_admission_ceiling_override(self, service):
        assert service.admission_ceiling(service.get_game("birdwars")) == 9
        assert service.admission_ceiling(service.get_game("pentagon")) == 2


class TestCreate:
    async def test_creates_pending_battle(self, service):
        battle = await service.create_battle("birdwars", "alice", map_data={"size": 8}, is_private=True)

        assert len(battle.battle_id) == 16
        assert battle.status == BattleStatus.PENDING
        assert battle.player1_id == "alice"
        assert battle.player2_id is None
        assert battle.current_turn_number == 0
        assert battle.map_data == {"size": 8}
        assert battle.is_private
        assert battle.seq is not None

    async def test_display_name_uses_game_words(self, service):
        battle = await service.create_battle("birdwars", "alice")

        adjective, noun, _ = battle.display_name.split("-")
        assert adjective in {"Molting", "Brooding"}
        assert noun in {"Skirmish", "Siege"}

    async def test_tenth_open_battle_is_refused(self, service):
        battles = [await service.create_battle("birdwars", "alice") for _ in range(9)]

        with pytest.raises(AdmissionError) as exc_info:
            await service.create_battle("birdwars", "alice")
        assert exc_info.value.details == {"openBattles": 9, "maxTotal": 9}

        await service.forfeit_battle("birdwars", battles[0].battle_id, "alice")
        assert (await service.create_battle("birdwars", "alice")).status == BattleStatus.PENDING

    async def test_game_override_ceiling(self, service):
        await service.create_battle("pentagon", "alice")
        await service.create_battle("pentagon", "alice")

        with pytest.raises(AdmissionError):
            await service.create_battle("pentagon", "alice")

    async def test_configured_ceiling(self, repo, registry):
        service = BattleService(repo, registry, max_active_battles=1)
        await service.create_battle("birdwars", "alice")

        with pytest.raises(AdmissionError):
            await service.create_battle("birdwars", "alice")

    async def test_creation_is_logged_with_context(self, service, caplog):
        with caplog.at_level("INFO"):
            battle = await service.create_battle("birdwars", "alice")

        assert "battle created" in caplog.text
        assert battle.battle_id in caplog.text


class TestJoin:
    async def test_join_activates(self, service):
        battle = await _active(service)

        assert battle.status == BattleStatus.ACTIVE
        assert battle.player2_id == "bob"

    async def test_unknown_battle(self, service):
        with pytest.raises(NotFoundError):
            await service.join_battle("birdwars", "missing", "bob")

    async def test_joiner_is_subject_to_admission(self, service):
        for _ in range(9):
            await service.create_battle("birdwars", "bob")
        battle = await service.create_battle("birdwars", "alice")

        with pytest.raises(AdmissionError):
            await service.join_battle("birdwars", battle.battle_id, "bob")

    async def test_full_battle_rejects_before_admission(self, service):
        battle = await _active(service)

        with pytest.raises(JoinRejectedError) as exc_info:
            await service.join_battle("birdwars", battle.battle_id, "carol")
        assert exc_info.value.code == "battle_not_pending"

    async def test_concurrent_joins_have_one_winner(self, service):
        battle = await service.create_battle("birdwars", "alice")

        results = await asyncio.gather(
            service.join_battle("birdwars", battle.battle_id, "bob"),
            service.join_battle("birdwars", battle.battle_id, "carol"),
            return_exceptions=True,
        )

        rejected = [r for r in results if isinstance(r, JoinRejectedError)]
        assert len(rejected) == 1
        assert rejected[0].code == "already_joined"


class TestTurns:
    async def test_scenario_create_join_turn_forfeit(self, service):
        battle = await service.create_battle("birdwars", "alice")
        battle = await service.join_battle("birdwars", battle.battle_id, "carol")

        battle, turn = await service.submit_turn("birdwars", battle.battle_id, "alice", _end_turn(0))
        assert turn.turn_number == 0

        battle = await service.forfeit_battle("birdwars", battle.battle_id, "carol")
        assert battle.status == BattleStatus.COMPLETED
        assert battle.winner_id == "alice"
        assert battle.end_reason == EndReason.FORFEIT

        with pytest.raises(StateConflictError) as exc_info:
            await service.submit_turn("birdwars", battle.battle_id, "carol", _end_turn())
        assert exc_info.value.code == "battle_terminal"

    async def test_concurrent_duplicate_turn_appends_once(self, service):
        battle = await _active(service)

        results = await asyncio.gather(
            service.submit_turn("birdwars", battle.battle_id, "alice", _end_turn()),
            service.submit_turn("birdwars", battle.battle_id, "alice", _end_turn()),
            return_exceptions=True,
        )

        assert sum(isinstance(r, StateConflictError) for r in results) == 1
        turns = await service.get_turns("birdwars", battle.battle_id)
        assert [t.turn_number for t in turns] == [0]

    async def test_game_extra_action_types(self, service):
        battle = await _active(service, "pentagon")
        submission = TurnSubmission(actions=[Action(type="rotate"), Action(type="end_turn")])

        _, turn = await service.submit_turn("pentagon", battle.battle_id, "alice", submission)

        assert turn.actions[0].type == "rotate"

    async def test_extra_types_are_per_game(self, service):
        battle = await _active(service)
        submission = TurnSubmission(actions=[Action(type="rotate"), Action(type="end_turn")])

        with pytest.raises(InvalidRequestError):
            await service.submit_turn("birdwars", battle.battle_id, "alice", submission)

    async def test_reject_policy_from_configuration(self, repo, registry):
        service = BattleService(repo, registry, invalid_turn_policy=InvalidTurnPolicy.REJECT)
        battle = await _active(service)
        submission = TurnSubmission(actions=[Action(type="attack"), Action(type="end_turn")])

        with pytest.raises(InvalidRequestError) as exc_info:
            await service.submit_turn("birdwars", battle.battle_id, "alice", submission)
        assert exc_info.value.code == "invalid_turn"


class TestListing:
    async def test_public_listing_and_mine(self, service):
        public = await service.create_battle("birdwars", "alice")
        private = await service.create_battle("birdwars", "alice", is_private=True)
        cancelled = await service.create_battle("birdwars", "alice")
        await service.forfeit_battle("birdwars", cancelled.battle_id, "alice")

        listing = await service.list_battles("birdwars")
        mine = await service.list_battles("birdwars", participant_id="alice")

        assert [b.battle_id for b in listing.battles] == [public.battle_id]
        assert {b.battle_id for b in mine.battles} == {public.battle_id, private.battle_id, cancelled.battle_id}
        assert mine.counts[BattleStatus.ABANDONED] == 1

    @pytest.mark.parametrize(("requested", "expected"), [(None, 9), (0, 1), (-5, 1), (20, 20), (500, 50)])
    def test_limit_is_clamped(self, service, requested, expected):
        assert service.clamp_limit(requested) == expected

    async def test_open_battle_count(self, service):
        await service.create_battle("birdwars", "alice")
        await _active(service)

        assert await service.count_open_battles("birdwars", "alice") == 2
        assert await service.count_open_battles("birdwars", "bob") == 1


class TestPollAndStats:
    async def test_poll_after_turns(self, service):
        battle = await _active(service)
        await service.submit_turn("birdwars", battle.battle_id, "alice", _end_turn())

        result = await service.poll("birdwars", battle.battle_id)

        assert result.has_new_turns
        assert result.battle.current_turn_number == 1

    async def test_poll_rejects_negative_turn(self, service):
        battle = await service.create_battle("birdwars", "alice")

        with pytest.raises(InvalidRequestError):
            await service.poll("birdwars", battle.battle_id, last_known_turn=-2)

    async def test_player_stats(self, service):
        battle = await _active(service)
        await service.submit_turn("birdwars", battle.battle_id, "alice", _end_turn())
        await service.forfeit_battle("birdwars", battle.battle_id, "bob")

        alice = await service.player_stats("birdwars", "alice")
        bob = await service.player_stats("birdwars", "bob")

        assert (alice.wins, alice.losses, alice.turns_submitted) == (1, 0, 1)
        assert (bob.wins, bob.losses, bob.turns_submitted) == (0, 1, 0)
