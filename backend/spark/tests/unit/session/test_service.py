"""Tests for the room action service: authorization, phase checks and published events."""

import random

import pytest

from spark.logic.enums import Category, GameLength, GamePhase, PowerUpType, SparkType
from spark.logic.exceptions import (
    InvalidPhaseError,
    NeedsSecondPlayerError,
    NotAuthorizedError,
    NotHostError,
    PowerUpExhaustedError,
    RoomNotFoundError,
)
from spark.logic.questions import QuestionCatalog
from spark.logic.types import GameOptions
from spark.messaging.events import EventType
from spark.session.registry import RoomRegistry
from spark.session.service import RoomActionService
from spark.tests.helpers.factories import make_question

from spark.tests.unit.session.helpers import create_seated_room, create_started_room


def _types(subscription) -> list[EventType]:
    return [e.type for e in subscription.drain()]


class TestStartGame:
    async def test_quick_game_sets_target(self, service):
        room = await create_seated_room(service)

        state = await service.start_game(room.room_id, room.host_id, GameOptions(game_length=GameLength.QUICK))

        assert state.total_questions == 10
        assert state.game_phase == GamePhase.PLAYING
        assert state.settings.player1_name == "Alex"
        assert state.settings.player2_name == "Sam"
        for subscription in (room.host_events, room.guest_events):
            events = subscription.drain()
            assert [e.type for e in events] == [EventType.GAME_STARTED]
            assert events[0].settings.game_length == GameLength.QUICK

    async def test_guest_cannot_start(self, service):
        room = await create_seated_room(service)
        with pytest.raises(NotHostError):
            await service.start_game(room.room_id, room.guest_id, GameOptions())
        assert room.host_events.drain() == []

    async def test_needs_guest(self, service):
        created = service.create_room("Alex")
        with pytest.raises(NeedsSecondPlayerError):
            await service.start_game(created.room_id, created.player_id, GameOptions())

    async def test_only_from_setup(self, service):
        room = await create_started_room(service)
        with pytest.raises(InvalidPhaseError):
            await service.start_game(room.room_id, room.host_id, GameOptions())

    async def test_outsider_rejected(self, service):
        room = await create_seated_room(service)
        with pytest.raises(NotAuthorizedError):
            await service.start_game(room.room_id, "stranger", GameOptions())

    async def test_unknown_room(self, service):
        with pytest.raises(RoomNotFoundError):
            await service.start_game("missing", "p", GameOptions())


class TestRollDice:
    async def test_publishes_roll_then_question(self, service):
        room = await create_started_room(service)

        result = await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)

        assert result.category == Category.DREAMS
        assert result.question.category == Category.DREAMS
        events = room.guest_events.drain()
        assert [e.type for e in events] == [EventType.DICE_ROLLED, EventType.QUESTION_SELECTED]
        assert events[1].question == result.question

        state = service.get_room_state(room.room_id, room.host_id)
        assert state.current_question == result.question
        assert result.question.id in state.questions_answered

    async def test_timer_stamp_when_enabled(self, service):
        room = await create_started_room(service, GameOptions(enable_timer=True, timer_seconds=90))
        await service.roll_dice(room.room_id, room.host_id, Category.SPICY)
        events = room.host_events.drain()
        assert events[1].timer_started_at is not None

    async def test_requires_playing(self, service):
        room = await create_seated_room(service)
        with pytest.raises(InvalidPhaseError):
            await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)

    async def test_exhausted_catalog_ends_game(self):
        service = RoomActionService(RoomRegistry(), QuestionCatalog([make_question("only")]), rng=random.Random(1))
        room = await create_started_room(service)

        await service.roll_dice(room.room_id, room.host_id, Category.ICEBREAKER)
        await service.complete_answer(room.room_id, room.host_id)
        await service.next_turn(room.room_id, room.host_id)
        room.guest_events.drain()

        result = await service.roll_dice(room.room_id, room.guest_id, Category.ICEBREAKER)

        assert result.question is None
        assert _types(room.guest_events) == [EventType.DICE_ROLLED, EventType.GAME_ENDED]
        assert service.get_room_state(room.room_id, room.host_id).game_phase == GamePhase.ENDED


class TestAwardSparks:
    async def test_points_for_named_recipient(self, service):
        room = await create_started_room(service)
        await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)
        await service.complete_answer(room.room_id, room.host_id)

        points = await service.award_sparks(
            room.room_id,
            room.guest_id,
            [SparkType.MADE_ME_LAUGH, SparkType.BRAVE],
            awarded_to=room.host_id,
        )

        assert points == 6
        state = service.get_room_state(room.room_id, room.host_id)
        assert state.player1_sparks == 6
        assert state.player2_sparks == 0
        events = room.host_events.drain()
        assert events[-1].type == EventType.SPARKS_AWARDED
        assert events[-1].spark_types == ("made-me-laugh", "brave")
        assert events[-1].points == 6

    async def test_no_recipient_credits_current_turn(self, service):
        room = await create_started_room(service)
        await service.next_turn(room.room_id, room.host_id)

        await service.award_sparks(room.room_id, room.host_id, [SparkType.CONNECTION])

        state = service.get_room_state(room.room_id, room.host_id)
        assert state.player2_sparks == 3

    async def test_recipient_must_be_member(self, service):
        room = await create_started_room(service)
        with pytest.raises(NotAuthorizedError):
            await service.award_sparks(room.room_id, room.host_id, [SparkType.HOT], awarded_to="stranger")

    async def test_rejected_outside_game(self, service):
        room = await create_seated_room(service)
        with pytest.raises(InvalidPhaseError):
            await service.award_sparks(room.room_id, room.host_id, [SparkType.HOT])


class TestCompleteAnswer:
    async def test_moves_to_awarding(self, service):
        room = await create_started_room(service)
        await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)
        room.host_events.drain()

        state = await service.complete_answer(room.room_id, room.host_id)

        assert state.game_phase == GamePhase.AWARDING_SPARKS
        assert _types(room.host_events) == [EventType.ANSWER_COMPLETED]

    async def test_requires_question(self, service):
        room = await create_started_room(service)
        with pytest.raises(InvalidPhaseError):
            await service.complete_answer(room.room_id, room.host_id)


class TestNextTurn:
    async def test_quick_game_ends_after_ten_turns(self, service):
        room = await create_started_room(service, GameOptions(game_length=GameLength.QUICK))

        for _ in range(10):
            await service.next_turn(room.room_id, room.host_id)

        state = service.get_room_state(room.room_id, room.host_id)
        assert state.question_count == 10
        assert state.game_phase == GamePhase.ENDED
        types = _types(room.guest_events)
        assert types.count(EventType.TURN_CHANGED) == 10
        assert types[-1] == EventType.GAME_ENDED

        with pytest.raises(InvalidPhaseError):
            await service.next_turn(room.room_id, room.host_id)
        assert service.get_room_state(room.room_id, room.host_id).question_count == 10

    async def test_turn_alternates(self, service):
        room = await create_started_room(service)
        state = await service.next_turn(room.room_id, room.guest_id)
        assert state.current_turn == 2
        state = await service.next_turn(room.room_id, room.guest_id)
        assert state.current_turn == 1


class TestPowerUps:
    async def test_reverse_once_per_participant(self, service):
        room = await create_started_room(service)

        await service.use_power_up(room.room_id, room.host_id, PowerUpType.REVERSE)
        room.guest_events.drain()

        with pytest.raises(PowerUpExhaustedError):
            await service.use_power_up(room.room_id, room.host_id, PowerUpType.REVERSE)
        assert room.guest_events.drain() == []

        await service.use_power_up(room.room_id, room.guest_id, PowerUpType.REVERSE)
        state = service.get_room_state(room.room_id, room.host_id)
        assert state.usage_for(1).reverse == 1
        assert state.usage_for(2).reverse == 1

    async def test_skip_changes_turn(self, service):
        room = await create_started_room(service)
        await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)
        room.host_events.drain()

        state = await service.use_power_up(room.room_id, room.host_id, PowerUpType.SKIP)

        assert state.current_turn == 2
        assert state.question_count == 1
        assert state.current_question is None
        assert _types(room.host_events) == [EventType.POWER_UP_USED, EventType.TURN_CHANGED]

    async def test_skip_on_last_question_ends_game(self, service):
        room = await create_started_room(service, GameOptions(game_length=GameLength.QUICK))
        for _ in range(9):
            await service.next_turn(room.room_id, room.host_id)
        await service.roll_dice(room.room_id, room.guest_id, Category.ICEBREAKER)
        room.host_events.drain()

        await service.use_power_up(room.room_id, room.guest_id, PowerUpType.SKIP)

        assert _types(room.host_events) == [EventType.POWER_UP_USED, EventType.TURN_CHANGED, EventType.GAME_ENDED]

    @pytest.mark.parametrize("power_up", [PowerUpType.SKIP, PowerUpType.RE_ROLL])
    async def test_needs_question_on_board(self, service, power_up):
        room = await create_started_room(service)

        with pytest.raises(InvalidPhaseError):
            await service.use_power_up(room.room_id, room.host_id, power_up)

        state = service.get_room_state(room.room_id, room.host_id)
        assert state.question_count == 0
        assert state.usage_for(1).used(power_up) == 0
        assert room.guest_events.drain() == []

    async def test_re_roll_allows_new_roll(self, service):
        room = await create_started_room(service)
        first = await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)

        state = await service.use_power_up(room.room_id, room.host_id, PowerUpType.RE_ROLL)

        assert state.game_phase == GamePhase.PLAYING
        assert state.current_question is None
        second = await service.roll_dice(room.room_id, room.host_id, Category.SPICY)
        assert second.question.id != first.question.id
        assert service.get_room_state(room.room_id, room.host_id).question_count == 0

    @pytest.mark.parametrize("power_up", list(PowerUpType))
    async def test_rejected_while_awarding(self, service, power_up):
        room = await create_started_room(service)
        await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)
        await service.complete_answer(room.room_id, room.host_id)
        room.guest_events.drain()

        with pytest.raises(InvalidPhaseError):
            await service.use_power_up(room.room_id, room.host_id, power_up)

        state = service.get_room_state(room.room_id, room.host_id)
        assert state.game_phase == GamePhase.AWARDING_SPARKS
        assert state.current_question is not None
        assert state.usage_for(1).used(power_up) == 0
        assert room.guest_events.drain() == []


class TestGuestLeavesMidGame:
    async def test_room_returns_to_setup(self, service):
        room = await create_started_room(service)
        await service.roll_dice(room.room_id, room.host_id, Category.DREAMS)
        room.host_events.drain()

        await service.leave_room(room.room_id, room.guest_id)

        seated = service.registry.get_room(room.room_id)
        assert seated.guest is None
        assert seated.is_member(room.host_id)
        assert seated.host.is_connected is True
        assert seated.state.game_phase == GamePhase.SETUP
        assert seated.state.settings.player2_name == ""
        assert _types(room.host_events) == [EventType.PLAYER_LEFT]
        with pytest.raises(NotAuthorizedError):
            service.get_room_state(room.room_id, room.guest_id)

        with pytest.raises(NeedsSecondPlayerError):
            await service.start_game(room.room_id, room.host_id, GameOptions())

        await service.join_room(room.room_code, "Jo")
        state = await service.start_game(room.room_id, room.host_id, GameOptions())
        assert state.game_phase == GamePhase.PLAYING
        assert state.settings.player2_name == "Jo"


class TestEndAndReset:
    async def test_end_game_reports_tallies(self, service):
        room = await create_started_room(service)
        await service.award_sparks(room.room_id, room.guest_id, [SparkType.BRAVE], awarded_to=room.host_id)
        room.host_events.drain()

        await service.end_game(room.room_id, room.guest_id)

        events = room.host_events.drain()
        assert [e.type for e in events] == [EventType.GAME_ENDED]
        assert (events[0].player1_sparks, events[0].player2_sparks) == (4, 0)

    async def test_end_game_requires_game(self, service):
        room = await create_seated_room(service)
        with pytest.raises(InvalidPhaseError):
            await service.end_game(room.room_id, room.host_id)

    async def test_reset_is_host_only(self, service):
        room = await create_started_room(service)
        with pytest.raises(NotHostError):
            await service.reset_game(room.room_id, room.guest_id)

        state = await service.reset_game(room.room_id, room.host_id)

        assert state.game_phase == GamePhase.SETUP
        assert state.settings.player2_name == "Sam"
        assert _types(room.guest_events) == [EventType.GAME_RESET]
        # a fresh game can start again
        await service.start_game(room.room_id, room.host_id, GameOptions())
