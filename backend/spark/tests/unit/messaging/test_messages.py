import pytest
from pydantic import ValidationError

from spark.logic.enums import Category, GameLength, PowerUpType, SparkType
from spark.messaging.events import EventType, PlayerLeftEvent, SparksAwardedEvent, parse_room_event
from spark.messaging.types import (
    AwardSparksMessage,
    CreateRoomMessage,
    JoinRoomMessage,
    RollDiceMessage,
    StartGameMessage,
    UsePowerUpMessage,
    parse_client_message,
    validate_player_name,
)

_ROOM = {"room_id": "room1", "player_id": "player1"}


class TestParseClientMessage:
    def test_create_room_strips_name(self):
        message = parse_client_message({"type": "create_room", "host_name": "  Alex "})
        assert isinstance(message, CreateRoomMessage)
        assert message.host_name == "Alex"

    def test_join_room(self):
        message = parse_client_message({"type": "join_room", "room_code": "AB12CD", "player_name": "Sam"})
        assert isinstance(message, JoinRoomMessage)

    @pytest.mark.parametrize("code", ["ABC", "ABCDEFG", "AB-12C"])
    def test_join_room_bad_code(self, code):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "join_room", "room_code": code, "player_name": "Sam"})

    def test_start_game_defaults(self):
        message = parse_client_message({"type": "start_game", **_ROOM})
        assert isinstance(message, StartGameMessage)
        assert message.settings.game_length == GameLength.STANDARD
        assert len(message.settings.selected_categories) == 6

    def test_start_game_rejects_unknown_setting(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "start_game", **_ROOM, "settings": {"player1_name": "Mallory"}})

    def test_start_game_needs_a_category(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "start_game", **_ROOM, "settings": {"selected_categories": []}})

    def test_roll_dice_category_range(self):
        message = parse_client_message({"type": "roll_dice", **_ROOM, "category": 4})
        assert isinstance(message, RollDiceMessage)
        assert message.category == Category.STORY_TIME
        with pytest.raises(ValidationError):
            parse_client_message({"type": "roll_dice", **_ROOM, "category": 7})

    def test_award_sparks(self):
        message = parse_client_message(
            {"type": "award_sparks", **_ROOM, "spark_types": ["brave", "same"], "awarded_to": "player2"},
        )
        assert isinstance(message, AwardSparksMessage)
        assert message.spark_types == [SparkType.BRAVE, SparkType.SAME]

    def test_award_sparks_requires_one(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "award_sparks", **_ROOM, "spark_types": []})

    def test_use_power_up(self):
        message = parse_client_message({"type": "use_power_up", **_ROOM, "power_up": "both-answer"})
        assert isinstance(message, UsePowerUpMessage)
        assert message.power_up == PowerUpType.BOTH_ANSWER

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "cheat", **_ROOM})

    def test_bad_player_id(self):
        with pytest.raises(ValidationError):
            parse_client_message({"type": "next_turn", "room_id": "room1", "player_id": "../etc"})


class TestPlayerNames:
    def test_blank_rejected(self):
        with pytest.raises(ValueError, match="blank"):
            validate_player_name("   ")

    def test_control_characters_rejected(self):
        with pytest.raises(ValueError, match="control"):
            validate_player_name("Al\x00ex")


class TestRoomEvents:
    def test_parse_by_type(self):
        event = parse_room_event({"type": "PLAYER_LEFT", "room_id": "r", "player_id": "p", "player_name": "Sam"})
        assert isinstance(event, PlayerLeftEvent)

    def test_dump_and_parse_preserve_event(self):
        event = SparksAwardedEvent(room_id="r", awarded_by="p1", spark_types=("brave",), points=4)
        parsed = parse_room_event(event.model_dump(mode="json"))
        assert parsed == event
        assert parsed.type == EventType.SPARKS_AWARDED
        assert parsed.awarded_to is None

    def test_events_are_frozen(self):
        event = PlayerLeftEvent(room_id="r", player_id="p", player_name="Sam")
        with pytest.raises(ValidationError):
            event.player_name = "Jo"
