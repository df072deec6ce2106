"""In-process clients folding the room stream converge on the server copy."""

import pytest

from spark.client.room_client import RoomClient
from spark.logic.enums import Category, ConnectionStatus, GameLength, GamePhase, PowerUpType, SparkType
from spark.logic.types import GameOptions


@pytest.fixture
async def clients(service):
    host = RoomClient(service)
    guest = RoomClient(service)
    host.create_room("Alex")
    await guest.join_room(host.state.room_code, "Sam")
    yield host, guest
    host.close()
    guest.close()


def _server_game(service, client: RoomClient):
    return service.get_room_state(client.room_id, client.player_id)


class TestRoomClient:
    async def test_host_sees_guest_join(self, clients):
        host, guest = clients
        assert host.state.waiting_for_player is True

        host.sync()

        assert host.state.guest.name == "Sam"
        assert host.state.waiting_for_player is False
        assert host.state.is_host
        assert not guest.state.is_host
        assert guest.state.connection_status == ConnectionStatus.CONNECTED

    async def test_actions_only_change_state_through_events(self, clients):
        host, _guest = clients
        host.sync()
        await host.start_game(GameOptions(game_length=GameLength.QUICK))

        assert host.state.game.game_phase == GamePhase.SETUP
        host.sync()
        assert host.state.game.game_phase == GamePhase.PLAYING

    async def test_both_views_converge_on_server(self, service, clients):
        host, guest = clients
        await host.start_game(GameOptions(game_length=GameLength.QUICK))
        await host.roll_dice(Category.DREAMS)
        await host.complete_answer()
        await guest.award_sparks([SparkType.MADE_ME_LAUGH, SparkType.BRAVE], awarded_to=host.player_id)
        await host.next_turn()
        await guest.use_power_up(PowerUpType.REVERSE)
        await guest.award_sparks([SparkType.SAME])
        await host.roll_dice(Category.SPICY)

        host.sync()
        guest.sync()

        server = _server_game(service, host)
        assert host.state.game == server
        assert guest.state.game == server
        assert server.player1_sparks == 8

    async def test_converge_through_game_end(self, service, clients):
        host, guest = clients
        await host.start_game(GameOptions(game_length=GameLength.QUICK))
        for _ in range(10):
            await host.next_turn()

        host.sync()
        guest.sync()

        assert host.state.game.game_phase == GamePhase.ENDED
        assert host.state.game == _server_game(service, host)
        assert guest.state.game == _server_game(service, guest)

    async def test_next_event_waits_for_one(self, clients):
        host, guest = clients
        host.sync()
        await host.start_game()
        event = await guest.next_event()
        assert event.type == "GAME_STARTED"
        assert guest.state.game.game_phase == GamePhase.PLAYING

    async def test_bookmark_is_local(self, service, clients):
        host, _guest = clients
        assert host.toggle_bookmark("ice-001") is True
        assert host.state.game.bookmarked_questions == ("ice-001",)
        assert _server_game(service, host).bookmarked_questions == ()

    async def test_host_leaving_disconnects_guest(self, clients):
        host, guest = clients
        await host.leave_room()

        guest.sync()

        assert guest.state.game.game_phase == GamePhase.ENDED
        assert guest.state.connection_status == ConnectionStatus.DISCONNECTED
        assert host.state.room_id is None

    async def test_resync_replaces_game(self, service, clients):
        host, _guest = clients
        await host.start_game()
        host.resync()
        assert host.state.game == _server_game(service, host)

    async def test_requires_room(self, service):
        client = RoomClient(service)
        with pytest.raises(RuntimeError, match="not in a room"):
            await client.next_turn()
