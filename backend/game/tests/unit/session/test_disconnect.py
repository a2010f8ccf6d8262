from game.logic.rps import Move
from game.logic.rules import GameKind
from game.messaging.types import MemberLeftReason
from game.session.room import RoomStatus
from game.tests.helpers.session import login, start_match
from game.tests.mocks import MockConnection

from .helpers import ALICE, CAROL


class TestDisconnect:
    """Tests for connection teardown."""

    async def test_disconnect_mid_match_reopens_room_for_opponent(self, manager):
        alice, bob, room = await start_match(manager)
        await manager.submit_move(alice, room.room_id, Move.ROCK)
        bob.clear()

        await manager.handle_disconnect(alice.connection_id)

        member_left = bob.messages_of_type("member_left")[0]
        assert member_left["reason"] == "disconnected"
        assert member_left["player"]["account_id"] == 1
        assert member_left["room"]["status"] == "waiting"
        assert room.status == RoomStatus.WAITING
        assert room.members == [bob.connection_id]
        assert room.pending_moves == {}
        assert [u["display_name"] for u in bob.last_message()["online_roster"]] == ["Bob"]

    async def test_disconnect_moves_no_points(self, manager, ledger):
        alice, bob, room = await start_match(manager)
        await manager.submit_move(bob, room.room_id, Move.PAPER)

        await manager.handle_disconnect(alice.connection_id)

        assert ledger.write_count == 0
        assert ledger.balances[1] == 1000
        assert ledger.balances[2] == 1000

    async def test_lobby_sees_roster_and_room_list(self, manager):
        alice, _bob, _room = await start_match(manager)
        carol = await login(manager, CAROL)
        carol.clear()

        await manager.handle_disconnect(alice.connection_id)

        assert [m["type"] for m in carol.sent_messages] == ["room_list_changed", "roster_changed"]
        assert len(carol.sent_messages[0]["open_rooms"]) == 1

    async def test_disconnect_is_idempotent(self, manager):
        alice, bob, _room = await start_match(manager)
        await manager.handle_disconnect(alice.connection_id)
        bob.clear()

        await manager.handle_disconnect(alice.connection_id)

        assert bob.sent_messages == []
        assert manager.session_count == 1

    async def test_departing_connection_is_sent_nothing(self, manager):
        alice, _bob, _room = await start_match(manager)

        await manager._disconnect.disconnect(alice.connection_id)

        assert alice.sent_messages == []

    async def test_unauthenticated_disconnect_is_silent(self, manager):
        carol = await login(manager, CAROL)
        carol.clear()
        stranger = MockConnection()
        manager.register_connection(stranger)

        await manager.handle_disconnect(stranger.connection_id)

        assert carol.sent_messages == []
        assert manager.connection_count == 1

    async def test_host_alone_in_room_deletes_it(self, manager):
        carol = await login(manager, CAROL)
        await manager.create_room(carol, GameKind.RPS)

        await manager.handle_disconnect(carol.connection_id)

        assert manager.room_count == 0
        assert manager.session_count == 0

    async def test_account_can_log_in_after_disconnect(self, manager):
        alice, _bob, _room = await start_match(manager)
        await manager.handle_disconnect(alice.connection_id)

        carol = await login(manager, CAROL)
        again = await login(manager, ALICE)

        assert manager.get_session(again.connection_id) is not None
        assert manager.get_session(carol.connection_id) is not None

    async def test_explicit_reason_is_reported(self, manager):
        alice, bob, _room = await start_match(manager)

        await manager._disconnect.leave_room(alice.connection_id, MemberLeftReason.LEFT)

        assert bob.messages_of_type("member_left")[0]["reason"] == "left"
