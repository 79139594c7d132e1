"""Tests for BroadcastHub connection registry and fan-out."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from salesboard.realtime.hub import BroadcastHub, encode_event
from salesboard.schemas import CounterDelta


def _socket(open_=True, fails=False) -> MagicMock:
    ws = MagicMock()
    state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
    ws.client_state = state
    ws.application_state = state
    ws.send_text = AsyncMock(side_effect=RuntimeError("broken pipe") if fails else None)
    return ws


def _frames(ws) -> list[dict]:
    return [json.loads(call.args[0]) for call in ws.send_text.await_args_list]


class TestEncodeEvent:
    def test_dict_payload(self):
        assert json.loads(encode_event("notification:clear", {})) == {
            "type": "notification:clear",
            "data": {},
        }

    def test_model_payload_uses_aliases(self):
        frame = json.loads(encode_event("x", CounterDelta(activations=1)))
        assert frame["data"] == {"submissions": None, "activations": 1, "points": None}


class TestMembership:
    @pytest.mark.asyncio
    async def test_add_and_remove(self):
        hub = BroadcastHub()
        conn = await hub.add(_socket())
        assert hub.connection_count == 1

        await hub.remove(conn)
        assert hub.connection_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_leaves_every_room(self):
        hub = BroadcastHub()
        conn = await hub.add(_socket())
        await hub.join(conn, "team-a")
        await hub.join(conn, "admins")
        assert conn.id in hub.room_members("team-a")

        await hub.remove(conn)
        assert hub.room_members("team-a") == set()
        assert hub.room_members("admins") == set()
        assert conn.rooms == set()

    @pytest.mark.asyncio
    async def test_join_after_remove_is_ignored(self):
        hub = BroadcastHub()
        conn = await hub.add(_socket())
        await hub.remove(conn)
        await hub.join(conn, "late")
        assert hub.room_members("late") == set()

    @pytest.mark.asyncio
    async def test_remove_twice_is_harmless(self):
        hub = BroadcastHub()
        conn = await hub.add(_socket())
        await hub.remove(conn)
        await hub.remove(conn)
        assert hub.connection_count == 0


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_broadcast_all_reaches_everyone(self):
        hub = BroadcastHub()
        sockets = [_socket() for _ in range(3)]
        for ws in sockets:
            await hub.add(ws)

        delivered = await hub.broadcast_all("leaderboard:update", {"teams": []})

        assert delivered == 3
        for ws in sockets:
            assert _frames(ws) == [{"type": "leaderboard:update", "data": {"teams": []}}]

    @pytest.mark.asyncio
    async def test_broadcast_room_only_reaches_members(self):
        hub = BroadcastHub()
        member_ws, outsider_ws = _socket(), _socket()
        member = await hub.add(member_ws)
        await hub.add(outsider_ws)
        await hub.join(member, "team-a")

        delivered = await hub.broadcast_room("team-a", "ping", {"n": 1})

        assert delivered == 1
        assert _frames(member_ws) == [{"type": "ping", "data": {"n": 1}}]
        outsider_ws.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_room_is_a_noop(self):
        hub = BroadcastHub()
        await hub.add(_socket())
        assert await hub.broadcast_room("nobody", "ping", {}) == 0

    @pytest.mark.asyncio
    async def test_closed_socket_is_skipped(self):
        hub = BroadcastHub()
        closed, live = _socket(open_=False), _socket()
        await hub.add(closed)
        await hub.add(live)

        delivered = await hub.broadcast_all("ping", {})

        assert delivered == 1
        closed.send_text.assert_not_awaited()
        assert len(_frames(live)) == 1

    @pytest.mark.asyncio
    async def test_failing_send_never_raises(self):
        hub = BroadcastHub()
        broken, live = _socket(fails=True), _socket()
        await hub.add(broken)
        await hub.add(live)

        delivered = await hub.broadcast_all("ping", {})

        assert delivered == 1
        assert broken.send_text.await_count == 1
        assert len(_frames(live)) == 1

    @pytest.mark.asyncio
    async def test_slow_socket_does_not_block_membership(self):
        hub = BroadcastHub()
        release = asyncio.Event()
        slow = _socket()

        async def _stall(frame):
            await release.wait()

        slow.send_text = AsyncMock(side_effect=_stall)
        await hub.add(slow)

        pending = asyncio.create_task(hub.broadcast_all("ping", {}))
        await asyncio.sleep(0)
        newcomer = await asyncio.wait_for(hub.add(_socket()), timeout=1)
        assert hub.connection_count == 2

        release.set()
        assert await pending == 1
        await hub.remove(newcomer)
