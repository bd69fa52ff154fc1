"""시그널링 시나리오 테스트 - 실제 ConnectionManager + FakeWebSocket

입장/정원 초과/릴레이/연결 해제 흐름을 연결별로 수신한 프레임 기준으로 검증한다.
"""

import pytest

from signaling_relay.core.webrtc_config import MAX_PARTICIPANTS
from signaling_relay.handlers.websocket_message_handlers import dispatch_message
from signaling_relay.services.signaling_service import handle_disconnect


@pytest.mark.asyncio
async def test_room_fills_to_capacity_then_rejects(live_ctx, registry, connect_peer):
    """A 입장 -> B 입장 -> C..J 입장 (10명) -> K 거절"""
    a = await connect_peer("A")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    assert a.of_type("existing-users") == [{"users": []}]

    b = await connect_peer("B")
    await dispatch_message(live_ctx, "join-room", "B", "r1")
    assert b.of_type("existing-users") == [{"users": ["A"]}]
    assert a.of_type("user-joined") == [{"userId": "B"}]
    assert len(registry.members_of("r1")) == 2

    for conn in "CDEFGHIJ":
        await connect_peer(conn)
        await dispatch_message(live_ctx, "join-room", conn, "r1")
    assert len(registry.members_of("r1")) == MAX_PARTICIPANTS

    k = await connect_peer("K")
    await dispatch_message(live_ctx, "join-room", "K", "r1")

    assert k.types() == ["roomFull"]
    assert len(registry.members_of("r1")) == MAX_PARTICIPANTS
    assert "K" not in registry.members_of("r1")
    # 거절된 연결은 입장 알림을 보내지 않음
    assert {"userId": "K"} not in a.of_type("user-joined")


@pytest.mark.asyncio
async def test_join_message_order_for_new_member(live_ctx, connect_peer):
    await connect_peer("A")
    await dispatch_message(live_ctx, "join-room", "A", "r1")

    b = await connect_peer("B")
    await dispatch_message(live_ctx, "join-room", "B", {"roomId": "r1", "userId": "bob"})

    assert b.types() == ["ice-config", "existing-users", "user-mapping"]
    assert b.of_type("ice-config")[0]["iceServers"] == live_ctx.ice_servers


@pytest.mark.asyncio
async def test_user_mapping_reaches_whole_room(live_ctx, connect_peer):
    a = await connect_peer("A")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    b = await connect_peer("B")

    await dispatch_message(live_ctx, "join-room", "B", {"roomId": "r1", "userId": "bob"})

    mapping = {"connectionId": "B", "userId": "bob"}
    assert a.of_type("user-mapping") == [mapping]
    assert b.of_type("user-mapping") == [mapping]
    # 매핑이 입장 알림보다 먼저
    assert a.types()[-2:] == ["user-mapping", "user-joined"]


@pytest.mark.asyncio
async def test_later_joiner_does_not_receive_earlier_user_joined(live_ctx, connect_peer):
    await connect_peer("A")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    await connect_peer("B")
    await dispatch_message(live_ctx, "join-room", "B", "r1")

    c = await connect_peer("C")
    await dispatch_message(live_ctx, "join-room", "C", "r1")

    assert c.of_type("user-joined") == []
    assert c.of_type("existing-users") == [{"users": ["A", "B"]}]


@pytest.mark.asyncio
async def test_relay_between_peers(live_ctx, connect_peer):
    a = await connect_peer("A")
    b = await connect_peer("B")
    offer = {"type": "offer", "sdp": "v=0\r\n..."}

    await dispatch_message(live_ctx, "offer", "A", {"offer": offer, "roomId": "r1", "to": "B"})
    await dispatch_message(live_ctx, "answer", "B", {"answer": {"type": "answer"}, "roomId": "r1", "to": "A"})
    await dispatch_message(live_ctx, "ice-candidate", "A", {"candidate": {"candidate": "c"}, "to": "B"})
    await dispatch_message(live_ctx, "renegotiate", "B", {"sdp": {"type": "offer"}, "to": "A"})

    assert b.sent == [
        {"type": "offer", "data": {"offer": offer, "from": "A"}},
        {"type": "ice-candidate", "data": {"candidate": {"candidate": "c"}, "from": "A"}},
    ]
    assert a.sent == [
        {"type": "answer", "data": {"answer": {"type": "answer"}, "from": "B"}},
        {"type": "renegotiate", "data": {"sdp": {"type": "offer"}, "from": "B"}},
    ]


@pytest.mark.asyncio
async def test_end_of_candidates_reaches_target(live_ctx, connect_peer):
    await connect_peer("A")
    b = await connect_peer("B")

    handled = await dispatch_message(
        live_ctx, "ice-candidate", "A", {"candidate": None, "roomId": "r1", "to": "B"}
    )

    assert handled is True
    assert b.sent == [{"type": "ice-candidate", "data": {"candidate": None, "from": "A"}}]


@pytest.mark.asyncio
async def test_relay_to_gone_peer_sends_nothing_back(live_ctx, connect_peer):
    a = await connect_peer("A")

    handled = await dispatch_message(live_ctx, "offer", "A", {"offer": {"sdp": "x"}, "to": "gone"})

    assert handled is True
    assert a.sent == []


@pytest.mark.asyncio
async def test_toggle_video_reaches_other_members(live_ctx, connect_peer):
    a = await connect_peer("A")
    b = await connect_peer("B")
    outsider = await connect_peer("Z")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    await dispatch_message(live_ctx, "join-room", "B", "r1")
    a.sent.clear()
    b.sent.clear()

    await dispatch_message(live_ctx, "toggle-video", "A", {"roomId": "r1", "enabled": False})

    assert a.sent == []
    assert b.sent == [{"type": "peer-toggle-video", "data": {"peerId": "A", "enabled": False}}]
    assert outsider.sent == []


@pytest.mark.asyncio
async def test_disconnect_scenario(live_ctx, registry, connection_manager, connect_peer):
    """A, B 입장 -> A 해제 -> [B] -> B 해제 -> 룸 삭제"""
    await connect_peer("A")
    b = await connect_peer("B")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    await dispatch_message(live_ctx, "join-room", "B", "r1")
    b.sent.clear()

    await handle_disconnect(live_ctx, "A")

    assert registry.members_of("r1") == ["B"]
    assert b.sent == [{"type": "peer-disconnected", "data": {"peerId": "A"}}]
    assert not connection_manager.is_connected("A")

    await handle_disconnect(live_ctx, "B")

    assert not registry.has_room("r1")
    assert connection_manager.get_channel_members("r1") == []


@pytest.mark.asyncio
async def test_disconnect_preserves_order_of_remaining(live_ctx, registry, connect_peer):
    for conn in "ABCD":
        await connect_peer(conn)
        await dispatch_message(live_ctx, "join-room", conn, "r1")

    await handle_disconnect(live_ctx, "B")

    assert registry.members_of("r1") == ["A", "C", "D"]


@pytest.mark.asyncio
async def test_misbehaving_connection_does_not_affect_others(live_ctx, registry, connect_peer):
    a = await connect_peer("A")
    await connect_peer("B")
    await dispatch_message(live_ctx, "join-room", "A", "r1")
    a.sent.clear()

    await dispatch_message(live_ctx, "join-room", "B", {"room": "r1"})
    await dispatch_message(live_ctx, "toggle-video", "B", {"roomId": "r1"})
    await dispatch_message(live_ctx, "offer", "B", {"to": "A"})
    await dispatch_message(live_ctx, "no-such-type", "B", None)

    assert a.sent == []
    assert registry.members_of("r1") == ["A"]
