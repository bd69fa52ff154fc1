"""pytest 설정 및 공유 fixture

테스트 인프라:
- 독립 RoomRegistry / SignalingContext
- 전송 계층 Mock (AsyncMock 기반)
- 실제 ConnectionManager + 메시지를 기록하는 FakeWebSocket
- FastAPI TestClient
"""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from signaling_relay.core.config import Settings
from signaling_relay.core.webrtc_config import STUN_SERVERS
from signaling_relay.main import app
from signaling_relay.services.connection_manager import ConnectionManager
from signaling_relay.services.room_registry import RoomRegistry
from signaling_relay.services.signaling_service import SignalingContext, create_signaling_context


class FakeWebSocket:
    """send_json으로 보낸 프레임을 기록하는 WebSocket 대역"""

    def __init__(self, fail_on_send: bool = False):
        self.accepted = False
        self.closed = False
        self.close_code: int | None = None
        self.fail_on_send = fail_on_send
        self.sent: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, message: dict) -> None:
        if self.fail_on_send:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed = True
        self.close_code = code

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def of_type(self, message_type: str) -> list[dict]:
        return [m["data"] for m in self.sent if m["type"] == message_type]


# ===== 설정 =====


@pytest.fixture
def test_settings() -> Settings:
    """테스트용 설정"""
    return Settings(
        debug=True,
        port=5999,
        origin="http://localhost:5175,http://test.local",
        turn_url=None,
    )


# ===== 시그널링 컨텍스트 =====


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def mock_transport():
    """전송 계층 mock"""
    transport = MagicMock()
    transport.send_to = AsyncMock(return_value=True)
    transport.send_to_many = AsyncMock(return_value=0)
    transport.broadcast_to_room = AsyncMock(return_value=0)
    transport.join_room_channel = MagicMock()
    transport.disconnect = MagicMock()
    return transport


@pytest.fixture
def ctx(registry: RoomRegistry, mock_transport) -> SignalingContext:
    """mock 전송 계층을 사용하는 컨텍스트"""
    return SignalingContext(
        registry=registry,
        transport=mock_transport,
        ice_servers=[dict(s) for s in STUN_SERVERS],
    )


@pytest.fixture
def connection_manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def live_ctx(registry: RoomRegistry, connection_manager: ConnectionManager) -> SignalingContext:
    """실제 ConnectionManager를 사용하는 컨텍스트"""
    return SignalingContext(
        registry=registry,
        transport=connection_manager,
        ice_servers=[dict(s) for s in STUN_SERVERS],
    )


@pytest.fixture
def connect_peer(connection_manager: ConnectionManager):
    """FakeWebSocket을 연결하고 반환하는 팩토리"""

    async def _connect(connection_id: str, fail_on_send: bool = False) -> FakeWebSocket:
        websocket = FakeWebSocket(fail_on_send=fail_on_send)
        await connection_manager.connect(connection_id, websocket)
        return websocket

    return _connect


# ===== FastAPI Client Fixture =====


@pytest.fixture
def client(test_settings: Settings) -> Generator[TestClient, None, None]:
    """동기 FastAPI TestClient

    테스트마다 새 시그널링 컨텍스트를 사용한다.
    """
    app.state.signaling_ctx, app.state.connection_manager = create_signaling_context(test_settings)

    with TestClient(app) as test_client:
        yield test_client
