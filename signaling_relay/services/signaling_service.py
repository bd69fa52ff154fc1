"""시그널링 컨텍스트 - 레지스트리/전송 계층/ICE 설정 묶음 및 연결 해제 정리"""

import logging
from dataclasses import dataclass, field
from typing import Protocol

from signaling_relay.core.config import Settings
from signaling_relay.core.telemetry import get_relay_metrics
from signaling_relay.core.webrtc_config import MAX_PARTICIPANTS, build_ice_servers
from signaling_relay.schemas.signaling import SignalingMessageType, make_frame
from signaling_relay.services.connection_manager import ConnectionManager
from signaling_relay.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class SignalingTransport(Protocol):
    """시그널링 핸들러가 사용하는 전송 계층 인터페이스"""

    async def send_to(self, connection_id: str, message: dict) -> bool: ...

    async def send_to_many(
        self,
        connection_ids: list[str],
        message: dict,
        exclude_connection_id: str | None = None,
    ) -> int: ...

    async def broadcast_to_room(
        self,
        room_id: str,
        message: dict,
        exclude_connection_id: str | None = None,
    ) -> int: ...

    def join_room_channel(self, connection_id: str, room_id: str) -> None: ...

    def disconnect(self, connection_id: str) -> None: ...


@dataclass
class SignalingContext:
    """핸들러에 주입되는 프로세스 단위 상태

    애플리케이션 시작 시 한 번 생성되며, 테스트에서는 독립 인스턴스를 만든다.
    """
    registry: RoomRegistry
    transport: SignalingTransport
    ice_servers: list[dict] = field(default_factory=list)
    allowed_origins: list[str] = field(default_factory=list)

    def allows_origin(self, origin: str | None) -> bool:
        """WebSocket 핸드셰이크 Origin 허용 여부

        Origin 헤더가 없는 클라이언트(브라우저 외)는 허용한다.
        """
        if origin is None or "*" in self.allowed_origins:
            return True
        return origin in self.allowed_origins


def create_signaling_context(settings: Settings) -> tuple[SignalingContext, ConnectionManager]:
    """설정으로부터 시그널링 컨텍스트 생성"""
    connection_manager = ConnectionManager()
    ctx = SignalingContext(
        registry=RoomRegistry(capacity=MAX_PARTICIPANTS),
        transport=connection_manager,
        ice_servers=build_ice_servers(settings),
        allowed_origins=settings.cors_origins,
    )
    return ctx, connection_manager


async def handle_disconnect(ctx: SignalingContext, connection_id: str) -> list[str]:
    """연결 해제 처리

    모든 룸에서 연결을 제거하고, 남은 멤버들에게 peer-disconnected를 알린다.

    Returns:
        연결이 속해 있던 룸 ID 목록
    """
    affected_rooms = ctx.registry.leave(connection_id)
    ctx.transport.disconnect(connection_id)

    message = make_frame(SignalingMessageType.PEER_DISCONNECTED, {"peerId": connection_id})
    for room_id in affected_rooms:
        await ctx.transport.broadcast_to_room(room_id, message)

    get_relay_metrics().disconnections_total.add(1)
    logger.info(f"Connection {connection_id} left rooms: {affected_rooms}")
    return affected_rooms
