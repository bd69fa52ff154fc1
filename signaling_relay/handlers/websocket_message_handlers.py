"""WebSocket 메시지 핸들러 - Strategy Pattern 구현"""

import logging
from typing import Any, Protocol

from signaling_relay.core.telemetry import get_relay_metrics
from signaling_relay.schemas.signaling import (
    AnswerRequest,
    IceCandidateRequest,
    JoinRoomRequest,
    MalformedMessageError,
    OfferRequest,
    RelayRequest,
    RenegotiateRequest,
    SignalingMessageType,
    ToggleVideoRequest,
    make_frame,
    parse_message,
)
from signaling_relay.services.room_registry import RoomFullError
from signaling_relay.services.signaling_service import SignalingContext

logger = logging.getLogger(__name__)


class MessageHandler(Protocol):
    """메시지 핸들러 프로토콜"""

    async def handle(self, ctx: SignalingContext, connection_id: str, data: Any) -> None:
        """메시지 처리

        Args:
            ctx: 시그널링 컨텍스트
            connection_id: 보낸 연결 ID
            data: 메시지 payload

        Raises:
            MalformedMessageError: payload 검증 실패
        """
        ...


class JoinRoomHandler:
    """JOIN_ROOM 메시지 핸들러"""

    async def handle(self, ctx: SignalingContext, connection_id: str, data: Any) -> None:
        request = JoinRoomRequest.from_payload(data)
        room_id = request.room_id

        try:
            result = ctx.registry.join(room_id, connection_id)
        except RoomFullError:
            logger.info(f"Room full: {room_id} (rejected {connection_id})")
            get_relay_metrics().room_full_total.add(1)
            await ctx.transport.send_to(
                connection_id,
                make_frame(SignalingMessageType.ROOM_FULL, {"roomId": room_id}),
            )
            return

        # 이후 전송 중 다른 입장이 끼어들어도 알림 대상은 입장 시점 멤버로 고정
        room_members = ctx.registry.members_of(room_id)
        existing = result.existing_members
        ctx.transport.join_room_channel(connection_id, room_id)

        logger.info(
            f"Joined room {room_id}, size: {len(room_members)}, "
            f"userId: {request.user_id or 'N/A'}, rejoin: {result.already_member}"
        )
        if not result.already_member:
            get_relay_metrics().room_joins_total.add(1)

        # ICE 설정 -> 기존 참여자 목록 순서로 본인에게 전송
        await ctx.transport.send_to(
            connection_id,
            make_frame(SignalingMessageType.ICE_CONFIG, {"iceServers": ctx.ice_servers}),
        )
        await ctx.transport.send_to(
            connection_id,
            make_frame(SignalingMessageType.EXISTING_USERS, {"users": existing}),
        )

        # userId 매핑은 본인 포함 룸 전체에
        if request.user_id:
            await ctx.transport.send_to_many(
                room_members,
                make_frame(
                    SignalingMessageType.USER_MAPPING,
                    {"connectionId": connection_id, "userId": request.user_id},
                ),
            )

        # 재입장은 다른 참여자에게 다시 알리지 않음
        if not result.already_member:
            await ctx.transport.send_to_many(
                existing,
                make_frame(SignalingMessageType.USER_JOINED, {"userId": connection_id}),
            )


class RelayHandler:
    """OFFER/ANSWER/ICE_CANDIDATE/RENEGOTIATE 메시지 핸들러 (통합)

    to로 지정된 연결에게만 전달하며, from은 항상 실제 보낸 연결 ID다.
    """

    def __init__(self, message_type: SignalingMessageType, request_model: type[RelayRequest]):
        """
        Args:
            message_type: 전달할 메시지 타입
            request_model: payload 검증 스키마
        """
        self.message_type = message_type
        self.request_model = request_model

    async def handle(self, ctx: SignalingContext, connection_id: str, data: Any) -> None:
        request = parse_message(self.request_model, data)

        delivered = await ctx.transport.send_to(
            request.to,
            make_frame(
                self.message_type,
                {request.payload_field: request.payload, "from": connection_id},
            ),
        )

        if delivered:
            get_relay_metrics().relayed_messages_total.add(1, {"type": self.message_type.value})
            logger.debug(f"{self.message_type.value} relayed: {connection_id} -> {request.to}")
        else:
            logger.debug(f"{self.message_type.value} dropped: {connection_id} -> {request.to} (unreachable)")


class ToggleVideoHandler:
    """TOGGLE_VIDEO 메시지 핸들러"""

    async def handle(self, ctx: SignalingContext, connection_id: str, data: Any) -> None:
        request = parse_message(ToggleVideoRequest, data)

        if not ctx.registry.is_member(request.room_id, connection_id):
            logger.debug(f"Ignore toggle-video from {connection_id}: not in room {request.room_id}")
            return

        await ctx.transport.broadcast_to_room(
            request.room_id,
            make_frame(
                SignalingMessageType.PEER_TOGGLE_VIDEO,
                {"peerId": connection_id, "enabled": request.enabled},
            ),
            exclude_connection_id=connection_id,
        )


# 핸들러 레지스트리
HANDLERS: dict[str, MessageHandler] = {
    SignalingMessageType.JOIN_ROOM: JoinRoomHandler(),
    SignalingMessageType.OFFER: RelayHandler(SignalingMessageType.OFFER, OfferRequest),
    SignalingMessageType.ANSWER: RelayHandler(SignalingMessageType.ANSWER, AnswerRequest),
    SignalingMessageType.ICE_CANDIDATE: RelayHandler(
        SignalingMessageType.ICE_CANDIDATE, IceCandidateRequest
    ),
    SignalingMessageType.RENEGOTIATE: RelayHandler(
        SignalingMessageType.RENEGOTIATE, RenegotiateRequest
    ),
    SignalingMessageType.TOGGLE_VIDEO: ToggleVideoHandler(),
}


async def dispatch_message(
    ctx: SignalingContext,
    msg_type: str,
    connection_id: str,
    data: Any,
) -> bool:
    """메시지 타입에 따라 적절한 핸들러로 디스패치

    핸들러에서 발생한 오류는 여기서 모두 처리되며 연결을 끊지 않는다.

    Args:
        ctx: 시그널링 컨텍스트
        msg_type: 메시지 타입
        connection_id: 보낸 연결 ID
        data: 메시지 payload

    Returns:
        True if the message was handled, False if it was unknown or rejected
    """
    handler = HANDLERS.get(msg_type)
    if handler is None:
        logger.warning(f"Unknown message type from {connection_id}: {msg_type}")
        return False

    try:
        await handler.handle(ctx, connection_id, data)
    except MalformedMessageError as e:
        get_relay_metrics().malformed_messages_total.add(1)
        logger.warning(f"Malformed {msg_type} from {connection_id}: {e}")
        return False
    except Exception:
        logger.exception(f"Failed to handle {msg_type} from {connection_id}")
        return False

    return True
