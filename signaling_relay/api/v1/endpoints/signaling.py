"""WebSocket 시그널링 엔드포인트"""

import logging
from typing import Annotated
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from signaling_relay.api.dependencies import get_connection_manager, get_signaling_context
from signaling_relay.core.telemetry import get_relay_metrics
from signaling_relay.core.webrtc_config import WSErrorCode
from signaling_relay.handlers.websocket_message_handlers import dispatch_message
from signaling_relay.schemas.signaling import SignalingEnvelope, SignalingMessageType, make_frame
from signaling_relay.services.connection_manager import ConnectionManager
from signaling_relay.services.signaling_service import SignalingContext, handle_disconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Signaling"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    ctx: Annotated[SignalingContext, Depends(get_signaling_context)],
    connection_manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
):
    """WebSocket 시그널링 엔드포인트"""
    origin = websocket.headers.get("origin")
    if not ctx.allows_origin(origin):
        logger.warning(f"WebSocket rejected: origin={origin} not allowed")
        await websocket.close(code=WSErrorCode.POLICY_VIOLATION)
        return

    connection_id = uuid4().hex

    await connection_manager.connect(connection_id, websocket)
    get_relay_metrics().connections_total.add(1)

    # 클라이언트에게 자신의 연결 ID 전달
    await connection_manager.send_to(
        connection_id,
        make_frame(SignalingMessageType.CONNECTED, {"connectionId": connection_id}),
    )

    try:
        await handle_websocket_messages(websocket, ctx, connection_id)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: connection={connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error: connection={connection_id}, error={e}")
        try:
            await websocket.close(code=WSErrorCode.INTERNAL_ERROR, reason="Internal error")
        except Exception as close_error:
            logger.debug(f"Failed to close websocket {connection_id}: {close_error}")
    finally:
        await handle_disconnect(ctx, connection_id)


async def handle_websocket_messages(
    websocket: WebSocket,
    ctx: SignalingContext,
    connection_id: str,
) -> None:
    """WebSocket 메시지 처리 루프

    JSON 프레임 {type, data}를 파싱해 핸들러로 디스패치한다.
    형식이 잘못된 프레임은 버리고 다음 프레임을 기다린다.
    """
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", 1000))

        raw = message.get("text")
        if raw is None:
            raw = message.get("bytes")
        if raw is None:
            continue

        try:
            envelope = SignalingEnvelope.model_validate_json(raw)
        except ValidationError as e:
            get_relay_metrics().malformed_messages_total.add(1)
            logger.warning(f"Malformed frame from {connection_id}: {e.error_count()} error(s)")
            continue

        await dispatch_message(ctx, envelope.type, connection_id, envelope.data)
