"""공유 API dependencies"""

from fastapi.requests import HTTPConnection

from signaling_relay.services.connection_manager import ConnectionManager
from signaling_relay.services.signaling_service import SignalingContext


def get_signaling_context(conn: HTTPConnection) -> SignalingContext:
    """애플리케이션 시작 시 생성된 시그널링 컨텍스트 (HTTP/WebSocket 공용)"""
    return conn.app.state.signaling_ctx


def get_connection_manager(conn: HTTPConnection) -> ConnectionManager:
    """WebSocket 연결 관리자"""
    return conn.app.state.connection_manager
