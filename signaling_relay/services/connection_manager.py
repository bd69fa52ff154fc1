"""WebSocket 연결 관리 - 연결 ID별 전송 및 룸 채널 브로드캐스트"""

import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """연결 ID별 WebSocket 및 룸 채널 관리

    룸 채널은 전송 계층의 그룹핑이며 RoomRegistry의 멤버십과 별도로 유지된다.
    """

    def __init__(self):
        # connection_id -> WebSocket
        self._connections: dict[str, WebSocket] = {}
        # room_id -> [connection_id] (채널 가입 순서)
        self._channels: dict[str, list[str]] = {}

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        """WebSocket 연결 수락 및 등록"""
        await websocket.accept()
        self._connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} registered")

    def disconnect(self, connection_id: str) -> None:
        """연결 해제 및 모든 룸 채널에서 제거"""
        self._connections.pop(connection_id, None)
        self.leave_all_channels(connection_id)
        logger.info(f"Connection {connection_id} unregistered")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get_connection_count(self) -> int:
        """현재 연결 수"""
        return len(self._connections)

    def join_room_channel(self, connection_id: str, room_id: str) -> None:
        """룸 채널 가입 (중복 가입 무시)"""
        members = self._channels.setdefault(room_id, [])
        if connection_id not in members:
            members.append(connection_id)

    def leave_all_channels(self, connection_id: str) -> None:
        """모든 룸 채널에서 제거"""
        for room_id in list(self._channels):
            members = self._channels[room_id]
            if connection_id in members:
                members.remove(connection_id)
            if not members:
                del self._channels[room_id]

    def get_channel_members(self, room_id: str) -> list[str]:
        return list(self._channels.get(room_id, []))

    async def send_to(self, connection_id: str, message: dict) -> bool:
        """특정 연결에게 메시지 전송

        대상이 없거나 전송에 실패하면 False를 반환한다 (예외 없음).
        """
        websocket = self._connections.get(connection_id)
        if not websocket:
            logger.debug(f"Drop message to unknown connection {connection_id}")
            return False

        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"Failed to send message to {connection_id}: {e}")
            self.disconnect(connection_id)
            return False

    async def broadcast_to_room(
        self,
        room_id: str,
        message: dict,
        exclude_connection_id: str | None = None,
    ) -> int:
        """룸 채널 전체에 메시지 전송 (특정 연결 제외 가능)

        전송 시작 시점의 채널 멤버 스냅샷에만 전송한다.

        Returns:
            전송에 성공한 연결 수
        """
        return await self.send_to_many(
            self.get_channel_members(room_id),
            message,
            exclude_connection_id=exclude_connection_id,
        )

    async def send_to_many(
        self,
        connection_ids: list[str],
        message: dict,
        exclude_connection_id: str | None = None,
    ) -> int:
        """주어진 연결 목록에 순서대로 전송"""
        recipients = [c for c in connection_ids if c != exclude_connection_id]

        delivered = 0
        for connection_id in recipients:
            if await self.send_to(connection_id, message):
                delivered += 1
        return delivered

    async def close_all_connections(self, reason: str = "Server shutting down") -> None:
        """모든 연결 종료"""
        for websocket in list(self._connections.values()):
            try:
                await websocket.close(code=1001, reason=reason)
            except Exception as e:
                logger.debug(f"Failed to close websocket: {e}")

        self._connections.clear()
        self._channels.clear()

        logger.info("All connections closed")
