"""룸 레지스트리 - 룸별 멤버(연결 ID) 관리

룸은 첫 입장 시 생성되고 마지막 멤버가 나가면 삭제된다.
멤버 순서는 입장 순서이며 existing-users 목록의 순서가 된다.
"""

import logging
import threading
from dataclasses import dataclass, field

from signaling_relay.core.webrtc_config import MAX_PARTICIPANTS

logger = logging.getLogger(__name__)


class RoomFullError(Exception):
    """룸 정원 초과"""

    def __init__(self, room_id: str, capacity: int):
        super().__init__(f"Room {room_id} is full ({capacity})")
        self.room_id = room_id
        self.capacity = capacity


@dataclass
class JoinResult:
    """입장 결과

    Attributes:
        existing_members: 입장 직전의 멤버 목록 (본인 제외)
        already_member: 이미 입장해 있던 연결의 재입장 여부
    """
    existing_members: list[str] = field(default_factory=list)
    already_member: bool = False


class RoomRegistry:
    """룸 ID -> 멤버 연결 ID 목록 (입장 순서)"""

    def __init__(self, capacity: int = MAX_PARTICIPANTS):
        self.capacity = capacity
        self._rooms: dict[str, list[str]] = {}
        # 모든 읽기/쓰기는 lock 안에서
        self._lock = threading.Lock()

    def join(self, room_id: str, connection_id: str) -> JoinResult:
        """룸 입장

        Args:
            room_id: 룸 ID
            connection_id: 입장하는 연결 ID

        Returns:
            JoinResult (existing_members는 append 이전 스냅샷)

        Raises:
            RoomFullError: 정원이 가득 찬 경우 (상태 변경 없음)
        """
        with self._lock:
            members = self._rooms.get(room_id, [])

            if connection_id in members:
                return JoinResult(
                    existing_members=[m for m in members if m != connection_id],
                    already_member=True,
                )

            if len(members) >= self.capacity:
                raise RoomFullError(room_id, self.capacity)

            existing = list(members)
            self._rooms.setdefault(room_id, []).append(connection_id)

        logger.debug(f"Room {room_id}: {connection_id} joined ({len(existing) + 1}/{self.capacity})")
        return JoinResult(existing_members=existing)

    def leave(self, connection_id: str) -> list[str]:
        """모든 룸에서 연결 제거

        Returns:
            해당 연결이 속해 있던 룸 ID 목록
        """
        affected: list[str] = []
        with self._lock:
            for room_id in list(self._rooms):
                members = self._rooms[room_id]
                if connection_id not in members:
                    continue

                remaining = [m for m in members if m != connection_id]
                affected.append(room_id)

                # 빈 룸 정리
                if remaining:
                    self._rooms[room_id] = remaining
                else:
                    del self._rooms[room_id]
                    logger.debug(f"Room {room_id} pruned (empty)")

        return affected

    def members_of(self, room_id: str) -> list[str]:
        """룸 멤버 목록 (룸이 없으면 빈 리스트)"""
        with self._lock:
            return list(self._rooms.get(room_id, []))

    def has_room(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def is_member(self, room_id: str, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._rooms.get(room_id, [])

    def get_stats(self) -> dict[str, int]:
        """룸 통계"""
        with self._lock:
            return {
                "rooms_total": len(self._rooms),
                "memberships": sum(len(m) for m in self._rooms.values()),
            }

    def clear(self) -> None:
        """모든 룸 정리 (종료 시)"""
        with self._lock:
            self._rooms.clear()
