"""WebRTC 관련 설정"""

from signaling_relay.core.config import Settings

# 고정 STUN 서버
# TURN 서버는 환경변수(TURN_URL)가 설정된 경우에만 추가된다
STUN_SERVERS = [
    {"urls": "stun:stun.l.google.com:19302"},
    {"urls": "stun:stun1.l.google.com:19302"},
]

# 룸당 최대 참여자 수
MAX_PARTICIPANTS = 10


# WebSocket 에러 코드
class WSErrorCode:
    """WebSocket 에러 코드"""
    POLICY_VIOLATION = 1008  # 허용되지 않은 Origin
    INTERNAL_ERROR = 4500


def build_ice_servers(settings: Settings) -> list[dict]:
    """설정으로부터 ICE 서버 목록 생성

    Args:
        settings: 애플리케이션 설정

    Returns:
        브라우저 RTCPeerConnection에 그대로 전달할 ICE 서버 목록
    """
    ice_servers = [dict(server) for server in STUN_SERVERS]

    if settings.turn_url:
        turn_server = {
            "urls": settings.turn_url,
            "username": settings.turn_user,
            "credential": settings.turn_pass,
        }
        # 설정되지 않은 자격 증명 키는 생략
        ice_servers.append({key: value for key, value in turn_server.items() if value is not None})

    return ice_servers
