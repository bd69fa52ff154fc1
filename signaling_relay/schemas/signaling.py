"""시그널링 메시지 Pydantic 스키마"""

from enum import Enum
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, Field, StrictBool, ValidationError, field_validator


class SignalingMessageType(str, Enum):
    """시그널링 메시지 타입"""
    # Client -> Server
    JOIN_ROOM = "join-room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    RENEGOTIATE = "renegotiate"
    TOGGLE_VIDEO = "toggle-video"
    # Server -> Client
    CONNECTED = "connected"
    ICE_CONFIG = "ice-config"
    EXISTING_USERS = "existing-users"
    USER_MAPPING = "user-mapping"
    USER_JOINED = "user-joined"
    ROOM_FULL = "roomFull"
    PEER_TOGGLE_VIDEO = "peer-toggle-video"
    PEER_DISCONNECTED = "peer-disconnected"


class MalformedMessageError(ValueError):
    """필수 필드 누락 또는 타입 불일치로 처리할 수 없는 메시지"""


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_message(model: type[ModelT], data: Any) -> ModelT:
    """메시지 payload를 스키마로 검증

    Raises:
        MalformedMessageError: payload가 객체가 아니거나 검증에 실패한 경우
    """
    if not isinstance(data, dict):
        raise MalformedMessageError(f"{model.__name__} payload must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(f"invalid {model.__name__}: {e.error_count()} error(s)") from e


# ===== WebSocket 프레임 =====


class SignalingEnvelope(BaseModel):
    """WebSocket 프레임 {type, data}"""
    type: str = Field(min_length=1)
    data: Any = None


def make_frame(message_type: SignalingMessageType, data: Any = None) -> dict:
    """서버 -> 클라이언트 프레임 생성"""
    return {"type": message_type.value, "data": data}


# ===== Client -> Server 메시지 =====


class JoinRoomRequest(BaseModel):
    """룸 입장 요청

    문자열 roomId 또는 {roomId, userId?} 객체를 하나의 타입으로 정규화한다.
    """
    room_id: str = Field(alias="roomId", min_length=1)
    user_id: str | None = Field(default=None, alias="userId")

    class Config:
        populate_by_name = True

    @field_validator("user_id", mode="before")
    @classmethod
    def empty_user_id_is_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @classmethod
    def from_payload(cls, data: Any) -> "JoinRoomRequest":
        if isinstance(data, str):
            if not data:
                raise MalformedMessageError("roomId must not be empty")
            return cls(room_id=data)
        return parse_message(cls, data)


class RelayRequest(BaseModel):
    """피어 간 1:1 릴레이 메시지 공통 필드

    roomId는 정보용이며 라우팅이나 검증에 사용하지 않는다.
    """
    payload_field: ClassVar[str] = ""

    room_id: str | None = Field(default=None, alias="roomId")
    to: str = Field(min_length=1)

    class Config:
        populate_by_name = True

    @property
    def payload(self) -> Any:
        return getattr(self, self.payload_field)


class OfferRequest(RelayRequest):
    """SDP Offer"""
    payload_field: ClassVar[str] = "offer"

    offer: Any


class AnswerRequest(RelayRequest):
    """SDP Answer"""
    payload_field: ClassVar[str] = "answer"

    answer: Any


class IceCandidateRequest(RelayRequest):
    """ICE Candidate"""
    payload_field: ClassVar[str] = "candidate"

    candidate: Any


class RenegotiateRequest(RelayRequest):
    """통화 중 재협상 SDP"""
    payload_field: ClassVar[str] = "sdp"

    sdp: Any


class ToggleVideoRequest(BaseModel):
    """비디오 on/off 알림"""
    room_id: str = Field(alias="roomId", min_length=1)
    enabled: StrictBool

    class Config:
        populate_by_name = True


# ===== REST 응답 =====


class IceServer(BaseModel):
    """ICE 서버 설정"""
    urls: str
    username: str | None = None
    credential: str | None = None


class IceServersResponse(BaseModel):
    """ICE 서버 목록 응답"""
    ice_servers: list[IceServer] = Field(alias="iceServers")

    class Config:
        populate_by_name = True


class RoomInfoResponse(BaseModel):
    """룸 정보 응답"""
    room_id: str = Field(alias="roomId")
    members: list[str]
    member_count: int = Field(alias="memberCount")
    max_participants: int = Field(alias="maxParticipants")

    class Config:
        populate_by_name = True
