from signaling_relay.schemas.signaling import (
    IceServer,
    IceServersResponse,
    JoinRoomRequest,
    MalformedMessageError,
    RoomInfoResponse,
    SignalingEnvelope,
    SignalingMessageType,
)

__all__ = [
    "IceServer",
    "IceServersResponse",
    "JoinRoomRequest",
    "MalformedMessageError",
    "RoomInfoResponse",
    "SignalingEnvelope",
    "SignalingMessageType",
]
