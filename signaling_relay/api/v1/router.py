from fastapi import APIRouter

from signaling_relay.api.v1.endpoints import rooms, signaling

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(rooms.router)

# WebSocket 시그널링은 /ws 경로 (prefix 없음)
ws_router = APIRouter()
ws_router.include_router(signaling.router)
