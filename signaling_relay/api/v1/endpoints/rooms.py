"""룸/ICE 설정 조회 엔드포인트"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from signaling_relay.api.dependencies import get_signaling_context
from signaling_relay.schemas.signaling import IceServer, IceServersResponse, RoomInfoResponse
from signaling_relay.services.signaling_service import SignalingContext

router = APIRouter(tags=["Rooms"])


@router.get("/ice-servers", response_model=IceServersResponse)
async def get_ice_servers(
    ctx: Annotated[SignalingContext, Depends(get_signaling_context)],
):
    """ICE 서버 목록 조회"""
    return IceServersResponse(ice_servers=[IceServer(**server) for server in ctx.ice_servers])


@router.get("/rooms/{room_id}", response_model=RoomInfoResponse)
async def get_room(
    room_id: str,
    ctx: Annotated[SignalingContext, Depends(get_signaling_context)],
):
    """룸 정보 조회"""
    if not ctx.registry.has_room(room_id):
        raise HTTPException(status_code=404, detail={"error": "NOT_FOUND", "message": "룸을 찾을 수 없습니다."})

    members = ctx.registry.members_of(room_id)
    return RoomInfoResponse(
        room_id=room_id,
        members=members,
        member_count=len(members),
        max_participants=ctx.registry.capacity,
    )
