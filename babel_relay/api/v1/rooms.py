"""
Rooms API Routes
房间只读查询接口
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from babel_relay.api.deps import get_registry
from babel_relay.core.exceptions import ResourceNotFoundError
from babel_relay.services.websocket import SessionRegistry

router = APIRouter(prefix="/rooms", tags=["Rooms"])


class RoomSummary(BaseModel):
    """Room summary"""

    room_id: str
    members: int


class RoomMember(BaseModel):
    participant_id: str
    language: str


class RoomDetail(BaseModel):
    """Room detail"""

    room_id: str
    members: list[RoomMember]
    languages: list[str]


@router.get("", response_model=list[RoomSummary])
async def list_rooms(registry: SessionRegistry = Depends(get_registry)):
    """List rooms that currently have members"""
    return [
        RoomSummary(room_id=room_id, members=count)
        for room_id, count in sorted(registry.rooms().items())
    ]


@router.get("/{room_id}", response_model=RoomDetail)
async def get_room(room_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Get members of a room"""
    members = registry.members_of(room_id)
    if not members:
        # 空房间不存在
        raise ResourceNotFoundError("Room", room_id)

    return RoomDetail(
        room_id=room_id,
        members=[
            RoomMember(participant_id=session.participant_id, language=session.language)
            for _, session in members
        ],
        languages=sorted({session.language for _, session in members}),
    )
