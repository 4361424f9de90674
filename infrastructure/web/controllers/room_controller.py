from dataclasses import asdict
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from config.settings import settings
from core.entities.room import Room, ROOM_WAITING, ROOM_PLAYING, ROOM_FINISHED
from core.entities.transaction import Transaction
from core.entities.user import User
from core.repositories.unit_of_work import UnitOfWork
from core.use_cases.room_use_cases import create_room, join_room, report_result, get_room, list_rooms, room_ledger
from infrastructure.web.dependencies import get_current_user, get_uow, to_http_error
from infrastructure.web.realtime import hub


router = APIRouter(prefix="/api/rooms", tags=["rooms"])


class RoomItem(BaseModel):
    id: int
    host_id: int
    guest_id: Optional[int] = None
    stake_cents: int
    status: str
    winner_id: Optional[int] = None
    created_at: str

class RoomResponse(BaseModel):
    room: RoomItem

class RoomsResponse(BaseModel):
    rooms: List[RoomItem]

# escrow trail, without per-user balances
class RoomLedgerItem(BaseModel):
    id: int
    user_id: int
    type: str
    amount_cents: int
    created_at: str

    @classmethod
    def from_tx(cls, tx: Transaction) -> "RoomLedgerItem":
        return cls(id=tx.id, user_id=tx.user_id, type=tx.type, amount_cents=tx.amount_cents,
                   created_at=tx.created_at)

class RoomDetailResponse(RoomResponse):
    ledger: List[RoomLedgerItem]

class CreateRoomRequest(BaseModel):
    stake_cents: int

class ResultRequest(BaseModel):
    winner_id: int


def _room_response(room: Room) -> RoomResponse:
    return RoomResponse(room=RoomItem(**asdict(room)))


@router.post("", response_model=RoomResponse)
def create(
    payload: CreateRoomRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        room = create_room(uow, current_user, payload.stake_cents, settings.MIN_STAKE_CENTS)
    except ValueError as e:
        raise to_http_error(e)
    return _room_response(room)

@router.get("", response_model=RoomsResponse)
def index(
    status: Optional[str] = ROOM_WAITING,
    limit: int = 50,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    if status and status not in {ROOM_WAITING, ROOM_PLAYING, ROOM_FINISHED}:
        raise HTTPException(status_code=400, detail="Invalid status")
    rooms = list_rooms(uow, status=status, limit=max(1, min(100, int(limit))))
    return RoomsResponse(rooms=[RoomItem(**asdict(r)) for r in rooms])

@router.get("/{room_id}", response_model=RoomDetailResponse)
def show(
    room_id: int,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        room = get_room(uow, room_id)
        entries = room_ledger(uow, room_id)
    except ValueError as e:
        raise to_http_error(e)
    return RoomDetailResponse(room=RoomItem(**asdict(room)), ledger=[RoomLedgerItem.from_tx(tx) for tx in entries])

@router.post("/{room_id}/join", response_model=RoomResponse)
async def join(
    room_id: int,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        room = join_room(uow, room_id, current_user)
    except ValueError as e:
        raise to_http_error(e)
    response = _room_response(room)
    await hub.emit(room.id, "room_started", response.room.model_dump())
    return response

@router.post("/{room_id}/result", response_model=RoomResponse)
async def result(
    room_id: int,
    payload: ResultRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        room = report_result(uow, room_id, current_user, payload.winner_id, settings.PLATFORM_FEE_CENTS)
    except ValueError as e:
        raise to_http_error(e)
    response = _room_response(room)
    await hub.emit(room.id, "room_finished", response.room.model_dump())
    return response
