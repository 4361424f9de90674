"""
Room lifecycle and escrow settlement.

A room moves one way through ``waiting -> playing -> finished``. Each
transition runs inside a single unit of work, so the balance change, the
ledger entries and the room row are written together or not at all.
"""
import logging
from typing import List, Optional, Tuple

from core.entities.room import Room, ROOM_WAITING, ROOM_PLAYING
from core.entities.transaction import (
    PLATFORM_USER_ID,
    TX_PAYOUT,
    TX_PLATFORM_FEE,
    TX_STAKE,
    Transaction,
)
from core.entities.user import User
from core.errors import (
    InsufficientFundsError,
    NotFoundError,
    NotParticipantError,
    RoomNotAvailableError,
)
from core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def format_brl(cents: int) -> str:
    return f"R$ {cents / 100:.2f}"


def settlement_amounts(stake_cents: int, platform_fee_cents: int) -> Tuple[int, int]:
    """Return ``(payout, fee)`` for a finished room; they always sum to the pot."""
    pot = stake_cents * 2
    fee = max(0, min(platform_fee_cents, pot))
    return pot - fee, fee


def create_room(uow: UnitOfWork, host: User, stake_cents: int, min_stake_cents: int) -> Room:
    if stake_cents is None or stake_cents <= 0:
        raise ValueError("stake invalid")
    if stake_cents < min_stake_cents:
        raise ValueError(f"minimum stake is {format_brl(min_stake_cents)}")

    with uow:
        try:
            updated = uow.users.debit_if_sufficient(host.id, stake_cents)
        except InsufficientFundsError:
            raise InsufficientFundsError("insufficient balance, deposit first")
        room = uow.rooms.create_room(host.id, stake_cents)
        uow.ledger.log_transaction(
            user_id=host.id,
            type=TX_STAKE,
            amount_cents=-stake_cents,
            balance_after=updated.balance_cents,
            metadata={"reason": "room_reserve_host", "stake_cents": stake_cents},
            room_id=room.id,
        )
    logger.info("room %s created by user %s with stake %s", room.id, host.id, stake_cents)
    return room


def join_room(uow: UnitOfWork, room_id: int, guest: User) -> Room:
    with uow:
        room = uow.rooms.get_by_id(room_id)
        if room is None:
            raise NotFoundError("room not found")
        if room.status != ROOM_WAITING:
            raise RoomNotAvailableError("room not available")
        if room.host_id == guest.id:
            raise RoomNotAvailableError("cannot join your own room")

        try:
            updated = uow.users.debit_if_sufficient(guest.id, room.stake_cents)
        except InsufficientFundsError:
            raise InsufficientFundsError("insufficient balance, deposit first")
        if not uow.rooms.start(room.id, guest.id):
            raise RoomNotAvailableError("room not available")
        uow.ledger.log_transaction(
            user_id=guest.id,
            type=TX_STAKE,
            amount_cents=-room.stake_cents,
            balance_after=updated.balance_cents,
            metadata={"reason": "room_reserve_guest", "stake_cents": room.stake_cents},
            room_id=room.id,
        )
        started = uow.rooms.get_by_id(room.id)
    logger.info("room %s started: host=%s guest=%s", room.id, room.host_id, guest.id)
    return started


def report_result(uow: UnitOfWork, room_id: int, reporter: User, winner_id: int,
                  platform_fee_cents: int) -> Room:
    with uow:
        room = uow.rooms.get_by_id(room_id)
        if room is None:
            raise NotFoundError("room not found")
        if room.status != ROOM_PLAYING:
            raise RoomNotAvailableError("room not playing")
        if not room.is_participant(reporter.id):
            raise NotParticipantError("not a participant")
        if winner_id is None or not room.is_participant(winner_id):
            raise ValueError("winner must be a participant")

        payout, fee = settlement_amounts(room.stake_cents, platform_fee_cents)
        if not uow.rooms.finish(room.id, winner_id):
            raise RoomNotAvailableError("room not playing")
        winner = uow.users.add_balance(winner_id, payout)
        uow.ledger.log_transaction(
            user_id=winner_id,
            type=TX_PAYOUT,
            amount_cents=payout,
            balance_after=winner.balance_cents,
            metadata={"reason": "room_payout", "winner_id": winner_id, "reported_by": reporter.id},
            room_id=room.id,
        )
        uow.ledger.log_transaction(
            user_id=PLATFORM_USER_ID,
            type=TX_PLATFORM_FEE,
            amount_cents=fee,
            balance_after=None,
            metadata={"reason": "room_fee"},
            room_id=room.id,
        )
        finished = uow.rooms.get_by_id(room.id)
    logger.info("room %s finished: winner=%s payout=%s fee=%s reported_by=%s",
                room.id, winner_id, payout, fee, reporter.id)
    return finished


def get_room(uow: UnitOfWork, room_id: int) -> Room:
    with uow:
        room = uow.rooms.get_by_id(room_id)
    if room is None:
        raise NotFoundError("room not found")
    return room


def list_rooms(uow: UnitOfWork, status: Optional[str] = None, limit: int = 50) -> List[Room]:
    with uow:
        return uow.rooms.list_rooms(status=status, limit=limit)


def room_ledger(uow: UnitOfWork, room_id: int) -> List[Transaction]:
    """Stakes, payout and platform fee recorded against a room, oldest first."""
    with uow:
        if uow.rooms.get_by_id(room_id) is None:
            raise NotFoundError("room not found")
        return uow.ledger.list_by_room(room_id)
