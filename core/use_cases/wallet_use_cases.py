import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from core.entities.transaction import (
    PLATFORM_USER_ID,
    Transaction,
    TX_PLATFORM_WITHDRAW_FEE,
    TX_WITHDRAW_FEE,
    TX_WITHDRAW_REQUEST,
)
from core.entities.user import User
from core.errors import InsufficientFundsError
from core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalReceipt:
    amount_cents: int
    fee_cents: int
    debited_cents: int
    balance_cents: int


def compute_withdraw_fee(amount_cents: int, percent: int) -> int:
    # nearest cent, halves round up
    fee = (Decimal(int(amount_cents)) * Decimal(percent) / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(0, int(fee))


def request_withdrawal(uow: UnitOfWork, user: User, amount_cents: int, fee_percent: int) -> WithdrawalReceipt:
    if amount_cents is None or amount_cents <= 0:
        raise ValueError("invalid amount")
    fee = compute_withdraw_fee(amount_cents, fee_percent)
    debited = amount_cents + fee

    with uow:
        try:
            updated = uow.users.debit_if_sufficient(user.id, debited)
        except InsufficientFundsError:
            raise InsufficientFundsError("insufficient balance including fees")
        uow.ledger.log_transaction(
            user_id=user.id,
            type=TX_WITHDRAW_REQUEST,
            amount_cents=-amount_cents,
            balance_after=updated.balance_cents + fee,
            metadata={"amount_cents": amount_cents},
        )
        uow.ledger.log_transaction(
            user_id=user.id,
            type=TX_WITHDRAW_FEE,
            amount_cents=-fee,
            balance_after=updated.balance_cents,
            metadata={"fee_cents": fee, "percent": fee_percent},
        )
        uow.ledger.log_transaction(
            user_id=PLATFORM_USER_ID,
            type=TX_PLATFORM_WITHDRAW_FEE,
            amount_cents=fee,
            balance_after=None,
            metadata={"user_id": user.id},
        )
    # TODO: send the actual transfer through the PixUp payout API
    logger.info("withdraw requested by user %s: amount=%s fee=%s", user.id, amount_cents, fee)
    return WithdrawalReceipt(
        amount_cents=amount_cents,
        fee_cents=fee,
        debited_cents=debited,
        balance_cents=updated.balance_cents,
    )


def list_transactions(uow: UnitOfWork, user: User, limit: int = 50, offset: int = 0) -> List[Transaction]:
    with uow:
        return uow.ledger.list_transactions(user.id, limit=limit, offset=offset)
