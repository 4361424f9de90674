"""
Pix deposits.

A deposit is two ledger entries: ``deposit_pending`` when the charge is
created (balance untouched) and ``deposit`` when the provider's webhook
reports the charge as paid (balance credited). The two are correlated by
the provider charge id stored in its own column.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.entities.transaction import TX_DEPOSIT, TX_DEPOSIT_PENDING
from core.entities.user import User
from core.errors import DuplicateChargeError
from core.repositories.unit_of_work import UnitOfWork
from core.services.payment_provider import Charge, PaymentProvider

logger = logging.getLogger(__name__)

PAID_STATUSES = {"paid", "confirmed"}
DEFAULT_DESCRIPTION = "Depósito Desafio de Damas"


@dataclass
class DepositConfirmation:
    charge_id: Optional[str]
    status: Optional[str]
    credited: bool
    reason: str
    user_id: Optional[int] = None
    amount_cents: int = 0


def create_deposit_charge(uow: UnitOfWork, provider: PaymentProvider, user: User, amount_cents: int,
                          callback_url: str, description: Optional[str] = None) -> Charge:
    if amount_cents is None or amount_cents <= 0:
        raise ValueError("invalid amount")
    charge = provider.create_charge(user, amount_cents, description or DEFAULT_DESCRIPTION, callback_url)
    with uow:
        current = uow.users.get_by_id(user.id)
        uow.ledger.log_transaction(
            user_id=user.id,
            type=TX_DEPOSIT_PENDING,
            amount_cents=amount_cents,
            balance_after=current.balance_cents if current else user.balance_cents,
            metadata={"provider": charge.provider, "charge": charge.raw},
            charge_id=charge.charge_id,
        )
    logger.info("deposit charge %s pending for user %s (%s cents)", charge.charge_id, user.id, amount_cents)
    return charge


def parse_webhook_event(event: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(charge_id, status)`` from a provider notification."""
    if not isinstance(event, dict):
        return None, None
    resource = event.get("resource")
    if not isinstance(resource, dict):
        resource = {}
    charge_id = resource.get("charge_id") or event.get("id")
    status = resource.get("status") or event.get("status")
    return (str(charge_id) if charge_id else None), (str(status).lower() if status else None)


def confirm_deposit(uow: UnitOfWork, event: Dict[str, Any]) -> DepositConfirmation:
    charge_id, status = parse_webhook_event(event)
    if not charge_id or status not in PAID_STATUSES:
        return DepositConfirmation(charge_id, status, credited=False, reason="ignored")

    with uow:
        pending = uow.ledger.find_by_charge(charge_id, TX_DEPOSIT_PENDING)
        if pending is None:
            logger.warning("webhook for unknown charge %s", charge_id)
            return DepositConfirmation(charge_id, status, credited=False, reason="unknown_charge")
        if uow.ledger.find_by_charge(charge_id, TX_DEPOSIT) is not None:
            logger.info("charge %s already confirmed, skipping", charge_id)
            return DepositConfirmation(charge_id, status, credited=False, reason="already_confirmed",
                                       user_id=pending.user_id)

        try:
            updated = uow.users.add_balance(pending.user_id, pending.amount_cents)
            uow.ledger.log_transaction(
                user_id=pending.user_id,
                type=TX_DEPOSIT,
                amount_cents=pending.amount_cents,
                balance_after=updated.balance_cents,
                metadata={"pix_confirmed": charge_id, "status": status},
                charge_id=charge_id,
            )
        except DuplicateChargeError:
            # a concurrent delivery won the race; the credit above is rolled back
            uow.rollback()
            logger.info("charge %s confirmed concurrently, skipping", charge_id)
            return DepositConfirmation(charge_id, status, credited=False, reason="already_confirmed",
                                       user_id=pending.user_id)
    logger.info("deposit %s confirmed: user=%s amount=%s", charge_id, pending.user_id, pending.amount_cents)
    return DepositConfirmation(charge_id, status, credited=True, reason="credited",
                               user_id=pending.user_id, amount_cents=pending.amount_cents)
