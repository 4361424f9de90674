import json
import logging
from typing import Optional, Dict, Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import PlainTextResponse, JSONResponse
from pydantic import BaseModel

from config.settings import settings
from core.entities.user import User
from core.repositories.unit_of_work import UnitOfWork
from core.services.payment_provider import PaymentProvider, PaymentProviderError
from core.use_cases.deposit_use_cases import create_deposit_charge, confirm_deposit
from infrastructure.web.dependencies import get_current_user, get_payment_provider, get_uow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["pix"])


class ChargeRequest(BaseModel):
    amount_cents: int
    description: Optional[str] = None

class ChargeResponse(BaseModel):
    charge_id: str
    amount_cents: int
    provider: str
    charge: Dict[str, Any]


@router.post("/pix/create_charge", response_model=ChargeResponse)
def create_charge(
    payload: ChargeRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    try:
        charge = create_deposit_charge(
            uow, provider, current_user, payload.amount_cents,
            callback_url=settings.webhook_url,
            description=payload.description,
        )
    except PaymentProviderError as e:
        logger.error("error creating charge for user %s: %s (%s)", current_user.id, e, e.detail)
        return JSONResponse(status_code=502, content={"detail": str(e), "provider_detail": e.detail})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ChargeResponse(
        charge_id=charge.charge_id,
        amount_cents=charge.amount_cents,
        provider=charge.provider,
        charge=charge.raw,
    )

@router.post("/pixup/webhook", response_class=PlainTextResponse)
def pixup_webhook(
    event: Any = Body(None),
    uow: UnitOfWork = Depends(get_uow),
):
    logger.info("pixup webhook event %s", json.dumps(event, default=str)[:1000])
    try:
        outcome = confirm_deposit(uow, event or {})
    except Exception:
        logger.exception("webhook error")
        return PlainTextResponse("error", status_code=500)
    logger.info("pixup webhook charge=%s status=%s -> %s", outcome.charge_id, outcome.status, outcome.reason)
    return PlainTextResponse("ok")
