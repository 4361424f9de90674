from typing import Optional, List, Dict, Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from config.settings import settings
from core.entities.transaction import Transaction
from core.entities.user import User
from core.repositories.unit_of_work import UnitOfWork
from core.use_cases.user_use_cases import register_user, authenticate_user
from core.use_cases.wallet_use_cases import request_withdrawal, list_transactions
from infrastructure.web.dependencies import get_current_user, get_uow, sign_user, to_http_error


router = APIRouter(prefix="/api", tags=["auth"])


class UserResponse(BaseModel):
    id: int
    username: str
    balance_cents: int
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            balance_cents=user.balance_cents,
            created_at=user.created_at,
        )

class CredentialsRequest(BaseModel):
    username: str
    password: str

class AuthResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"

class MeResponse(BaseModel):
    user: UserResponse

# ledger entry DTO
class TransactionItem(BaseModel):
    id: int
    type: str
    amount_cents: int
    balance_after: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    charge_id: Optional[str] = None
    room_id: Optional[int] = None
    created_at: str

    @classmethod
    def from_tx(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            type=tx.type,
            amount_cents=tx.amount_cents,
            balance_after=tx.balance_after,
            metadata=tx.metadata,
            charge_id=tx.charge_id,
            room_id=tx.room_id,
            created_at=tx.created_at,
        )

class TransactionsResponse(BaseModel):
    transactions: List[TransactionItem]

class WithdrawRequest(BaseModel):
    amount_cents: int = Field(..., description="Withdrawal amount in cents")

class WithdrawResponse(BaseModel):
    ok: bool = True
    amount_cents: int
    fee_cents: int
    debited_cents: int
    balance_cents: int


@router.post("/register", response_model=AuthResponse)
def register(payload: CredentialsRequest, uow: UnitOfWork = Depends(get_uow)):
    try:
        user = register_user(uow, username=payload.username, password=payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AuthResponse(user=UserResponse.from_user(user), token=sign_user(user))

@router.post("/login", response_model=AuthResponse)
def login(payload: CredentialsRequest, uow: UnitOfWork = Depends(get_uow)):
    user = authenticate_user(uow, username=payload.username, password=payload.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    return AuthResponse(user=UserResponse.from_user(user), token=sign_user(user))

@router.get("/me", response_model=MeResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return MeResponse(user=UserResponse.from_user(current_user))

@router.get("/transactions", response_model=TransactionsResponse)
def get_transactions(
    limit: int = 50,
    offset: int = 0,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    limit = max(1, min(100, int(limit)))
    offset = max(0, int(offset))
    txs = list_transactions(uow, current_user, limit=limit, offset=offset)
    return TransactionsResponse(transactions=[TransactionItem.from_tx(tx) for tx in txs])

@router.post("/withdraw", response_model=WithdrawResponse)
def withdraw(
    payload: WithdrawRequest,
    current_user: User = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_uow),
):
    try:
        receipt = request_withdrawal(uow, current_user, payload.amount_cents, settings.WITHDRAW_FEE_PERCENT)
    except ValueError as e:
        raise to_http_error(e)
    return WithdrawResponse(
        amount_cents=receipt.amount_cents,
        fee_cents=receipt.fee_cents,
        debited_cents=receipt.debited_cents,
        balance_cents=receipt.balance_cents,
    )
