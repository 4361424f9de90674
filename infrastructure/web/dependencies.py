import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Header, status
from jose import jwt, JWTError

from config.settings import settings
from core.entities.user import User
from core.errors import NotFoundError, NotParticipantError
from core.repositories.unit_of_work import UnitOfWork
from core.services.payment_provider import PaymentProvider
from core.use_cases.user_use_cases import get_user
from infrastructure.db.sqlite import SQLiteUnitOfWork, connect
from infrastructure.payments.pixup_provider import build_pixup_provider
from infrastructure.payments.stub_provider import StubPaymentProvider


def get_db():
    conn = connect(settings.DB_PATH)
    try:
        yield conn
    finally:
        conn.close()

def get_uow(conn: sqlite3.Connection = Depends(get_db)) -> UnitOfWork:
    return SQLiteUnitOfWork(conn)

# PixUp when credentials are set, local stub charges otherwise
def get_payment_provider() -> PaymentProvider:
    if settings.pixup_configured:
        return build_pixup_provider()
    return StubPaymentProvider()

# jwt auth
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt

def sign_user(user: User) -> str:
    return create_access_token({"sub": str(user.id), "username": user.username})

def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return authorization.split(" ", 1)[1]

async def get_current_user(
    token: str = Depends(get_bearer_token),
    uow: UnitOfWork = Depends(get_uow),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        sub = payload.get("sub")
        if sub is None:
            raise credentials_exception
        user_id = int(sub)
    except (JWTError, ValueError):
        raise credentials_exception

    user = get_user(uow, user_id)
    if user is None:
        raise credentials_exception
    return user


def to_http_error(e: ValueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, NotParticipantError):
        return HTTPException(status_code=403, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))
