import logging
from typing import Optional
from passlib.context import CryptContext
from core.entities.user import User
from core.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def register_user(uow: UnitOfWork, username: str, password: str) -> User:
    username = (username or "").strip()
    if not username:
        raise ValueError("username required")
    if not password:
        raise ValueError("password required")
    with uow:
        if uow.users.get_by_username(username) is not None:
            raise ValueError("username already exists")
        user = uow.users.create_user(username=username, password_hash=get_password_hash(password))
    logger.info("registered user id=%s username=%s", user.id, user.username)
    return user

def authenticate_user(uow: UnitOfWork, username: str, password: str) -> Optional[User]:
    with uow:
        user = uow.users.get_by_username((username or "").strip())
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user

def get_user(uow: UnitOfWork, user_id: int) -> Optional[User]:
    with uow:
        return uow.users.get_by_id(user_id)
