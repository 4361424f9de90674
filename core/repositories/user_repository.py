from abc import ABC, abstractmethod
from typing import Optional
from core.entities.user import User


class UserRepository(ABC):
    @abstractmethod
    def create_user(self, username: str, password_hash: str) -> User:...

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[User]:...

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:...

    @abstractmethod
    def add_balance(self, user_id: int, delta_cents: int) -> User:...

    @abstractmethod
    def debit_if_sufficient(self, user_id: int, amount_cents: int) -> User:...
