from abc import ABC, abstractmethod
from core.repositories.user_repository import UserRepository
from core.repositories.room_repository import RoomRepository
from core.repositories.ledger_repository import LedgerRepository


class UnitOfWork(ABC):
    """
    Groups repository writes into one atomic transaction.

    Used as a context manager: a clean exit commits, any exception
    rolls back every write made inside the block and is re-raised.
    """

    users: UserRepository
    rooms: RoomRepository
    ledger: LedgerRepository

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self) -> None:...

    @abstractmethod
    def rollback(self) -> None:...
