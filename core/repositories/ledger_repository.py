from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from core.entities.transaction import Transaction


class LedgerRepository(ABC):
    """Append-only: entries are inserted and read, never updated or deleted."""

    @abstractmethod
    def log_transaction(self, user_id: int, type: str, amount_cents: int, balance_after: Optional[int],
                        metadata: Optional[Dict[str, Any]] = None, charge_id: Optional[str] = None,
                        room_id: Optional[int] = None) -> Transaction:...

    @abstractmethod
    def list_transactions(self, user_id: int, limit: int = 100, offset: int = 0) -> List[Transaction]:...

    @abstractmethod
    def find_by_charge(self, charge_id: str, type: str) -> Optional[Transaction]:...

    @abstractmethod
    def list_by_room(self, room_id: int) -> List[Transaction]:...
