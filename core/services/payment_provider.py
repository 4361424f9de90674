from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from core.entities.user import User


class PaymentProviderError(RuntimeError):
    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.detail = detail


@dataclass
class Charge:
    charge_id: str
    amount_cents: int
    provider: str
    raw: Dict[str, Any] = field(default_factory=dict)

class PaymentProvider(ABC):
    name: str = "unknown"

    @abstractmethod
    def create_charge(self, user: User, amount_cents: int, description: str,
                      callback_url: str) -> Charge:...
