from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    id: Optional[int]
    username: str
    password_hash: str
    balance_cents: int
    created_at: str
