from dataclasses import dataclass
from typing import Optional, Dict, Any

# sentinel owner of platform entries
PLATFORM_USER_ID = 0

TX_STAKE = "stake"
TX_PAYOUT = "payout"
TX_PLATFORM_FEE = "platform_fee"
TX_WITHDRAW_REQUEST = "withdraw_request"
TX_WITHDRAW_FEE = "withdraw_fee"
TX_PLATFORM_WITHDRAW_FEE = "platform_withdraw_fee"
TX_DEPOSIT_PENDING = "deposit_pending"
TX_DEPOSIT = "deposit"


@dataclass
class Transaction:
    id: Optional[int]
    user_id: int                    # 0 = platform
    type: str
    amount_cents: int               # credit: >0, debit: <0
    balance_after: Optional[int]    # None for platform entries
    metadata: Optional[Dict[str, Any]]
    created_at: str
    charge_id: Optional[str] = None
    room_id: Optional[int] = None
