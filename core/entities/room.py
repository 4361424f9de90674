from dataclasses import dataclass
from typing import Optional

ROOM_WAITING = "waiting"
ROOM_PLAYING = "playing"
ROOM_FINISHED = "finished"


@dataclass
class Room:
    id: Optional[int]
    host_id: int
    stake_cents: int
    status: str
    created_at: str
    guest_id: Optional[int] = None
    winner_id: Optional[int] = None

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.host_id, self.guest_id)

    @property
    def pot_cents(self) -> int:
        return self.stake_cents * 2
