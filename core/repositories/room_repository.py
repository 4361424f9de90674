from abc import ABC, abstractmethod
from typing import Optional, List
from core.entities.room import Room


class RoomRepository(ABC):
    @abstractmethod
    def create_room(self, host_id: int, stake_cents: int) -> Room:...

    @abstractmethod
    def get_by_id(self, room_id: int) -> Optional[Room]:...

    @abstractmethod
    def list_rooms(self, status: Optional[str] = None, limit: int = 50) -> List[Room]:...

    @abstractmethod
    def start(self, room_id: int, guest_id: int) -> bool:
        """waiting -> playing. False if the room already left waiting."""

    @abstractmethod
    def finish(self, room_id: int, winner_id: int) -> bool:
        """playing -> finished. False if the room is not playing."""
