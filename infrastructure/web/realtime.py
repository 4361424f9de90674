import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def channel_name(room_id: Any) -> str:
    return f"room_{room_id}"


class RoomHub:
    """Fans events out to the sockets subscribed to each room"""

    def __init__(self):
        self.channels: Dict[str, Set[WebSocket]] = defaultdict(set)

    def subscribe(self, ws: WebSocket, room_id: Any) -> str:
        name = channel_name(room_id)
        self.channels[name].add(ws)
        return name

    def unsubscribe_all(self, ws: WebSocket) -> None:
        for name in list(self.channels):
            self.channels[name].discard(ws)
            if not self.channels[name]:
                del self.channels[name]

    def subscribers(self, room_id: Any) -> int:
        return len(self.channels.get(channel_name(room_id), ()))

    async def emit(self, room_id: Any, event: str, data: Any) -> None:
        name = channel_name(room_id)
        dead = []
        for ws in list(self.channels.get(name, ())):
            try:
                await ws.send_json({"event": event, "data": data})
            except Exception:
                logger.warning("dropping socket from %s after send failure", name, exc_info=True)
                dead.append(ws)
        for ws in dead:
            self.unsubscribe_all(ws)


hub = RoomHub()


@router.websocket("/ws")
async def room_socket(ws: WebSocket):
    await ws.accept()
    logger.info("socket connected %s", ws.client)
    try:
        while True:
            message = await ws.receive_json()
            if not isinstance(message, dict):
                continue
            event = message.get("event")
            room_id = message.get("room_id")
            if room_id is None:
                continue
            if event == "join_room":
                name = hub.subscribe(ws, room_id)
                logger.info("socket %s joined %s", ws.client, name)
                await ws.send_json({"event": "joined", "data": {"room_id": room_id}})
            elif event == "move":
                # relayed as-is, no validation
                await hub.emit(room_id, "move", message.get("move"))
    except WebSocketDisconnect:
        pass
    except (ValueError, KeyError):
        # KeyError: binary frame, receive_json only reads text
        logger.warning("socket %s sent a frame that is not json text, closing", ws.client)
        await ws.close(code=1003)
    finally:
        hub.unsubscribe_all(ws)
        logger.info("socket disconnected %s", ws.client)
