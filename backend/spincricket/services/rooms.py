"""Room registry: which players sit in which room.

Room membership is tracked separately from match state. Collaborators that
keep per-room state subscribe with ``on_room_closed`` and are told when a
room goes away.
"""
import logging
import uuid
from typing import Callable, Dict, List, Optional

from spincricket.exceptions import CapacityError, DuplicatePlayerError, DuplicateRoomError, NotFoundError
from spincricket.models import Room, RoomPlayer

logger = logging.getLogger(__name__)


class RoomRegistry:

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        self._player_rooms: Dict[str, str] = {}  # player id -> room id
        self._closed_listeners: List[Callable[[str], None]] = []

    def on_room_closed(self, callback: Callable[[str], None]) -> None:
        self._closed_listeners.append(callback)

    def create_room(self, player_id: str, room_id: Optional[str] = None) -> Room:
        room_id = room_id or str(uuid.uuid4())
        if room_id in self._rooms:
            raise DuplicateRoomError(room_id)
        self._leave_previous(player_id, room_id)
        room = Room(room_id, player_id)
        self._rooms[room_id] = room
        self._player_rooms[player_id] = room_id
        logger.info(f"Room {room_id} created by {player_id}")
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def add_player(self, player_id: str, room_id: str) -> RoomPlayer:
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFoundError(room_id)
        if room.find_player(player_id):
            raise DuplicatePlayerError(player_id)
        if room.is_full:
            raise CapacityError(f"Room {room_id} is full")
        self._leave_previous(player_id, room_id)
        player = RoomPlayer(player_id, room_id)
        room.players.append(player)
        self._player_rooms[player_id] = room_id
        return player

    def room_of(self, player_id: str) -> Optional[str]:
        return self._player_rooms.get(player_id)

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        room = self._rooms.get(self._player_rooms.get(player_id, ''))
        return room.find_player(player_id) if room else None

    def set_connected(self, player_id: str, connected: bool) -> None:
        player = self.get_player(player_id)
        if player:
            player.connected = connected

    def _leave_previous(self, player_id: str, room_id: str) -> None:
        # A player sits in one room at a time
        previous = self._player_rooms.get(player_id)
        if previous and previous != room_id:
            self.remove_player(player_id, previous)

    def remove_player(self, player_id: str, room_id: Optional[str] = None) -> None:
        """Take a player out of ``room_id`` (their current room by default).

        The room is closed once nobody is left in it.
        """
        room_id = room_id or self._player_rooms.get(player_id)
        room = self._rooms.get(room_id) if room_id else None
        if room is None or not room.find_player(player_id):
            return
        room.players = [p for p in room.players if p.id != player_id]
        if self._player_rooms.get(player_id) == room_id:
            del self._player_rooms[player_id]
        logger.info(f"Player {player_id} left room {room_id}")
        if not room.players:
            self.delete_room(room_id)

    def close_if_abandoned(self, room_id: str) -> bool:
        """Close a room whose members have all disconnected."""
        room = self._rooms.get(room_id)
        if room is None or any(p.connected for p in room.players):
            return False
        logger.info(f"Room {room_id} abandoned")
        self.delete_room(room_id)
        return True

    def delete_room(self, room_id: str) -> None:
        room = self._rooms.pop(room_id, None)
        if room is None:
            return
        for p in room.players:
            self._player_rooms.pop(p.id, None)
        logger.info(f"Room {room_id} closed")
        for callback in self._closed_listeners:
            callback(room_id)

    def all_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def clear(self) -> None:
        self._rooms.clear()
        self._player_rooms.clear()
