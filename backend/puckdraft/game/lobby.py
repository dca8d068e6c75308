from __future__ import annotations

import itertools
import logging
import random
from threading import RLock

from .draft import now_ms
from .models import BOT_PREFIX, Lobby, LobbyParticipant
from .store import DataStore

logger = logging.getLogger(__name__)

MAX_BOTS = 9


class LobbyManager:
    """Pre-draft rooms: who is in, who is ready, who is admin."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._lobbies: dict[str, Lobby] = {}
        self._bot_seq = itertools.count(1)

    def create_or_get_lobby(self, room_id: str, admin_id: str) -> Lobby:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is None:
                lobby = Lobby(room_id=room_id, admin_id=admin_id, created_at_ms=now_ms())
                self._lobbies[room_id] = lobby
            return lobby

    def get_lobby(self, room_id: str) -> Lobby | None:
        with self._lock:
            return self._lobbies.get(room_id)

    def add_participant(
        self,
        room_id: str,
        user_id: str,
        login: str,
        team_name: str = "",
        socket_id: str | None = None,
    ) -> Lobby:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is None:
                raise KeyError(f"Lobby {room_id} not found")

            existing = lobby.participants.get(user_id)
            lobby.participants[user_id] = LobbyParticipant(
                user_id=user_id,
                login=login,
                team_name=team_name or f"{login}'s Team",
                # Keep the ready flag across reconnects.
                ready=existing.ready if existing else False,
                socket_id=socket_id,
            )
            return lobby

    def remove_participant(self, room_id: str, user_id: str) -> Lobby | None:
        """Drop a participant; returns None once the lobby is gone."""
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is None:
                return None

            lobby.participants.pop(user_id, None)

            if not lobby.participants:
                del self._lobbies[room_id]
                return None

            if lobby.admin_id == user_id:
                humans = [pid for pid, p in lobby.participants.items() if not p.is_bot]
                lobby.admin_id = humans[0] if humans else next(iter(lobby.participants))
            return lobby

    def set_ready(self, room_id: str, user_id: str, ready: bool) -> Lobby | None:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is None:
                return None
            participant = lobby.participants.get(user_id)
            if participant is not None:
                participant.ready = bool(ready)
            return lobby

    def participants(self, room_id: str) -> list[LobbyParticipant]:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is None:
                return []
            return list(lobby.participants.values())

    def all_ready(self, room_id: str) -> bool:
        participants = self.participants(room_id)
        return bool(participants) and all(p.ready for p in participants)

    def find_by_socket(self, socket_id: str) -> list[tuple[str, str]]:
        """(room_id, user_id) pairs bound to a socket."""
        with self._lock:
            out = []
            for lobby in self._lobbies.values():
                for p in lobby.participants.values():
                    if p.socket_id == socket_id:
                        out.append((lobby.room_id, p.user_id))
            return out

    def add_bots(self, room_id: str, count: int, store: DataStore, max_bots: int = MAX_BOTS) -> list[str]:
        """Add up to ``max_bots`` ready bots, each with a team in ``store``."""
        actual = max(0, min(int(count), max_bots))
        stamp = now_ms()
        added: list[str] = []

        with self._lock:
            if room_id not in self._lobbies:
                raise KeyError(f"Lobby {room_id} not found")

            for i in range(1, actual + 1):
                bot_id = f"{BOT_PREFIX}{stamp}-{next(self._bot_seq)}"
                team_name = f"Bot {i} Team"
                self.add_participant(room_id, bot_id, f"Bot {i}", team_name)
                # Auto-pick needs the team to exist before the first turn.
                store.create_team(bot_id, team_name, logo="bot-logo")
                self._lobbies[room_id].participants[bot_id].ready = True
                added.append(bot_id)

        logger.info("Added %d bots to lobby %s", len(added), room_id)
        return added

    def begin_countdown(self, room_id: str) -> Lobby | None:
        with self._lock:
            lobby = self._lobbies.get(room_id)
            if lobby is not None:
                lobby.state = "countdown"
            return lobby

    def generate_pick_order(self, room_id: str, shuffle: bool = True, rng: random.Random | None = None) -> list[str]:
        order = [p.user_id for p in self.participants(room_id)]
        if shuffle:
            (rng or random.Random()).shuffle(order)
        return order

    def clear_lobby(self, room_id: str) -> None:
        with self._lock:
            self._lobbies.pop(room_id, None)
