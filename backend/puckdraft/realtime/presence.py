from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from threading import RLock
from typing import Any

from ..game.draft import DraftError, DraftState, now_ms
from ..game.service import DraftService
from . import events

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Which users are in which room, counted per live connection."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._rooms: dict[str, dict[str, int]] = {}
        self._memberships: dict[str, list[tuple[str, str]]] = {}

    def join(self, sid: str, room_id: str, user_id: str) -> bool:
        with self._lock:
            memberships = self._memberships.setdefault(sid, [])
            if (room_id, user_id) in memberships:
                return False
            memberships.append((room_id, user_id))
            users = self._rooms.setdefault(room_id, {})
            users[user_id] = users.get(user_id, 0) + 1
            return True

    def disconnect(self, sid: str) -> list[tuple[str, str, bool]]:
        """Drop every membership of ``sid``.

        Returns ``(room_id, user_id, still_present)`` per membership, where
        ``still_present`` means the user is still connected on another socket.
        """
        out: list[tuple[str, str, bool]] = []
        with self._lock:
            for room_id, user_id in self._memberships.pop(sid, []):
                users = self._rooms.get(room_id, {})
                remaining = users.get(user_id, 0) - 1
                if remaining > 0:
                    users[user_id] = remaining
                else:
                    users.pop(user_id, None)
                if not users:
                    self._rooms.pop(room_id, None)
                out.append((room_id, user_id, remaining > 0))
        return out

    def users(self, room_id: str) -> list[str]:
        with self._lock:
            return list(self._rooms.get(room_id, {}))

    def snapshot(self, room_id: str) -> dict[str, Any]:
        users = self.users(room_id)
        return {"roomId": room_id, "users": users, "count": len(users)}


@dataclass
class PendingReconnect:
    user_id: str
    token: str
    since_ms: int


class ReconnectGrace:
    """Pause the draft while the active picker is gone; auto-pick if they stay gone."""

    def __init__(self, service: DraftService, tasks: Any, grace_ms: int = 60_000):
        self.service = service
        self.tasks = tasks
        self.grace_ms = grace_ms
        self._lock = RLock()
        self._pending: dict[str, PendingReconnect] = {}

    def pending(self, room_id: str) -> PendingReconnect | None:
        with self._lock:
            return self._pending.get(room_id)

    def on_disconnect(self, room_id: str, user_id: str) -> bool:
        room = self.service.manager.get(room_id)
        if room is None:
            return False

        state = room.get_state()
        if state.active_user_id != user_id or state.paused:
            return False

        with self._lock:
            if room_id in self._pending:
                return False
            token = uuid.uuid4().hex
            self._pending[room_id] = PendingReconnect(user_id=user_id, token=token, since_ms=now_ms())

        self.service.pause(room_id)
        logger.info("Active picker %s left %s; waiting %dms", user_id, room_id, self.grace_ms)
        self.service.broadcast(
            events.DRAFT_RECONNECT_WAIT,
            {"roomId": room_id, "userId": user_id, "graceMs": self.grace_ms},
            to=room_id,
        )
        self.tasks.start_background_task(self._wait, room_id, token)
        return True

    def _wait(self, room_id: str, token: str) -> None:
        self.tasks.sleep(self.grace_ms / 1000.0)
        try:
            self.expire(room_id, token)
        except Exception:
            logger.exception("Reconnect grace expiry failed for %s", room_id)

    def on_rejoin(self, room_id: str, user_id: str) -> bool:
        with self._lock:
            pending = self._pending.get(room_id)
            if pending is None or pending.user_id != user_id:
                return False
            del self._pending[room_id]

        logger.info("%s reconnected to %s", user_id, room_id)
        self.service.broadcast(events.PLAYER_RECONNECTED, {"roomId": room_id, "userId": user_id}, to=room_id)
        try:
            self.service.resume(room_id)
        except DraftError:
            return False
        return True

    def expire(self, room_id: str, token: str) -> DraftState | None:
        with self._lock:
            pending = self._pending.get(room_id)
            if pending is None or pending.token != token:
                return None
            del self._pending[room_id]

        logger.warning("Reconnect grace expired for %s in %s; forcing auto-pick", pending.user_id, room_id)
        try:
            self.service.resume(room_id)
        except DraftError:
            return None
        return self.service.force_auto_pick(room_id, pending.user_id, reason="reconnect_timeout")
