from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from ..game.draft import DraftState
from ..game.models import is_bot_user
from ..game.service import DraftService
from . import events

logger = logging.getLogger(__name__)


class DraftTimerManager:
    """Global tick: timer broadcasts for every live room, auto-pick on expiry."""

    def __init__(self, service: DraftService, tasks: Any, tick_interval_sec: float = 1.0):
        self.service = service
        self.tasks = tasks
        self.tick_interval_sec = tick_interval_sec
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self.tasks.start_background_task(self._run)
        logger.info("Draft timer started (every %ss)", self.tick_interval_sec)

    def stop(self) -> None:
        self._running = False

    def _run(self) -> None:
        while self._running:
            try:
                self.tick()
            except Exception:
                logger.exception("Draft timer tick failed")
            self.tasks.sleep(self.tick_interval_sec)

    def tick(self) -> list[str]:
        """One pass over all rooms. Returns the ids of rooms that were auto-picked."""
        # Retry writes that failed earlier.
        self.service.outbox.flush()

        expired: list[str] = []
        for room_id, room in self.service.manager.rooms.items():
            state = room.get_state()
            if not state.started or state.paused or state.completed:
                continue

            self.service.broadcast(
                events.DRAFT_TIMER,
                {
                    "roomId": room_id,
                    "timerRemainingMs": state.timer_remaining_ms,
                    "pickIndex": state.pick_index,
                    "activeUserId": state.active_user_id,
                },
                to=room_id,
            )
            logger.debug("Tick %s: %s has %sms", room_id, state.active_user_id, state.timer_remaining_ms)

            if room.is_timer_expired() and state.active_user_id:
                logger.info("Timer expired in %s for %s", room_id, state.active_user_id)
                self.service.force_auto_pick(room_id, state.active_user_id, reason="timer_expired")
                expired.append(room_id)
        return expired


class BotTurnScheduler:
    """Server-side bot turns: one deferred auto-pick per (room, pick index)."""

    def __init__(self, service: DraftService, tasks: Any, delay_sec: float = 2.0):
        self.service = service
        self.tasks = tasks
        self.delay_sec = delay_sec
        self._lock = RLock()
        self._scheduled: dict[str, int] = {}
        service.turn_listeners.append(self.maybe_schedule)

    def maybe_schedule(self, room_id: str, state: DraftState) -> bool:
        user_id = state.active_user_id
        if not is_bot_user(user_id):
            return False
        with self._lock:
            if self._scheduled.get(room_id) == state.pick_index:
                return False
            self._scheduled[room_id] = state.pick_index
        self.tasks.start_background_task(self._run, room_id, user_id, state.pick_index)
        return True

    def _run(self, room_id: str, user_id: str, pick_index: int) -> None:
        self.tasks.sleep(self.delay_sec)
        try:
            self.pick_now(room_id, user_id, pick_index)
        except Exception:
            logger.exception("Bot pick failed for %s in %s", user_id, room_id)

    def pick_now(self, room_id: str, user_id: str, pick_index: int | None = None) -> DraftState | None:
        """Auto-pick for ``user_id`` if it is still that bot's turn."""
        if not is_bot_user(user_id):
            return None
        with self._lock:
            if pick_index is not None and self._scheduled.get(room_id) == pick_index:
                del self._scheduled[room_id]

        room = self.service.manager.get(room_id)
        if room is None:
            return None
        state = room.get_state()
        if state.active_user_id != user_id:
            return None
        if pick_index is not None and state.pick_index != pick_index:
            return None
        return self.service.force_auto_pick(room_id, user_id, reason="bot_turn")
