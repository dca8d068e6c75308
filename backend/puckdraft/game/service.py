"""Draft mutations as seen by the outside world.

Every mutating path (HTTP, socket event, timer expiry, reconnect grace,
bot turn) goes through :class:`DraftService`, which applies the change to
the room, enqueues the durable record and then broadcasts, in that order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from threading import RLock
from typing import Any

from ..persistence.outbox import PersistenceOutbox
from ..persistence.records import DraftPickRecord, DraftRoomRecord
from ..persistence.restore import restore_draft_rooms
from ..realtime import events
from .draft import DraftConfig, DraftError, DraftRoom, DraftRoomManager, DraftState, RoomNotFoundError
from .models import Team
from .store import DataStore

logger = logging.getLogger(__name__)

Emitter = Callable[..., Any]
TurnListener = Callable[[str, DraftState], Any]

# Raised when the turn already moved on; nothing to force.
STALE_TURN_CODES = frozenset({"not_your_turn", "draft_paused", "draft_not_started"})


class DraftService:
    def __init__(
        self,
        store: DataStore,
        manager: DraftRoomManager,
        outbox: PersistenceOutbox,
        emit: Emitter | None = None,
        default_timer_sec: float = 60.0,
    ):
        self.store = store
        self.manager = manager
        self.outbox = outbox
        self.default_timer_sec = default_timer_sec
        self._emit = emit
        self._lock = RLock()
        self._admins: dict[str, str] = {}
        self.turn_listeners: list[TurnListener] = []

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def broadcast(self, event: str, payload: dict, to: str | None = None) -> None:
        if self._emit is None:
            return
        try:
            self._emit(event, payload, to=to)
        except Exception:
            logger.exception("Broadcast of %s to %s failed", event, to)

    def _turn_changed(self, room_id: str, state: DraftState) -> None:
        for listener in list(self.turn_listeners):
            try:
                listener(room_id, state)
            except Exception:
                logger.exception("Turn listener failed for %s", room_id)

    def get_room(self, room_id: str) -> DraftRoom:
        room = self.manager.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def get_state(self, room_id: str) -> DraftState:
        return self.get_room(room_id).get_state()

    def room_admin(self, room_id: str) -> str | None:
        with self._lock:
            return self._admins.get(room_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_draft(
        self,
        room_id: str,
        pick_order: list[str],
        timer_sec: float | None = None,
        snake_draft: bool = True,
        admin_id: str | None = None,
        team_names: Mapping[str, str] | None = None,
    ) -> DraftState:
        if not room_id:
            raise DraftError("roomId is required", "invalid_room")
        if not pick_order or len(set(pick_order)) != len(pick_order):
            raise DraftError("pickOrder must be a non-empty list of distinct user ids", "invalid_pick_order")
        if timer_sec is None:
            timer_sec = self.default_timer_sec
        if timer_sec <= 0:
            raise DraftError("timerSec must be positive", "invalid_timer")

        team_names = team_names or {}
        for uid in pick_order:
            self.store.ensure_team(uid, team_names.get(uid))

        room = self.manager.get_or_create(
            DraftConfig(room_id=room_id, pick_order=list(pick_order), timer_sec=timer_sec, snake_draft=snake_draft)
        )
        already_started = room.get_state().started
        room.start()
        state = room.get_state()

        if not already_started:
            with self._lock:
                if admin_id:
                    self._admins.setdefault(room_id, admin_id)
            self.outbox.enqueue(
                DraftRoomRecord(
                    room_id=room_id,
                    timer_sec=room.config.timer_sec,
                    snake_draft=room.config.snake_draft,
                    pick_order=list(room.config.pick_order),
                    admin_id=self.room_admin(room_id),
                )
            )
            logger.info(
                "Draft %s started: order=%s timer=%ss", room_id, room.config.pick_order, room.config.timer_sec
            )

        self.broadcast(events.DRAFT_STATE, state.to_public(), to=room_id)
        self._turn_changed(room_id, state)
        return state

    def pause(self, room_id: str) -> DraftState:
        room = self.get_room(room_id)
        room.pause()
        state = room.get_state()
        logger.info("Draft %s paused (%sms left)", room_id, state.timer_remaining_ms)
        self.broadcast(events.DRAFT_STATE, state.to_public(), to=room_id)
        return state

    def resume(self, room_id: str) -> DraftState:
        room = self.get_room(room_id)
        room.resume()
        state = room.get_state()
        logger.info("Draft %s resumed", room_id)
        self.broadcast(events.DRAFT_STATE, state.to_public(), to=room_id)
        self._turn_changed(room_id, state)
        return state

    # ------------------------------------------------------------------
    # Picks
    # ------------------------------------------------------------------

    def submit_pick(self, room_id: str, user_id: str, player_id: str) -> tuple[DraftState, Team | None]:
        room = self.get_room(room_id)
        state = room.make_pick(user_id, player_id, self.store.players, self.store.teams)
        logger.info("Pick in %s: %s -> %s (#%d)", room_id, user_id, player_id, state.pick_index - 1)
        self._after_pick(room_id, state)
        return state, self.store.get_team(user_id)

    def force_auto_pick(self, room_id: str, user_id: str, reason: str) -> DraftState | None:
        """Pick for ``user_id``, or skip their turn when nothing can be picked."""
        room = self.manager.get(room_id)
        if room is None:
            return None

        try:
            state = room.make_auto_pick(user_id, self.store.players, self.store.teams)
        except DraftError as exc:
            if exc.code in STALE_TURN_CODES:
                logger.debug("Auto-pick for %s in %s dropped: %s", user_id, room_id, exc)
                return None
            logger.warning("Auto-pick for %s in %s failed (%s): %s; skipping turn", user_id, room_id, reason, exc)
            return self._skip_turn(room, user_id, exc.code)

        logger.info("Auto-pick in %s for %s (%s)", room_id, user_id, reason)
        self._after_pick(room_id, state)
        return state

    def _skip_turn(self, room: DraftRoom, user_id: str, reason: str) -> DraftState | None:
        try:
            state = room.skip_turn(user_id)
        except DraftError as exc:
            logger.debug("Skip for %s in %s dropped: %s", user_id, room.room_id, exc)
            return None

        skipped_index = state.pick_index - 1
        order_len = len(room.config.pick_order)
        self.outbox.enqueue(
            DraftPickRecord(
                room_id=room.room_id,
                pick_index=skipped_index,
                round=skipped_index // order_len + 1,
                slot=skipped_index % order_len,
                user_id=user_id,
                player_id="",
                autopick=True,
                skipped=True,
            )
        )
        self.broadcast(events.DRAFT_STATE, state.to_public(), to=room.room_id)
        self.broadcast(
            events.DRAFT_SKIPPED,
            {"roomId": room.room_id, "userId": user_id, "pickIndex": skipped_index, "reason": reason},
            to=room.room_id,
        )
        self._announce_completion(room.room_id, state)
        self._turn_changed(room.room_id, state)
        return state

    def _after_pick(self, room_id: str, state: DraftState) -> None:
        last = state.last_pick
        if last is not None:
            self.outbox.enqueue(DraftPickRecord.from_pick(last))

        self.broadcast(events.DRAFT_STATE, state.to_public(), to=room_id)
        if last is not None and last.autopick:
            self.broadcast(
                events.DRAFT_AUTOPICK,
                {"roomId": room_id, "pickIndex": state.pick_index - 1, "pick": last.to_public()},
                to=room_id,
            )
        self._announce_completion(room_id, state)
        self._turn_changed(room_id, state)

    def _announce_completion(self, room_id: str, state: DraftState) -> None:
        if state.completed:
            logger.info("Draft %s completed after %d picks", room_id, len(state.picks))
            self.broadcast(events.DRAFT_COMPLETED, {"roomId": room_id, "finalState": state.to_public()}, to=room_id)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def persisted_rooms(self) -> list[DraftRoomRecord]:
        return self.outbox.repository.list_rooms()

    def history(self, room_id: str) -> list[DraftPickRecord]:
        return self.outbox.repository.list_picks(room_id)

    def active_room_for(self, user_id: str) -> DraftState | None:
        for room in self.manager.rooms.values():
            state = room.get_state()
            if state.started and not state.paused and not state.completed and user_id in state.pick_order:
                return state
        return None

    def restore(self) -> list[str]:
        """Rebuild rooms from the durable log (startup)."""
        self.outbox.flush()
        repo = self.outbox.repository
        restored = restore_draft_rooms(self.manager, repo, self.store)
        with self._lock:
            for room_id in restored:
                record = repo.get_room(room_id)
                if record is not None and record.admin_id:
                    self._admins.setdefault(room_id, record.admin_id)
        for room_id in restored:
            self._turn_changed(room_id, self.manager.get(room_id).get_state())
        return restored
