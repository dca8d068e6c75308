"""Draft room turn machine.

``pick_index`` is the only stored position in the draft: round, in-round
slot, snake-adjusted slot, active user and completion are all derived from
it in :meth:`DraftRoom.get_state`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from threading import RLock
from typing import Any

from .models import MAX_PLAYERS_PER_TEAM, MAX_ROUNDS, DraftPick, Player, Team
from .roster import (
    assign_player_to_slot,
    can_afford_player,
    find_assignable_position,
    is_team_full,
    remaining_cap,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


class DraftError(Exception):
    """A rejected draft operation. ``code`` is stable and safe to show clients."""

    code = "draft_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class NoEligiblePlayerError(DraftError):
    code = "no_eligible_player"


class RoomNotFoundError(DraftError):
    code = "room_not_found"

    def __init__(self, room_id: str):
        super().__init__(f"Draft room {room_id} not found")
        self.room_id = room_id


@dataclass(frozen=True)
class DraftConfig:
    room_id: str
    pick_order: list[str]
    timer_sec: float
    snake_draft: bool = True

    @property
    def timer_ms(self) -> int:
        return int(self.timer_sec * 1000)


@dataclass(frozen=True)
class DraftState:
    room_id: str
    started: bool
    completed: bool
    pick_order: list[str]
    pick_index: int
    round: int
    slot: int
    timer_sec: float
    timer_started_at: int | None
    timer_remaining_ms: int | None
    paused: bool
    picks: list[DraftPick] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    active_user_id: str | None = None
    snake_draft: bool = True

    @property
    def last_pick(self) -> DraftPick | None:
        return self.picks[-1] if self.picks else None

    def to_public(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "started": self.started,
            "completed": self.completed,
            "pickOrder": list(self.pick_order),
            "pickIndex": self.pick_index,
            "round": self.round,
            "slot": self.slot,
            "timerSec": self.timer_sec,
            "timerStartedAt": self.timer_started_at,
            "timerRemainingMs": self.timer_remaining_ms,
            "paused": self.paused,
            "picks": [p.to_public() for p in self.picks],
            "skipped": list(self.skipped),
            "activeUserId": self.active_user_id,
            "snakeDraft": self.snake_draft,
        }


class DraftRoom:
    def __init__(self, config: DraftConfig, clock: Clock | None = None, lock: RLock | None = None):
        if not config.pick_order:
            raise ValueError("pick_order cannot be empty")
        self.config = config
        self._clock = clock or now_ms
        # Shared with every room drafting from the same catalog.
        self._lock = lock or RLock()

        self._started = False
        self._paused = False
        self._pick_index = 0
        self._timer_started_at: int | None = None
        self._timer_remaining_ms: int | None = None
        self._picks: list[DraftPick] = []
        self._skipped: list[int] = []
        self._picked_player_ids: set[str] = set()

    @property
    def room_id(self) -> str:
        return self.config.room_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._started = True
            self._paused = False
            self._pick_index = 0
            self._timer_started_at = self._clock()
            self._timer_remaining_ms = None

    def pause(self) -> None:
        with self._lock:
            if not self._started or self._paused:
                return
            if self._timer_started_at is not None:
                elapsed = self._clock() - self._timer_started_at
                self._timer_remaining_ms = max(0, self.config.timer_ms - elapsed)
            self._paused = True
            self._timer_started_at = None

    def resume(self) -> None:
        with self._lock:
            if not self._started or not self._paused:
                return
            self._paused = False
            remaining = self._timer_remaining_ms
            if remaining is None:
                remaining = self.config.timer_ms
            self._timer_started_at = self._clock() - (self.config.timer_ms - remaining)
            self._timer_remaining_ms = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def get_state(self) -> DraftState:
        with self._lock:
            order_len = len(self.config.pick_order)
            round_ = self._pick_index // order_len + 1
            slot = self._pick_index % order_len
            completed = round_ > MAX_ROUNDS

            reverse = self.config.snake_draft and round_ % 2 == 0
            effective_slot = order_len - 1 - slot if reverse else slot

            active_user_id = None
            if self._started and not self._paused and not completed:
                active_user_id = self.config.pick_order[effective_slot]

            timer_remaining_ms = None
            if self._paused and self._timer_remaining_ms is not None:
                timer_remaining_ms = self._timer_remaining_ms
            elif self._timer_started_at is not None and not self._paused:
                elapsed = self._clock() - self._timer_started_at
                timer_remaining_ms = max(0, self.config.timer_ms - elapsed)

            return DraftState(
                room_id=self.config.room_id,
                started=self._started,
                completed=completed,
                pick_order=list(self.config.pick_order),
                pick_index=self._pick_index,
                round=round_,
                slot=slot,
                timer_sec=self.config.timer_sec,
                timer_started_at=self._timer_started_at,
                timer_remaining_ms=timer_remaining_ms,
                paused=self._paused,
                picks=list(self._picks),
                skipped=list(self._skipped),
                active_user_id=active_user_id,
                snake_draft=self.config.snake_draft,
            )

    def is_timer_expired(self) -> bool:
        with self._lock:
            if not self._started or self._paused or self._timer_started_at is None:
                return False
            return self._clock() - self._timer_started_at >= self.config.timer_ms

    # ------------------------------------------------------------------
    # Picks
    # ------------------------------------------------------------------

    def make_pick(
        self,
        user_id: str,
        player_id: str,
        players: Mapping[str, Player],
        teams: Mapping[str, Team],
        is_auto_pick: bool = False,
    ) -> DraftState:
        with self._lock:
            if not self._started:
                raise DraftError("Draft not started", "draft_not_started")
            if self._paused:
                raise DraftError("Draft paused", "draft_paused")

            player = players.get(player_id)
            if player is None:
                raise DraftError("Player not found", "player_not_found")

            # Checked before turn order so a duplicate request gets the same answer
            # no matter whose turn it is now.
            if player_id in self._picked_player_ids or player.drafted_by is not None:
                raise DraftError("Player already picked!", "player_already_picked")

            state = self.get_state()
            if state.active_user_id != user_id:
                raise DraftError("Not your turn!", "not_your_turn")

            team = teams.get(user_id)
            if team is None:
                raise DraftError("Team not found", "team_not_found")

            if is_team_full(team):
                raise DraftError(f"Team is full (max {MAX_PLAYERS_PER_TEAM} players)", "team_full")

            over_cap = not can_afford_player(team, player)
            position = find_assignable_position(team, players, player)

            # Cap wins when both are violated.
            if over_cap:
                raise DraftError(
                    f"Salary cap exceeded! Remaining: ${remaining_cap(team):,}, "
                    f"Player cost: ${player.cap_hit:,}",
                    "salary_cap_exceeded",
                )
            if position is None:
                raise DraftError("No roster slot available for eligible positions", "no_roster_slot")

            player.drafted_by = user_id
            player.draft_week = team.week
            assign_player_to_slot(team, position, player_id)
            team.players.append(player_id)
            team.salary_total += player.cap_hit

            now = self._clock()
            self._picks.append(
                DraftPick(
                    room_id=self.config.room_id,
                    pick_index=self._pick_index,
                    round=state.round,
                    slot=state.slot,
                    user_id=user_id,
                    player_id=player_id,
                    autopick=is_auto_pick,
                    timestamp=now,
                )
            )
            self._picked_player_ids.add(player_id)
            self._pick_index += 1
            self._timer_started_at = now
            self._timer_remaining_ms = None
            return self.get_state()

    def make_auto_pick(
        self,
        user_id: str,
        players: Mapping[str, Player],
        teams: Mapping[str, Team],
    ) -> DraftState:
        with self._lock:
            team = teams.get(user_id)
            if team is None:
                raise DraftError("Team not found for auto-pick", "team_not_found")

            candidates = [
                p
                for p in players.values()
                if p.drafted_by is None
                and p.id not in self._picked_player_ids
                and can_afford_player(team, p)
                and find_assignable_position(team, players, p) is not None
            ]
            if not candidates:
                logger.warning(
                    "No eligible player for auto-pick in %s (user=%s, salary=%d, roster=%d)",
                    self.config.room_id,
                    user_id,
                    team.salary_total,
                    len(team.players),
                )
                raise NoEligiblePlayerError(
                    "No affordable slottable players for auto-pick (team full or roster complete)"
                )

            # Stable sort keeps catalog order on ties.
            candidates.sort(key=lambda p: p.stats.points, reverse=True)
            selected = candidates[0]
            logger.info(
                "Auto-pick in %s: %s takes %s (%s)", self.config.room_id, user_id, selected.full_name, selected.id
            )
            return self.make_pick(user_id, selected.id, players, teams, is_auto_pick=True)

    def skip_turn(self, user_id: str) -> DraftState:
        """Advance past ``user_id``'s turn without a pick."""
        with self._lock:
            if not self._started:
                raise DraftError("Draft not started", "draft_not_started")
            if self._paused:
                raise DraftError("Draft paused", "draft_paused")
            state = self.get_state()
            if state.active_user_id != user_id:
                raise DraftError("Not your turn!", "not_your_turn")

            self._skipped.append(self._pick_index)
            self._pick_index += 1
            self._timer_started_at = self._clock()
            self._timer_remaining_ms = None
            return self.get_state()


class DraftRoomManager:
    """Rooms by id. All rooms share ``pick_lock`` since they draft from one catalog."""

    def __init__(self, clock: Clock | None = None, pick_lock: RLock | None = None):
        self._clock = clock
        self._lock = RLock()
        self.pick_lock = pick_lock or RLock()
        self._rooms: dict[str, DraftRoom] = {}

    def get_or_create(self, config: DraftConfig) -> DraftRoom:
        with self._lock:
            existing = self._rooms.get(config.room_id)
            if existing is not None:
                return existing
            room = DraftRoom(config, clock=self._clock, lock=self.pick_lock)
            self._rooms[config.room_id] = room
            return room

    def get(self, room_id: str) -> DraftRoom | None:
        with self._lock:
            return self._rooms.get(room_id)

    @property
    def rooms(self) -> dict[str, DraftRoom]:
        with self._lock:
            return dict(self._rooms)
