from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..game.draft import now_ms
from ..game.models import DraftPick


@dataclass
class DraftRoomRecord:
    room_id: str
    timer_sec: float
    snake_draft: bool
    pick_order: list[str]
    created_at: int = field(default_factory=now_ms)
    admin_id: str | None = None

    def to_public(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "timerSec": self.timer_sec,
            "snakeDraft": self.snake_draft,
            "createdAt": self.created_at,
            "pickOrder": list(self.pick_order),
            "adminId": self.admin_id,
        }


@dataclass
class DraftPickRecord:
    room_id: str
    pick_index: int
    round: int
    slot: int
    user_id: str
    player_id: str
    autopick: bool = False
    skipped: bool = False
    created_at: int = field(default_factory=now_ms)

    @classmethod
    def from_pick(cls, pick: DraftPick) -> "DraftPickRecord":
        return cls(
            room_id=pick.room_id,
            pick_index=pick.pick_index,
            round=pick.round,
            slot=pick.slot,
            user_id=pick.user_id,
            player_id=pick.player_id,
            autopick=pick.autopick,
            created_at=pick.timestamp,
        )

    def to_public(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "pickIndex": self.pick_index,
            "round": self.round,
            "slot": self.slot,
            "userId": self.user_id,
            "playerId": self.player_id,
            "autopick": self.autopick,
            "skipped": self.skipped,
            "createdAt": self.created_at,
        }
