from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Literal


Position = Literal["C", "LW", "RW", "D", "G"]
LobbyState = Literal["open", "countdown"]

SALARY_CAP = 95_500_000
MAX_PLAYERS_PER_TEAM = 6
MAX_ROUNDS = MAX_PLAYERS_PER_TEAM

POSITIONS: tuple[Position, ...] = ("C", "LW", "RW", "D", "G")

# Count-based limits, used when a team carries no explicit slot array.
ROSTER_SLOTS: dict[str, int] = {"C": 1, "LW": 1, "RW": 1, "D": 2, "G": 1}

# Fixed slot layout of every roster.
ROSTER_LAYOUT: tuple[Position, ...] = ("LW", "C", "RW", "D", "D", "G")

BOT_PREFIX = "bot-"


def is_bot_user(user_id: str | None) -> bool:
    return bool(user_id) and str(user_id).startswith(BOT_PREFIX)


@dataclass
class PlayerStats:
    games: int = 0
    goals: int = 0
    assists: int = 0
    points: int = 0


@dataclass
class Player:
    id: str
    first_name: str
    last_name: str
    position: Position
    cap_hit: int
    team: str = ""
    stats: PlayerStats = field(default_factory=PlayerStats)
    eligible_positions: list[Position] | None = None
    drafted_by: str | None = None
    draft_week: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Player":
        stats = data.get("stats") or {}
        eligible = data.get("eligiblePositions")
        position = str(data["position"])
        if position not in POSITIONS:
            raise ValueError(f"Unknown position {position!r} for player {data.get('id')}")
        return cls(
            id=str(data["id"]),
            first_name=str(data.get("firstName", "")),
            last_name=str(data.get("lastName", "")),
            position=position,  # type: ignore[arg-type]
            cap_hit=int(data["capHit"]),
            team=str(data.get("team", "")),
            stats=PlayerStats(
                games=int(stats.get("games", 0)),
                goals=int(stats.get("goals", 0)),
                assists=int(stats.get("assists", 0)),
                points=int(stats.get("points", 0)),
            ),
            eligible_positions=[p for p in eligible if p in POSITIONS] if isinstance(eligible, list) else None,
            drafted_by=data.get("draftedBy"),
            draft_week=data.get("draftWeek"),
        )

    def to_public(self) -> dict[str, Any]:
        payload = {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "position": self.position,
            "capHit": self.cap_hit,
            "team": self.team,
            "stats": asdict(self.stats),
            "draftedBy": self.drafted_by,
            "draftWeek": self.draft_week,
        }
        if self.eligible_positions:
            payload["eligiblePositions"] = list(self.eligible_positions)
        return payload


@dataclass
class RosterSlot:
    position: Position
    player_id: str | None = None


def default_slots() -> list[RosterSlot]:
    return [RosterSlot(position=pos) for pos in ROSTER_LAYOUT]


@dataclass
class Team:
    team_id: str
    owner_id: str
    name: str
    logo: str = ""
    players: list[str] = field(default_factory=list)
    salary_total: int = 0
    week: int = 1
    # None only for legacy teams; those fall back to count-based limits.
    slots: list[RosterSlot] | None = field(default_factory=default_slots)

    @classmethod
    def create(cls, owner_id: str, name: str, logo: str = "default-logo", week: int = 1) -> "Team":
        return cls(team_id=str(uuid.uuid4()), owner_id=owner_id, name=name, logo=logo, week=week)

    def clear(self) -> None:
        self.players = []
        self.salary_total = 0
        if self.slots is not None:
            for slot in self.slots:
                slot.player_id = None

    def to_public(self) -> dict[str, Any]:
        payload = {
            "teamId": self.team_id,
            "ownerId": self.owner_id,
            "name": self.name,
            "logo": self.logo,
            "players": list(self.players),
            "salaryTotal": self.salary_total,
            "week": self.week,
        }
        if self.slots is not None:
            payload["slots"] = [{"position": s.position, "playerId": s.player_id} for s in self.slots]
        return payload


@dataclass(frozen=True)
class DraftPick:
    room_id: str
    pick_index: int
    round: int
    slot: int
    user_id: str
    player_id: str
    autopick: bool
    timestamp: int

    def to_public(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "pickIndex": self.pick_index,
            "round": self.round,
            "slot": self.slot,
            "userId": self.user_id,
            "playerId": self.player_id,
            "autopick": self.autopick,
            "timestamp": self.timestamp,
        }


@dataclass
class User:
    id: str
    login: str
    team_name: str = ""
    logo: str = "default-logo"
    role: Literal["user", "admin"] = "user"


@dataclass
class LobbyParticipant:
    user_id: str
    login: str
    team_name: str
    ready: bool = False
    socket_id: str | None = None

    @property
    def is_bot(self) -> bool:
        return is_bot_user(self.user_id)

    def to_public(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "login": self.login,
            "teamName": self.team_name,
            "ready": self.ready,
        }


@dataclass
class Lobby:
    room_id: str
    admin_id: str
    created_at_ms: int
    state: LobbyState = "open"
    participants: dict[str, LobbyParticipant] = field(default_factory=dict)
