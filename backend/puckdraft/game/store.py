from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from threading import RLock

from .models import Player, Team, User

logger = logging.getLogger(__name__)


class DataStore:
    """Player catalog, teams (keyed by owner id) and known users.

    One instance per running game; tests build their own.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self.players: dict[str, Player] = {}
        self.teams: dict[str, Team] = {}
        self.users: dict[str, User] = {}

    @property
    def lock(self) -> RLock:
        """Guards the maps; draft rooms take it for the whole pick."""
        return self._lock

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def load_players_from_file(self, path: str | Path) -> int:
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)

        with self._lock:
            self.players.clear()
            for item in raw:
                player = Player.from_dict(item)
                self.players[player.id] = player
            count = len(self.players)

        logger.info("Loaded %d players from %s", count, path)
        return count

    def add_player(self, player: Player) -> Player:
        with self._lock:
            self.players[player.id] = player
            return player

    def get_player(self, player_id: str) -> Player | None:
        with self._lock:
            return self.players.get(player_id)

    def all_players(self) -> list[Player]:
        with self._lock:
            return list(self.players.values())

    def available_players(self) -> list[Player]:
        with self._lock:
            return [p for p in self.players.values() if p.drafted_by is None]

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def create_team(self, owner_id: str, name: str, logo: str = "default-logo", week: int = 1) -> Team:
        with self._lock:
            team = Team.create(owner_id, name, logo=logo, week=week)
            self.teams[owner_id] = team
            return team

    def get_team(self, owner_id: str) -> Team | None:
        with self._lock:
            return self.teams.get(owner_id)

    def ensure_team(self, owner_id: str, name: str | None = None) -> Team:
        """Return the owner's team, creating one named after the user if missing."""
        with self._lock:
            team = self.teams.get(owner_id)
            if team is not None:
                return team
            user = self.users.get(owner_id)
            if name is None:
                name = user.team_name if user and user.team_name else f"Team {owner_id}"
            logo = user.logo if user else "default-logo"
            return self.create_team(owner_id, name, logo=logo)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, login: str, team_name: str = "", role: str = "user", user_id: str | None = None) -> User:
        with self._lock:
            user = User(
                id=user_id or str(uuid.uuid4()),
                login=login,
                team_name=team_name or f"{login}'s Team",
                role="admin" if role == "admin" else "user",
            )
            self.users[user.id] = user
            return user

    def get_user(self, user_id: str) -> User | None:
        with self._lock:
            return self.users.get(user_id)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        with self._lock:
            self.players.clear()
            self.teams.clear()
            self.users.clear()

    def reset_draft(self) -> None:
        with self._lock:
            for player in self.players.values():
                player.drafted_by = None
                player.draft_week = None
            for team in self.teams.values():
                team.clear()
