"""Durable draft log: room configs and picks.

Picks are keyed by ``(room_id, pick_index)``; saving the same key twice
replaces the row, so replays and retried writes are idempotent.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import replace
from pathlib import Path
from threading import RLock

from .records import DraftPickRecord, DraftRoomRecord

logger = logging.getLogger(__name__)


class DraftRepository:
    def init(self) -> None:
        pass

    def save_room(self, room: DraftRoomRecord) -> None:
        raise NotImplementedError

    def save_pick(self, pick: DraftPickRecord) -> None:
        raise NotImplementedError

    def get_room(self, room_id: str) -> DraftRoomRecord | None:
        raise NotImplementedError

    def list_rooms(self) -> list[DraftRoomRecord]:
        raise NotImplementedError

    def list_picks(self, room_id: str) -> list[DraftPickRecord]:
        raise NotImplementedError

    def ping(self) -> bool:
        return True


class MemoryDraftRepository(DraftRepository):
    def __init__(self) -> None:
        self._lock = RLock()
        self._rooms: dict[str, DraftRoomRecord] = {}
        self._picks: dict[str, dict[int, DraftPickRecord]] = {}

    def save_room(self, room: DraftRoomRecord) -> None:
        with self._lock:
            self._rooms[room.room_id] = replace(room, pick_order=list(room.pick_order))

    def save_pick(self, pick: DraftPickRecord) -> None:
        with self._lock:
            self._picks.setdefault(pick.room_id, {})[pick.pick_index] = replace(pick)

    def get_room(self, room_id: str) -> DraftRoomRecord | None:
        with self._lock:
            room = self._rooms.get(room_id)
            return replace(room, pick_order=list(room.pick_order)) if room else None

    def list_rooms(self) -> list[DraftRoomRecord]:
        with self._lock:
            return [replace(r, pick_order=list(r.pick_order)) for r in self._rooms.values()]

    def list_picks(self, room_id: str) -> list[DraftPickRecord]:
        with self._lock:
            picks = self._picks.get(room_id, {})
            return [replace(picks[idx]) for idx in sorted(picks)]


class SqliteDraftRepository(DraftRepository):
    def __init__(self, db_file: str | Path):
        self.db_file = str(db_file)
        self._lock = RLock()
        self._conn: sqlite3.Connection | None = None

    def init(self) -> None:
        if self.db_file != ":memory:":
            Path(self.db_file).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_file, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS draft_rooms (
                room_id TEXT PRIMARY KEY,
                timer_sec REAL NOT NULL,
                snake_draft INTEGER NOT NULL,
                created_at INTEGER NOT NULL,
                pick_order TEXT NOT NULL,
                admin_id TEXT
            );
            CREATE TABLE IF NOT EXISTS draft_picks (
                room_id TEXT NOT NULL,
                pick_index INTEGER NOT NULL,
                round INTEGER NOT NULL,
                slot INTEGER NOT NULL,
                user_id TEXT NOT NULL,
                player_id TEXT NOT NULL,
                autopick INTEGER NOT NULL,
                skipped INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                PRIMARY KEY (room_id, pick_index)
            );
            CREATE INDEX IF NOT EXISTS idx_draft_picks_room ON draft_picks(room_id);
            """
        )
        conn.commit()
        self._conn = conn
        logger.info("SQLite draft repository ready at %s", self.db_file)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SqliteDraftRepository.init() was not called")
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def save_room(self, room: DraftRoomRecord) -> None:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO draft_rooms (room_id, timer_sec, snake_draft, created_at, pick_order, admin_id)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    room.room_id,
                    float(room.timer_sec),
                    1 if room.snake_draft else 0,
                    int(room.created_at),
                    json.dumps(list(room.pick_order)),
                    room.admin_id,
                ),
            )
            self.conn.commit()

    def save_pick(self, pick: DraftPickRecord) -> None:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO draft_picks
                    (room_id, pick_index, round, slot, user_id, player_id, autopick, skipped, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    pick.room_id,
                    int(pick.pick_index),
                    int(pick.round),
                    int(pick.slot),
                    pick.user_id,
                    pick.player_id,
                    1 if pick.autopick else 0,
                    1 if pick.skipped else 0,
                    int(pick.created_at),
                ),
            )
            self.conn.commit()

    @staticmethod
    def _room_from_row(row: sqlite3.Row) -> DraftRoomRecord:
        return DraftRoomRecord(
            room_id=row["room_id"],
            timer_sec=row["timer_sec"],
            snake_draft=bool(row["snake_draft"]),
            created_at=int(row["created_at"]),
            pick_order=json.loads(row["pick_order"] or "[]"),
            admin_id=row["admin_id"],
        )

    def get_room(self, room_id: str) -> DraftRoomRecord | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM draft_rooms WHERE room_id=?;",
                (room_id,),
            ).fetchone()
        return self._room_from_row(row) if row else None

    def list_rooms(self) -> list[DraftRoomRecord]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM draft_rooms ORDER BY created_at ASC;").fetchall()
        return [self._room_from_row(r) for r in rows]

    def list_picks(self, room_id: str) -> list[DraftPickRecord]:
        with self._lock:
            rows = self.conn.execute(
                """
                SELECT room_id, pick_index, round, slot, user_id, player_id, autopick, skipped, created_at
                FROM draft_picks
                WHERE room_id=?
                ORDER BY pick_index ASC;
                """,
                (room_id,),
            ).fetchall()
        return [
            DraftPickRecord(
                room_id=r["room_id"],
                pick_index=int(r["pick_index"]),
                round=int(r["round"]),
                slot=int(r["slot"]),
                user_id=r["user_id"],
                player_id=r["player_id"],
                autopick=bool(r["autopick"]),
                skipped=bool(r["skipped"]),
                created_at=int(r["created_at"]),
            )
            for r in rows
        ]

    def ping(self) -> bool:
        try:
            with self._lock:
                self.conn.execute("SELECT 1;").fetchone()
            return True
        except (sqlite3.Error, RuntimeError):
            return False


def create_draft_repository(use_sqlite: bool = False, db_file: str | Path = "data/draft.db") -> DraftRepository:
    repo: DraftRepository
    if use_sqlite:
        repo = SqliteDraftRepository(db_file)
    else:
        repo = MemoryDraftRepository()
    repo.init()
    return repo
