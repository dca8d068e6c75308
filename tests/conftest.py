"""Shared fixtures for the draft server test suite."""

from __future__ import annotations

import pytest

from backend.puckdraft.game.draft import DraftConfig, DraftRoom, DraftRoomManager
from backend.puckdraft.game.models import Player, PlayerStats, Team
from backend.puckdraft.game.service import DraftService
from backend.puckdraft.game.store import DataStore
from backend.puckdraft.persistence.outbox import PersistenceOutbox
from backend.puckdraft.persistence.repository import MemoryDraftRepository
from backend.puckdraft.server import create_app


# ── Helpers ──────────────────────────────────────────────────────────


class ManualClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTasks:
    """Stands in for ``socketio`` as a background task runner.

    Tasks are recorded and run only when the test calls :meth:`run_all`.
    """

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args, kwargs))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run_all(self):
        ran = 0
        while self.tasks:
            target, args, kwargs = self.tasks.pop(0)
            target(*args, **kwargs)
            ran += 1
        return ran


class Recorder:
    """Collects ``(event, payload, to)`` broadcasts."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload, to=None):
        self.events.append((event, payload, to))

    def named(self, event):
        return [payload for name, payload, _ in self.events if name == event]


def make_player(pid, position="C", cap_hit=1_000_000, points=10, eligible=None, team="TST"):
    return Player(
        id=pid,
        first_name="Test",
        last_name=pid,
        position=position,
        cap_hit=cap_hit,
        team=team,
        stats=PlayerStats(games=82, goals=points // 2, assists=points - points // 2, points=points),
        eligible_positions=eligible,
    )


def fill_catalog(store, teams=3):
    """Enough 1M players for ``teams`` full rosters plus spares.

    Ids look like ``c-0``, ``d-3``; lower index means more points.
    """
    layout = {"C": 1, "LW": 1, "RW": 1, "D": 2, "G": 1}
    for pos, per_team in layout.items():
        for i in range(per_team * teams + 2):
            store.add_player(make_player(f"{pos.lower()}-{i}", position=pos, points=100 - i))
    return store


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def tasks():
    return FakeTasks()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def store():
    return fill_catalog(DataStore())


@pytest.fixture
def team():
    return Team.create("u1", "Team One")


@pytest.fixture
def room_factory(clock):
    def _make(pick_order=("u1", "u2", "u3"), timer_sec=60, room_id="room-1"):
        return DraftRoom(DraftConfig(room_id=room_id, pick_order=list(pick_order), timer_sec=timer_sec), clock=clock)

    return _make


@pytest.fixture
def repository():
    return MemoryDraftRepository()


@pytest.fixture
def service(store, repository, recorder, clock):
    manager = DraftRoomManager(clock=clock, pick_lock=store.lock)
    return DraftService(store, manager, PersistenceOutbox(repository), emit=recorder)


@pytest.fixture
def player_factory():
    return make_player


@pytest.fixture
def catalog_factory():
    def _make(teams=3):
        return fill_catalog(DataStore(), teams=teams)

    return _make


@pytest.fixture
def server(store, tasks, clock, repository):
    """``(app, socketio)`` with no background loop and an in-memory log."""
    app, socketio = create_app(
        overrides={
            "TESTING": True,
            "START_BACKGROUND_TASKS": False,
            "SOCKETIO_ASYNC_MODE": "threading",
            "TRUST_PROXY_HEADERS": False,
            "SHUFFLE_PICK_ORDER": False,
            "PLAYERS_FILE": "",
        },
        tasks=tasks,
        store=store,
        repository=repository,
        clock=clock,
    )
    return app, socketio


@pytest.fixture
def runtime(server):
    app, _ = server
    return app.extensions["puckdraft"]
