from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from flask import current_app

from .game.draft import Clock, DraftRoomManager, now_ms
from .game.lobby import LobbyManager
from .game.service import DraftService
from .game.store import DataStore
from .persistence.outbox import PersistenceOutbox
from .persistence.repository import DraftRepository, create_draft_repository
from .realtime.presence import PresenceTracker, ReconnectGrace
from .realtime.scheduler import BotTurnScheduler, DraftTimerManager

logger = logging.getLogger(__name__)

EXTENSION_KEY = "puckdraft"


@dataclass
class DraftRuntime:
    """Everything one running draft server owns."""

    config: Mapping[str, Any]
    tasks: Any
    store: DataStore
    manager: DraftRoomManager
    repository: DraftRepository
    outbox: PersistenceOutbox
    service: DraftService
    lobbies: LobbyManager
    presence: PresenceTracker
    grace: ReconnectGrace
    timer: DraftTimerManager
    bots: BotTurnScheduler
    started_at_ms: int = field(default_factory=now_ms)


def build_runtime(
    config: Mapping[str, Any],
    tasks: Any,
    emit: Any = None,
    store: DataStore | None = None,
    repository: DraftRepository | None = None,
    clock: Clock | None = None,
) -> DraftRuntime:
    store = store or DataStore()
    if not store.players and config.get("PLAYERS_FILE"):
        players_file = Path(config["PLAYERS_FILE"])
        if players_file.exists():
            store.load_players_from_file(players_file)
        else:
            logger.warning("Player catalog %s not found; starting with an empty catalog", players_file)

    repository = repository or create_draft_repository(
        use_sqlite=bool(config.get("USE_SQLITE")),
        db_file=config.get("DB_FILE", "data/draft.db"),
    )
    outbox = PersistenceOutbox(repository)
    manager = DraftRoomManager(clock=clock, pick_lock=store.lock)
    service = DraftService(
        store,
        manager,
        outbox,
        emit=emit,
        default_timer_sec=float(config.get("DRAFT_TIMER_SEC", 60)),
    )

    return DraftRuntime(
        config=config,
        tasks=tasks,
        store=store,
        manager=manager,
        repository=repository,
        outbox=outbox,
        service=service,
        lobbies=LobbyManager(),
        presence=PresenceTracker(),
        grace=ReconnectGrace(service, tasks, grace_ms=int(config.get("RECONNECT_GRACE_MS", 60_000))),
        timer=DraftTimerManager(service, tasks, tick_interval_sec=float(config.get("TIMER_TICK_SEC", 1.0))),
        bots=BotTurnScheduler(service, tasks, delay_sec=float(config.get("BOT_PICK_DELAY_SEC", 2.0))),
    )


def get_runtime() -> DraftRuntime:
    return current_app.extensions[EXTENSION_KEY]
