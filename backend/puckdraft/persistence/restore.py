from __future__ import annotations

import logging

from ..game.draft import DraftConfig, DraftError, DraftRoomManager
from ..game.store import DataStore
from .repository import DraftRepository

logger = logging.getLogger(__name__)


def restore_draft_rooms(manager: DraftRoomManager, repo: DraftRepository, store: DataStore) -> list[str]:
    """Rebuild every persisted room in ``manager`` by replaying its pick log.

    Replay goes through the normal pick path in ascending pick index order.
    Picks that are already reflected in memory are rejected by the room and
    ignored, so restoring twice yields the same state.
    """
    restored: list[str] = []

    for record in repo.list_rooms():
        if not record.pick_order:
            logger.warning("Skipping persisted room %s with empty pick order", record.room_id)
            continue

        room = manager.get_or_create(
            DraftConfig(
                room_id=record.room_id,
                pick_order=list(record.pick_order),
                timer_sec=record.timer_sec,
                snake_draft=record.snake_draft,
            )
        )
        for uid in record.pick_order:
            store.ensure_team(uid)

        room.start()

        picks = sorted(repo.list_picks(record.room_id), key=lambda p: p.pick_index)
        replayed = 0
        for p in picks:
            try:
                if p.skipped:
                    # A skip carries no player, so only its index tells if it was applied.
                    if p.pick_index != room.get_state().pick_index:
                        continue
                    room.skip_turn(p.user_id)
                else:
                    room.make_pick(p.user_id, p.player_id, store.players, store.teams, p.autopick)
                replayed += 1
            except DraftError as exc:
                logger.debug("Ignoring replay error in %s:%d: %s", record.room_id, p.pick_index, exc)

        logger.info("Restored draft room %s (%d/%d picks replayed)", record.room_id, replayed, len(picks))
        restored.append(record.room_id)

    return restored
