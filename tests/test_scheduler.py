"""Tests for the timer tick and server-side bot turns."""

import pytest

from backend.puckdraft.game.draft import DraftRoomManager
from backend.puckdraft.game.service import DraftService
from backend.puckdraft.persistence.outbox import PersistenceOutbox
from backend.puckdraft.realtime import events
from backend.puckdraft.realtime.scheduler import BotTurnScheduler, DraftTimerManager


@pytest.fixture
def timer(service, tasks):
    return DraftTimerManager(service, tasks, tick_interval_sec=1.0)


class TestTimerTick:
    def test_tick_broadcasts_remaining(self, service, timer, recorder, clock):
        service.start_draft("r1", ["u1", "u2"], timer_sec=30)
        clock.advance(5_000)

        assert timer.tick() == []
        tick = recorder.named(events.DRAFT_TIMER)[-1]
        assert tick == {"roomId": "r1", "timerRemainingMs": 25_000, "pickIndex": 0, "activeUserId": "u1"}

    def test_expired_turn_is_auto_picked(self, service, timer, recorder, clock):
        service.start_draft("r1", ["u1", "u2"], timer_sec=30)
        clock.advance(30_000)

        assert timer.tick() == ["r1"]
        state = service.get_state("r1")
        assert state.pick_index == 1
        assert state.picks[0].autopick is True
        assert recorder.named(events.DRAFT_AUTOPICK)

    def test_expired_turn_only_advances_once(self, service, timer, clock):
        service.start_draft("r1", ["u1", "u2"], timer_sec=30)
        clock.advance(30_000)
        timer.tick()
        timer.tick()
        assert service.get_state("r1").pick_index == 1

    def test_paused_room_ignored(self, service, timer, recorder, clock):
        service.start_draft("r1", ["u1", "u2"], timer_sec=30)
        service.pause("r1")
        clock.advance(120_000)

        assert timer.tick() == []
        assert recorder.named(events.DRAFT_TIMER) == []
        assert service.get_state("r1").pick_index == 0

    def test_completed_room_ignored(self, service, timer, recorder, clock):
        service.start_draft("r1", ["u1"], timer_sec=30)
        for _ in range(6):
            service.force_auto_pick("r1", "u1", reason="timer_expired")
        clock.advance(120_000)

        assert timer.tick() == []
        assert recorder.named(events.DRAFT_TIMER) == []

    def test_tick_flushes_outbox(self, service, timer, repository):
        service.start_draft("r1", ["u1", "u2"], timer_sec=30)

        calls = []
        original = repository.save_pick

        def failing_once(pick):
            if not calls:
                calls.append(pick)
                raise OSError("locked")
            original(pick)

        repository.save_pick = failing_once
        service.submit_pick("r1", "u1", "c-0")
        assert service.outbox.pending == 1

        timer.tick()
        assert service.outbox.pending == 0
        assert [p.player_id for p in repository.list_picks("r1")] == ["c-0"]

    def test_start_runs_loop_in_background(self, timer, tasks):
        timer.start()
        timer.start()
        assert timer.running
        assert len(tasks.tasks) == 1
        timer.stop()
        assert not timer.running


class TestBotTurns:
    @pytest.fixture
    def bots(self, service, tasks):
        return BotTurnScheduler(service, tasks, delay_sec=2.0)

    def test_bot_turn_scheduled_and_picked(self, service, bots, tasks):
        service.start_draft("r1", ["bot-1-1", "u1"])
        assert len(tasks.tasks) == 1

        tasks.run_all()
        state = service.get_state("r1")
        assert tasks.sleeps == [2.0]
        assert state.pick_index == 1
        assert state.picks[0].user_id == "bot-1-1"
        assert state.picks[0].autopick is True

    def test_human_turn_not_scheduled(self, service, bots, tasks):
        service.start_draft("r1", ["u1", "bot-1-1"])
        assert tasks.tasks == []

    def test_same_turn_scheduled_once(self, service, bots, tasks):
        state = service.start_draft("r1", ["bot-1-1", "u1"])
        assert bots.maybe_schedule("r1", state) is False
        assert len(tasks.tasks) == 1

    def test_stale_task_does_nothing(self, service, bots, tasks):
        service.start_draft("r1", ["bot-1-1", "u1"])
        # Someone picked for the bot before its task ran.
        service.force_auto_pick("r1", "bot-1-1", reason="timer_expired")
        tasks.run_all()
        assert service.get_state("r1").pick_index == 1

    def test_quickpick_only_for_bots(self, service, bots):
        service.start_draft("r1", ["u1", "u2"])
        assert bots.pick_now("r1", "u1") is None
        assert service.get_state("r1").pick_index == 0

    def test_quickpick_for_bot_on_clock(self, service, bots):
        service.start_draft("r1", ["bot-1-1", "u1"])
        state = bots.pick_now("r1", "bot-1-1")
        assert state.pick_index == 1

    def test_bots_draft_back_to_back(self, service, bots, tasks):
        service.start_draft("r1", ["u1", "bot-1-1", "bot-1-2"])
        service.submit_pick("r1", "u1", "c-0")
        # bot-1-1, bot-1-2, then round two reverses: bot-1-2, bot-1-1.
        tasks.run_all()
        state = service.get_state("r1")
        assert state.pick_index == 5
        assert state.active_user_id == "u1"

    def test_restored_bot_turn_scheduled(self, service, repository, catalog_factory, tasks, clock):
        service.start_draft("r1", ["u1", "bot-1-1"])
        service.submit_pick("r1", "u1", "c-0")
        assert tasks.tasks == []

        rebuilt = DraftService(catalog_factory(), DraftRoomManager(clock=clock), PersistenceOutbox(repository))
        BotTurnScheduler(rebuilt, tasks, delay_sec=2.0)
        assert rebuilt.restore() == ["r1"]
        assert len(tasks.tasks) == 1

        tasks.run_all()
        assert tasks.sleeps == [2.0]
        state = rebuilt.get_state("r1")
        assert state.pick_index == 2
        assert state.picks[1].user_id == "bot-1-1"
