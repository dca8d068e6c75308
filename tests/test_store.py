"""Tests for the in-memory catalog, teams and users."""

import json

from backend.puckdraft.game.store import DataStore


class TestResetDraft:
    def test_clears_ownership_and_rosters(self, service, store):
        service.start_draft("r1", ["u1", "u2"])
        service.submit_pick("r1", "u1", "c-0")
        service.submit_pick("r1", "u2", "g-0")

        store.reset_draft()

        assert all(p.drafted_by is None and p.draft_week is None for p in store.players.values())
        for uid in ("u1", "u2"):
            team = store.teams[uid]
            assert team.players == []
            assert team.salary_total == 0
            assert all(slot.player_id is None for slot in team.slots)

    def test_keeps_catalog_teams_and_users(self, store):
        store.create_user("alice", user_id="u1")
        store.ensure_team("u1")
        count = len(store.players)

        store.reset_draft()

        assert len(store.players) == count
        assert store.get_team("u1").name == "alice's Team"
        assert store.get_user("u1").login == "alice"

    def test_players_draftable_again(self, store, room_factory):
        store.ensure_team("u1")
        room = room_factory(pick_order=("u1",))
        room.start()
        room.make_pick("u1", "c-0", store.players, store.teams)

        store.reset_draft()
        fresh = room_factory(pick_order=("u1",), room_id="room-2")
        fresh.start()
        state = fresh.make_pick("u1", "c-0", store.players, store.teams)
        assert state.pick_index == 1
        assert store.players["c-0"].drafted_by == "u1"


class TestCatalog:
    def test_load_players_from_file(self, tmp_path):
        path = tmp_path / "players.json"
        path.write_text(
            json.dumps(
                [
                    {"id": "p1", "firstName": "A", "lastName": "B", "position": "C", "capHit": 900000},
                    {"id": "p2", "position": "G", "capHit": 750000, "eligiblePositions": ["G"]},
                ]
            ),
            encoding="utf-8",
        )
        store = DataStore()
        assert store.load_players_from_file(path) == 2
        assert store.get_player("p1").full_name == "A B"
        assert [p.id for p in store.available_players()] == ["p1", "p2"]

    def test_ensure_team_is_idempotent(self):
        store = DataStore()
        first = store.ensure_team("u1")
        assert store.ensure_team("u1", "Other Name") is first
        assert first.name == "Team u1"
