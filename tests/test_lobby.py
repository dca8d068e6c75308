"""Tests for pre-draft lobbies."""

import random

import pytest

from backend.puckdraft.game import lobby as lobby_module
from backend.puckdraft.game.lobby import LobbyManager
from backend.puckdraft.game.store import DataStore


@pytest.fixture
def lobbies():
    return LobbyManager()


def _join(lobbies, room_id, *users):
    for uid in users:
        lobbies.create_or_get_lobby(room_id, uid)
        lobbies.add_participant(room_id, uid, login=uid, socket_id=f"sid-{uid}")


class TestMembership:
    def test_first_joiner_is_admin(self, lobbies):
        _join(lobbies, "r", "alice", "bob")
        assert lobbies.get_lobby("r").admin_id == "alice"

    def test_default_team_name(self, lobbies):
        _join(lobbies, "r", "alice")
        assert lobbies.participants("r")[0].team_name == "alice's Team"

    def test_add_without_lobby(self, lobbies):
        with pytest.raises(KeyError):
            lobbies.add_participant("missing", "alice", "alice")

    def test_ready_survives_rejoin(self, lobbies):
        _join(lobbies, "r", "alice")
        lobbies.set_ready("r", "alice", True)
        lobbies.add_participant("r", "alice", "alice", socket_id="sid-new")
        participant = lobbies.get_lobby("r").participants["alice"]
        assert participant.ready
        assert participant.socket_id == "sid-new"

    def test_last_leave_deletes_lobby(self, lobbies):
        _join(lobbies, "r", "alice")
        assert lobbies.remove_participant("r", "alice") is None
        assert lobbies.get_lobby("r") is None

    def test_admin_passes_to_next_human(self, lobbies):
        store = DataStore()
        _join(lobbies, "r", "alice")
        lobbies.add_bots("r", 2, store)
        _join(lobbies, "r", "bob")

        lobby = lobbies.remove_participant("r", "alice")
        assert lobby.admin_id == "bob"

    def test_admin_passes_to_bot_when_no_humans(self, lobbies):
        store = DataStore()
        _join(lobbies, "r", "alice")
        bots = lobbies.add_bots("r", 1, store)
        lobby = lobbies.remove_participant("r", "alice")
        assert lobby.admin_id == bots[0]

    def test_find_by_socket(self, lobbies):
        _join(lobbies, "r1", "alice")
        _join(lobbies, "r2", "bob")
        assert lobbies.find_by_socket("sid-bob") == [("r2", "bob")]
        assert lobbies.find_by_socket("sid-nobody") == []


class TestReady:
    def test_all_ready(self, lobbies):
        _join(lobbies, "r", "alice", "bob")
        lobbies.set_ready("r", "alice", True)
        assert not lobbies.all_ready("r")
        lobbies.set_ready("r", "bob", True)
        assert lobbies.all_ready("r")

    def test_empty_lobby_not_ready(self, lobbies):
        assert not lobbies.all_ready("nowhere")


class TestBots:
    def test_bots_are_ready_and_have_teams(self, lobbies):
        store = DataStore()
        _join(lobbies, "r", "alice")
        added = lobbies.add_bots("r", 3, store)

        assert len(added) == 3
        for bot_id in added:
            assert bot_id.startswith("bot-")
            assert lobbies.get_lobby("r").participants[bot_id].ready
            assert store.get_team(bot_id).logo == "bot-logo"

    def test_bot_count_capped(self, lobbies):
        _join(lobbies, "r", "alice")
        assert len(lobbies.add_bots("r", 50, DataStore())) == 9

    def test_negative_count_adds_nothing(self, lobbies):
        _join(lobbies, "r", "alice")
        assert lobbies.add_bots("r", -2, DataStore()) == []

    def test_unknown_lobby(self, lobbies):
        with pytest.raises(KeyError):
            lobbies.add_bots("missing", 1, DataStore())

    def test_ids_unique_within_same_millisecond(self, lobbies, monkeypatch):
        monkeypatch.setattr(lobby_module, "now_ms", lambda: 1_000)
        store = DataStore()
        _join(lobbies, "r", "alice")
        first = lobbies.add_bots("r", 2, store)
        second = lobbies.add_bots("r", 2, store)

        assert len(set(first + second)) == 4
        assert len(lobbies.participants("r")) == 5
        assert all(store.get_team(bot_id) for bot_id in first + second)


class TestPickOrder:
    def test_join_order_without_shuffle(self, lobbies):
        _join(lobbies, "r", "alice", "bob", "carol")
        assert lobbies.generate_pick_order("r", shuffle=False) == ["alice", "bob", "carol"]

    def test_shuffle_is_a_permutation(self, lobbies):
        users = [f"u{i}" for i in range(8)]
        _join(lobbies, "r", *users)
        order = lobbies.generate_pick_order("r", rng=random.Random(7))
        assert sorted(order) == sorted(users)

    def test_shuffle_is_seedable(self, lobbies):
        _join(lobbies, "r", *[f"u{i}" for i in range(8)])
        first = lobbies.generate_pick_order("r", rng=random.Random(42))
        second = lobbies.generate_pick_order("r", rng=random.Random(42))
        assert first == second

    def test_shuffle_matches_seeded_rng(self, lobbies):
        users = [f"u{i}" for i in range(8)]
        _join(lobbies, "r", *users)
        expected = list(users)
        random.Random(3).shuffle(expected)
        assert lobbies.generate_pick_order("r", rng=random.Random(3)) == expected

    def test_countdown_and_clear(self, lobbies):
        _join(lobbies, "r", "alice")
        assert lobbies.begin_countdown("r").state == "countdown"
        lobbies.clear_lobby("r")
        assert lobbies.get_lobby("r") is None
