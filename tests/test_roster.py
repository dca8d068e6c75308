"""Tests for roster and eligibility helpers."""

import pytest

from backend.puckdraft.game.models import SALARY_CAP, Team
from backend.puckdraft.game.roster import (
    assign_player_to_slot,
    can_afford_player,
    find_assignable_position,
    find_first_available_slot,
    get_eligible_positions,
    get_team_position_counts,
    has_position_slot_available,
    is_team_full,
    remaining_cap,
)


def _legacy_team():
    team = Team.create("u1", "Legacy")
    team.slots = None
    return team


class TestCap:
    def test_remaining_cap_of_empty_team(self, team):
        assert remaining_cap(team) == SALARY_CAP

    def test_exactly_at_cap_is_affordable(self, team, player_factory):
        team.salary_total = SALARY_CAP - 5_000_000
        assert can_afford_player(team, player_factory("x", cap_hit=5_000_000))

    def test_one_dollar_over_cap(self, team, player_factory):
        team.salary_total = SALARY_CAP - 5_000_000
        assert not can_afford_player(team, player_factory("x", cap_hit=5_000_001))


class TestEligibility:
    def test_primary_position_only(self, player_factory):
        assert get_eligible_positions(player_factory("x", position="RW")) == ["RW"]

    def test_multi_position_order_kept(self, player_factory):
        player = player_factory("x", position="C", eligible=["C", "LW"])
        assert get_eligible_positions(player) == ["C", "LW"]

    def test_team_full_at_six(self, team):
        team.players = [f"p{i}" for i in range(5)]
        assert not is_team_full(team)
        team.players.append("p5")
        assert is_team_full(team)


class TestSlots:
    def test_counts_from_slots(self, team):
        assign_player_to_slot(team, "D", "d-0")
        counts = get_team_position_counts(team, {})
        assert counts["D"] == 1
        assert counts["C"] == 0

    def test_two_defence_slots(self, team):
        assign_player_to_slot(team, "D", "d-0")
        assert has_position_slot_available(team, {}, "D")
        assign_player_to_slot(team, "D", "d-1")
        assert not has_position_slot_available(team, {}, "D")

    def test_first_available_slot_follows_eligibility_order(self, team):
        assign_player_to_slot(team, "C", "c-0")
        assert find_first_available_slot(team, ["C", "LW"]) == "LW"

    def test_assignable_position_none_when_all_eligible_filled(self, team, player_factory):
        assign_player_to_slot(team, "G", "g-0")
        assert find_assignable_position(team, {}, player_factory("g-1", position="G")) is None

    def test_multi_position_player_takes_secondary(self, team, player_factory):
        assign_player_to_slot(team, "C", "c-0")
        player = player_factory("x", position="C", eligible=["C", "LW"])
        assert find_assignable_position(team, {}, player) == "LW"

    def test_assign_to_filled_position_raises(self, team):
        assign_player_to_slot(team, "G", "g-0")
        with pytest.raises(ValueError):
            assign_player_to_slot(team, "G", "g-1")


class TestLegacyTeams:
    def test_counts_from_player_list(self, player_factory):
        team = _legacy_team()
        players = {"c-0": player_factory("c-0", position="C")}
        team.players = ["c-0"]
        assert get_team_position_counts(team, players)["C"] == 1

    def test_count_limits_apply(self, player_factory):
        team = _legacy_team()
        players = {
            "d-0": player_factory("d-0", position="D"),
            "d-1": player_factory("d-1", position="D"),
        }
        team.players = ["d-0", "d-1"]
        assert find_assignable_position(team, players, player_factory("d-2", position="D")) is None
        assert find_assignable_position(team, players, player_factory("c-0", position="C")) == "C"

    def test_assign_is_noop(self):
        team = _legacy_team()
        assign_player_to_slot(team, "C", "c-0")
        assert team.slots is None
