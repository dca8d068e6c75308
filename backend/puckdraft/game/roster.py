"""Roster and eligibility helpers.

All functions here are pure with respect to the draft: they read a team
and the player catalog, and only ``assign_player_to_slot`` writes (to the
team's slot array).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import MAX_PLAYERS_PER_TEAM, POSITIONS, ROSTER_SLOTS, SALARY_CAP, Player, Position, Team


def remaining_cap(team: Team) -> int:
    return SALARY_CAP - team.salary_total


def can_afford_player(team: Team, player: Player) -> bool:
    return team.salary_total + player.cap_hit <= SALARY_CAP


def is_team_full(team: Team) -> bool:
    return len(team.players) >= MAX_PLAYERS_PER_TEAM


def get_eligible_positions(player: Player) -> list[Position]:
    if player.eligible_positions:
        return list(player.eligible_positions)
    return [player.position]


def get_team_position_counts(team: Team, players: Mapping[str, Player]) -> dict[str, int]:
    counts = {pos: 0 for pos in POSITIONS}
    if team.slots is not None:
        for slot in team.slots:
            if slot.player_id:
                counts[slot.position] += 1
        return counts

    for pid in team.players:
        p = players.get(pid)
        if p is not None:
            counts[p.position] += 1
    return counts


def has_position_slot_available(team: Team, players: Mapping[str, Player], position: Position) -> bool:
    if team.slots is not None:
        return any(s.position == position and not s.player_id for s in team.slots)
    counts = get_team_position_counts(team, players)
    return counts[position] < ROSTER_SLOTS.get(position, 0)


def find_first_available_slot(team: Team, positions: Iterable[Position]) -> Position | None:
    if team.slots is None:
        return None
    for pos in positions:
        if any(s.position == pos and not s.player_id for s in team.slots):
            return pos
    return None


def find_assignable_position(team: Team, players: Mapping[str, Player], player: Player) -> Position | None:
    """First eligible position of ``player`` that still has an empty billet on ``team``."""
    eligible = get_eligible_positions(player)

    slot_pos = find_first_available_slot(team, eligible)
    if slot_pos:
        return slot_pos

    if team.slots is not None:
        return None

    counts = get_team_position_counts(team, players)
    for pos in eligible:
        if counts[pos] < ROSTER_SLOTS.get(pos, 0):
            return pos
    return None


def assign_player_to_slot(team: Team, position: Position, player_id: str) -> None:
    if team.slots is None:
        # Legacy team: the players list is the only record.
        return
    for slot in team.slots:
        if slot.position == position and not slot.player_id:
            slot.player_id = player_id
            return
    raise ValueError(f"No empty slot for position {position}")
