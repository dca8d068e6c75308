from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..runtime import get_runtime
from ..utils.identity import resolve_user_id

bp = Blueprint("data", __name__)


@bp.get("/players")
def list_players():
    store = get_runtime().store
    players = store.all_players()

    drafted = request.args.get("drafted")
    if drafted is not None:
        show_drafted = drafted == "true"
        players = [p for p in players if (p.drafted_by is not None) == show_drafted]

    # Multi-position players match on any eligible position.
    position = request.args.get("position")
    if position:
        players = [p for p in players if p.position == position or position in (p.eligible_positions or [])]

    team = request.args.get("team")
    if team:
        players = [p for p in players if p.team == team]

    return jsonify({"players": [p.to_public() for p in players], "total": len(players)})


@bp.get("/team")
def get_team():
    store = get_runtime().store
    user_id = (request.args.get("userId") or "").strip() or resolve_user_id()
    if not user_id:
        return jsonify({"error": "unauthorized"}), 401

    team = store.get_team(user_id)
    if team is None:
        return jsonify({"error": "team_not_found", "message": "Team not found"}), 404

    picks = [store.players[pid].to_public() for pid in team.players if pid in store.players]
    payload = team.to_public()
    payload["picks"] = picks
    return jsonify({"team": payload, "players": picks})


@bp.get("/leaderboard")
def leaderboard():
    store = get_runtime().store
    try:
        week = int(request.args.get("week", "1"))
    except ValueError:
        week = 1

    entries = []
    for team in list(store.teams.values()):
        if team.week != week:
            continue
        owner = store.get_user(team.owner_id)
        entries.append(
            {
                "teamId": team.team_id,
                "ownerId": team.owner_id,
                "owner": owner.login if owner else "Unknown",
                "teamName": team.name,
                "logo": team.logo,
                "salaryTotal": team.salary_total,
                "players": [
                    {
                        "playerId": p.id,
                        "name": p.full_name,
                        "position": p.position,
                        "capHit": p.cap_hit,
                    }
                    for p in (store.players.get(pid) for pid in team.players)
                    if p is not None
                ],
            }
        )

    entries.sort(key=lambda e: e["salaryTotal"], reverse=True)
    return jsonify({"leaderboard": entries, "week": week})
