from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..game.draft import DraftError, RoomNotFoundError
from ..runtime import get_runtime
from ..utils.identity import is_room_admin, resolve_user_id

bp = Blueprint("draft", __name__)


def _error(code: str, message: str | None = None, status: int = 400):
    body = {"error": code}
    if message:
        body["message"] = message
    return jsonify(body), status


def _draft_error(exc: DraftError):
    status = 404 if isinstance(exc, RoomNotFoundError) else 400
    return _error(exc.code, exc.message, status)


@bp.post("/draft/start")
def start_draft():
    runtime = get_runtime()
    user_id = resolve_user_id()
    if not user_id:
        return _error("unauthorized", status=401)

    data = request.get_json(silent=True) or {}
    room_id = str(data.get("roomId") or "").strip()
    pick_order = data.get("pickOrder")
    timer_sec = data.get("timerSec")
    if not room_id or not isinstance(pick_order, list):
        return _error("invalid_payload", "roomId and pickOrder are required")
    if timer_sec is not None and (isinstance(timer_sec, bool) or not isinstance(timer_sec, (int, float))):
        return _error("invalid_payload", "timerSec must be a number")

    try:
        state = runtime.service.start_draft(
            room_id,
            [str(uid) for uid in pick_order],
            timer_sec=float(timer_sec) if timer_sec is not None else None,
            admin_id=user_id,
        )
    except DraftError as exc:
        return _draft_error(exc)

    return jsonify({"message": "Draft started successfully", "draftState": state.to_public()})


@bp.get("/draft/room")
def get_room():
    runtime = get_runtime()
    room_id = (request.args.get("roomId") or "").strip()
    if not room_id:
        return _error("invalid_payload", "roomId query parameter is required")

    try:
        state = runtime.service.get_state(room_id)
    except RoomNotFoundError as exc:
        return _draft_error(exc)

    user_id = resolve_user_id()
    team = runtime.store.get_team(user_id) if user_id else None
    return jsonify(
        {
            "draftState": state.to_public(),
            "availablePlayers": [p.to_public() for p in runtime.store.available_players()],
            "myTeam": team.to_public() if team else None,
        }
    )


@bp.get("/draft/state")
def get_state():
    runtime = get_runtime()
    room_id = (request.args.get("roomId") or "").strip()
    if not room_id:
        return _error("invalid_payload", "roomId query parameter is required")

    try:
        state = runtime.service.get_state(room_id)
    except RoomNotFoundError as exc:
        return _draft_error(exc)
    return jsonify({"draftState": state.to_public()})


@bp.post("/draft/pick")
def make_pick():
    runtime = get_runtime()
    user_id = resolve_user_id()
    if not user_id:
        return _error("unauthorized", status=401)

    data = request.get_json(silent=True) or {}
    room_id = str(data.get("roomId") or "").strip()
    player_id = str(data.get("playerId") or "").strip()
    if not room_id or not player_id:
        return _error("invalid_payload", "roomId and playerId are required")

    try:
        state, team = runtime.service.submit_pick(room_id, user_id, player_id)
    except DraftError as exc:
        return _draft_error(exc)

    return jsonify(
        {
            "message": "Pick successful",
            "draftState": state.to_public(),
            "team": team.to_public() if team else None,
        }
    )


@bp.get("/draft/rooms")
def list_rooms():
    runtime = get_runtime()
    return jsonify({"rooms": [r.to_public() for r in runtime.service.persisted_rooms()]})


@bp.get("/draft/history")
def history():
    runtime = get_runtime()
    room_id = (request.args.get("roomId") or "").strip()
    if not room_id:
        return _error("invalid_payload", "roomId is required")
    return jsonify({"roomId": room_id, "picks": [p.to_public() for p in runtime.service.history(room_id)]})


@bp.get("/draft/active")
def active_draft():
    runtime = get_runtime()
    user_id = resolve_user_id()
    if not user_id:
        return _error("unauthorized", status=401)

    state = runtime.service.active_room_for(user_id)
    if state is None:
        return jsonify({"hasActiveDraft": False})
    return jsonify({"hasActiveDraft": True, "roomId": state.room_id, "draftState": state.to_public()})


def _toggle(action: str):
    runtime = get_runtime()
    user_id = resolve_user_id()
    if not user_id:
        return _error("unauthorized", status=401)

    data = request.get_json(silent=True) or {}
    room_id = str(data.get("roomId") or "").strip()
    if not room_id:
        return _error("invalid_payload", "roomId is required")
    if not is_room_admin(runtime, room_id, user_id):
        return _error("only_admin", f"Only admin can {action} the draft", 403)

    try:
        if action == "pause":
            state = runtime.service.pause(room_id)
        else:
            state = runtime.service.resume(room_id)
    except DraftError as exc:
        return _draft_error(exc)
    return jsonify({"draftState": state.to_public()})


@bp.post("/draft/pause")
def pause_draft():
    return _toggle("pause")


@bp.post("/draft/resume")
def resume_draft():
    return _toggle("resume")
