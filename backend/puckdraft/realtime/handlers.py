from __future__ import annotations

import logging
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.draft import DraftError
from ..runtime import DraftRuntime
from ..utils.identity import is_global_admin, is_room_admin, resolve_user_id
from . import events

logger = logging.getLogger(__name__)


def _text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    return str(value).strip()


def _fail(event: str, code: str, message: str | None = None) -> dict:
    emit(event, {"error": code, "message": message or code})
    return {"ok": False, "error": code}


def register_socketio_handlers(socketio: SocketIO, runtime: DraftRuntime) -> None:
    service = runtime.service
    lobbies = runtime.lobbies
    config = runtime.config

    def _broadcast_participants(room_id: str) -> None:
        lobby = lobbies.get_lobby(room_id)
        if lobby is None:
            return
        service.broadcast(
            events.LOBBY_PARTICIPANTS,
            {
                "roomId": room_id,
                "participants": [p.to_public() for p in lobby.participants.values()],
                "adminId": lobby.admin_id,
            },
            to=events.lobby_channel(room_id),
        )

    def _broadcast_presence(room_id: str) -> None:
        service.broadcast(events.DRAFT_PRESENCE, runtime.presence.snapshot(room_id), to=room_id)

    def _lobby_room_id(payload: dict) -> str:
        return _text(payload, "roomId") or config.get("ACTIVE_ROOM_ID", "main-draft-room")

    def _finish_lobby_start(room_id: str, pick_order: list[str], admin_id: str) -> None:
        runtime.tasks.sleep(float(config.get("LOBBY_COUNTDOWN_SEC", 10)))

        team_names = {p.user_id: p.team_name for p in lobbies.participants(room_id)}
        try:
            service.start_draft(
                room_id,
                pick_order,
                timer_sec=float(config.get("DRAFT_TIMER_SEC", 60)),
                admin_id=admin_id,
                team_names=team_names,
            )
        except DraftError as exc:
            logger.error("Draft start from lobby %s failed: %s", room_id, exc)
            service.broadcast(
                events.LOBBY_ERROR,
                {"error": exc.code, "message": exc.message},
                to=events.lobby_channel(room_id),
            )
            return
        finally:
            lobbies.clear_lobby(room_id)

        service.broadcast(events.LOBBY_START, {"roomId": room_id}, to=events.lobby_channel(room_id))

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @socketio.on("connect")
    def on_connect(auth=None):
        emit(events.CONNECTED, {"ok": True})

    @socketio.on("disconnect")
    def on_disconnect(*args):
        sid = request.sid

        for room_id, user_id in lobbies.find_by_socket(sid):
            lobby = lobbies.get_lobby(room_id)
            if lobby is not None and lobby.state == "countdown":
                continue
            lobbies.remove_participant(room_id, user_id)
            _broadcast_participants(room_id)

        for room_id, user_id, still_present in runtime.presence.disconnect(sid):
            _broadcast_presence(room_id)
            if not still_present:
                runtime.grace.on_disconnect(room_id, user_id)

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------

    @socketio.on(events.DRAFT_JOIN)
    def draft_join(data):
        payload = data or {}
        room_id = _text(payload, "roomId")
        if not room_id:
            return _fail(events.DRAFT_ERROR, "invalid_room")

        join_room(room_id)
        user_id = resolve_user_id(payload)
        if user_id:
            runtime.presence.join(request.sid, room_id, user_id)
            _broadcast_presence(room_id)

        room = service.manager.get(room_id)
        if room is not None:
            emit(events.DRAFT_STATE, room.get_state().to_public())

        if user_id:
            runtime.grace.on_rejoin(room_id, user_id)
        return {"ok": True}

    @socketio.on(events.DRAFT_START)
    def draft_start(data):
        payload = data or {}
        room_id = _text(payload, "roomId")
        pick_order = payload.get("pickOrder")
        if not room_id or not isinstance(pick_order, list):
            return _fail(events.DRAFT_ERROR, "invalid_payload")

        timer_raw: Any = payload.get("timerSec")
        try:
            timer_sec = float(timer_raw) if timer_raw is not None else None
        except (TypeError, ValueError):
            return _fail(events.DRAFT_ERROR, "invalid_timer")

        join_room(room_id)
        try:
            service.start_draft(
                room_id,
                [str(uid) for uid in pick_order],
                timer_sec=timer_sec,
                admin_id=resolve_user_id(payload),
            )
        except DraftError as exc:
            return _fail(events.DRAFT_ERROR, exc.code, exc.message)
        return {"ok": True}

    @socketio.on(events.DRAFT_STATE_REQUEST)
    def draft_state(data):
        payload = data or {}
        room_id = _text(payload, "roomId")
        room = service.manager.get(room_id)
        if room is None:
            return _fail(events.DRAFT_ERROR, "room_not_found")
        emit(events.DRAFT_STATE, room.get_state().to_public())
        return {"ok": True}

    @socketio.on(events.DRAFT_PICK)
    def draft_pick(data):
        payload = data or {}
        room_id = _text(payload, "roomId")
        player_id = _text(payload, "playerId")
        if not room_id or not player_id:
            return _fail(events.DRAFT_ERROR, "invalid_payload")

        user_id = resolve_user_id(payload)
        if not user_id:
            return _fail(events.DRAFT_ERROR, "unauthorized", "User ID not found")

        try:
            service.submit_pick(room_id, user_id, player_id)
        except DraftError as exc:
            return _fail(events.DRAFT_ERROR, exc.code, exc.message)
        return {"ok": True}

    def _admin_toggle(payload: dict, action: str) -> dict:
        room_id = _text(payload, "roomId")
        if not room_id:
            return _fail(events.DRAFT_ERROR, "invalid_room")
        if not is_room_admin(runtime, room_id, resolve_user_id(payload)):
            return _fail(events.DRAFT_ERROR, "only_admin", f"Only admin can {action} the draft")
        try:
            if action == "pause":
                service.pause(room_id)
            else:
                service.resume(room_id)
        except DraftError as exc:
            return _fail(events.DRAFT_ERROR, exc.code, exc.message)
        return {"ok": True}

    @socketio.on(events.DRAFT_PAUSE)
    def draft_pause(data):
        return _admin_toggle(data or {}, "pause")

    @socketio.on(events.DRAFT_RESUME)
    def draft_resume(data):
        return _admin_toggle(data or {}, "resume")

    @socketio.on(events.BOT_QUICKPICK)
    def bot_quickpick(data):
        payload = data or {}
        room_id = _text(payload, "roomId")
        bot_id = _text(payload, "userId")
        if not room_id or not bot_id:
            return {"ok": False, "error": "invalid_payload"}
        state = runtime.bots.pick_now(room_id, bot_id)
        return {"ok": state is not None}

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    @socketio.on(events.LOBBY_JOIN)
    def lobby_join(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        user_id = resolve_user_id(payload)
        login = _text(payload, "login")
        if not user_id or not login:
            return _fail(events.LOBBY_ERROR, "invalid_payload")

        user = runtime.store.get_user(user_id)
        team_name = _text(payload, "teamName") or (user.team_name if user else "")

        lobby = lobbies.create_or_get_lobby(room_id, user_id)
        if lobby.state == "countdown":
            return _fail(events.LOBBY_ERROR, "draft_starting", "Draft is already starting")

        lobbies.add_participant(room_id, user_id, login, team_name, socket_id=request.sid)
        if is_global_admin(runtime, user_id) and not is_global_admin(runtime, lobby.admin_id):
            lobby.admin_id = user_id

        join_room(events.lobby_channel(room_id))
        emit(events.LOBBY_ROOM_ASSIGNED, {"roomId": room_id})
        _broadcast_participants(room_id)
        return {"ok": True, "roomId": room_id}

    @socketio.on(events.LOBBY_LEAVE)
    def lobby_leave(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        user_id = resolve_user_id(payload)
        if not user_id:
            return {"ok": False, "error": "invalid_payload"}

        leave_room(events.lobby_channel(room_id))
        lobbies.remove_participant(room_id, user_id)
        _broadcast_participants(room_id)
        return {"ok": True}

    @socketio.on(events.LOBBY_READY)
    def lobby_ready(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        user_id = resolve_user_id(payload)
        ready = bool(payload.get("ready"))
        if not user_id:
            return _fail(events.LOBBY_ERROR, "invalid_payload")

        if lobbies.set_ready(room_id, user_id, ready) is None:
            return _fail(events.LOBBY_ERROR, "lobby_not_found")
        service.broadcast(
            events.LOBBY_READY,
            {"roomId": room_id, "userId": user_id, "ready": ready, "allReady": lobbies.all_ready(room_id)},
            to=events.lobby_channel(room_id),
        )
        return {"ok": True}

    @socketio.on(events.LOBBY_ADD_BOTS)
    def lobby_add_bots(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        if not is_room_admin(runtime, room_id, resolve_user_id(payload)):
            return _fail(events.LOBBY_ERROR, "only_admin", "Only lobby admin can add bots")

        try:
            count = int(payload.get("count", 1))
        except (TypeError, ValueError):
            return _fail(events.LOBBY_ERROR, "invalid_count")

        try:
            added = lobbies.add_bots(room_id, count, runtime.store, max_bots=int(config.get("MAX_BOTS", 9)))
        except KeyError:
            return _fail(events.LOBBY_ERROR, "lobby_not_found")
        _broadcast_participants(room_id)
        return {"ok": True, "added": added}

    @socketio.on(events.LOBBY_KICK)
    def lobby_kick(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        target_id = _text(payload, "targetUserId") or _text(payload, "kickUserId")
        actor_id = resolve_user_id(payload)
        if not target_id:
            return _fail(events.LOBBY_ERROR, "invalid_payload")
        if not is_room_admin(runtime, room_id, actor_id):
            return _fail(events.LOBBY_ERROR, "only_admin", "Only admin can kick participants")

        lobby = lobbies.get_lobby(room_id)
        if lobby is None:
            return _fail(events.LOBBY_ERROR, "lobby_not_found")

        target = lobby.participants.get(target_id)
        lobbies.remove_participant(room_id, target_id)
        _broadcast_participants(room_id)
        if target is not None and target.socket_id:
            service.broadcast(events.LOBBY_KICKED, {"roomId": room_id}, to=target.socket_id)
        return {"ok": True}

    @socketio.on(events.LOBBY_START)
    def lobby_start(data):
        payload = data or {}
        room_id = _lobby_room_id(payload)
        actor_id = resolve_user_id(payload)

        lobby = lobbies.get_lobby(room_id)
        if lobby is None:
            return _fail(events.LOBBY_ERROR, "lobby_not_found", "Lobby not found")
        if not is_room_admin(runtime, room_id, actor_id):
            return _fail(events.LOBBY_ERROR, "only_admin", "Only admin can start the draft")
        if lobby.state == "countdown":
            return _fail(events.LOBBY_ERROR, "draft_starting", "Draft is already starting")

        pick_order = lobbies.generate_pick_order(room_id, shuffle=bool(config.get("SHUFFLE_PICK_ORDER", True)))
        if not pick_order:
            return _fail(events.LOBBY_ERROR, "no_participants")
        lobbies.begin_countdown(room_id)

        total = len(pick_order)
        for participant in lobbies.participants(room_id):
            if participant.socket_id:
                service.broadcast(
                    events.DRAFT_YOUR_POSITION,
                    {"position": pick_order.index(participant.user_id) + 1, "total": total},
                    to=participant.socket_id,
                )

        countdown = float(config.get("LOBBY_COUNTDOWN_SEC", 10))
        service.broadcast(
            events.DRAFT_STARTING,
            {"roomId": room_id, "countdown": countdown, "pickOrder": pick_order},
            to=events.lobby_channel(room_id),
        )
        logger.info("Lobby %s starting in %ss with order %s", room_id, countdown, pick_order)

        runtime.tasks.start_background_task(_finish_lobby_start, room_id, pick_order, actor_id or lobby.admin_id)
        return {"ok": True, "pickOrder": pick_order}
