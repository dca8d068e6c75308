"""Seam to the auth/session layer, which lives outside this package.

The acting user is taken from the Flask session (``user_id``) when the
session layer set one, otherwise from the ``X-User-Id`` header or, for
socket events, the payload's ``userId``.
"""

from __future__ import annotations

from typing import Any

from flask import has_request_context, request, session

from ..runtime import DraftRuntime


def resolve_user_id(payload: dict[str, Any] | None = None) -> str | None:
    if has_request_context():
        sess_uid = session.get("user_id")
        if sess_uid:
            return str(sess_uid)
        header_uid = (request.headers.get("X-User-Id") or "").strip()
        if header_uid:
            return header_uid
    if payload:
        uid = str(payload.get("userId") or "").strip()
        if uid:
            return uid
    return None


def is_global_admin(runtime: DraftRuntime, user_id: str | None) -> bool:
    if not user_id:
        return False
    user = runtime.store.get_user(user_id)
    return user is not None and user.role == "admin"


def is_room_admin(runtime: DraftRuntime, room_id: str, user_id: str | None) -> bool:
    if not user_id:
        return False
    if is_global_admin(runtime, user_id):
        return True
    lobby = runtime.lobbies.get_lobby(room_id)
    if lobby is not None and lobby.admin_id == user_id:
        return True
    return runtime.service.room_admin(room_id) == user_id
