from __future__ import annotations

from flask import Blueprint, jsonify

from ..game.draft import now_ms
from ..runtime import get_runtime

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    runtime = get_runtime()
    storage_ok = runtime.repository.ping()
    return jsonify(
        {
            "status": "ok" if storage_ok else "degraded",
            "uptimeSec": (now_ms() - runtime.started_at_ms) / 1000.0,
            "rooms": len(runtime.manager.rooms),
            "storage": "ok" if storage_ok else "error",
            "pendingWrites": runtime.outbox.pending,
            "timerRunning": runtime.timer.running,
        }
    )
