from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.draft import Clock
from .game.store import DataStore
from .persistence.repository import DraftRepository
from .realtime.handlers import register_socketio_handlers
from .routes.data import bp as data_bp
from .routes.draft import bp as draft_bp
from .routes.health import bp as health_bp
from .runtime import EXTENSION_KEY, build_runtime

logger = logging.getLogger(__name__)


def _async_mode() -> str:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    if env_async_mode:
        return env_async_mode
    # eventlet misbehaves on Windows and on Python >= 3.13
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(
    overrides: Mapping[str, Any] | None = None,
    tasks: Any = None,
    store: DataStore | None = None,
    repository: DraftRepository | None = None,
    clock: Clock | None = None,
) -> tuple[Flask, SocketIO]:
    dist_dir = Path(__file__).resolve().parents[2] / "frontend" / "dist"

    static_folder = str(dist_dir) if dist_dir.exists() else None
    static_url_path = "/" if dist_dir.exists() else None

    app = Flask(
        __name__,
        static_folder=static_folder,
        static_url_path=static_url_path,
    )
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE") or _async_mode(),
    )

    def emit(event: str, payload: dict, to: str | None = None) -> None:
        socketio.emit(event, payload, to=to)

    runtime = build_runtime(
        app.config,
        tasks if tasks is not None else socketio,
        emit=emit,
        store=store,
        repository=repository,
        clock=clock,
    )
    app.extensions[EXTENSION_KEY] = runtime

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(draft_bp, url_prefix="/api")
    app.register_blueprint(data_bp, url_prefix="/api")

    register_socketio_handlers(socketio, runtime)

    restored = runtime.service.restore()
    if restored:
        logger.info("Restored %d draft room(s): %s", len(restored), ", ".join(restored))

    if app.config.get("START_BACKGROUND_TASKS", True):
        runtime.timer.start()

    if dist_dir.exists():
        @app.get("/")
        def index():
            return send_from_directory(dist_dir, "index.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            file_path = dist_dir / path
            if file_path.exists() and file_path.is_file():
                return send_from_directory(dist_dir, path)
            return send_from_directory(dist_dir, "index.html")

    return app, socketio
