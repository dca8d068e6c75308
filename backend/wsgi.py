import os

from backend.puckdraft.logging_config import setup_logging
from backend.puckdraft.server import create_app

setup_logging(os.environ.get("LOG_LEVEL", "INFO"), os.environ.get("LOG_DIR", "logs"))

app, socketio = create_app()
