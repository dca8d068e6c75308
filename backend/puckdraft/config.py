import os


def _grace_ms() -> int:
    raw = os.environ.get("RECONNECT_GRACE_MS", "")
    try:
        value = int(raw)
    except ValueError:
        return 60_000
    return value if value > 0 else 60_000


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Storage (defaults to in-memory)
    USE_SQLITE = os.environ.get("USE_SQLITE", "0") == "1"
    DB_FILE = os.environ.get("DB_FILE", "data/draft.db")
    PLAYERS_FILE = os.environ.get("PLAYERS_FILE", "data/players.json")

    # Draft
    DRAFT_TIMER_SEC = float(os.environ.get("DRAFT_TIMER_SEC", "60"))
    TIMER_TICK_SEC = float(os.environ.get("TIMER_TICK_SEC", "1"))
    RECONNECT_GRACE_MS = _grace_ms()
    BOT_PICK_DELAY_SEC = float(os.environ.get("BOT_PICK_DELAY_SEC", "2"))

    # Lobby
    ACTIVE_ROOM_ID = os.environ.get("ACTIVE_ROOM_ID", "main-draft-room")
    LOBBY_COUNTDOWN_SEC = float(os.environ.get("LOBBY_COUNTDOWN_SEC", "10"))
    SHUFFLE_PICK_ORDER = os.environ.get("SHUFFLE_PICK_ORDER", "1") == "1"
    MAX_BOTS = int(os.environ.get("MAX_BOTS", "9"))

    # Runtime
    START_BACKGROUND_TASKS = os.environ.get("START_BACKGROUND_TASKS", "1") == "1"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
