import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO async mode; empty picks eventlet or threading by platform
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Sessions
    MAX_PLAYERS_PER_SESSION = int(os.environ.get("MAX_PLAYERS_PER_SESSION", "50"))
    BUZZ_COOLDOWN_MS = int(os.environ.get("BUZZ_COOLDOWN_MS", "100"))
    SESSION_MAX_AGE_SEC = int(os.environ.get("SESSION_MAX_AGE_SEC", "3600"))
    # Stale session sweep period; 0 disables the background sweeper.
    SWEEP_INTERVAL_SEC = int(os.environ.get("SWEEP_INTERVAL_SEC", "300"))
