import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Disables background tick runners (tests drive loops by hand)
    TESTING = os.environ.get("TESTING", "0") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Rooms
    DEFAULT_ROOM = os.environ.get("DEFAULT_ROOM", "main")
    TICK_INTERVAL_SEC = float(os.environ.get("TICK_INTERVAL_SEC", "1"))
    EMPTY_ROOM_TTL_SEC = int(os.environ.get("EMPTY_ROOM_TTL_SEC", "10"))

    # Game
    ROUND_DURATION_SEC = int(os.environ.get("ROUND_DURATION_SEC", "60"))
    NEXT_ROUND_DELAY_SEC = int(os.environ.get("NEXT_ROUND_DELAY_SEC", "5"))
    WINNER_ANNOUNCEMENT_SEC = int(os.environ.get("WINNER_ANNOUNCEMENT_SEC", "10"))
    ALL_FOUND_GRACE_SEC = int(os.environ.get("ALL_FOUND_GRACE_SEC", "2"))
