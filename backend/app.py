import logging

import os

import sys

from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("pictionary")


def _use_eventlet() -> bool:
    env_async_mode = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()
    return (
        not sys.platform.startswith("win")
        and sys.version_info < (3, 13)
        and env_async_mode in ("", "eventlet")
    )


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")

    if _use_eventlet():
        import eventlet

        eventlet.monkey_patch()

    try:
        from backend.pictionary.config import Config
        from backend.pictionary.server import create_app
    except ImportError:  # pragma: no cover
        from pictionary.config import Config
        from pictionary.server import create_app

    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app, socketio = create_app()

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "3001"))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"

    allow_unsafe_werkzeug = os.environ.get("ALLOW_UNSAFE_WERKZEUG", "1") == "1"
    use_reloader = os.environ.get("FLASK_USE_RELOADER", "0") == "1"

    logger.info(
        "Game server on %s:%d (async mode %s, default room %r, %ss rounds)",
        host,
        port,
        socketio.async_mode,
        app.config["DEFAULT_ROOM"],
        app.config["ROUND_DURATION_SEC"],
    )

    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        allow_unsafe_werkzeug=allow_unsafe_werkzeug,
        use_reloader=use_reloader,
    )


if __name__ == "__main__":
    main()
