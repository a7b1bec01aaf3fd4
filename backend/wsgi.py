import logging

try:
    from backend.pictionary.config import Config
    from backend.pictionary.server import create_app
except ImportError:  # pragma: no cover
    from pictionary.config import Config
    from pictionary.server import create_app

logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app, socketio = create_app()
