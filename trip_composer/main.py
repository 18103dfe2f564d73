"""
Trip Composer – main application entry point

* Flask app + Socket.IO; the planner blueprint lives under `/planner` and the
  Socket.IO namespace for live edits is `/planner/ws`.
* Runs with `async_mode="threading"`, so no eventlet/gevent is required.
"""

import os
import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from dotenv import load_dotenv

from trip_composer.api.config import get_cors_origins, get_port

# --------------------------------------------------------------------------- #
# Environment & logging
# --------------------------------------------------------------------------- #
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(config=None):
    """Build the Flask app and its Socket.IO server.

    Returns:
        ``(app, socketio)``
    """
    app = Flask(__name__)

    flask_secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(32).hex()
    if "FLASK_SECRET_KEY" not in os.environ:
        logger.warning("No FLASK_SECRET_KEY found. Generated a temporary key.")
    app.secret_key = flask_secret_key

    app.config.update(
        SESSION_COOKIE_SECURE=False,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        PERMANENT_SESSION_LIFETIME=86400,
    )
    if config:
        app.config.update(config)

    origins = get_cors_origins()
    CORS(app, origins=origins, supports_credentials=True)

    socketio = SocketIO(
        app,
        cors_allowed_origins=origins,
        async_mode="threading",
        logger=False,
        engineio_logger=False,
    )
    logger.info("Socket.IO initialised (async_mode=threading)")

    # ----------------------------------------------------------------------- #
    # Blueprints & WebSocket handlers
    # ----------------------------------------------------------------------- #
    from trip_composer.routes import create_planner_blueprint, register_websocket_handlers

    app.register_blueprint(create_planner_blueprint())
    register_websocket_handlers(socketio)

    @app.route("/debug")
    def debug():
        """Simple JSON health endpoint."""
        from trip_composer.api.services.session_manager import get_session_manager

        return {
            "status": "ok",
            "socketio_initialized": True,
            "sessions": get_session_manager().get_stats(),
            "endpoints": {
                "health": "/planner/health",
                "websocket_namespace": "/planner/ws",
            },
        }

    return app, socketio


# --------------------------------------------------------------------------- #
# Local development runner ( `python -m trip_composer.main` )
# --------------------------------------------------------------------------- #
if __name__ == "__main__":
    app, socketio = create_app()
    port = get_port()
    logger.info("Starting trip composer on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)
