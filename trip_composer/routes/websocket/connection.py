# trip_composer/routes/websocket/connection.py
"""WebSocket connection and disconnection handlers."""

import time
import logging
from flask_socketio import disconnect

from .base import BaseWebSocketHandler, NAMESPACE
from trip_composer.routes.planner import current_planning_session

logger = logging.getLogger(__name__)


class ConnectionHandler(BaseWebSocketHandler):
    """Handles WebSocket connection lifecycle events."""

    def register_handlers(self):
        """Register connection-related event handlers."""

        @self.socketio.on('connect', namespace=NAMESPACE)
        def handle_connect(auth=None):
            """Attach the browser to its planning session and send the view."""
            self.log_event('connect')

            planning_session = current_planning_session()
            if planning_session is None:
                logger.error("Failed to create planner session - server at capacity")
                self.emit_to_client('error', {'message': 'Server at capacity'})
                disconnect()
                return

            self.emit_to_client('connected', {
                'session_id': planning_session.session_id,
                'status': 'connected',
            })
            self.emit_view(planning_session)

        @self.socketio.on('disconnect', namespace=NAMESPACE)
        def handle_disconnect(*args):
            # Planning sessions outlive sockets; they expire on idle timeout.
            self.log_event('disconnect')

        @self.socketio.on('ping', namespace=NAMESPACE)
        def handle_ping():
            """Handle ping for connection testing."""
            self.emit_to_client('pong', {'timestamp': time.time()})
