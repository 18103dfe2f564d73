# trip_composer/routes/websocket/base.py
"""Base WebSocket handler shared by the planner namespaces."""

import logging
from flask import request
from flask_socketio import emit

from trip_composer.api.errors import TripComposerError

logger = logging.getLogger(__name__)

NAMESPACE = "/planner/ws"


def error_kind(error):
    """Machine-readable tag for an error sent to the browser."""
    if isinstance(error, TripComposerError):
        return error.kind
    if isinstance(error, ValueError):
        return "invalid_request"
    return "internal_error"


class BaseWebSocketHandler:
    """Common plumbing for planner socket handlers."""

    def __init__(self, socketio, namespace=NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def emit_to_client(self, event, data, room=None):
        """Emit event to the calling client, or to ``room`` when given."""
        try:
            if room:
                self.socketio.emit(event, data, to=room, namespace=self.namespace)
            else:
                emit(event, data, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to emit {event}: {e}")

    def emit_view(self, planning_session, changed=None):
        """Push the session's current itinerary view as ``itinerary_updated``."""
        payload = planning_session.view()
        if changed is not None:
            payload = {"changed": bool(changed), **payload}
        self.emit_to_client("itinerary_updated", payload)

    def get_sid(self):
        return request.sid

    def log_event(self, event_name, data=None):
        """Log planner events with the socket id."""
        if data:
            logger.info(f"[WS] {event_name} - Client: {self.get_sid()}, Data: {data}")
        else:
            logger.info(f"[WS] {event_name} - Client: {self.get_sid()}")

    def handle_error(self, error, event_name=""):
        """Log the error and report it to the client with its kind."""
        kind = error_kind(error)
        logger.warning(f"[WS] {kind} in {event_name} - Client: {self.get_sid()}, Error: {error}")
        self.emit_to_client("error", {"message": str(error), "kind": kind, "event": event_name})
