# trip_composer/routes/websocket/planner.py
"""WebSocket handlers for itinerary edits and drag gestures."""

import logging

from .base import BaseWebSocketHandler, NAMESPACE
from trip_composer.api.errors import TripComposerError
from trip_composer.routes.planner import current_planning_session

logger = logging.getLogger(__name__)


def _as_int(data, key):
    value = (data or {}).get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer")
    return value


class PlannerHandler(BaseWebSocketHandler):
    """Forwards button presses and drag gestures to the planning session."""

    def __init__(self, socketio, namespace=NAMESPACE):
        super().__init__(socketio, namespace)
        # sid -> (day_index, active_id) of the drag in progress
        self.active_drags = {}

    def _apply(self, event_name, action):
        """Run ``action(planning_session)`` and push the new view."""
        try:
            planning_session = current_planning_session()
            if planning_session is None:
                self.emit_to_client("error", {"message": "No session available", "event": event_name})
                return
            changed = action(planning_session)
            self.emit_view(planning_session, changed)
        except (ValueError, TripComposerError) as exc:
            self.handle_error(exc, event_name)

    def register_handlers(self):
        """Register edit-related event handlers."""

        @self.socketio.on("add_stop", namespace=NAMESPACE)
        def handle_add_stop(data):
            self._apply("add_stop", lambda ps: ps.add_stop((data or {}).get("text")))

        @self.socketio.on("remove_stop", namespace=NAMESPACE)
        def handle_remove_stop(data):
            self._apply("remove_stop", lambda ps: ps.remove_stop(
                _as_int(data, "day_index"), _as_int(data, "stop_index")))

        @self.socketio.on("add_day", namespace=NAMESPACE)
        def handle_add_day(data=None):
            self._apply("add_day", lambda ps: ps.add_day())

        @self.socketio.on("select_day", namespace=NAMESPACE)
        def handle_select_day(data):
            self._apply("select_day", lambda ps: ps.select_day(_as_int(data, "day")) is not None)

        @self.socketio.on("drag_start", namespace=NAMESPACE)
        def handle_drag_start(data):
            try:
                self.active_drags[self.get_sid()] = (
                    _as_int(data, "day_index"), data.get("active_id"))
            except ValueError as exc:
                self.handle_error(exc, "drag_start")

        @self.socketio.on("drag_end", namespace=NAMESPACE)
        def handle_drag_end(data):
            sid = self.get_sid()
            started = self.active_drags.pop(sid, None)
            data = data or {}

            def reorder(ps):
                if "day_index" in data:
                    day_index = _as_int(data, "day_index")
                elif started is not None:
                    day_index = started[0]
                else:
                    raise ValueError("'day_index' must be an integer")
                active_id = data.get("active_id") or (started[1] if started else None)
                return ps.handle_drag_end(day_index, active_id, data.get("over_id"))

            self._apply("drag_end", reorder)
