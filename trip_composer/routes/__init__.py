# trip_composer/routes/__init__.py
from trip_composer.routes.planner import create_planner_blueprint
from trip_composer.routes.websocket import NAMESPACE, register_websocket_handlers

__all__ = ["create_planner_blueprint", "register_websocket_handlers", "NAMESPACE"]
