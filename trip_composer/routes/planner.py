# trip_composer/routes/planner.py
"""Planner routes and blueprint configuration."""

import logging
from flask import Blueprint, jsonify, request, session

from trip_composer.api.config import get_google_maps_config
from trip_composer.api.errors import InvalidTransition
from trip_composer.api.services.session_manager import get_session_manager

logger = logging.getLogger(__name__)

SESSION_KEY = "planner_session_id"


def current_planning_session():
    """Return the caller's PlanningSession, creating one on first use."""
    manager = get_session_manager()
    planning_session = manager.get_or_create(session.get(SESSION_KEY))
    if planning_session is not None and session.get(SESSION_KEY) != planning_session.session_id:
        session[SESSION_KEY] = planning_session.session_id
        session.modified = True
    return planning_session


def _json_body():
    return request.get_json(silent=True) or {}


def _int_field(data, name):
    value = data.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{name}' must be an integer")
    return value


def create_planner_blueprint():
    """Create and configure the planner blueprint.

    Returns:
        Configured Flask Blueprint
    """
    planner_bp = Blueprint("planner", __name__, url_prefix="/planner")

    @planner_bp.errorhandler(ValueError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @planner_bp.errorhandler(InvalidTransition)
    def conflict(e):
        return jsonify({"error": str(e), "kind": e.kind}), 409

    @planner_bp.before_request
    def require_session():
        if request.endpoint in ("planner.health", "planner.api_config"):
            return None
        if current_planning_session() is None:
            return jsonify({"error": "Server at capacity, try again later"}), 503
        return None

    @planner_bp.route("/api/config")
    def api_config():
        """Return Google Maps configuration for frontend."""
        config = get_google_maps_config()
        if config.get("api_key"):
            return jsonify({
                "auth_type": "api_key",
                "google_maps_api_key": config["api_key"],
                "google_maps_client_id": config.get("client_id", ""),
                "client_secret_configured": bool(config.get("client_secret"))
            })
        return jsonify({"error": "No Google Maps API key configured"}), 500

    @planner_bp.route("/api/itinerary", methods=["GET", "POST"])
    def api_itinerary():
        """Return the current itinerary, or replace it with a posted one."""
        planning_session = current_planning_session()
        if request.method == "POST":
            days = _json_body().get("days")
            if not isinstance(days, list) or not all(
                isinstance(d, dict) and isinstance(d.get("stops"), list) for d in days
            ):
                raise ValueError("Expected {'days': [{'stops': [...]}, ...]}")
            planning_session.import_itinerary([d["stops"] for d in days])
        return jsonify(planning_session.view())

    @planner_bp.route("/api/itinerary/stops", methods=["POST"])
    def api_add_stop():
        planning_session = current_planning_session()
        text = _json_body().get("text")
        if text is not None and not isinstance(text, str):
            raise ValueError("'text' must be a string")
        added = planning_session.add_stop(text)
        return jsonify({"changed": added, **planning_session.view()})

    @planner_bp.route("/api/itinerary/days/<int:day_index>/stops/<int:stop_index>",
                      methods=["DELETE"])
    def api_remove_stop(day_index, stop_index):
        planning_session = current_planning_session()
        removed = planning_session.remove_stop(day_index, stop_index)
        return jsonify({"changed": removed, **planning_session.view()})

    @planner_bp.route("/api/itinerary/days", methods=["POST"])
    def api_add_day():
        planning_session = current_planning_session()
        planning_session.add_day()
        return jsonify({"changed": True, **planning_session.view()})

    @planner_bp.route("/api/itinerary/days/<int:day_index>/reorder", methods=["POST"])
    def api_reorder(day_index):
        planning_session = current_planning_session()
        data = _json_body()
        moved = planning_session.reorder_stops(day_index, data.get("from_id"), data.get("to_id"))
        return jsonify({"changed": moved, **planning_session.view()})

    @planner_bp.route("/api/itinerary/select", methods=["POST"])
    def api_select_day():
        planning_session = current_planning_session()
        planning_session.select_day(_int_field(_json_body(), "day"))
        return jsonify(planning_session.view())

    @planner_bp.route("/api/chat", methods=["GET"])
    def api_chat():
        return jsonify(current_planning_session().conversation_view())

    @planner_bp.route("/api/chat/start", methods=["POST"])
    def api_chat_start():
        planning_session = current_planning_session()
        planning_session.start_conversation()
        return jsonify(planning_session.conversation_view())

    @planner_bp.route("/api/chat/answer", methods=["POST"])
    def api_chat_answer():
        planning_session = current_planning_session()
        answer = _json_body().get("answer")
        if answer is not None and not isinstance(answer, str):
            raise ValueError("'answer' must be a string")
        accepted = planning_session.answer(answer)
        payload = {"accepted": accepted, "conversation": planning_session.conversation_view()}
        if planning_session.conversation_view()["closed"]:
            payload["itinerary"] = planning_session.view()
        return jsonify(payload)

    @planner_bp.route("/api/emissions", methods=["POST"])
    def api_emissions():
        planning_session = current_planning_session()
        return jsonify({"report": planning_session.emissions_report()})

    @planner_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "planner"})

    return planner_bp


__all__ = ['create_planner_blueprint', 'current_planning_session']
