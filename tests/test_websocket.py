import pytest

from trip_composer.api.errors import InvalidTransition, RoutingBoundaryError
from trip_composer.routes.websocket import NAMESPACE
from trip_composer.routes.websocket.base import error_kind


@pytest.fixture
def ws(app_and_socketio, client):
    app, socketio = app_and_socketio
    ws_client = socketio.test_client(app, namespace=NAMESPACE, flask_test_client=client)
    yield ws_client
    if ws_client.is_connected(NAMESPACE):
        ws_client.disconnect(namespace=NAMESPACE)


def events(ws_client, name):
    return [e["args"][0] for e in ws_client.get_received(NAMESPACE) if e["name"] == name]


def stops_of(payload):
    return [[s["text"] for s in day["stops"]] for day in payload["days"]]


def test_connect_sends_current_view(ws):
    assert ws.is_connected(NAMESPACE)
    received = ws.get_received(NAMESPACE)
    names = [e["name"] for e in received]
    assert "connected" in names
    view = [e for e in received if e["name"] == "itinerary_updated"][-1]["args"][0]
    assert stops_of(view) == [[]]


def test_edits_push_updated_view(ws):
    ws.get_received(NAMESPACE)

    ws.emit("add_stop", {"text": "X"}, namespace=NAMESPACE)
    ws.emit("add_stop", {"text": "Y"}, namespace=NAMESPACE)
    ws.emit("add_stop", {"text": "Z"}, namespace=NAMESPACE)
    ws.emit("add_day", namespace=NAMESPACE)

    updates = events(ws, "itinerary_updated")
    assert stops_of(updates[-1]) == [["X", "Y", "Z"], []]


def test_drag_gesture_reorders(ws):
    for text in ("X", "Y", "Z"):
        ws.emit("add_stop", {"text": text}, namespace=NAMESPACE)
    ws.get_received(NAMESPACE)

    ws.emit("drag_start", {"day_index": 0, "active_id": "X"}, namespace=NAMESPACE)
    ws.emit("drag_end", {"over_id": "Z"}, namespace=NAMESPACE)

    update = events(ws, "itinerary_updated")[-1]
    assert update["changed"] is True
    assert stops_of(update) == [["Y", "Z", "X"]]


def test_drop_outside_is_noop(ws):
    ws.emit("add_stop", {"text": "X"}, namespace=NAMESPACE)
    ws.emit("add_stop", {"text": "Y"}, namespace=NAMESPACE)
    ws.get_received(NAMESPACE)

    ws.emit("drag_end", {"day_index": 0, "active_id": "X", "over_id": None}, namespace=NAMESPACE)

    update = events(ws, "itinerary_updated")[-1]
    assert update["changed"] is False
    assert stops_of(update) == [["X", "Y"]]


def test_bad_payload_reports_error(ws):
    ws.get_received(NAMESPACE)
    ws.emit("remove_stop", {"day_index": "first"}, namespace=NAMESPACE)

    errors = events(ws, "error")
    assert errors and errors[0]["event"] == "remove_stop"
    assert errors[0]["kind"] == "invalid_request"


def test_socket_shares_session_with_http(client, app_and_socketio):
    client.post("/planner/api/itinerary/stops", json={"text": "Louvre"})
    app, socketio = app_and_socketio
    ws_client = socketio.test_client(app, namespace=NAMESPACE, flask_test_client=client)

    view = [e for e in ws_client.get_received(NAMESPACE) if e["name"] == "itinerary_updated"][-1]
    assert stops_of(view["args"][0]) == [["Louvre"]]
    ws_client.disconnect(namespace=NAMESPACE)


def test_error_kind_tags():
    assert error_kind(InvalidTransition("busy")) == "invalid_transition"
    assert error_kind(RoutingBoundaryError("down")) == "routing_boundary_error"
    assert error_kind(ValueError("bad")) == "invalid_request"
    assert error_kind(KeyError("x")) == "internal_error"
