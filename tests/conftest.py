import threading

import pytest

from trip_composer.api.errors import ImageLookupError, RoutingBoundaryError
from trip_composer.api.images import ImageLookup
from trip_composer.api.models import RoutePath
from trip_composer.api.routing import RouteDeriver
from trip_composer.api.services import session_manager as session_manager_module
from trip_composer.api.services.planning_service import PlanningSession
from trip_composer.api.services.session_manager import PlanningSessionManager


class FakeDirections:
    """Routing boundary that records requests and fails for chosen origins."""

    def __init__(self, failing_origins=()):
        self.requests = []
        self.failing_origins = set(failing_origins)
        self._lock = threading.Lock()

    def route(self, request):
        with self._lock:
            self.requests.append(request)
        if request.origin in self.failing_origins:
            raise RoutingBoundaryError(f"no route from {request.origin}")
        stops = [request.origin, *request.waypoints, request.destination]
        points = tuple({"lat": float(i), "lng": float(i)} for i in range(len(stops)))
        legs = tuple({"start": a, "end": b, "distance_m": 1000, "duration_s": 60}
                     for a, b in zip(stops, stops[1:]))
        return RoutePath(points=points, legs=legs)


class FakeUnsplash:
    def __init__(self, failing=()):
        self.queries = []
        self.failing = set(failing)

    def search(self, query):
        self.queries.append(query)
        if query in self.failing:
            raise ImageLookupError(f"lookup failed for {query}")
        return f"https://images.example/{query.replace(' ', '-')}.jpg"


class FakeGeocoder:
    def __init__(self, unknown=()):
        self.calls = []
        self.unknown = set(unknown)

    def __call__(self, place):
        self.calls.append(place)
        if place in self.unknown:
            return None
        return {"lat": 48.86, "lng": 2.34}


PARIS_REPLY = (
    "Enjoy Paris!\n```json\n"
    '{"days":[{"day":1,"stops":["Louvre","Eiffel Tower"]}]}\n```'
)


class FakeGenerator:
    def __init__(self, replies=(PARIS_REPLY,), error=None):
        self.replies = list(replies)
        self.error = error
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.replies[min(len(self.prompts), len(self.replies)) - 1]


@pytest.fixture
def directions():
    return FakeDirections()


@pytest.fixture
def unsplash():
    return FakeUnsplash()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def route_deriver(directions):
    deriver = RouteDeriver(client=directions, max_workers=4, timeout=5)
    yield deriver
    deriver.shutdown()


@pytest.fixture
def make_session(directions, unsplash, geocoder, generator):
    created = []

    def factory(session_id="plan_test", questions=("Where?", "How long?")):
        ps = PlanningSession(
            session_id,
            route_deriver=RouteDeriver(client=directions, max_workers=4, timeout=5),
            images=ImageLookup(client=unsplash),
            geocode=geocoder,
            generate=generator,
            questions=questions,
        )
        created.append(ps)
        return ps

    yield factory
    for ps in created:
        ps.close()


@pytest.fixture
def planning_session(make_session):
    return make_session()


@pytest.fixture
def session_manager(make_session):
    manager = PlanningSessionManager(session_factory=make_session, start_cleanup=False)
    session_manager_module.set_session_manager(manager)
    yield manager
    session_manager_module.set_session_manager(None)


@pytest.fixture
def app_and_socketio(session_manager):
    from trip_composer.main import create_app

    return create_app({"TESTING": True, "SECRET_KEY": "test-secret"})


@pytest.fixture
def app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture
def client(app):
    return app.test_client()
