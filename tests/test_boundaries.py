import threading

import pytest
import requests
from googlemaps import exceptions as gmaps_exceptions
from openai import OpenAIError

from trip_composer.api import geocoding, llm
from trip_composer.api.errors import GenerationBoundaryError, GeocodingBoundaryError, ImageLookupError
from trip_composer.api.images import ImageLookup, UnsplashClient, image_query


# --------------------------------------------------------------------------- #
# Text generation
# --------------------------------------------------------------------------- #
class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        message = type("Message", (), {"content": self.content})()
        choice = type("Choice", (), {"message": message})()
        return type("Response", (), {"choices": [choice]})()


class _FakeOpenAI:
    def __init__(self, completions):
        self.chat = type("Chat", (), {"completions": completions})()


def test_generate_text_returns_reply(monkeypatch):
    completions = _Completions(content="Enjoy Paris!")
    monkeypatch.setattr(llm, "_get_client", lambda: _FakeOpenAI(completions))

    assert llm.generate_text("plan me a trip") == "Enjoy Paris!"
    assert completions.kwargs["messages"][-1] == {"role": "user", "content": "plan me a trip"}


@pytest.mark.parametrize("content", [None, "", "   "])
def test_generate_text_empty_reply(monkeypatch, content):
    monkeypatch.setattr(llm, "_get_client", lambda: _FakeOpenAI(_Completions(content=content)))
    with pytest.raises(GenerationBoundaryError):
        llm.generate_text("prompt")


def test_generate_text_api_error(monkeypatch):
    completions = _Completions(error=OpenAIError("connection reset"))
    monkeypatch.setattr(llm, "_get_client", lambda: _FakeOpenAI(completions))
    with pytest.raises(GenerationBoundaryError):
        llm.generate_text("prompt")


def test_missing_api_key_is_a_boundary_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setattr(llm, "_client", None)
    with pytest.raises(GenerationBoundaryError):
        llm.generate_text("prompt")


def test_trip_prompt_embeds_qa_and_format():
    prompt = llm.build_trip_prompt(["Where?", "When?"], ["Paris", "June"])
    assert prompt.endswith("Q: Where?\nA: Paris\nQ: When?\nA: June")
    assert '"days": [' in prompt
    assert "```json" in prompt


# --------------------------------------------------------------------------- #
# Geocoding
# --------------------------------------------------------------------------- #
class _FakeMaps:
    def __init__(self, results=None, error=None):
        self.results = results
        self.error = error

    def geocode(self, place, language=None):
        if self.error:
            raise self.error
        return self.results


@pytest.fixture(autouse=True)
def _clear_geocode_cache():
    geocoding.get_coordinates_for_place.cache_clear()
    yield
    geocoding.get_coordinates_for_place.cache_clear()


def test_geocode_success(monkeypatch):
    fake = _FakeMaps(results=[{"geometry": {"location": {"lat": 48.85, "lng": 2.29}}}])
    monkeypatch.setattr(geocoding, "get_maps_client", lambda: fake)

    assert geocoding.geocode("Eiffel Tower") == (48.85, 2.29)
    assert geocoding.center_for_stop("Eiffel Tower") == {"lat": 48.85, "lng": 2.29}


@pytest.mark.parametrize("fake", [
    _FakeMaps(results=[]),
    _FakeMaps(error=gmaps_exceptions.ApiError("REQUEST_DENIED")),
    _FakeMaps(error=gmaps_exceptions.Timeout()),
    None,
])
def test_geocode_failures_are_silent_for_centering(monkeypatch, fake):
    monkeypatch.setattr(geocoding, "get_maps_client", lambda: fake)

    with pytest.raises(GeocodingBoundaryError):
        geocoding.geocode("Atlantis")
    assert geocoding.center_for_stop("Atlantis") is None


# --------------------------------------------------------------------------- #
# Image lookup
# --------------------------------------------------------------------------- #
class _FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        return self.payload


class _FakeHttp:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.error:
            raise self.error
        return self.response


@pytest.mark.parametrize("stop,query", [
    ("Eiffel Tower, Paris, France", "Eiffel Tower"),
    ("Louvre", "Louvre"),
    ("  Colosseum ,Rome", "Colosseum"),
])
def test_image_query(stop, query):
    assert image_query(stop) == query


def test_unsplash_returns_first_regular_url():
    http = _FakeHttp(_FakeResponse({"results": [{"urls": {"regular": "https://img/1.jpg"}}]}))
    client = UnsplashClient(access_key="key", session=http)

    assert client.search("Louvre") == "https://img/1.jpg"
    url, params = http.calls[0]
    assert url.endswith("/search/photos")
    assert params == {"query": "Louvre", "client_id": "key", "per_page": 1}


def test_unsplash_no_results():
    client = UnsplashClient(access_key="key", session=_FakeHttp(_FakeResponse({"results": []})))
    assert client.search("Nowhere") is None


@pytest.mark.parametrize("http", [
    _FakeHttp(error=requests.ConnectionError("down")),
    _FakeHttp(_FakeResponse({}, status=403)),
])
def test_unsplash_errors(http):
    with pytest.raises(ImageLookupError):
        UnsplashClient(access_key="key", session=http).search("Louvre")


def test_unsplash_without_key():
    with pytest.raises(ImageLookupError):
        UnsplashClient(access_key="", session=_FakeHttp()).search("Louvre")


def test_image_lookup_caches_hits_and_misses_but_not_failures():
    class Client:
        def __init__(self):
            self.queries = []

        def search(self, query):
            self.queries.append(query)
            if query == "Broken":
                raise ImageLookupError("boom")
            return None if query == "Nowhere" else f"https://img/{query}"

    client = Client()
    lookup = ImageLookup(client=client)
    lookup.refresh(["Louvre, Paris", "Nowhere", "Broken", "Louvre, Paris"])
    lookup.refresh(["Louvre, Paris", "Nowhere", "Broken"])

    assert sorted(client.queries) == ["Broken", "Broken", "Louvre", "Nowhere"]
    assert lookup.get("Louvre, Paris") == "https://img/Louvre"
    assert lookup.get("Nowhere") is None


def test_image_lookup_runs_missing_stops_concurrently():
    # Each search waits until all three are in flight at once.
    barrier = threading.Barrier(3, timeout=5)

    class Client:
        def search(self, query):
            barrier.wait()
            return f"https://img/{query}"

    lookup = ImageLookup(client=Client(), max_workers=3)
    urls = lookup.refresh(["Oslo", "Bergen", "Tromso, Norway"])

    assert urls == {
        "Oslo": "https://img/Oslo",
        "Bergen": "https://img/Bergen",
        "Tromso, Norway": "https://img/Tromso",
    }
