# trip_composer/api/routing.py
"""Per-day driving routes.

Each day with two or more stops becomes one Directions request (first stop
to last stop via the interior stops). Requests for different days run
concurrently and are resolved one by one into a table keyed by day id, so
a slow or failed day never blocks or overwrites its siblings.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Dict, Optional, Sequence, Tuple

import googlemaps
from googlemaps import convert
from googlemaps import exceptions as gmaps_exceptions

from trip_composer.api.config import get_routing_config
from trip_composer.api.errors import RoutingBoundaryError
from trip_composer.api.geocoding import get_maps_client
from trip_composer.api.models import (
    ItinerarySnapshot,
    Route,
    RoutePath,
    RouteRequest,
    Stop,
    route_color,
)

logger = logging.getLogger(__name__)

# (day_id, fingerprint) -> still current?
StalenessCheck = Callable[[str, Tuple[Stop, ...]], bool]


def build_route_request(stops: Sequence[Stop]) -> Optional[RouteRequest]:
    """Directions query for one day, or None when there is nothing to route."""
    if len(stops) < 2:
        return None
    return RouteRequest(
        origin=stops[0],
        destination=stops[-1],
        waypoints=tuple(stops[1:-1]),
        mode="driving",
    )


class DirectionsClient:
    """Routing boundary backed by the Google Maps Directions API."""

    def __init__(self, client: Optional[googlemaps.Client] = None):
        self._client = client

    def _get_client(self) -> googlemaps.Client:
        client = self._client or get_maps_client()
        if client is None:
            raise RoutingBoundaryError("No Google Maps client available")
        return client

    def route(self, request: RouteRequest) -> RoutePath:
        client = self._get_client()
        try:
            # Plain waypoints are stopovers in the Directions API.
            results = client.directions(
                request.origin,
                request.destination,
                mode=request.mode,
                waypoints=list(request.waypoints) or None,
                alternatives=False,
            )
        except (gmaps_exceptions.ApiError,
                gmaps_exceptions.TransportError,
                gmaps_exceptions.Timeout) as exc:
            raise RoutingBoundaryError(str(exc)) from exc

        if not results:
            raise RoutingBoundaryError(
                f"No route from '{request.origin}' to '{request.destination}'"
            )

        best = results[0]
        encoded = best.get("overview_polyline", {}).get("points", "")
        points = tuple(convert.decode_polyline(encoded)) if encoded else ()
        legs = tuple(
            {
                "start": leg.get("start_address"),
                "end": leg.get("end_address"),
                "distance_m": leg.get("distance", {}).get("value"),
                "duration_s": leg.get("duration", {}).get("value"),
            }
            for leg in best.get("legs", [])
        )
        return RoutePath(points=points, legs=legs)


class RouteDeriver:
    """Keeps a day-id keyed route table in step with the itinerary."""

    def __init__(self, client=None, max_workers: Optional[int] = None,
                 timeout: Optional[float] = None):
        cfg = get_routing_config()
        self.client = client or DirectionsClient()
        self.timeout = cfg["timeout_seconds"] if timeout is None else timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or cfg["max_workers"],
            thread_name_prefix="route-deriver",
        )
        self._lock = threading.Lock()
        # day_id -> (fingerprint, path or None)
        self._table: Dict[str, Tuple[Tuple[Stop, ...], Optional[RoutePath]]] = {}

    def _request(self, request: RouteRequest) -> Optional[RoutePath]:
        logger.debug("Directions request: %s", request.to_dict())
        try:
            return self.client.route(request)
        except RoutingBoundaryError as exc:
            logger.warning("Route %s failed: %s", request.to_dict(), exc)
            return None

    def derive(self, snapshot: ItinerarySnapshot,
               is_current: Optional[StalenessCheck] = None) -> Dict[str, Optional[Route]]:
        """Recompute routes for ``snapshot`` and return them keyed by day id.

        Days whose stops are unchanged since the last pass reuse the cached
        result. A result is only stored if ``is_current`` still accepts its
        day and fingerprint when it resolves.
        """
        live_ids = {day.day_id for day in snapshot.days}
        pending = {}

        with self._lock:
            for stale_id in set(self._table) - live_ids:
                del self._table[stale_id]

            for day in snapshot.days:
                cached = self._table.get(day.day_id)
                if cached is not None and cached[0] == day.fingerprint:
                    continue
                self._table.pop(day.day_id, None)

                request = build_route_request(day.stops)
                if request is None:
                    self._table[day.day_id] = (day.fingerprint, None)
                    continue
                pending[day.day_id] = (day.fingerprint,
                                       self._executor.submit(self._request, request))

        if pending:
            logger.info("Requesting routes for %d day(s)", len(pending))

        for day_id, (fingerprint, future) in pending.items():
            try:
                path = future.result(timeout=self.timeout)
            except FutureTimeout:
                logger.warning("Route for %s timed out after %.1fs", day_id, self.timeout)
                path = None
            self._apply(day_id, fingerprint, path, is_current)

        return self.routes_for(snapshot)

    def _apply(self, day_id, fingerprint, path, is_current) -> None:
        if is_current is not None and not is_current(day_id, fingerprint):
            logger.debug("Discarding stale route for %s", day_id)
            return
        if path is None:
            # Failures are not memoized; the next pass asks again.
            return
        with self._lock:
            self._table[day_id] = (fingerprint, path)

    def routes_for(self, snapshot: ItinerarySnapshot) -> Dict[str, Optional[Route]]:
        """Current table entries that match ``snapshot`` exactly."""
        routes: Dict[str, Optional[Route]] = {}
        with self._lock:
            for index, day in enumerate(snapshot.days):
                cached = self._table.get(day.day_id)
                if cached is None or cached[0] != day.fingerprint or cached[1] is None:
                    routes[day.day_id] = None
                    continue
                routes[day.day_id] = Route(
                    day_id=day.day_id,
                    fingerprint=day.fingerprint,
                    path=cached[1],
                    day_index=index,
                    color=route_color(index),
                )
        return routes

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


__all__ = ["build_route_request", "DirectionsClient", "RouteDeriver"]
