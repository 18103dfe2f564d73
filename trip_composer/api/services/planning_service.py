# trip_composer/api/services/planning_service.py
"""Service layer composing the store, conversation, routes and cosmetics."""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from trip_composer.api import llm
from trip_composer.api.conversation import ConversationFlow, ConversationState, TRIP_QUESTIONS
from trip_composer.api.errors import GenerationBoundaryError, InvalidTransition
from trip_composer.api.geocoding import center_for_stop
from trip_composer.api.images import ImageLookup
from trip_composer.api.models import DEFAULT_CENTER, ItinerarySnapshot
from trip_composer.api.routing import RouteDeriver
from trip_composer.api.store import ItineraryStore

logger = logging.getLogger(__name__)

EMISSIONS_FALLBACK = "Failed to fetch carbon report. Please try again."


class PlanningSession:
    """One user's planning surface.

    Owns the itinerary store for the lifetime of the session. Every store
    change triggers ``refresh()``, which re-derives routes, fetches missing
    stop images and re-centers the map on the first stop.
    """

    def __init__(
        self,
        session_id: str,
        store: Optional[ItineraryStore] = None,
        route_deriver: Optional[RouteDeriver] = None,
        images: Optional[ImageLookup] = None,
        geocode: Callable[[str], Optional[Dict[str, float]]] = center_for_stop,
        generate: Callable[[str], str] = llm.generate_text,
        questions=TRIP_QUESTIONS,
    ):
        self.session_id = session_id
        self.store = store or ItineraryStore()
        self.route_deriver = route_deriver or RouteDeriver()
        self.images = images or ImageLookup()
        self._geocode = geocode
        self._generate = generate
        self._questions = questions

        self.created_at = datetime.now()
        self.last_activity = datetime.now()

        self.conversation: Optional[ConversationFlow] = None
        self.selected_day = 0
        self.map_center = dict(DEFAULT_CENTER)
        self._centered_on: Optional[str] = None
        self._lock = threading.Lock()

        self._unsubscribe = self.store.subscribe(self.refresh)

    def touch(self) -> None:
        self.last_activity = datetime.now()

    # ------------------------------------------------------------------ #
    # Derived state
    # ------------------------------------------------------------------ #
    def refresh(self, snapshot: Optional[ItinerarySnapshot] = None) -> None:
        """Bring routes, images and map center in line with the store."""
        snapshot = snapshot or self.store.snapshot()

        self.route_deriver.derive(snapshot, is_current=self.store.day_matches)
        self.images.refresh(snapshot.all_stops())
        self._recenter(snapshot)

    def _recenter(self, snapshot: ItinerarySnapshot) -> None:
        stops = snapshot.all_stops()
        if not stops:
            return
        first = stops[0]
        with self._lock:
            if first == self._centered_on:
                return

        center = self._geocode(first)
        if center is None:
            logger.debug("Keeping map center, could not geocode %r", first)
            return

        current = self.store.snapshot().all_stops()
        if not current or current[0] != first:
            logger.debug("Discarding stale map center for %r", first)
            return

        with self._lock:
            self.map_center = center
            self._centered_on = first

    # ------------------------------------------------------------------ #
    # Edits
    # ------------------------------------------------------------------ #
    def add_stop(self, text: Optional[str]) -> bool:
        self.touch()
        return self.store.add_stop(text)

    def remove_stop(self, day_index: int, stop_index: int) -> bool:
        self.touch()
        return self.store.remove_stop(day_index, stop_index)

    def add_day(self) -> bool:
        self.touch()
        return self.store.add_day()

    def reorder_stops(self, day_index: int, from_id: str, to_id: str) -> bool:
        self.touch()
        return self.store.reorder_stops(day_index, from_id, to_id)

    def handle_drag_end(self, day_index: int, active_id: Optional[str],
                        over_id: Optional[str]) -> bool:
        """Apply a drag gesture; dropping outside any stop does nothing."""
        if over_id is None:
            return False
        return self.reorder_stops(day_index, active_id, over_id)

    def import_itinerary(self, days) -> bool:
        self.touch()
        return self.store.import_itinerary(days)

    def select_day(self, day_index: int) -> int:
        day_count = len(self.store.snapshot().days)
        self.selected_day = max(0, min(day_index, day_count - 1))
        return self.selected_day

    # ------------------------------------------------------------------ #
    # Conversation
    # ------------------------------------------------------------------ #
    def start_conversation(self) -> ConversationFlow:
        """Open the questionnaire, restarting any earlier run."""
        self.touch()
        if self.conversation is None:
            self.conversation = ConversationFlow(
                questions=self._questions,
                generate=self._generate,
                on_itinerary=self.store.import_itinerary,
            )
            self.conversation.start()
        else:
            self.conversation.restart()
        return self.conversation

    def answer(self, text: Optional[str]) -> bool:
        self.touch()
        if self.conversation is None:
            raise InvalidTransition("no conversation in progress")
        accepted = self.conversation.submit_answer(text)
        if self.conversation.state is ConversationState.COMPLETE:
            self.selected_day = 0
        return accepted

    def conversation_view(self) -> Dict[str, Any]:
        if self.conversation is None:
            return {"state": ConversationState.IDLE.value, "transcript": [], "closed": False}
        return self.conversation.snapshot()

    # ------------------------------------------------------------------ #
    # Narrative summaries
    # ------------------------------------------------------------------ #
    def emissions_report(self) -> str:
        """Carbon-estimate text for the current itinerary."""
        prompt = llm.build_emissions_prompt(self.store.snapshot().to_dict())
        try:
            return self._generate(prompt)
        except GenerationBoundaryError as e:
            logger.error(f"Error fetching carbon report: {e}")
            return EMISSIONS_FALLBACK

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #
    def view(self) -> Dict[str, Any]:
        """JSON-ready state for the presentation layer."""
        snapshot = self.store.snapshot()
        routes = self.route_deriver.routes_for(snapshot)
        selected = max(0, min(self.selected_day, len(snapshot.days) - 1))

        days = []
        for index, day in enumerate(snapshot.days):
            route = routes.get(day.day_id)
            days.append({
                "index": index,
                "id": day.day_id,
                "label": f"Day {index + 1}",
                "stops": [
                    {"id": stop, "index": j, "text": stop, "image_url": self.images.get(stop)}
                    for j, stop in enumerate(day.stops)
                ],
                "route": route.to_dict() if route else None,
            })

        with self._lock:
            center = dict(self.map_center)

        return {
            "session_id": self.session_id,
            "version": snapshot.version,
            "days": days,
            "selected_day": selected,
            "map_center": center,
            "markers": snapshot.all_stops(),
        }

    def close(self) -> None:
        self._unsubscribe()
        self.route_deriver.shutdown()


__all__ = ["PlanningSession", "EMISSIONS_FALLBACK"]
