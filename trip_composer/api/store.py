# trip_composer/api/store.py
"""In-memory itinerary store: the single owner of days and stops."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Iterable, List, Optional

from trip_composer.api.models import DaySnapshot, ItinerarySnapshot, Stop

logger = logging.getLogger(__name__)

Listener = Callable[[ItinerarySnapshot], None]


class _Day:
    __slots__ = ("day_id", "stops")

    def __init__(self, day_id: str, stops: Optional[Iterable[Stop]] = None):
        self.day_id = day_id
        self.stops: List[Stop] = list(stops or [])


class ItineraryStore:
    """Ordered days of ordered stops.

    All mutation goes through the methods below; readers get an immutable
    ``ItinerarySnapshot``. The store always holds at least one day.
    """

    def __init__(self, days: Optional[Iterable[Iterable[Stop]]] = None):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._listeners: List[Listener] = []
        self._version = 0
        self._days: List[_Day] = []
        self._replace(days or [])

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _new_day(self, stops: Optional[Iterable[Stop]] = None) -> _Day:
        return _Day(f"day-{next(self._ids)}", stops)

    def _replace(self, days: Iterable[Iterable[Stop]]) -> None:
        new_days = []
        for stops in days:
            cleaned = [s.strip() for s in stops if isinstance(s, str) and s.strip()]
            new_days.append(self._new_day(cleaned))
        if not new_days:
            new_days.append(self._new_day())
        self._days = new_days

    def _snapshot_locked(self) -> ItinerarySnapshot:
        return ItinerarySnapshot(
            version=self._version,
            days=tuple(DaySnapshot(d.day_id, tuple(d.stops)) for d in self._days),
        )

    def _commit(self, action: str) -> ItinerarySnapshot:
        # Must be called with the lock held.
        self._version += 1
        snapshot = self._snapshot_locked()
        logger.debug("Itinerary %s -> v%d %s", action, self._version, snapshot.as_lists())
        return snapshot

    def _notify(self, snapshot: ItinerarySnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Itinerary listener failed")

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def snapshot(self) -> ItinerarySnapshot:
        with self._lock:
            return self._snapshot_locked()

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def day_matches(self, day_id: str, fingerprint) -> bool:
        """True while the day still exists with exactly these stops."""
        with self._lock:
            for day in self._days:
                if day.day_id == day_id:
                    return tuple(day.stops) == tuple(fingerprint)
            return False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(snapshot)`` after every mutation."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    def add_stop(self, text: Optional[str]) -> bool:
        """Append a stop to the last day. Blank input is ignored."""
        if text is None or not text.strip():
            return False

        with self._lock:
            if not self._days:
                self._days.append(self._new_day())
            self._days[-1].stops.append(text.strip())
            snapshot = self._commit("add_stop")

        self._notify(snapshot)
        return True

    def remove_stop(self, day_index: int, stop_index: int) -> bool:
        with self._lock:
            if not 0 <= day_index < len(self._days):
                return False
            stops = self._days[day_index].stops
            if not 0 <= stop_index < len(stops):
                return False
            del stops[stop_index]
            snapshot = self._commit("remove_stop")

        self._notify(snapshot)
        return True

    def add_day(self) -> bool:
        with self._lock:
            self._days.append(self._new_day())
            snapshot = self._commit("add_day")

        self._notify(snapshot)
        return True

    def reorder_stops(self, day_index: int, from_id: Optional[Stop], to_id: Optional[Stop]) -> bool:
        """Move ``from_id`` to the position currently held by ``to_id``.

        Identifiers are stop texts; with duplicates the first match wins.
        """
        if from_id is None or to_id is None or from_id == to_id:
            return False

        with self._lock:
            if not 0 <= day_index < len(self._days):
                return False
            stops = self._days[day_index].stops
            try:
                old_index = stops.index(from_id)
                new_index = stops.index(to_id)
            except ValueError:
                return False

            stops.insert(new_index, stops.pop(old_index))
            snapshot = self._commit("reorder_stops")

        self._notify(snapshot)
        return True

    def import_itinerary(self, days: Iterable[Iterable[Stop]]) -> bool:
        """Replace every day with ``days``; nothing from before survives."""
        with self._lock:
            self._replace(days)
            snapshot = self._commit("import_itinerary")

        logger.info("Imported itinerary with %d day(s)", len(snapshot.days))
        self._notify(snapshot)
        return True


__all__ = ["ItineraryStore"]
