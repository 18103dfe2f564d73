"""Shared data structures for itinerary composition.

Everything handed out of the store, the conversation flow or the route
deriver is immutable, so readers never observe a half-applied edit.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

# A stop is a free-text place descriptor, e.g. "Eiffel Tower, Paris".
Stop = str

ROUTE_COLORS = ("#FF0000", "#0000FF", "#00AA00", "#FF00FF", "#00FFFF")

DEFAULT_CENTER = {"lat": 20.5937, "lng": 78.9629}


def route_color(day_index: int) -> str:
    """Palette colour for a day, cycling by position."""
    return ROUTE_COLORS[day_index % len(ROUTE_COLORS)]


@dataclass(frozen=True)
class DaySnapshot:
    """One travel day as seen by readers of the store."""

    day_id: str
    stops: Tuple[Stop, ...] = ()

    @property
    def fingerprint(self) -> Tuple[Stop, ...]:
        return self.stops

    def to_dict(self) -> dict:
        return {"id": self.day_id, "stops": list(self.stops)}


@dataclass(frozen=True)
class ItinerarySnapshot:
    """Point-in-time copy of the whole itinerary."""

    version: int
    days: Tuple[DaySnapshot, ...]

    def as_lists(self) -> List[List[Stop]]:
        return [list(day.stops) for day in self.days]

    def all_stops(self) -> List[Stop]:
        return [stop for day in self.days for stop in day.stops]

    def to_dict(self) -> dict:
        return {
            "days": [
                {"day": i + 1, "stops": list(day.stops)}
                for i, day in enumerate(self.days)
            ]
        }


class Role(str, Enum):
    ASKER = "asker"
    RESPONDENT = "respondent"


@dataclass(frozen=True)
class Message:
    role: Role
    text: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "text": self.text}


@dataclass(frozen=True)
class RouteRequest:
    """Directions query for one day."""

    origin: Stop
    destination: Stop
    waypoints: Tuple[Stop, ...] = ()
    mode: str = "driving"

    def to_dict(self) -> dict:
        return {
            "origin": self.origin,
            "destination": self.destination,
            "waypoints": list(self.waypoints),
            "mode": self.mode,
        }


@dataclass(frozen=True)
class RoutePath:
    """Renderable path returned by the routing boundary."""

    points: Tuple[Dict[str, float], ...]
    legs: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class Route:
    """Derived route for one day; never edited by the user."""

    day_id: str
    fingerprint: Tuple[Stop, ...]
    path: RoutePath
    day_index: int = 0
    color: str = ROUTE_COLORS[0]

    def to_dict(self) -> dict:
        return {
            "day_id": self.day_id,
            "day_index": self.day_index,
            "color": self.color,
            "path": [dict(p) for p in self.path.points],
            "legs": [dict(leg) for leg in self.path.legs],
        }
