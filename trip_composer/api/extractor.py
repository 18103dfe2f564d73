# trip_composer/api/extractor.py
"""Split a model reply into prose for the user and a day/stop payload.

The reply is expected to look like::

    Some friendly prose...
    ```json
    {"days": [{"day": 1, "stops": ["Louvre", "Eiffel Tower"]}]}
    ```

Parsing is a two-stage pipeline (delimiter split, then shape validation)
and always returns an ``ExtractionResult``; it never raises.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from numbers import Number
from typing import Any, List, Optional, Tuple

from trip_composer.api.errors import (
    ExtractionError,
    MalformedStructuredBlock,
    MissingStructuredBlock,
)
from trip_composer.api.models import Stop

logger = logging.getLogger(__name__)

OPENING_DELIMITER = "```json"
CLOSING_DELIMITER = "```"


@dataclass(frozen=True)
class ExtractionResult:
    human_readable: str
    days: Optional[List[List[Stop]]] = None
    error: Optional[ExtractionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.days is not None


def split_response(text: str) -> Tuple[str, Optional[str]]:
    """Return ``(human_readable, candidate_payload)``.

    ``candidate_payload`` is ``None`` when the opening delimiter is absent.
    """
    head, found, tail = text.partition(OPENING_DELIMITER)
    if not found:
        return text.strip(), None

    payload, _, _ = tail.partition(CLOSING_DELIMITER)
    return head.strip(), payload.strip()


def _validate_days(payload: Any) -> List[List[Stop]]:
    if not isinstance(payload, dict):
        raise MalformedStructuredBlock("structured block is not an object")

    days = payload.get("days")
    if not isinstance(days, list):
        raise MalformedStructuredBlock("'days' is missing or not a list")

    result: List[List[Stop]] = []
    for position, day in enumerate(days):
        if not isinstance(day, dict):
            raise MalformedStructuredBlock(f"day #{position} is not an object")

        label = day.get("day")
        # Labels are informational only but must still be numeric when given.
        if label is not None and (isinstance(label, bool) or not isinstance(label, Number)):
            raise MalformedStructuredBlock(f"day #{position} has a non-numeric label")

        stops = day.get("stops")
        if not isinstance(stops, list):
            raise MalformedStructuredBlock(f"day #{position} has no 'stops' list")

        cleaned = []
        for stop in stops:
            if not isinstance(stop, str) or not stop.strip():
                raise MalformedStructuredBlock(
                    f"day #{position} contains an invalid stop: {stop!r}"
                )
            cleaned.append(stop.strip())
        result.append(cleaned)

    return result


def extract_itinerary(text: Optional[str]) -> ExtractionResult:
    """Parse a generation reply into prose plus an ordered list of days."""
    human_readable, payload = split_response(text or "")

    if payload is None:
        logger.warning("Model reply has no %s block", OPENING_DELIMITER)
        return ExtractionResult(
            human_readable=human_readable,
            error=MissingStructuredBlock("no structured block in reply"),
        )

    try:
        decoded = json.loads(payload)
        days = _validate_days(decoded)
    except json.JSONDecodeError as exc:
        logger.error("Failed to decode structured block: %s", exc)
        return ExtractionResult(
            human_readable=human_readable,
            error=MalformedStructuredBlock(f"invalid JSON: {exc}"),
        )
    except MalformedStructuredBlock as exc:
        logger.error("Structured block has the wrong shape: %s", exc)
        return ExtractionResult(human_readable=human_readable, error=exc)

    logger.debug("Extracted %d day(s) from model reply", len(days))
    return ExtractionResult(human_readable=human_readable, days=days)


__all__ = ["ExtractionResult", "extract_itinerary", "split_response"]
