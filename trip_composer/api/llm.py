"""LLM helper functions for the trip composer.

Wraps OpenAI Chat Completions as the text-generation boundary: one prompt
in, one text blob out. Every failure mode (missing key, network error,
timeout, empty reply) is converted to ``GenerationBoundaryError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

from openai import OpenAI, OpenAIError

from trip_composer.api.config import get_generation_config, get_openai_api_key
from trip_composer.api.errors import GenerationBoundaryError

logger = logging.getLogger(__name__)

_client: Optional[OpenAI] = None

# ---------------------------------------------------------------------------
# OpenAI client initialisation
# ---------------------------------------------------------------------------

def _get_client() -> OpenAI:
    """Return a cached OpenAI client, created on first use."""
    global _client
    if _client is None:
        cfg = get_generation_config()
        try:
            _client = OpenAI(api_key=get_openai_api_key(), timeout=cfg["timeout_seconds"])
        except (ValueError, OpenAIError) as exc:
            raise GenerationBoundaryError(f"OpenAI client unavailable: {exc}") from exc
        logger.info("Initialised OpenAI client (model=%s)", cfg["model"])
    return _client

# ---------------------------------------------------------------------------
# Prompt construction helpers
# ---------------------------------------------------------------------------

TRIP_PROMPT_TEMPLATE = """\
Based on the following trip planning Q&A. make sure each day has at least 2-4 activites if relaxed and 4-5 if packed
DO NOT overexplain or add unnecessary info. Only mention destinations which will be available on google Maps and give me their exact location.
Include:

1. A readable version (for user).
2. A JSON version formatted as:
```json
{{
  "days": [
    {{ "day": 1, "stops": ["Place 1", "Place 2"] }},
    {{ "day": 2, "stops": ["Place 3", "Place 4"] }}
  ]
}}
```

Q&A:
{qa}"""

EMISSIONS_PROMPT_TEMPLATE = """\
Estimate the carbon emissions of travelling by car between the stops of this itinerary:
{itinerary}

Break it down by day and route. Use kg CO₂.
Format:
Day 1:
- From A to B: ~X kg CO₂
- From B to C: ~Y kg CO₂
Total for Day 1: ~Z kg CO₂

Overall Total: ~N kg CO₂"""


def format_qa(questions: Sequence[str], answers: Sequence[str]) -> str:
    """Serialise question/answer pairs as ``Q: ...`` / ``A: ...`` lines."""
    return "\n".join(f"Q: {q}\nA: {a}" for q, a in zip(questions, answers))


def build_trip_prompt(questions: Sequence[str], answers: Sequence[str]) -> str:
    return TRIP_PROMPT_TEMPLATE.format(qa=format_qa(questions, answers)).strip()


def build_emissions_prompt(itinerary: Dict[str, Any]) -> str:
    return EMISSIONS_PROMPT_TEMPLATE.format(itinerary=json.dumps(itinerary, indent=2))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_text(prompt: str) -> str:
    """Send one prompt to the chat model and return its text reply."""
    cfg = get_generation_config()
    client = _get_client()

    logger.debug("Calling OpenAI ChatCompletion: model=%s prompt_chars=%d",
                 cfg["model"], len(prompt))

    try:
        response = client.chat.completions.create(
            model=cfg["model"],
            messages=[
                {"role": "system", "content": "You are a helpful travel planner."},
                {"role": "user", "content": prompt},
            ],
            temperature=cfg["temperature"],
            max_tokens=cfg["max_tokens"],
        )
    except OpenAIError as exc:
        logger.error("Text generation failed: %s", exc)
        raise GenerationBoundaryError(str(exc)) from exc

    content = response.choices[0].message.content if response.choices else None
    if not content or not content.strip():
        logger.error("Text generation returned an empty reply")
        raise GenerationBoundaryError("empty reply from text model")

    return content


__all__ = [
    "generate_text",
    "build_trip_prompt",
    "build_emissions_prompt",
    "format_qa",
]
