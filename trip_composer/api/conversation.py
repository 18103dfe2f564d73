# trip_composer/api/conversation.py
"""Fixed-script trip questionnaire that ends in one itinerary generation."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Sequence

from trip_composer.api import llm
from trip_composer.api.errors import (
    ExtractionError,
    GenerationBoundaryError,
    InvalidTransition,
    TripComposerError,
)
from trip_composer.api.extractor import extract_itinerary
from trip_composer.api.models import Message, Role, Stop

logger = logging.getLogger(__name__)

TRIP_QUESTIONS = (
    "What destination are you planning to visit?",
    "When do you want to travel and for how long?",
    "Who are you traveling with (solo, family, friends, etc.)?",
    "What's your total budget for this trip?",
    "What experiences are you hoping for (adventure, relaxation, culture, etc.)?",
    "Do you prefer cities, nature, or a mix of both?",
    "Are there any specific attractions or sites you want to visit?",
    "Do you have any accessibility needs or physical limitations?",
    "Do you prefer a packed schedule or relaxed pace?",
    "What kind of transportation do you prefer during the trip?",
)

APOLOGY_MESSAGE = "Oops! I couldn't generate your itinerary. Try again later."


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_ANSWER = "awaiting_answer"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


class ConversationFlow:
    """Drives the question script and hands the generated days upward.

    States move strictly forward::

        IDLE -> AWAITING_ANSWER(0) -> ... -> AWAITING_ANSWER(N-1)
             -> GENERATING -> COMPLETE | FAILED

    ``restart()`` is the only way back to the beginning.
    """

    def __init__(
        self,
        questions: Sequence[str] = TRIP_QUESTIONS,
        generate: Callable[[str], str] = llm.generate_text,
        on_itinerary: Optional[Callable[[List[List[Stop]]], None]] = None,
    ):
        if not questions:
            raise ValueError("Question script must not be empty")

        self.questions = tuple(questions)
        self._generate = generate
        self._on_itinerary = on_itinerary
        self._lock = threading.RLock()

        self.state = ConversationState.IDLE
        self.question_index = 0
        self.answers: List[str] = []
        self.transcript: List[Message] = []
        self.last_error: Optional[TripComposerError] = None

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        """Ask the first question."""
        with self._lock:
            if self.state is not ConversationState.IDLE:
                raise InvalidTransition(f"cannot start from {self.state.value}")

            self.state = ConversationState.AWAITING_ANSWER
            self.question_index = 0
            self._say(Role.ASKER, self.questions[0])
            logger.info("Conversation started (%d questions)", len(self.questions))

    def restart(self) -> None:
        """Throw the current session away and ask the first question again."""
        with self._lock:
            if self.state is ConversationState.GENERATING:
                raise InvalidTransition("cannot restart while generating")

            self.state = ConversationState.IDLE
            self.question_index = 0
            self.answers = []
            self.transcript = []
            self.last_error = None
            self.start()

    def submit_answer(self, text: Optional[str]) -> bool:
        """Record an answer and advance.

        Returns ``False`` without changing anything for a blank answer.
        The last answer runs the generation without holding the lock, so
        ``snapshot()`` keeps answering while the reply is pending.
        """
        if text is None or not text.strip():
            return False

        with self._lock:
            if self.state is not ConversationState.AWAITING_ANSWER:
                raise InvalidTransition(f"cannot answer while {self.state.value}")

            self.answers.append(text)
            self._say(Role.RESPONDENT, text)

            if self.question_index < len(self.questions) - 1:
                self.question_index += 1
                self._say(Role.ASKER, self.questions[self.question_index])
                return True

            self.state = ConversationState.GENERATING
            prompt = llm.build_trip_prompt(self.questions, self.answers)
            logger.info("All %d answers collected, requesting itinerary", len(self.answers))

        self._run_generation(prompt)
        return True

    # ------------------------------------------------------------------ #
    # Generation
    # ------------------------------------------------------------------ #
    def _run_generation(self, prompt: str) -> None:
        try:
            reply = self._generate(prompt)
        except GenerationBoundaryError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error from text generation")
            self._fail(GenerationBoundaryError(f"generation failed: {exc}"))
            return

        result = extract_itinerary(reply)
        if not result.ok:
            self._fail(result.error or ExtractionError("extraction failed"))
            return

        with self._lock:
            self._say(Role.ASKER, result.human_readable)
            self.state = ConversationState.COMPLETE
        logger.info("Conversation complete with %d day(s)", len(result.days))

        if self._on_itinerary is not None:
            self._on_itinerary(result.days)

    def _fail(self, error: TripComposerError) -> None:
        logger.warning("Itinerary generation failed (%s): %s", error.kind, error)
        with self._lock:
            self.last_error = error
            self._say(Role.ASKER, APOLOGY_MESSAGE)
            self.state = ConversationState.FAILED

    def _say(self, role: Role, text: str) -> None:
        self.transcript.append(Message(role, text))

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #
    @property
    def current_question(self) -> Optional[str]:
        if self.state is ConversationState.AWAITING_ANSWER:
            return self.questions[self.question_index]
        return None

    @property
    def closed(self) -> bool:
        return self.state is ConversationState.COMPLETE

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "state": self.state.value,
                "question_index": self.question_index,
                "total_questions": len(self.questions),
                "current_question": self.current_question,
                "answers": list(self.answers),
                "transcript": [m.to_dict() for m in self.transcript],
                "closed": self.closed,
                "error": self.last_error.kind if self.last_error else None,
            }


__all__ = [
    "ConversationFlow",
    "ConversationState",
    "TRIP_QUESTIONS",
    "APOLOGY_MESSAGE",
]
