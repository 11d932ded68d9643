#!/usr/bin/env python3
"""
LessonEngine - the lesson state machine.

The engine holds only transient state (where it is in the lesson flow, the
generated lesson being shown). The Journey is passed into every transition
and a new Journey is returned; the engine never mutates the one it was given.
"""

import logging
from typing import Callable, Optional

from ..errors import EngineStateError, GenerationError
from .generator import ContentGenerator
from .grading import answers_match
from .state import (
    AnswerResult,
    EngineState,
    GeneratedLesson,
    Journey,
    LessonSpec,
    LessonStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
HISTORY_TOPICS = 3


class LessonEngine:
    """Drives one lesson at a time through generate → present → answer → advance"""

    def __init__(
        self,
        generator: ContentGenerator,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        matcher: Callable[[str, str], bool] = answers_match,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.generator = generator
        self.max_attempts = max_attempts
        self.matcher = matcher
        self.state = EngineState.IDLE
        self.lesson: Optional[GeneratedLesson] = None
        self._lesson_position: Optional[int] = None

    def build_spec(self, journey: Journey) -> LessonSpec:
        """Generation request for the journey's current lesson"""
        record = journey.current_record
        if record is None:
            raise EngineStateError("Journey is complete; there is no lesson to generate")
        covered = tuple(journey.passed_topics()[-HISTORY_TOPICS:])
        return LessonSpec(
            language=journey.language,
            topic=record.topic,
            difficulty=record.difficulty,
            lesson_type=record.lesson_type,
            covered_topics=covered,
        )

    def has_content_for(self, journey: Journey) -> bool:
        """Check if validated content for the current position is already held"""
        return (
            self.lesson is not None
            and self._lesson_position == journey.position
            and self.state in (EngineState.PRESENTING_LESSON, EngineState.AWAITING_ANSWER)
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def request_lesson(self, journey: Journey) -> Optional[GeneratedLesson]:
        """
        Materialize the current lesson.

        Returns None (and moves to JOURNEY_COMPLETE) when the journey is done.
        On GenerationError the engine returns to IDLE and re-raises; the
        journey is untouched, so calling again is safe.
        """
        if journey.is_complete:
            self.state = EngineState.JOURNEY_COMPLETE
            self.lesson = None
            return None

        if self.has_content_for(journey):
            return self.lesson

        if self.state not in (EngineState.IDLE, EngineState.PRESENTING_LESSON,
                              EngineState.AWAITING_ANSWER):
            raise EngineStateError(f"Cannot request a lesson while {self.state.value}")

        self.state = EngineState.AWAITING_GENERATION
        self.lesson = None
        spec = self.build_spec(journey)
        try:
            lesson = self.generator.generate(spec)
        except GenerationError as e:
            logger.warning("Generation failed for %r: %s", spec.topic, e)
            self.state = EngineState.IDLE
            raise
        except BaseException:
            # Interrupted mid-request: nothing was committed
            self.state = EngineState.IDLE
            raise

        self.lesson = lesson
        self._lesson_position = journey.position
        self.state = EngineState.PRESENTING_LESSON
        return lesson

    def mark_presented(self):
        """The presentation layer has shown the lesson; wait for an answer"""
        if self.state is EngineState.AWAITING_ANSWER:
            return
        self._require(EngineState.PRESENTING_LESSON)
        self.state = EngineState.AWAITING_ANSWER

    def submit_answer(self, journey: Journey, answer: str) -> AnswerResult:
        """
        Evaluate a learner answer against the current lesson.

        A match passes and advances. A mismatch records an attempt and stays
        on the lesson until max_attempts is reached, then skips and advances.
        """
        self._require(EngineState.AWAITING_ANSWER)
        self._check_position(journey)
        self.state = EngineState.EVALUATING

        journey = journey.copy()
        record = journey.current_record
        record.attempts += 1
        expected = self.lesson.expected_answer

        if self.matcher(answer, expected):
            return self._advance(journey, LessonStatus.PASSED)

        if record.attempts >= self.max_attempts:
            logger.info("Lesson %d skipped after %d attempts", record.index, record.attempts)
            return self._advance(journey, LessonStatus.SKIPPED)

        now = utc_now()
        record.record(LessonStatus.ATTEMPTED, self.lesson.title, now)
        journey.updated_at = now
        self.state = EngineState.AWAITING_ANSWER
        return AnswerResult(
            journey=journey,
            status=LessonStatus.ATTEMPTED,
            attempts=record.attempts,
            attempts_left=self.max_attempts - record.attempts,
        )

    def skip(self, journey: Journey) -> AnswerResult:
        """Learner gives up on the current lesson"""
        if self.state is EngineState.PRESENTING_LESSON:
            self.state = EngineState.AWAITING_ANSWER
        self._require(EngineState.AWAITING_ANSWER)
        self._check_position(journey)
        self.state = EngineState.EVALUATING
        return self._advance(journey.copy(), LessonStatus.SKIPPED)

    def _advance(self, journey: Journey, status: LessonStatus) -> AnswerResult:
        """Record the final outcome and move to the next lesson"""
        self.state = EngineState.ADVANCING
        now = utc_now()
        record = journey.current_record
        record.record(status, self.lesson.title, now)
        expected = self.lesson.expected_answer

        more = journey.advance(now)
        self.lesson = None
        self._lesson_position = None
        self.state = EngineState.IDLE if more else EngineState.JOURNEY_COMPLETE

        return AnswerResult(
            journey=journey,
            status=status,
            attempts=record.attempts,
            expected_answer=expected,
        )

    def _require(self, expected: EngineState):
        if self.state is not expected:
            raise EngineStateError(
                f"Expected engine state {expected.value}, currently {self.state.value}"
            )

    def _check_position(self, journey: Journey):
        if self._lesson_position != journey.position:
            raise EngineStateError(
                f"Held lesson is for position {self._lesson_position}, "
                f"journey is at {journey.position}"
            )
