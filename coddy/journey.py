#!/usr/bin/env python3
"""
JourneyController - the operations behind the CLI.

Loads a journey, drives the lesson engine, and persists the journey after
every state-changing transition. The journey is an explicit value threaded
through each call; nothing here keeps a process-wide "current journey".

PracticeController runs the same lesson flow over a throwaway one-lesson
journey (the `lesson` and `compile` commands) and never touches the store.
"""

import logging
from typing import Dict, List, Optional

from .db import ProgressStore
from .errors import AlreadyStarted, NoJourney, NotFound
from .lessons.curriculum import get_stage, plan_build_guide, plan_lessons, plan_single
from .lessons.engine import LessonEngine
from .lessons.state import (
    AnswerResult,
    Difficulty,
    Journey,
    Language,
    LessonStatus,
    LessonStep,
    LessonType,
    ProgressSummary,
)

logger = logging.getLogger(__name__)

PRACTICE_ID = 'practice'


class LessonFlow:
    """next_step / answer / skip over an explicit journey value"""

    def __init__(self, engine: LessonEngine):
        self.engine = engine

    def next_step(self, journey: Journey) -> LessonStep:
        """
        What to show next: the current lesson, or completion.

        Generation errors propagate; the journey is not changed or saved.
        """
        lesson = self.engine.request_lesson(journey)
        if lesson is None:
            return LessonStep(journey=journey)
        self.engine.mark_presented()
        return LessonStep(journey=journey, lesson=lesson, record=journey.current_record)

    def answer(self, journey: Journey, text: str) -> AnswerResult:
        """Evaluate an answer and commit the outcome"""
        result = self.engine.submit_answer(journey, text)
        self.commit(result.journey)
        return result

    def skip(self, journey: Journey) -> AnswerResult:
        """Skip the current lesson and commit"""
        result = self.engine.skip(journey)
        self.commit(result.journey)
        return result

    def commit(self, journey: Journey) -> None:
        """Called once after every answer or skip; nothing is kept by default"""


class PracticeController(LessonFlow):
    """Single lessons outside any journey"""

    def lesson(
        self,
        language: Language,
        topic: Optional[str] = None,
        difficulty: Difficulty = Difficulty.BEGINNER,
        lesson_type: LessonType = LessonType.SHORT,
    ) -> Journey:
        """One lesson on a chosen (or random) topic"""
        records = plan_single(language, topic, difficulty, lesson_type)
        logger.info("Practice lesson on %r (%s, %s)", records[0].topic,
                    difficulty.value, lesson_type.value)
        return Journey.create(PRACTICE_ID, language, records)

    def build_guide(self, language: Language) -> Journey:
        """How to compile and run programs in a language"""
        return Journey.create(PRACTICE_ID, language, plan_build_guide(language))


class JourneyController(LessonFlow):
    """start / continue / journey / progress over one profile's journey"""

    def __init__(
        self,
        store: ProgressStore,
        engine: LessonEngine,
        journey_id: str = 'default',
        lesson_limit: Optional[int] = None,
    ):
        super().__init__(engine)
        self.store = store
        self.journey_id = journey_id
        self.lesson_limit = lesson_limit

    # =========================================================================
    # Entry points
    # =========================================================================

    def start(self, language: Language, reset: bool = False) -> Journey:
        """
        Create a new journey.

        Raises:
            AlreadyStarted: a journey exists and reset was not requested.
        """
        if self.store.exists(self.journey_id) and not reset:
            raise AlreadyStarted(self.journey_id)

        lessons = plan_lessons(language, limit=self.lesson_limit)
        journey = Journey.create(self.journey_id, language, lessons)
        self.store.save(journey)
        logger.info("Started %s journey '%s' with %d lessons",
                    language.display_name, self.journey_id, journey.total)
        return journey

    def resume(self) -> Journey:
        """
        Load the existing journey (the 'continue' command).

        Raises:
            NoJourney: nothing saved for this profile.
            CorruptState / IoFailure: from the store, unchanged.
        """
        try:
            journey = self.store.load(self.journey_id)
        except NotFound:
            raise NoJourney(self.journey_id) from None
        logger.info("Resuming journey '%s' at lesson %d/%d",
                    self.journey_id, journey.position + 1, journey.total)
        return journey

    def journey(self, language: Optional[Language] = None) -> Journey:
        """Resume if a journey exists, otherwise start one"""
        if self.store.exists(self.journey_id):
            journey = self.resume()
            if language is not None and language is not journey.language:
                logger.warning(
                    "Profile '%s' already has a %s journey; continuing it. "
                    "Use 'start --reset' to switch languages.",
                    self.journey_id, journey.language.display_name,
                )
            return journey

        if language is None:
            raise NoJourney(
                self.journey_id,
                f"No journey for profile '{self.journey_id}' yet; choose a language to start one.",
            )
        return self.start(language)

    def progress(self) -> ProgressSummary:
        """Read-only summary of the saved journey"""
        journey = self.resume()
        return summarize(journey)

    def commit(self, journey: Journey) -> None:
        self.store.save(journey)


def summarize(journey: Journey) -> ProgressSummary:
    """Counts and per-stage breakdown for a journey"""
    stages: List[Dict] = []
    by_name: Dict[str, Dict] = {}
    for record in journey.lessons:
        entry = by_name.get(record.stage)
        if entry is None:
            stage = get_stage(journey.language, record.stage)
            entry = {
                'name': record.stage,
                'description': stage.description if stage else '',
                'difficulty': record.difficulty.value,
                'total': 0,
                'passed': 0,
                'skipped': 0,
            }
            by_name[record.stage] = entry
            stages.append(entry)
        entry['total'] += 1
        if record.status is LessonStatus.PASSED:
            entry['passed'] += 1
        elif record.status is LessonStatus.SKIPPED:
            entry['skipped'] += 1

    current = journey.current_record
    return ProgressSummary(
        journey_id=journey.journey_id,
        language=journey.language,
        position=journey.position,
        total=journey.total,
        passed=journey.count(LessonStatus.PASSED),
        skipped=journey.count(LessonStatus.SKIPPED),
        attempted=journey.count(LessonStatus.ATTEMPTED),
        status=journey.status,
        current_topic=current.topic if current else None,
        current_stage=current.stage if current else None,
        stages=stages,
        completed=[r for r in journey.lessons if r.is_finished],
    )
