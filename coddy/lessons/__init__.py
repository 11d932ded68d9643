#!/usr/bin/env python3
"""
Lesson generation and progression for learning journeys.

- ContentGenerator: asks the model backend for a lesson and validates it
- LessonEngine: state machine for one lesson at a time within a journey
- curriculum: staged topics per language that a journey walks through
"""

from .state import (
    Language,
    Difficulty,
    LessonType,
    LessonStatus,
    JourneyStatus,
    EngineState,
    LessonRecord,
    Journey,
    LessonSpec,
    CodeExample,
    GeneratedLesson,
    LessonStep,
    AnswerResult,
    ProgressSummary,
)
from .curriculum import plan_lessons
from .generator import ContentGenerator, Attempt, AttemptOutcome
from .grading import answers_match
from .engine import LessonEngine

__all__ = [
    'Language',
    'Difficulty',
    'LessonType',
    'LessonStatus',
    'JourneyStatus',
    'EngineState',
    'LessonRecord',
    'Journey',
    'LessonSpec',
    'CodeExample',
    'GeneratedLesson',
    'LessonStep',
    'AnswerResult',
    'ProgressSummary',
    'plan_lessons',
    'ContentGenerator',
    'Attempt',
    'AttemptOutcome',
    'answers_match',
    'LessonEngine',
]
