#!/usr/bin/env python3
"""
State for the lesson journey.
Defines the persisted journey records, the generation request contract,
and the transient values the lesson engine hands back to its caller.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

SCHEMA_VERSION = 1


def utc_now() -> str:
    """Timestamp string used in persisted records"""
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


class Language(Enum):
    """Languages lessons can be generated for"""
    JAVASCRIPT = 'javascript'
    CPP = 'cpp'
    RUST = 'rust'

    @property
    def display_name(self) -> str:
        return _LANGUAGE_NAMES[self]

    @property
    def file_extension(self) -> str:
        return _LANGUAGE_EXTENSIONS[self]

    @property
    def aliases(self) -> Tuple[str, ...]:
        """Lowercase names that count as mentioning this language"""
        return _LANGUAGE_ALIASES[self]

    @classmethod
    def parse(cls, value: str) -> 'Language':
        """Accept enum values, display names or aliases ('js', 'c++', ...)"""
        needle = value.strip().lower()
        for lang in cls:
            if needle == lang.value or needle == lang.display_name.lower() or needle in lang.aliases:
                return lang
        raise ValueError(f"Unsupported language: {value}")

    def __str__(self) -> str:
        return self.display_name


_LANGUAGE_NAMES = {
    Language.JAVASCRIPT: 'JavaScript',
    Language.CPP: 'C++',
    Language.RUST: 'Rust',
}

_LANGUAGE_EXTENSIONS = {
    Language.JAVASCRIPT: 'js',
    Language.CPP: 'cpp',
    Language.RUST: 'rs',
}

_LANGUAGE_ALIASES = {
    Language.JAVASCRIPT: ('javascript', 'js', 'node.js', 'nodejs', 'node'),
    Language.CPP: ('c++', 'cpp', 'cplusplus'),
    Language.RUST: ('rust', 'rustc', 'cargo'),
}


class Difficulty(Enum):
    """Lesson difficulty"""
    BEGINNER = 'beginner'
    INTERMEDIATE = 'intermediate'
    ADVANCED = 'advanced'

    @property
    def display_name(self) -> str:
        return self.value.title()


class LessonType(Enum):
    """Lesson length; drives how much the prompt asks for"""
    SHORT = 'short'
    MEDIUM = 'medium'
    LONG = 'long'

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def concept_count(self) -> int:
        return {'short': 1, 'medium': 2, 'long': 3}[self.value]

    @property
    def exercise_count(self) -> int:
        return {'short': 1, 'medium': 3, 'long': 5}[self.value]


class LessonStatus(Enum):
    """Completion status of one lesson in a journey"""
    PENDING = 'pending'
    ATTEMPTED = 'attempted'
    PASSED = 'passed'
    SKIPPED = 'skipped'


class JourneyStatus(Enum):
    """Overall journey status"""
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class EngineState(Enum):
    """States of the lesson engine"""
    IDLE = 'idle'
    AWAITING_GENERATION = 'awaiting_generation'
    PRESENTING_LESSON = 'presenting_lesson'
    AWAITING_ANSWER = 'awaiting_answer'
    EVALUATING = 'evaluating'
    ADVANCING = 'advancing'
    JOURNEY_COMPLETE = 'journey_complete'


# =============================================================================
# Persisted journey
# =============================================================================

@dataclass
class LessonRecord:
    """One planned lesson and its outcome"""
    index: int
    topic: str
    difficulty: Difficulty = Difficulty.BEGINNER
    lesson_type: LessonType = LessonType.SHORT
    stage: str = ''
    status: LessonStatus = LessonStatus.PENDING
    attempts: int = 0
    content_ref: Optional[str] = None   # title of the lesson the outcome was recorded against
    updated_at: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status in (LessonStatus.PASSED, LessonStatus.SKIPPED)

    def record(self, status: LessonStatus, content_ref: Optional[str] = None, now: Optional[str] = None):
        """Record an outcome for this lesson"""
        self.status = status
        if content_ref:
            self.content_ref = content_ref
        self.updated_at = now or utc_now()

    def to_dict(self) -> Dict:
        return {
            'index': self.index,
            'topic': self.topic,
            'difficulty': self.difficulty.value,
            'lesson_type': self.lesson_type.value,
            'stage': self.stage,
            'status': self.status.value,
            'attempts': self.attempts,
            'content_ref': self.content_ref,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'LessonRecord':
        return cls(
            index=int(data['index']),
            topic=str(data['topic']),
            difficulty=Difficulty(data.get('difficulty', 'beginner')),
            lesson_type=LessonType(data.get('lesson_type', 'short')),
            stage=data.get('stage', ''),
            status=LessonStatus(data.get('status', 'pending')),
            attempts=int(data.get('attempts', 0)),
            content_ref=data.get('content_ref'),
            updated_at=data.get('updated_at'),
        )


@dataclass
class Journey:
    """A learner's full multi-lesson progression"""
    journey_id: str
    language: Language
    lessons: List[LessonRecord] = field(default_factory=list)
    position: int = 0
    status: JourneyStatus = JourneyStatus.IN_PROGRESS
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.position <= len(self.lessons):
            raise ValueError(
                f"position {self.position} outside [0, {len(self.lessons)}]"
            )
        complete = self.position == len(self.lessons)
        if complete != (self.status is JourneyStatus.COMPLETED):
            raise ValueError(
                f"status {self.status.value} inconsistent with position "
                f"{self.position}/{len(self.lessons)}"
            )

    @classmethod
    def create(cls, journey_id: str, language: Language, lessons: List[LessonRecord]) -> 'Journey':
        """Start a new journey over a planned lesson sequence"""
        if not lessons:
            raise ValueError("A journey needs at least one lesson")
        now = utc_now()
        return cls(
            journey_id=journey_id,
            language=language,
            lessons=lessons,
            created_at=now,
            updated_at=now,
        )

    @property
    def total(self) -> int:
        return len(self.lessons)

    @property
    def is_complete(self) -> bool:
        return self.status is JourneyStatus.COMPLETED

    @property
    def current_record(self) -> Optional[LessonRecord]:
        """Lesson at the current position, None once complete"""
        if self.position < len(self.lessons):
            return self.lessons[self.position]
        return None

    def passed_topics(self) -> List[str]:
        return [r.topic for r in self.lessons if r.status is LessonStatus.PASSED]

    def count(self, status: LessonStatus) -> int:
        return sum(1 for r in self.lessons if r.status is status)

    def copy(self) -> 'Journey':
        """Independent copy, so transitions never mutate their input"""
        return copy.deepcopy(self)

    def advance(self, now: Optional[str] = None) -> bool:
        """Move past the current lesson. Returns False once the journey is complete."""
        if self.is_complete:
            return False
        self.position += 1
        self.updated_at = now or utc_now()
        if self.position >= len(self.lessons):
            self.status = JourneyStatus.COMPLETED
            return False
        return True

    def to_dict(self) -> Dict:
        """Serialize journey to dictionary"""
        return {
            'schema_version': SCHEMA_VERSION,
            'journey_id': self.journey_id,
            'language': self.language.value,
            'lessons': [r.to_dict() for r in self.lessons],
            'position': self.position,
            'status': self.status.value,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Journey':
        """Deserialize journey from dictionary; unknown keys are ignored"""
        return cls(
            journey_id=str(data['journey_id']),
            language=Language(data['language']),
            lessons=[LessonRecord.from_dict(r) for r in data.get('lessons', [])],
            position=int(data.get('position', 0)),
            status=JourneyStatus(data.get('status', 'in_progress')),
            created_at=data.get('created_at'),
            updated_at=data.get('updated_at'),
        )


# =============================================================================
# Generation contract
# =============================================================================

@dataclass(frozen=True)
class LessonSpec:
    """What to ask the model backend for"""
    language: Language
    topic: str
    difficulty: Difficulty = Difficulty.BEGINNER
    lesson_type: LessonType = LessonType.SHORT
    covered_topics: Tuple[str, ...] = ()
    strict: bool = False   # append the stricter follow-up instruction


@dataclass(frozen=True)
class CodeExample:
    """Example code with an explanation"""
    code: str
    explanation: str = ''


@dataclass(frozen=True)
class GeneratedLesson:
    """Validated lesson content; never persisted"""
    title: str
    explanation: str
    exercise_prompt: str
    expected_answer: str
    language: Language
    steps: Tuple[str, ...] = ()
    code_examples: Tuple[CodeExample, ...] = ()
    hints: Tuple[str, ...] = ()


# =============================================================================
# Engine results
# =============================================================================

@dataclass
class LessonStep:
    """What the presentation layer should show next"""
    journey: Journey
    lesson: Optional[GeneratedLesson] = None
    record: Optional[LessonRecord] = None

    @property
    def complete(self) -> bool:
        return self.lesson is None

    @property
    def position(self) -> int:
        return self.journey.position

    @property
    def total(self) -> int:
        return self.journey.total


@dataclass
class AnswerResult:
    """Outcome of evaluating a learner answer (or a skip)"""
    journey: Journey
    status: LessonStatus
    attempts: int
    attempts_left: int = 0
    expected_answer: str = ''

    @property
    def passed(self) -> bool:
        return self.status is LessonStatus.PASSED

    @property
    def advanced(self) -> bool:
        return self.status in (LessonStatus.PASSED, LessonStatus.SKIPPED)

    @property
    def journey_complete(self) -> bool:
        return self.journey.is_complete


@dataclass
class ProgressSummary:
    """Read-only summary of a journey"""
    journey_id: str
    language: Language
    position: int
    total: int
    passed: int
    skipped: int
    attempted: int
    status: JourneyStatus
    current_topic: Optional[str] = None
    current_stage: Optional[str] = None
    stages: List[Dict] = field(default_factory=list)
    completed: List[LessonRecord] = field(default_factory=list)

    @property
    def percent_complete(self) -> float:
        return 100.0 * self.position / self.total if self.total else 100.0
