#!/usr/bin/env python3
"""
Staged curricula for each language.
A journey walks every topic of every stage in order, so difficulty and
lesson length scale up as the learner progresses.
"""

import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .state import Difficulty, Language, LessonRecord, LessonType


@dataclass(frozen=True)
class Stage:
    """A group of related topics at one difficulty"""
    name: str
    description: str
    difficulty: Difficulty
    lesson_type: LessonType
    topics: tuple


B, I, A = Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED
S, M, L = LessonType.SHORT, LessonType.MEDIUM, LessonType.LONG


CURRICULA: Dict[Language, List[Stage]] = {
    Language.JAVASCRIPT: [
        Stage("Getting Started", "Learn the basics of JavaScript", B, S,
              ("variables", "data types", "operators", "console output")),
        Stage("Control Flow", "Learn conditionals and loops", B, M,
              ("if statements", "for loops", "while loops", "switch statements")),
        Stage("Functions", "Learn to write reusable code", B, M,
              ("function basics", "parameters and arguments", "return values", "arrow functions")),
        Stage("Arrays and Objects", "Work with data structures", I, M,
              ("arrays", "array methods", "objects", "object methods")),
        Stage("Advanced Concepts", "Master advanced JavaScript", I, L,
              ("closures", "promises", "async/await", "classes")),
        Stage("Expert Level", "Become a JavaScript expert", A, L,
              ("design patterns", "algorithm optimization", "advanced data structures",
               "performance optimization")),
    ],
    Language.CPP: [
        Stage("Getting Started", "Learn the basics of C++", B, S,
              ("variables and types", "input and output", "operators", "basic syntax")),
        Stage("Control Structures", "Learn conditionals and loops", B, M,
              ("if-else statements", "for loops", "while loops", "switch statements")),
        Stage("Functions", "Learn to write functions", B, M,
              ("function definition", "parameters", "return types", "function overloading")),
        Stage("Arrays and Pointers", "Work with arrays and memory", I, L,
              ("arrays", "pointers", "references", "dynamic memory")),
        Stage("Object-Oriented Programming", "Learn OOP in C++", I, L,
              ("classes", "inheritance", "polymorphism", "templates")),
        Stage("Advanced C++", "Master advanced C++ features", A, L,
              ("STL containers", "smart pointers", "move semantics", "concurrency")),
    ],
    Language.RUST: [
        Stage("Getting Started", "Learn the basics of Rust", B, S,
              ("variables and mutability", "data types", "ownership basics", "functions")),
        Stage("Control Flow", "Learn conditionals and loops", B, M,
              ("if expressions", "loops", "match expressions", "pattern matching")),
        Stage("Ownership and Borrowing", "Master Rust's unique features", I, L,
              ("ownership", "borrowing", "references", "lifetimes basics")),
        Stage("Structs and Enums", "Work with custom types", I, M,
              ("structs", "enums", "methods", "associated functions")),
        Stage("Collections", "Work with data structures", I, M,
              ("vectors", "strings", "hash maps", "iterators")),
        Stage("Advanced Rust", "Master advanced Rust", A, L,
              ("error handling", "generics", "traits", "concurrency")),
    ],
}


def get_stages(language: Language) -> List[Stage]:
    """Stages for a language, in teaching order"""
    return CURRICULA[language]


def get_stage(language: Language, name: str) -> Optional[Stage]:
    """Look up a stage by name"""
    for stage in CURRICULA[language]:
        if stage.name == name:
            return stage
    return None


def plan_lessons(language: Language, limit: Optional[int] = None) -> List[LessonRecord]:
    """
    Flatten the curriculum into the ordered lesson records of a new journey.

    Args:
        language: Language to plan for.
        limit: Keep only the first N lessons (shorter journeys).
    """
    records: List[LessonRecord] = []
    for stage in get_stages(language):
        for topic in stage.topics:
            records.append(LessonRecord(
                index=len(records),
                topic=topic,
                difficulty=stage.difficulty,
                lesson_type=stage.lesson_type,
                stage=stage.name,
            ))
    if limit is not None:
        records = records[:limit]
    return records


# =============================================================================
# One-off lessons
# =============================================================================

# Picked from when a single lesson is requested without a topic
PRACTICE_TOPICS = (
    "variables", "functions", "loops", "conditionals", "arrays", "strings",
    "data types", "operators", "control flow", "error handling", "recursion",
    "object-oriented programming", "memory management", "pointers",
    "iterators", "closures", "modules", "packages", "testing", "debugging",
)

BUILD_TOPICS = {
    Language.JAVASCRIPT: "JavaScript execution with Node.js and running JavaScript programs",
    Language.CPP: "C++ compilation using g++ compiler and CMake build system",
    Language.RUST: "Rust compilation with rustc compiler and Cargo package manager",
}

PRACTICE_STAGE = "Practice"
BUILD_STAGE = "Build Guide"


def plan_single(
    language: Language,
    topic: Optional[str] = None,
    difficulty: Difficulty = Difficulty.BEGINNER,
    lesson_type: LessonType = LessonType.SHORT,
    stage: str = PRACTICE_STAGE,
    choose: Callable[[Sequence[str]], str] = random.choice,
) -> List[LessonRecord]:
    """
    A one-lesson plan outside the staged curriculum.

    Args:
        topic: Lesson topic; blank picks one of PRACTICE_TOPICS with `choose`.
    """
    topic = (topic or '').strip() or choose(PRACTICE_TOPICS)
    return [LessonRecord(
        index=0,
        topic=topic,
        difficulty=difficulty,
        lesson_type=lesson_type,
        stage=stage,
    )]


def plan_build_guide(language: Language) -> List[LessonRecord]:
    """Beginner lesson on compiling and running programs in a language"""
    return plan_single(language, BUILD_TOPICS[language], stage=BUILD_STAGE)
