#!/usr/bin/env python3
"""
Tests for lesson generation and its retry policy.
"""

from unittest.mock import Mock

import pytest

from coddy.errors import BackendUnavailable, GenerationError, GenerationErrorKind
from coddy.lessons.generator import (
    AttemptOutcome,
    ContentGenerator,
    MAX_TRANSPORT_ATTEMPTS,
)
from coddy.lessons.prompts import STRICT_FOLLOWUP, build_prompt
from coddy.lessons.state import (
    Difficulty,
    GeneratedLesson,
    Language,
    LessonSpec,
    LessonType,
)

from conftest import FakeClient, lesson_json

SPEC = LessonSpec(
    language=Language.JAVASCRIPT,
    topic="operators",
    difficulty=Difficulty.BEGINNER,
    lesson_type=LessonType.SHORT,
    covered_topics=("variables", "data types"),
)


def make_generator(client):
    sleep = Mock()
    return ContentGenerator(client, timeout=5.0, retry_delay=0.25, sleep=sleep), sleep


class TestPrompt:
    """Prompt construction"""

    def test_deterministic(self):
        """The same spec always yields the same prompt"""
        assert build_prompt(SPEC) == build_prompt(LessonSpec(**SPEC.__dict__))

    def test_contains_spec_fields(self):
        prompt = build_prompt(SPEC)
        assert "LANGUAGE: JavaScript" in prompt
        assert "TOPIC: operators" in prompt
        assert "DIFFICULTY: Beginner" in prompt
        assert "variables, data types" in prompt
        assert '"expected_answer"' in prompt

    def test_lesson_length_and_file_name(self):
        long_rust = LessonSpec(language=Language.RUST, topic="traits", lesson_type=LessonType.LONG)
        prompt = build_prompt(long_rust)
        assert "(3 core concept(s))" in prompt
        assert "Give 5 worked code example(s)" in prompt
        assert "main.rs" in prompt

    def test_no_history_line_for_first_lesson(self):
        prompt = build_prompt(LessonSpec(language=Language.RUST, topic="loops"))
        assert "ALREADY COVERED" not in prompt

    def test_strict_appends_followup(self):
        strict = LessonSpec(language=Language.CPP, topic="loops", strict=True)
        prompt = build_prompt(strict)
        assert prompt.endswith(STRICT_FOLLOWUP.format(language="C++"))
        assert not build_prompt(LessonSpec(language=Language.CPP, topic="loops")).endswith(
            STRICT_FOLLOWUP.format(language="C++")
        )


class TestGenerate:
    """Successful generation"""

    def test_first_attempt_success(self):
        client = FakeClient([lesson_json()])
        generator, sleep = make_generator(client)

        lesson = generator.generate(SPEC)

        assert isinstance(lesson, GeneratedLesson)
        assert len(client.prompts) == 1
        assert client.prompts[0] == build_prompt(SPEC)
        sleep.assert_not_called()
        assert [a.outcome for a in generator.last_attempts] == [AttemptOutcome.OK]

    def test_two_calls_both_valid(self):
        """Different content from the same spec still validates each time"""
        client = FakeClient([
            lesson_json(title="Adding"),
            lesson_json(title="Plus operator", expected_answer="7",
                        exercise_prompt="Using JavaScript, print 3 + 4."),
        ])
        generator, _ = make_generator(client)

        first = generator.generate(SPEC)
        second = generator.generate(SPEC)

        for lesson in (first, second):
            assert lesson.title and lesson.explanation and lesson.exercise_prompt and lesson.expected_answer
            assert lesson.language is Language.JAVASCRIPT
        assert first != second
        assert client.prompts[0] == client.prompts[1]


class TestTransportRetries:
    """Backend unavailable"""

    def test_recovers_after_transport_failure(self):
        client = FakeClient([BackendUnavailable("down"), lesson_json()])
        generator, sleep = make_generator(client)

        lesson = generator.generate(SPEC)

        assert lesson.title == "Adding Numbers"
        sleep.assert_called_once_with(0.25)
        assert [a.outcome for a in generator.last_attempts] == [
            AttemptOutcome.TRANSPORT_FAILURE, AttemptOutcome.OK,
        ]

    def test_unreachable_after_three_attempts(self):
        client = FakeClient([BackendUnavailable("down")] * 5)
        generator, sleep = make_generator(client)

        with pytest.raises(GenerationError) as exc:
            generator.generate(SPEC)

        assert exc.value.kind is GenerationErrorKind.UNREACHABLE
        assert exc.value.unreachable
        assert len(client.prompts) == MAX_TRANSPORT_ATTEMPTS
        assert len(exc.value.attempts) == MAX_TRANSPORT_ATTEMPTS
        # Pauses between attempts, none after the last
        assert sleep.call_count == MAX_TRANSPORT_ATTEMPTS - 1


class TestMalformedRetries:
    """Structurally bad responses"""

    def test_strict_retry_recovers(self):
        client = FakeClient(["not json at all", lesson_json()])
        generator, sleep = make_generator(client)

        lesson = generator.generate(SPEC)

        assert lesson.expected_answer == "5"
        assert STRICT_FOLLOWUP.strip().splitlines()[0] not in client.prompts[0]
        assert client.prompts[1].endswith(STRICT_FOLLOWUP.format(language="JavaScript"))
        sleep.assert_not_called()
        assert [a.strict for a in generator.last_attempts] == [False, True]

    def test_two_malformed_responses_give_invalid_content(self):
        """Second malformed response gives up"""
        client = FakeClient([
            lesson_json(exercise_prompt=""),
            lesson_json(language="Rust"),
            lesson_json(),
        ])
        generator, _ = make_generator(client)

        with pytest.raises(GenerationError) as exc:
            generator.generate(SPEC)

        assert exc.value.kind is GenerationErrorKind.INVALID_CONTENT
        assert len(client.prompts) == 2
        assert [a.outcome for a in exc.value.attempts] == [
            AttemptOutcome.MALFORMED, AttemptOutcome.MALFORMED,
        ]

    def test_transport_failure_then_malformed_twice(self):
        """Transport and content budgets are counted separately"""
        client = FakeClient([BackendUnavailable("blip"), "{}", "{}"])
        generator, _ = make_generator(client)

        with pytest.raises(GenerationError) as exc:
            generator.generate(SPEC)

        assert exc.value.kind is GenerationErrorKind.INVALID_CONTENT
        assert len(client.prompts) == 3

