#!/usr/bin/env python3
"""
End-to-end tests for the coddy command line, with a scripted backend.
"""

import io
import json

import httpx
import pytest
from rich.console import Console

from coddy import cli
from coddy.db import ProgressStore
from coddy.config import get_config_path
from coddy.errors import (
    EXIT_ALREADY_STARTED,
    EXIT_CONFIG_ERROR,
    EXIT_GENERATION_FAILED,
    EXIT_INTERRUPTED,
    EXIT_NO_JOURNEY,
    EXIT_OK,
    EXIT_STATE_ERROR,
)
from coddy.lessons.curriculum import BUILD_TOPICS, PRACTICE_TOPICS
from coddy.lessons.state import Language, LessonStatus
from coddy.llm import OllamaClient

from conftest import FakeClient, lesson_json


def lesson_for(language: str) -> str:
    """A valid lesson response for a non-JavaScript journey"""
    return lesson_json(
        language=language,
        exercise_prompt=f"Write a {language} program that prints the sum of 2 and 3.",
    )


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def backend(monkeypatch):
    """Install a scripted client in place of the Ollama one"""
    monkeypatch.setenv("CODDY_RETRY_DELAY", "0")
    client = FakeClient(default=lesson_json())
    monkeypatch.setattr(cli, "create_llm_client", lambda: client)
    return client


@pytest.fixture
def answers(monkeypatch):
    """Feed learner input to the interactive loop"""
    queue = []

    def ask(*args, **kwargs):
        return queue.pop(0)

    monkeypatch.setattr(cli.Prompt, "ask", ask)
    monkeypatch.setattr(cli.Confirm, "ask", lambda *args, **kwargs: False)
    return queue


def output(console):
    return console.file.getvalue()


class TestStart:
    """coddy start"""

    def test_start_and_quit(self, backend, answers, console):
        answers.append("quit")
        code = cli.main(["start", "--language", "js"], console=console)

        assert code == EXIT_OK
        journey = ProgressStore().load("default")
        assert journey.language is Language.JAVASCRIPT
        assert journey.position == 0
        assert "Adding Numbers" in output(console)

    def test_start_twice(self, backend, answers, console):
        backend.default = lesson_for("Rust")
        answers.extend(["quit", "quit"])
        assert cli.main(["start", "-l", "rust"], console=console) == EXIT_OK
        assert cli.main(["start", "-l", "rust"], console=console) == EXIT_ALREADY_STARTED

    def test_start_reset(self, backend, answers, console):
        answers.extend(["5", "quit"])
        cli.main(["start", "-l", "javascript"], console=console)
        assert ProgressStore().load("default").position == 1

        backend.default = lesson_for("C++")
        assert cli.main(["start", "-l", "cpp", "--reset"], console=console) == EXIT_OK
        journey = ProgressStore().load("default")
        assert journey.language is Language.CPP
        assert journey.position == 0

    def test_correct_answer_then_pause(self, backend, answers, console):
        answers.append("5")
        assert cli.main(["start", "-l", "javascript"], console=console) == EXIT_OK

        journey = ProgressStore().load("default")
        assert journey.position == 1
        assert journey.lessons[0].status is LessonStatus.PASSED
        assert "Correct!" in output(console)

    def test_hint_and_skip(self, backend, answers, console):
        answers.extend(["hint", "skip"])
        cli.main(["start", "-l", "javascript"], console=console)

        text = output(console)
        assert "Use console.log" in text
        assert "Skipped." in text
        assert ProgressStore().load("default").lessons[0].status is LessonStatus.SKIPPED

    def test_shorter_journey(self, backend, answers, console):
        answers.append("quit")
        cli.main(["start", "-l", "javascript", "--lessons", "3"], console=console)
        assert ProgressStore().load("default").total == 3

    def test_lessons_must_be_positive(self, console):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["start", "-l", "javascript", "--lessons", "0"], console=console)
        assert exc_info.value.code == 2

    def test_unknown_language_is_usage_error(self, console):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["start", "--language", "cobol"], console=console)
        assert exc_info.value.code == 2


class TestContinue:
    """coddy continue / journey"""

    def test_continue_without_journey(self, backend, console):
        assert cli.main(["continue"], console=console) == EXIT_NO_JOURNEY
        assert "No journey for profile 'default'" in output(console)

    def test_progress_without_journey(self, backend, console):
        assert cli.main(["progress"], console=console) == EXIT_NO_JOURNEY

    def test_journey_with_language_starts(self, backend, answers, console):
        backend.default = lesson_for("C++")
        answers.append("quit")
        assert cli.main(["journey", "-l", "cpp"], console=console) == EXIT_OK
        assert ProgressStore().load("default").language is Language.CPP

    def test_profiles_are_separate(self, backend, answers, console):
        backend.default = lesson_for("Rust")
        answers.append("quit")
        cli.main(["--profile", "alice", "start", "-l", "rust"], console=console)

        assert cli.main(["--profile", "bob", "continue"], console=console) == EXIT_NO_JOURNEY
        assert ProgressStore().list_journeys() == ["alice"]

    def test_corrupt_progress_file(self, backend, console):
        store = ProgressStore()
        store.directory.mkdir(parents=True, exist_ok=True)
        store.path_for("default").write_text("{broken")

        assert cli.main(["continue"], console=console) == EXIT_STATE_ERROR
        assert store.path_for("default").read_text() == "{broken"


class TestBackendFailure:
    """Unreachable backend is reported distinctly and loses nothing"""

    def test_unreachable_then_retry(self, backend, answers, console):
        answers.extend(["5", "quit"])
        cli.main(["start", "-l", "javascript"], console=console)

        backend.default = None
        assert cli.main(["continue"], console=console) == EXIT_GENERATION_FAILED
        assert cli.main(["continue"], console=console) == EXIT_GENERATION_FAILED
        assert ProgressStore().load("default").position == 1

        backend.default = lesson_json()
        assert cli.main(["continue"], console=console) == EXIT_OK
        assert ProgressStore().load("default").position == 1

    def test_unreachable_is_not_no_journey(self, monkeypatch, console):
        monkeypatch.setenv("CODDY_RETRY_DELAY", "0")
        monkeypatch.setattr(cli, "create_llm_client", lambda: FakeClient())
        monkeypatch.setattr(cli.Prompt, "ask", lambda *a, **k: "quit")

        code = cli.main(["start", "-l", "rust"], console=console)

        assert code == EXIT_GENERATION_FAILED
        assert code != EXIT_NO_JOURNEY
        assert ProgressStore().load("default").position == 0


class TestProgress:
    """coddy progress"""

    def test_progress_report(self, backend, answers, console):
        answers.append("5")
        cli.main(["start", "-l", "javascript"], console=console)

        report = Console(file=io.StringIO(), width=160)
        assert cli.main(["progress"], console=report) == EXIT_OK

        text = output(report)
        assert "lesson 2 of 24" in text
        assert "Passed: 1" in text
        assert "Skipped: 0" in text
        assert "Getting Started" in text
        assert "Learn the basics of JavaScript" in text


class TestBadInput:
    """Bad settings and closed input end with an exit code, not a traceback"""

    def test_zero_max_attempts_from_env(self, backend, console, monkeypatch):
        monkeypatch.setenv("CODDY_MAX_ATTEMPTS", "0")
        assert cli.main(["progress"], console=console) == EXIT_CONFIG_ERROR
        assert "CODDY_MAX_ATTEMPTS" in output(console)

    def test_zero_max_attempts_from_config_file(self, backend, console):
        get_config_path().write_text(json.dumps({"max_attempts": 0}))
        assert cli.main(["continue"], console=console) == EXIT_CONFIG_ERROR

    def test_invalid_profile_setting(self, backend, console, monkeypatch):
        monkeypatch.setenv("CODDY_PROFILE", "../etc")
        assert cli.main(["progress"], console=console) == EXIT_CONFIG_ERROR
        assert "Invalid profile" in output(console)

    def test_input_closed_mid_lesson(self, backend, console, monkeypatch):
        def closed(*args, **kwargs):
            raise EOFError

        monkeypatch.setattr(cli.Prompt, "ask", closed)

        assert cli.main(["start", "-l", "js"], console=console) == EXIT_INTERRUPTED
        assert ProgressStore().load("default").position == 0


class TestSingleLessons:
    """coddy lesson / coddy compile never touch saved progress"""

    def test_lesson_with_all_options(self, backend, answers, console):
        answers.append("5")
        code = cli.main(
            ["lesson", "-l", "javascript", "-d", "intermediate", "-t", "medium", "--topic", "closures"],
            console=console,
        )

        assert code == EXIT_OK
        assert "Lesson finished!" in output(console)
        prompt = backend.prompts[0]
        assert "TOPIC: closures" in prompt
        assert "DIFFICULTY: Intermediate" in prompt
        assert "LESSON TYPE: Medium" in prompt
        assert ProgressStore().list_journeys() == []

    def test_blank_topic_picks_one(self, backend, answers, console):
        answers.extend(["", "quit"])
        cli.main(["lesson", "-l", "javascript", "-d", "beginner", "-t", "short"], console=console)

        assert "Selected random topic" in output(console)
        topic_line = next(line for line in backend.prompts[0].splitlines() if line.startswith("TOPIC: "))
        assert topic_line[len("TOPIC: "):] in PRACTICE_TOPICS

    def test_lesson_leaves_journey_alone(self, backend, answers, console):
        answers.extend(["quit", "skip"])
        cli.main(["start", "-l", "javascript"], console=console)
        before = ProgressStore().path_for("default").read_text()

        cli.main(["lesson", "-l", "javascript", "-d", "beginner", "-t", "short", "--topic", "loops"],
                 console=console)

        assert ProgressStore().path_for("default").read_text() == before

    def test_compile_guide(self, backend, answers, console):
        answers.append("skip")
        assert cli.main(["compile", "-l", "javascript"], console=console) == EXIT_OK

        text = output(console)
        assert "Build guide finished!" in text
        assert f"TOPIC: {BUILD_TOPICS[Language.JAVASCRIPT]}" in backend.prompts[0]
        assert ProgressStore().list_journeys() == []

    def test_lesson_backend_down(self, backend, answers, console):
        backend.default = None
        code = cli.main(["compile", "-l", "javascript"], console=console)
        assert code == EXIT_GENERATION_FAILED


class TestCheck:
    """coddy check"""

    def install(self, monkeypatch, handler):
        client = OllamaClient(transport=httpx.MockTransport(handler))
        monkeypatch.setattr(cli, "create_llm_client", lambda: client)

    def test_model_installed(self, monkeypatch, console):
        self.install(monkeypatch, lambda request: httpx.Response(
            200, json={"models": [{"name": "qwen2.5-coder:7b"}]}))

        assert cli.main(["check"], console=console) == EXIT_OK
        assert "is installed" in output(console)

    def test_model_missing(self, monkeypatch, console):
        self.install(monkeypatch, lambda request: httpx.Response(200, json={"models": []}))

        assert cli.main(["check"], console=console) == EXIT_GENERATION_FAILED
        assert "ollama pull" in output(console)

    def test_unreachable(self, monkeypatch, console):
        def refused(request):
            raise httpx.ConnectError("refused", request=request)

        self.install(monkeypatch, refused)

        assert cli.main(["check"], console=console) == EXIT_GENERATION_FAILED
        assert "Cannot reach Ollama" in output(console)
