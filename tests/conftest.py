"""Shared fixtures for the Coddy test suite."""

import json

import pytest

from coddy.errors import BackendUnavailable
from coddy.llm import BaseLLMClient, LLMResponse
from coddy.lessons.state import Journey, Language, LessonRecord, Difficulty, LessonType


def lesson_json(**overrides) -> str:
    """A well-formed JavaScript lesson response"""
    data = {
        "language": "JavaScript",
        "title": "Adding Numbers",
        "explanation": "The + operator adds two numbers together.",
        "steps": ["Declare two variables", "Add them", "Print the result"],
        "code_examples": [
            {"code": "const a = 1;\nconsole.log(a + 1);", "explanation": "Prints 2"},
        ],
        "exercise_prompt": "Write a JavaScript program that prints the sum of 2 and 3.",
        "expected_answer": "5",
        "hints": ["Use console.log", "2 + 3"],
    }
    data.update(overrides)
    return json.dumps(data)


class FakeClient(BaseLLMClient):
    """Scripted backend: each call pops the next response or raises it"""

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default
        self.prompts = []

    def generate(self, prompt, timeout=None, json_format=True):
        self.prompts.append(prompt)
        item = self.responses.pop(0) if self.responses else self.default
        if item is None:
            raise BackendUnavailable("no scripted response")
        if isinstance(item, BaseException):
            raise item
        return LLMResponse(content=item, model="fake", provider="fake")


def make_journey(count: int = 5, journey_id: str = "default", language: Language = Language.JAVASCRIPT) -> Journey:
    """A fresh journey with `count` simple lessons"""
    lessons = [
        LessonRecord(
            index=i,
            topic=f"topic {i}",
            difficulty=Difficulty.BEGINNER,
            lesson_type=LessonType.SHORT,
            stage="Getting Started",
        )
        for i in range(count)
    ]
    return Journey.create(journey_id, language, lessons)


@pytest.fixture(autouse=True)
def coddy_home(tmp_path, monkeypatch):
    """Keep config and progress files inside the test's tmp dir"""
    home = tmp_path / "coddy-home"
    monkeypatch.setenv("CODDY_HOME", str(home))
    for var in ("OLLAMA_URL", "OLLAMA_MODEL", "CODDY_TIMEOUT", "CODDY_RETRY_DELAY",
                "CODDY_MAX_ATTEMPTS", "CODDY_PROFILE", "CODDY_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def fake_client():
    return FakeClient(default=lesson_json())
