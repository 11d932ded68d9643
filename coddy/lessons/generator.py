#!/usr/bin/env python3
"""
ContentGenerator - turns a LessonSpec into a validated GeneratedLesson.

Retry policy:
- Transport failures (timeouts, connection errors) are retried up to
  MAX_TRANSPORT_ATTEMPTS times with a short pause in between.
- A malformed response is retried once with a stricter instruction; a
  second malformed response gives up.
Each attempt is recorded with a typed outcome so exhaustion is a distinct
terminal result rather than a leaked low-level exception.
"""

import dataclasses
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from ..errors import BackendUnavailable, GenerationError, GenerationErrorKind
from ..llm import BaseLLMClient
from .parser import Rejection, parse_lesson
from .prompts import build_prompt
from .state import GeneratedLesson, LessonSpec

logger = logging.getLogger(__name__)

MAX_TRANSPORT_ATTEMPTS = 3
MAX_MALFORMED_RESPONSES = 2


class AttemptOutcome(Enum):
    """Result of one request to the backend"""
    OK = 'ok'
    TRANSPORT_FAILURE = 'transport_failure'
    MALFORMED = 'malformed'


@dataclass
class Attempt:
    """One request/response round trip"""
    number: int
    outcome: AttemptOutcome
    strict: bool = False
    detail: str = ''
    lesson: Optional[GeneratedLesson] = None


class ContentGenerator:
    """Requests lesson content from the model backend and validates it"""

    def __init__(
        self,
        client: BaseLLMClient,
        timeout: float = 120.0,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._sleep = sleep
        self.last_attempts: List[Attempt] = []

    def generate(self, spec: LessonSpec) -> GeneratedLesson:
        """
        Produce a validated lesson for `spec`.

        Raises:
            GenerationError: UNREACHABLE after MAX_TRANSPORT_ATTEMPTS transport
                failures, INVALID_CONTENT after MAX_MALFORMED_RESPONSES bad
                responses.
        """
        attempts: List[Attempt] = []
        self.last_attempts = attempts
        transport_failures = 0
        malformed = 0
        strict = spec.strict

        while True:
            attempt = self._attempt(
                len(attempts) + 1,
                dataclasses.replace(spec, strict=strict),
            )
            attempts.append(attempt)

            if attempt.outcome is AttemptOutcome.OK:
                return attempt.lesson

            if attempt.outcome is AttemptOutcome.TRANSPORT_FAILURE:
                transport_failures += 1
                if transport_failures >= MAX_TRANSPORT_ATTEMPTS:
                    raise GenerationError(
                        GenerationErrorKind.UNREACHABLE,
                        f"Model backend unreachable after {transport_failures} attempts: "
                        f"{attempt.detail}",
                        attempts,
                    )
                self._sleep(self.retry_delay)
                continue

            malformed += 1
            if malformed >= MAX_MALFORMED_RESPONSES:
                raise GenerationError(
                    GenerationErrorKind.INVALID_CONTENT,
                    f"Model returned unusable lesson content {malformed} times: "
                    f"{attempt.detail}",
                    attempts,
                )
            strict = True

    def _attempt(self, number: int, spec: LessonSpec) -> Attempt:
        """Run one request and classify the result"""
        prompt = build_prompt(spec)
        logger.debug("Generation attempt %d (strict=%s) for %r", number, spec.strict, spec.topic)

        try:
            response = self.client.generate(prompt, timeout=self.timeout)
        except BackendUnavailable as e:
            logger.info("Attempt %d: backend unavailable: %s", number, e)
            return Attempt(number, AttemptOutcome.TRANSPORT_FAILURE, spec.strict, str(e))

        result = parse_lesson(response.content, spec.language)
        if isinstance(result, Rejection):
            logger.info("Attempt %d: rejected response: %s", number, result.reason)
            return Attempt(number, AttemptOutcome.MALFORMED, spec.strict, result.reason)

        return Attempt(number, AttemptOutcome.OK, spec.strict, lesson=result)
