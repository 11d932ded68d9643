#!/usr/bin/env python3
"""
Error taxonomy for Coddy.
Every error the CLI can report carries the exit code it maps to.
"""

from enum import Enum
from typing import List, Optional


# Exit codes (2 is left to argparse usage errors)
EXIT_OK = 0
EXIT_NO_JOURNEY = 3
EXIT_ALREADY_STARTED = 4
EXIT_GENERATION_FAILED = 5
EXIT_STATE_ERROR = 6
EXIT_CONFIG_ERROR = 7
EXIT_INTERRUPTED = 130


class CoddyError(Exception):
    """Base class for errors reported to the learner"""
    exit_code = 1


class ConfigError(CoddyError):
    """A setting from the environment or config.json is unusable"""
    exit_code = EXIT_CONFIG_ERROR


# =============================================================================
# Persistence
# =============================================================================

class NotFound(CoddyError):
    """No stored record for a journey id"""
    exit_code = EXIT_NO_JOURNEY

    def __init__(self, journey_id: str):
        super().__init__(f"No journey found for profile '{journey_id}'")
        self.journey_id = journey_id


class CorruptState(CoddyError):
    """Stored journey exists but cannot be read back"""
    exit_code = EXIT_STATE_ERROR

    def __init__(self, path, reason: str):
        super().__init__(
            f"Progress file {path} is unreadable ({reason}). "
            f"It was left untouched; fix or move it, or run 'coddy start --reset'."
        )
        self.path = path
        self.reason = reason


class IoFailure(CoddyError):
    """Reading or writing the progress file failed"""
    exit_code = EXIT_STATE_ERROR

    def __init__(self, path, reason: str):
        super().__init__(f"Could not access {path}: {reason}")
        self.path = path
        self.reason = reason


# =============================================================================
# Content generation
# =============================================================================

class BackendUnavailable(CoddyError):
    """A single request to the model backend failed at the transport level"""
    exit_code = EXIT_GENERATION_FAILED


class GenerationErrorKind(Enum):
    """Why lesson generation gave up"""
    UNREACHABLE = 'unreachable'
    INVALID_CONTENT = 'invalid_content'


class GenerationError(CoddyError):
    """Lesson generation exhausted its attempts"""
    exit_code = EXIT_GENERATION_FAILED

    def __init__(self, kind: GenerationErrorKind, message: str, attempts: Optional[List] = None):
        super().__init__(message)
        self.kind = kind
        self.attempts = attempts or []

    @property
    def unreachable(self) -> bool:
        return self.kind is GenerationErrorKind.UNREACHABLE


# =============================================================================
# Journey lifecycle
# =============================================================================

class AlreadyStarted(CoddyError):
    """A journey already exists and no reset was requested"""
    exit_code = EXIT_ALREADY_STARTED

    def __init__(self, journey_id: str):
        super().__init__(
            f"A journey already exists for profile '{journey_id}'. "
            f"Use 'coddy continue', or 'coddy start --reset' to start over."
        )
        self.journey_id = journey_id


class NoJourney(CoddyError):
    """There is no journey to continue"""
    exit_code = EXIT_NO_JOURNEY

    def __init__(self, journey_id: str, message: str = None):
        super().__init__(
            message or f"No journey for profile '{journey_id}'. Start one with 'coddy journey'."
        )
        self.journey_id = journey_id


class EngineStateError(RuntimeError):
    """A lesson engine transition was requested from the wrong state"""
    pass
