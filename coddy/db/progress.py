#!/usr/bin/env python3
"""
Progress persistence for learning journeys.
One JSON file per journey id, replaced atomically on every save.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional

from ..config import get_config_dir
from ..errors import CorruptState, IoFailure, NotFound
from ..lessons.state import Journey

logger = logging.getLogger(__name__)

_JOURNEY_ID = re.compile(r'^[A-Za-z0-9_.-]+$')


def validate_journey_id(journey_id: str) -> str:
    """Journey ids become file names, so keep them to a safe alphabet"""
    if not journey_id or not _JOURNEY_ID.match(journey_id) or journey_id.startswith('.'):
        raise ValueError(
            f"Invalid profile name {journey_id!r}: use letters, digits, '_', '-' or '.'"
        )
    return journey_id


def serialize(journey: Journey) -> str:
    """Stable text form: the same journey always gives the same bytes"""
    return json.dumps(journey.to_dict(), indent=2, sort_keys=True, ensure_ascii=False) + '\n'


def _fsync_directory(directory: Path) -> None:
    """Make a rename in `directory` durable (POSIX only)"""
    if not hasattr(os, 'O_DIRECTORY'):
        return
    fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class ProgressStore:
    """Sole reader and writer of persisted journeys"""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else get_config_dir() / 'journeys'

    def path_for(self, journey_id: str) -> Path:
        """File holding a journey"""
        return self.directory / f"{validate_journey_id(journey_id)}.json"

    def exists(self, journey_id: str) -> bool:
        """Check if a journey has been saved"""
        return self.path_for(journey_id).exists()

    def load(self, journey_id: str) -> Journey:
        """
        Read a journey back.

        Raises:
            NotFound: nothing stored for this id.
            CorruptState: the file exists but is not a valid journey. The
                file is left as it is.
            IoFailure: the file could not be read.
        """
        path = self.path_for(journey_id)
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise NotFound(journey_id)
        except (OSError, UnicodeDecodeError) as e:
            raise IoFailure(path, str(e)) from e

        if not text.strip():
            raise CorruptState(path, "file is empty")

        try:
            data = json.loads(text)
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            journey = Journey.from_dict(data)
        except json.JSONDecodeError as e:
            raise CorruptState(path, f"invalid JSON: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptState(path, f"invalid journey record: {e}") from e

        if journey.journey_id != journey_id:
            raise CorruptState(
                path, f"record belongs to '{journey.journey_id}', not '{journey_id}'"
            )
        logger.debug("Loaded journey %s at position %d/%d", journey_id, journey.position, journey.total)
        return journey

    def save(self, journey: Journey) -> None:
        """
        Persist a journey, replacing any prior record atomically.

        The new content goes to a temp file in the same directory, is fsynced,
        then renamed over the target and the directory is fsynced. A failure or
        interrupt at any point before the rename leaves the previous record as
        it was and removes the temp file.

        Raises:
            IoFailure: the record could not be written.
        """
        path = self.path_for(journey.journey_id)
        content = serialize(journey)

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{journey.journey_id}.", suffix='.tmp', dir=self.directory
            )
        except OSError as e:
            raise IoFailure(path, str(e)) from e

        replaced = False
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            replaced = True
            _fsync_directory(self.directory)
        except OSError as e:
            raise IoFailure(path, str(e)) from e
        finally:
            if not replaced:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass

        logger.debug("Saved journey %s at position %d/%d", journey.journey_id, journey.position, journey.total)

    def list_journeys(self) -> List[str]:
        """Ids of all saved journeys"""
        if not self.directory.exists():
            return []
        return sorted(
            p.stem for p in self.directory.glob('*.json')
            if _JOURNEY_ID.match(p.stem) and not p.stem.startswith('.')
        )
