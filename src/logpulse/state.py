"""Persisted key-value state.

The monitor keeps three timestamps between invocations:

- `last_request_time`: watermark of the rate tracker, written once per
  invocation after a successful scan
- `last_summary_time`: when the daily summary last fired, written by the
  summary gate when it seeds or fires
- `last_run_time`: when the previous invocation ran, written by the monitor
  after rate tracking so the next rate covers the time since this run

Stores are injected into the components that use them. `JsonStateStore`
writes through on every `set` so a value survives even if a later phase of
the same invocation fails.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

from logpulse.errors import StateError
from logpulse.utils import get_state_dir


logger = logging.getLogger(__name__)

# State file format version - increment when format changes
STATE_VERSION = 1

LAST_REQUEST_TIME = 'last_request_time'
LAST_SUMMARY_TIME = 'last_summary_time'
LAST_RUN_TIME = 'last_run_time'

DEFAULT_STATE_FILENAME = 'state.json'


class StateFile(BaseModel):
    """On-disk layout of the JSON state store"""

    version: int = STATE_VERSION
    values: dict[str, datetime] = Field(default_factory=dict)


class StateStore(ABC):
    """Durable mapping of key -> timestamp."""

    @abstractmethod
    def get(self, key: str) -> datetime | None:
        pass

    @abstractmethod
    def set(self, key: str, value: datetime) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def items(self) -> dict[str, datetime]:
        pass


class MemoryStateStore(StateStore):
    """In-process store, used for tests and one-off runs."""

    def __init__(self, values: dict[str, datetime] | None = None):
        self._values = dict(values or {})
        self.writes = 0

    def get(self, key: str) -> datetime | None:
        return self._values.get(key)

    def set(self, key: str, value: datetime) -> None:
        self._values[key] = value
        self.writes += 1

    def clear(self) -> None:
        self._values.clear()

    def items(self) -> dict[str, datetime]:
        return dict(self._values)


def get_default_state_path() -> Path:
    """Get the default state file path.

    Returns:
        Path to $LOGPULSE_STATE_DIR/state.json (or ~/.local/state/logpulse/state.json)
    """
    return get_state_dir() / DEFAULT_STATE_FILENAME


class JsonStateStore(StateStore):
    """State persisted as a small JSON document.

    The file is read once when the store is created. A missing file is an
    empty store; a corrupt file or one with another format version is logged
    and treated as empty, so the monitor re-seeds instead of failing forever.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else get_default_state_path()
        self._state = self._load()

    def _load(self) -> StateFile:
        if not self.path.exists():
            logger.debug(f'No state file at {self.path}, starting empty')
            return StateFile()

        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)

            if data.get('version') != STATE_VERSION:
                logger.warning(f'State version mismatch in {self.path}, starting empty')
                return StateFile()

            return StateFile(**data)

        except (json.JSONDecodeError, ValueError, AttributeError) as e:
            logger.warning(f'Failed to load state from {self.path}: {e}')
            return StateFile()
        except OSError as e:
            raise StateError(self.path, e, action='read') from e

    def _save(self) -> None:
        """Write the state atomically.

        Raises:
            StateError: If the directory or file can't be written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file and rename so readers never see a partial document
            fd, tmp_path = tempfile.mkstemp(prefix='.state_', suffix='.json', dir=self.path.parent)
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(self._state.model_dump(mode='json'), f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StateError(self.path, e) from e
        logger.debug(f'Saved state to {self.path}')

    def get(self, key: str) -> datetime | None:
        return self._state.values.get(key)

    def set(self, key: str, value: datetime) -> None:
        self._state.values[key] = value
        self._save()

    def clear(self) -> None:
        self._state = StateFile()
        if self.path.exists():
            try:
                self.path.unlink()
            except OSError as e:
                raise StateError(self.path, e, action='delete') from e
            logger.info(f'Deleted state file {self.path}')

    def items(self) -> dict[str, datetime]:
        return dict(self._state.values)
