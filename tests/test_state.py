"""Tests for persisted state stores."""

import json
import os
from datetime import datetime
from pathlib import Path

import pytest

from logpulse.errors import StateError
from logpulse.state import (
    LAST_REQUEST_TIME,
    LAST_SUMMARY_TIME,
    STATE_VERSION,
    JsonStateStore,
    MemoryStateStore,
    get_default_state_path,
)


class TestMemoryStateStore:
    def test_get_set(self):
        store = MemoryStateStore()
        assert store.get(LAST_REQUEST_TIME) is None

        store.set(LAST_REQUEST_TIME, datetime(2024, 1, 15, 10, 0))

        assert store.get(LAST_REQUEST_TIME) == datetime(2024, 1, 15, 10, 0)
        assert store.writes == 1

    def test_clear(self):
        store = MemoryStateStore({LAST_SUMMARY_TIME: datetime(2024, 1, 15)})
        store.clear()
        assert store.items() == {}


class TestJsonStateStore:
    def test_default_path_uses_state_dir(self, isolate_state_directory):
        """Test that LOGPULSE_STATE_DIR controls the default location."""
        assert get_default_state_path() == Path(isolate_state_directory) / 'state.json'
        assert JsonStateStore().path == Path(isolate_state_directory) / 'state.json'

    def test_xdg_state_home(self, monkeypatch, temp_dir):
        monkeypatch.delenv('LOGPULSE_STATE_DIR')
        monkeypatch.setenv('XDG_STATE_HOME', temp_dir)

        assert get_default_state_path() == Path(temp_dir) / 'logpulse' / 'state.json'

    def test_missing_file_is_empty(self, temp_dir):
        store = JsonStateStore(os.path.join(temp_dir, 'state.json'))

        assert store.items() == {}
        assert not store.path.exists()

    def test_values_survive_reload(self, temp_dir):
        path = os.path.join(temp_dir, 'nested', 'state.json')
        store = JsonStateStore(path)
        store.set(LAST_REQUEST_TIME, datetime(2024, 1, 15, 10, 0, 30))
        store.set(LAST_SUMMARY_TIME, datetime(2024, 1, 14, 23, 45))

        reloaded = JsonStateStore(path)

        assert reloaded.get(LAST_REQUEST_TIME) == datetime(2024, 1, 15, 10, 0, 30)
        assert reloaded.get(LAST_SUMMARY_TIME) == datetime(2024, 1, 14, 23, 45)

    def test_set_writes_through(self, temp_dir):
        path = os.path.join(temp_dir, 'state.json')
        JsonStateStore(path).set(LAST_REQUEST_TIME, datetime(2024, 1, 15, 10, 0))

        with open(path) as f:
            data = json.load(f)

        assert data['version'] == STATE_VERSION
        assert data['values'][LAST_REQUEST_TIME] == '2024-01-15T10:00:00'
        # No temp files left behind
        assert os.listdir(temp_dir) == ['state.json']

    def test_corrupt_file_is_empty(self, temp_dir):
        path = os.path.join(temp_dir, 'state.json')
        with open(path, 'w') as f:
            f.write('{not json')

        assert JsonStateStore(path).items() == {}

    def test_wrong_shape_is_empty(self, temp_dir):
        path = os.path.join(temp_dir, 'state.json')
        with open(path, 'w') as f:
            json.dump(['a', 'list'], f)

        assert JsonStateStore(path).items() == {}

    def test_version_mismatch_is_empty(self, temp_dir):
        path = os.path.join(temp_dir, 'state.json')
        with open(path, 'w') as f:
            json.dump({'version': STATE_VERSION + 1, 'values': {LAST_REQUEST_TIME: '2024-01-15T10:00:00'}}, f)

        assert JsonStateStore(path).get(LAST_REQUEST_TIME) is None

    def test_clear_deletes_file(self, temp_dir):
        path = os.path.join(temp_dir, 'state.json')
        store = JsonStateStore(path)
        store.set(LAST_REQUEST_TIME, datetime(2024, 1, 15, 10, 0))

        store.clear()

        assert not os.path.exists(path)
        assert JsonStateStore(path).items() == {}

    def test_unwritable_location_raises_state_error(self, temp_dir):
        """Test that a write failure is reported with the state file path."""
        blocker = os.path.join(temp_dir, 'not-a-dir')
        with open(blocker, 'w') as f:
            f.write('')
        path = os.path.join(blocker, 'state.json')
        store = JsonStateStore(path)

        with pytest.raises(StateError, match='Unable to write state file') as exc_info:
            store.set(LAST_REQUEST_TIME, datetime(2024, 1, 15, 10, 0))

        assert str(path) in str(exc_info.value)
        assert isinstance(exc_info.value.cause, OSError)
