"""Pytest configuration and shared fixtures for logpulse tests.

This module provides an auto-use fixture that isolates the state directory
for every test, plus helpers for writing access logs.
"""

import os
import shutil
import tempfile
from datetime import datetime

import pytest


@pytest.fixture(autouse=True)
def isolate_state_directory(monkeypatch):
    """Auto-use fixture that isolates the state directory for each test.

    This ensures:
    - Tests don't touch the user's ~/.local/state/logpulse directory
    - Tests don't share watermarks through a common state file
    - LOGPULSE_* variables from the developer's shell don't leak in
    """
    for var in list(os.environ):
        if var.startswith('LOGPULSE_'):
            monkeypatch.delenv(var)

    temp_state_dir = tempfile.mkdtemp(prefix='logpulse_test_state_')
    monkeypatch.setenv('LOGPULSE_STATE_DIR', temp_state_dir)

    yield temp_state_dir

    shutil.rmtree(temp_state_dir, ignore_errors=True)


@pytest.fixture
def temp_dir():
    """Temporary working directory, removed after the test."""
    tmp_dir = tempfile.mkdtemp(prefix='logpulse_test_')
    yield tmp_dir
    shutil.rmtree(tmp_dir, ignore_errors=True)


def make_clf_line(when: datetime, path: str = '/index.html', status: int = 200, size: int = 512) -> str:
    """Render one common log format line."""
    stamp = when.strftime('%d/%b/%Y:%H:%M:%S')
    return f'10.0.0.1 - - [{stamp} +0000] "GET {path} HTTP/1.1" {status} {size}\n'


@pytest.fixture
def clf_line():
    """Factory rendering common log format lines for a datetime."""
    return make_clf_line


@pytest.fixture
def access_log(temp_dir):
    """Factory creating an access log from a list of datetimes.

    Returns a function `(times, name='access.log') -> path`; the file can be
    appended to later with `append_lines(path, times)`.
    """

    def _create(times, name='access.log'):
        path = os.path.join(temp_dir, name)
        with open(path, 'w') as f:
            f.writelines(make_clf_line(t) for t in times)
        return path

    return _create


@pytest.fixture
def append_lines():
    """Append common log format lines for the given datetimes to a file."""

    def _append(path, times):
        with open(path, 'a') as f:
            f.writelines(make_clf_line(t) for t in times)

    return _append
