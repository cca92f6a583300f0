"""Pytest configuration and shared fixtures for logcheck tests.

This module provides auto-use fixtures that ensure test isolation,
particularly for the state directory.
"""

import shutil
import tempfile

import pytest


@pytest.fixture(autouse=True)
def isolate_state_directory(monkeypatch):
    """Auto-use fixture that isolates the state directory for each test.

    Sets LOGCHECK_STATE_DIR to a fresh temporary directory so tests never
    touch ~/.local/state/logcheck or each other's state.
    """
    temp_state_dir = tempfile.mkdtemp(prefix='logcheck_test_state_')

    monkeypatch.setenv('LOGCHECK_STATE_DIR', temp_state_dir)
    monkeypatch.delenv('LOGCHECK_MAX_MESSAGE_LINES', raising=False)
    monkeypatch.delenv('LOGCHECK_STATE_EXPIRATION_DAYS', raising=False)
    monkeypatch.delenv('LOGCHECK_LOG_LEVEL', raising=False)

    yield temp_state_dir

    shutil.rmtree(temp_state_dir, ignore_errors=True)


@pytest.fixture
def state_dir(isolate_state_directory):
    """Path of the isolated state directory for this test."""
    return isolate_state_directory
