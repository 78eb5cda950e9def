"""Unit test fixtures for isolated, fast test execution.

This conftest provides fixtures specifically for unit tests that:
- Run without GStreamer (the in-memory backend stands in for the pipeline)
- Execute quickly (< 1s per test)
- Keep named pipes inside pytest's tmp_path

The root conftest provides config, backend and pipeline fixtures; this file
wires them into sessions, controllers and handlers.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture(scope="function")
def fifo_dir(tmp_path: Path) -> Path:
    """Directory for command/status FIFOs, removed with tmp_path."""
    path = tmp_path / "pipes"
    path.mkdir()
    return path


@pytest.fixture
def make_session() -> Callable:
    from variable_rtsp.core.session_state import SessionState

    def factory(config):
        return SessionState(config)

    return factory


@pytest.fixture
def controller(session_config, fake_backend, published):
    from variable_rtsp.core.session_controller import SessionController
    from variable_rtsp.core.session_state import SessionState

    return SessionController(SessionState(session_config), fake_backend, published.append)


@pytest.fixture
def handler(controller, fake_backend, published):
    from variable_rtsp.core.commands.command_handler import CommandHandler

    return CommandHandler(controller.session, fake_backend, published.append)


@pytest.fixture
def capture_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.DEBUG, logger="variable_rtsp")
    return caplog
