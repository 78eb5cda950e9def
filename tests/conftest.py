"""Shared pytest configuration and fixtures for the server test suite."""

import io
import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "fifo: test uses real named pipes"
    )


def pytest_collection_modifyitems(config, items):
    """Skip named-pipe tests where the platform has no mkfifo."""
    import os

    if hasattr(os, "mkfifo"):
        return

    skip_fifo = pytest.mark.skip(reason="os.mkfifo not available on this platform")
    for item in items:
        if "fifo" in item.keywords:
            item.add_marker(skip_fifo)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def session_config():
    """Session config with the stock bounds: quant 0-51, bitrate 1-10000, 5 levels."""
    from variable_rtsp.core.config import SessionConfig

    return SessionConfig()


@pytest.fixture
def quant_config():
    """Quant scaling (max bitrate 0) with 4 intervals: step 12."""
    from variable_rtsp.core.config import SessionConfig

    return SessionConfig(min_quant=0, max_quant=51, max_bitrate=0, min_bitrate=1, steps=4)


@pytest.fixture
def fake_backend():
    from tests.infrastructure.mocks.pipeline_mocks import FakeBackend

    return FakeBackend()


@pytest.fixture
def fake_pipeline():
    from tests.infrastructure.mocks.pipeline_mocks import make_standard_pipeline

    return make_standard_pipeline()


@pytest.fixture
def published():
    """List collecting every status message handed to a publisher."""
    return []


@pytest.fixture
def status_stream() -> io.StringIO:
    return io.StringIO()
