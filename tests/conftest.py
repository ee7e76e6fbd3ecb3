"""Shared test fixtures."""

from pathlib import Path

import pytest

from reelcut import ffutil
from reelcut.config import Settings
from reelcut.web import timeline

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture(autouse=True)
def default_binaries():
    """Reset ffmpeg/ffprobe names that tests or create_app may have changed."""
    ffutil.configure(Settings())
    yield
    ffutil.configure(Settings())


@pytest.fixture(autouse=True)
def clear_timeline_sessions():
    yield
    timeline._sessions.clear()
