"""Shared fixtures for usage tracker tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from usage_tracker.config import TrackerConfig
from usage_tracker.session import SessionRecord

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def testdata_path() -> Path:
    return TESTDATA


@pytest.fixture
def read_testdata():
    """Return a loader for files in tests/testdata."""
    def _read(name: str) -> str:
        return (TESTDATA / name).read_text(encoding="utf-8")
    return _read


@pytest.fixture
def tracker_config() -> TrackerConfig:
    return TrackerConfig(
        endpoint="https://influx.example.com",
        database="adobe",
        policy="autogen",
        token="secret-token",
        timeout=2.5,
    )


@pytest.fixture
def session_record() -> SessionRecord:
    return SessionRecord(
        app_id="InDesign1",
        app_version="19.2",
        os_name="MAC",
        os_version="14.3.1",
        ngl_version="1.35.0.19",
        app_locale="en_US",
        user_id="9f22a90139cbb9f1676b0113e1fb574976dc550a",
        session_id="6f3dc1e0-5b7a-4c3e-9d2a-0b8e4f1a7c55",
        launch_time=datetime(2024, 3, 4, 18, 12, 40, 2000, tzinfo=timezone.utc),
        launch_duration=timedelta(seconds=435, milliseconds=528),
        remote_address="203.0.113.7",
    )
