"""Shared test fixtures for the announcehelper test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from announcehelper.config import Settings
from tests.fakes import FakeClock, FakeMonotonic, FakeSummarizer

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def fake_summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "users.json"


@pytest.fixture()
def settings(users_path: Path) -> Settings:
    """Settings isolated from the host: temp user store, cheap bcrypt, known secrets."""
    return Settings(
        users={"path": str(users_path), "bcrypt_rounds": 4},
        auth={"admin_key": "test-admin-key"},
        summarizer={"api_key": "test-api-key"},
    )
