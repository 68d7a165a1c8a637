"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os

import pytest

# Keep test runs from writing a log file into the working directory
os.environ.setdefault("LOG_FILE", "")

from deskbase.bridge import Bridge, register_database_handlers
from deskbase.service import DatabaseService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path) -> str:
    """URL of a fresh SQLite file, deleted with the temporary directory."""
    return f"sqlite:///{tmp_path / 'deskbase-test.sqlite'}"


@pytest.fixture
async def service(database_url):
    """An initialized service, closed after the test."""
    svc = DatabaseService(database_url)
    await svc.initialize()
    yield svc
    await svc.close()


@pytest.fixture
def bridge(service) -> Bridge:
    return register_database_handlers(Bridge(), service)
