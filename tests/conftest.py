from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.config import SETTINGS, Settings
from app.main import create_app


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    """Per-test credential file; does not exist until the first issue."""
    return tmp_path / "data" / "credentials.json"


@pytest.fixture
def settings(data_file: Path) -> Settings:
    return replace(
        SETTINGS,
        app_env="test",
        worker_id="worker-1",
        data_file=str(data_file),
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    # Entering the context runs the lifespan, which loads the store.
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def make_client(settings: Settings) -> Callable[..., TestClient]:
    """Build an app for a simulated restart or a second worker.

    The caller enters the returned client with ``with``.
    """

    def _make(**overrides: object) -> TestClient:
        return TestClient(create_app(replace(settings, **overrides)))

    return _make
