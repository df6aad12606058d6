"""Pytest configuration and fixtures.

Provides environment isolation and an instant, recorded backoff so retry
tests run without waiting. No test touches the network.
"""

from __future__ import annotations

import asyncio

import pytest

from genaisdk import backend as backend_module
from genaisdk.config import ClientOptions
from genaisdk.exceptions import CancellationError
from tests.helpers import make_options

_ENV_VARS = (
    "GOOGLE_API_KEY",
    "GOOGLE_GENAI_USE_VERTEXAI",
    "GOOGLE_CLOUD_PROJECT",
    "GOOGLE_CLOUD_LOCATION",
    "GOOGLE_CLOUD_ACCESS_TOKEN",
)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def backoff_delays(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace backoff waits with an instant fake that records each delay.

    Tests marked ``real_backoff`` keep the real wait.
    """
    delays: list[float] = []
    if request.node.get_closest_marker("real_backoff"):
        return delays

    async def fake_sleep(delay: float, cancel_event: asyncio.Event | None) -> None:
        delays.append(delay)
        if cancel_event is not None and cancel_event.is_set():
            raise CancellationError()

    monkeypatch.setattr(backend_module, "_backoff_sleep", fake_sleep)
    return delays


@pytest.fixture
def options() -> ClientOptions:
    return make_options()
