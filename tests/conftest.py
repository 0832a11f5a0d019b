"""
tests/conftest.py -- Shared test fixtures for the simulation tests.

This module provides:
  - ManualScheduler: records deferred callbacks so tests fire them on demand
  - FakeClock: epoch-millisecond clock the tests advance explicitly
  - simulation: an isolated Simulation wired to the two helpers above
  - api_client: TestClient against the real app with a patched lifespan

Design: the app's real lifespan starts a background opponent ticker and arms
patch timers on the event loop. Tests replace it so time only moves when a
test says so: patch completions fire when the test calls scheduler.fire_all(),
and the opponent cooldown elapses when the test calls clock.advance().

Env vars must be set before any api/ import: the limiter and the trusted-host
list are built from get_settings() at import time.
"""

from __future__ import annotations

import os
import random
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable

# CRITICAL: Set before importing api.main so the limiter is built disabled and
# TestClient's "testserver" Host header passes TrustedHostMiddleware.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost", "127.0.0.1"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from core.config import Settings
from core.engine import Simulation

# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


class _ManualHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that never fires on its own."""

    def __init__(self) -> None:
        self.handles: list[_ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        handle = _ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[_ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire_all(self, include_cancelled: bool = False) -> int:
        """Run every armed callback. include_cancelled simulates a cancel that lost the race."""
        fired = 0
        for handle in list(self.handles):
            if handle.fired or (handle.cancelled and not include_cancelled):
                continue
            handle.fired = True
            handle.callback()
            fired += 1
        return fired


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@dataclass
class SimHarness:
    simulation: Simulation
    scheduler: ManualScheduler
    clock: FakeClock


def _make_harness(settings: Settings | None = None, seed: int = 7) -> SimHarness:
    scheduler = ManualScheduler()
    clock = FakeClock()
    sim = Simulation(
        settings or Settings(),
        clock=clock,
        rng=random.Random(seed),
        scheduler=scheduler,
    )
    return SimHarness(simulation=sim, scheduler=scheduler, clock=clock)


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def harness() -> SimHarness:
    """Fresh simulation with a manual scheduler and a fake clock."""
    return _make_harness()


@pytest.fixture
def simulation(harness: SimHarness) -> Simulation:
    return harness.simulation


# ---------------------------------------------------------------------------
# API fixtures -- one TestClient per test module, fresh simulation per test
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _test_lifespan(app):
    """Replacement lifespan: no background ticker, no real timers."""
    app.state.simulation = _make_harness().simulation
    yield


@pytest.fixture(scope="module")
def _client() -> Generator[TestClient, None, None]:
    app.router.lifespan_context = _test_lifespan
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


@dataclass
class ApiHarness(SimHarness):
    client: TestClient


@pytest.fixture
def api_client(_client: TestClient) -> ApiHarness:
    """Yield a TestClient whose app talks to a brand-new simulation.

    The TestClient is shared across the module for speed; the simulation is
    swapped on app.state before every test so no state leaks between tests.
    """
    h = _make_harness()
    app.state.simulation = h.simulation
    return ApiHarness(simulation=h.simulation, scheduler=h.scheduler, clock=h.clock, client=_client)
