"""Shared fixtures: a controllable clock and an application context."""

import sys
import os
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bot.context import AppContext
from core.rate_limiter import RateLimiter
from core.session import SessionStore
from services.backend import BackendClient, RegistrationResult

ADMIN_ID = 100
BANNED_ID = 666
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend() -> MagicMock:
    """Backend client whose sign-up succeeds unless a test says otherwise."""
    client = MagicMock(spec=BackendClient)
    client.sign_up = AsyncMock(return_value=RegistrationResult(status=201, message="Created"))
    return client


@pytest.fixture()
def app(clock, backend) -> AppContext:
    """Development context with one admin, one banned user and M=20 / W=60s."""
    return AppContext(
        sessions=SessionStore(clock=clock),
        limiter=RateLimiter(60_000, 20, clock=clock),
        backend=backend,
        admin_ids=frozenset({ADMIN_ID}),
        banned_ids=frozenset({BANNED_ID}),
        support_chat_id=None,
        environment="development",
        mini_app_url="https://mini.example",
        clock=clock,
        started_at=clock(),
    )
