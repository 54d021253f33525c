from datetime import datetime, timedelta, timezone
from itertools import count

import pytest


class FakeClock:
    """Advances one second per call so every mutation gets a distinct timestamp."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def id_factory():
    counter = count(1)
    return lambda: f"task-{next(counter):03d}"
