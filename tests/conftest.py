"""Shared fixtures: loopback peers, a controllable clock, isolated registries."""

import pytest
from loguru import logger

from iqversion import ConnectionRegistry, ServiceDiscovery, VersionManager
from iqversion.transports.loopback import LoopbackConnection


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pair():
    a, b = LoopbackConnection.pair("alice@example.com/home", "bob@example.com/work")
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def discovery():
    return ServiceDiscovery()


@pytest.fixture
def registry(clock, discovery):
    """Manager registry isolated from the process-wide one."""
    return ConnectionRegistry(lambda c: VersionManager(c, discovery=discovery, clock=clock))


@pytest.fixture
def log_records():
    records = []
    handler_id = logger.add(lambda m: records.append(m.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
