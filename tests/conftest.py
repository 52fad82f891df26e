"""
Shared fixtures.

Everything renders offline at 8 kHz on a virtual clock, so tests are
fast and deterministic.
"""

import numpy as np
import pytest

from spatia.graph.context import AudioContext
from spatia.movement.scheduler import FrameScheduler, VirtualClock
from spatia.testing import create_offline_session


SAMPLE_RATE = 8000


@pytest.fixture(autouse=True)
def reset_global_logger(monkeypatch):
    monkeypatch.setattr("spatia.monitoring.logging._global_logger", None)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def virtual_clock():
    return VirtualClock()


@pytest.fixture
def scheduler(virtual_clock):
    return FrameScheduler(virtual_clock, frame_rate=60.0)


@pytest.fixture
def context():
    ctx = AudioContext(sample_rate=SAMPLE_RATE, block_size=128)
    yield ctx
    ctx.close()


@pytest.fixture
def session():
    """Session whose audio has not been started yet."""
    s = create_offline_session(SAMPLE_RATE, start_audio=False, use_filters=False)
    yield s
    s.close()


@pytest.fixture
def ready_session():
    """Session with audio started."""
    s = create_offline_session(SAMPLE_RATE, use_filters=False)
    yield s
    s.close()
