from __future__ import annotations

import logging

import pytest

from stagemorph.common.auth import AuthContext
from stagemorph.common.clock import ManualClock
from stagemorph.engine.events import InMemoryEventSink
from stagemorph.engine.morph import MorphEngine

ADMIN = "admin"
START = 1_700_000_000


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """
    Test hygiene: the CLI installs its own JSON handler on the root logger.

    Put the root logger back so later tests (and caplog) are unaffected.
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def admin() -> AuthContext:
    return AuthContext(caller=ADMIN)


@pytest.fixture
def engine(clock: ManualClock, sink: InMemoryEventSink) -> MorphEngine:
    return MorphEngine(administrator=ADMIN, events=sink, now_fn=clock, initial_supply=1_000_000)


@pytest.fixture
def funded(engine: MorphEngine, admin: AuthContext) -> MorphEngine:
    """
    Engine with stage 1 (2.0x, 1h hold), stage 2 (1.5x, no hold), a 1% fee,
    and alice holding 10_000 with morphing enabled through a 2_000 lock.
    """
    engine.add_stage(admin, "Silver", "SLV", 20_000, 3_600)
    engine.add_stage(admin, "Gold", "GLD", 15_000, 0)
    engine.set_fee(admin, 100)
    engine.transfer(ADMIN, "alice", 12_000)
    engine.lock_and_enable("alice", 2_000, 86_400)
    return engine
