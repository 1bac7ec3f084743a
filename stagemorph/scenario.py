"""
Scenario replay.

A scenario is a JSON document describing an engine configuration and an
ordered list of operations. Steps run against a `ManualClock`; a failing step
records its reason code and the replay continues with the next step, the same
way an external caller would decide for itself whether to resubmit.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from stagemorph.common.auth import AuthContext
from stagemorph.common.clock import ManualClock
from stagemorph.common.config import EngineSettings
from stagemorph.common.errors import MorphError
from stagemorph.common.logging import bind_correlation_id, log_event
from stagemorph.engine.events import EventSink
from stagemorph.engine.morph import MorphEngine

logger = logging.getLogger(__name__)

StepOp = Literal[
    "sleep",
    "transfer",
    "lock",
    "advance",
    "can_advance",
    "quote",
    "add_stage",
    "set_fee",
    "set_stage_active",
    "set_morphing_enabled",
    "emergency_drain",
    "transfer_administration",
]


class ScenarioStep(BaseModel):
    op: StepOp
    caller: Optional[str] = Field(default=None, description="Issuer of administrative steps.")
    holder: Optional[str] = None
    sender: Optional[str] = None
    to: Optional[str] = None
    amount: Optional[int] = None
    duration: Optional[int] = None
    seconds: Optional[int] = Field(default=None, ge=0)
    label: Optional[str] = None
    symbol: Optional[str] = None
    multiplier: Optional[int] = None
    min_hold_time: int = 0
    index: Optional[int] = None
    enabled: Optional[bool] = None
    rate_bps: Optional[int] = None


class Scenario(BaseModel):
    administrator: str = "admin"
    start_time: int = Field(default=1_700_000_000, ge=0)
    settings: EngineSettings = Field(default_factory=EngineSettings)
    steps: List[ScenarioStep] = Field(default_factory=list)


class StepResult(BaseModel):
    step: int
    op: str
    ok: bool
    reason_code: Optional[str] = None
    error: Optional[str] = None
    result: Any = None


def _require(value: Any, field: str, op: str) -> Any:
    if value is None:
        raise ValueError(f"step {op!r} requires {field!r}")
    return value


def _ctx(step: ScenarioStep) -> AuthContext:
    return AuthContext(caller=_require(step.caller, "caller", step.op))


def _dispatch(engine: MorphEngine, clock: ManualClock, step: ScenarioStep) -> Any:
    op = step.op
    handlers: Dict[str, Callable[[], Any]] = {
        "sleep": lambda: clock.advance(_require(step.seconds, "seconds", op)),
        "transfer": lambda: engine.transfer(
            _require(step.sender, "sender", op), _require(step.to, "to", op), _require(step.amount, "amount", op)
        ),
        "lock": lambda: engine.lock_and_enable(
            _require(step.holder, "holder", op),
            _require(step.amount, "amount", op),
            _require(step.duration, "duration", op),
        ),
        "advance": lambda: engine.advance(_require(step.holder, "holder", op), _require(step.amount, "amount", op)),
        "can_advance": lambda: engine.can_advance(_require(step.holder, "holder", op)),
        "quote": lambda: engine.quote_advance(
            _require(step.holder, "holder", op), _require(step.amount, "amount", op)
        ),
        "add_stage": lambda: engine.add_stage(
            _ctx(step),
            _require(step.label, "label", op),
            _require(step.symbol, "symbol", op),
            _require(step.multiplier, "multiplier", op),
            step.min_hold_time,
        ),
        "set_fee": lambda: engine.set_fee(_ctx(step), _require(step.rate_bps, "rate_bps", op)),
        "set_stage_active": lambda: engine.set_stage_active(
            _ctx(step), _require(step.index, "index", op), _require(step.enabled, "enabled", op)
        ),
        "set_morphing_enabled": lambda: engine.set_morphing_enabled(
            _ctx(step), _require(step.holder, "holder", op), _require(step.enabled, "enabled", op)
        ),
        "emergency_drain": lambda: engine.emergency_drain(
            _ctx(step), _require(step.to, "to", op), _require(step.amount, "amount", op)
        ),
        "transfer_administration": lambda: engine.transfer_administration(
            _ctx(step), _require(step.to, "to", op)
        ),
    }
    return handlers[op]()


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    fields = getattr(value, "__dataclass_fields__", None)
    if fields:
        return {k: _jsonable(getattr(value, k)) for k in fields}
    return str(value)


def run_scenario(scenario: Scenario, *, events: EventSink | None = None) -> Dict[str, Any]:
    """
    Replay `scenario` on a fresh engine and return per-step results plus the
    final state snapshot.

    Malformed steps (missing fields) raise ValueError; engine rejections do not.
    """
    clock = ManualClock(scenario.start_time)
    engine = MorphEngine.from_settings(
        scenario.settings,
        administrator=scenario.administrator,
        events=events,
        now_fn=clock,
    )

    results: List[StepResult] = []
    for i, step in enumerate(scenario.steps):
        with bind_correlation_id(correlation_id=f"step-{i}"):
            try:
                out = _dispatch(engine, clock, step)
            except MorphError as e:
                results.append(StepResult(step=i, op=step.op, ok=False, reason_code=e.reason_code, error=str(e)))
                continue
            results.append(StepResult(step=i, op=step.op, ok=True, result=_jsonable(out)))

    ok = sum(1 for r in results if r.ok)
    log_event(logger, "scenario.complete", steps=len(results), succeeded=ok, failed=len(results) - ok)
    return {
        "results": [r.model_dump() for r in results],
        "clock": clock.now,
        "snapshot": engine.snapshot(),
    }


__all__ = ["Scenario", "ScenarioStep", "StepResult", "run_scenario"]
