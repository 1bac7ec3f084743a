"""
Engine notifications.

Events are append-only facts emitted after a transition has been applied.
The engine never reads past events; sinks are free to forward, store, or log
them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Hashable, List, Protocol, runtime_checkable

from stagemorph.common.logging import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    event_type: ClassVar[str] = "event"

    def to_log_event(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"event": self.event_type}
        for f in fields(self):
            v = getattr(self, f.name)
            out[f.name] = v if isinstance(v, (int, str, bool, type(None))) else str(v)
        return out


@dataclass(frozen=True)
class StageAdded(EngineEvent):
    event_type: ClassVar[str] = "StageAdded"

    index: int
    label: str
    symbol: str
    multiplier: int


@dataclass(frozen=True)
class TokensMorphed(EngineEvent):
    """
    `amount` is the burned input; `converted_amount` is what the holder got
    back and `fee` what the administrator got.
    """

    event_type: ClassVar[str] = "TokensMorphed"

    holder: Hashable
    from_stage: int
    to_stage: int
    amount: int
    converted_amount: int = 0
    fee: int = 0


@dataclass(frozen=True)
class TokensLocked(EngineEvent):
    event_type: ClassVar[str] = "TokensLocked"

    holder: Hashable
    amount: int
    duration: int


@dataclass(frozen=True)
class MorphingStatusChanged(EngineEvent):
    event_type: ClassVar[str] = "MorphingStatusChanged"

    holder: Hashable
    enabled: bool


@dataclass(frozen=True)
class FeeRateUpdated(EngineEvent):
    event_type: ClassVar[str] = "FeeRateUpdated"

    old_rate_bps: int
    new_rate_bps: int


@dataclass(frozen=True)
class StageStatusChanged(EngineEvent):
    event_type: ClassVar[str] = "StageStatusChanged"

    index: int
    active: bool


@dataclass(frozen=True)
class EscrowDrained(EngineEvent):
    event_type: ClassVar[str] = "EscrowDrained"

    to: Hashable
    amount: int


@dataclass(frozen=True)
class AdministratorTransferred(EngineEvent):
    event_type: ClassVar[str] = "AdministratorTransferred"

    previous: Hashable
    current: Hashable


@runtime_checkable
class EventSink(Protocol):
    """
    Append-only notification channel.

    Contract:
    - `emit()` is called synchronously, once per event, in emission order.
    """

    def emit(self, event: EngineEvent) -> None: ...


class InMemoryEventSink:
    def __init__(self) -> None:
        self._events: List[EngineEvent] = []

    def emit(self, event: EngineEvent) -> None:
        self._events.append(event)

    @property
    def events(self) -> tuple[EngineEvent, ...]:
        return tuple(self._events)

    def of_type(self, cls: type) -> list[EngineEvent]:
        return [e for e in self._events if isinstance(e, cls)]

    def __len__(self) -> int:
        return len(self._events)


class LoggingEventSink:
    """Forwards every event as one structured `morph.event` log line."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._logger = log or logger

    def emit(self, event: EngineEvent) -> None:
        log_event(self._logger, "morph.event", message=event.event_type, **event.to_log_event())


class FanoutEventSink:
    def __init__(self, *sinks: EventSink) -> None:
        self._sinks = tuple(sinks)

    def emit(self, event: EngineEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)


__all__ = [
    "AdministratorTransferred",
    "EngineEvent",
    "EscrowDrained",
    "EventSink",
    "FanoutEventSink",
    "FeeRateUpdated",
    "InMemoryEventSink",
    "LoggingEventSink",
    "MorphingStatusChanged",
    "StageAdded",
    "StageStatusChanged",
    "TokensLocked",
    "TokensMorphed",
]
