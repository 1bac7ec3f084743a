from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True, slots=True)
class StageDefinition:
    """
    Immutable stage entry.

    Conventions:
    - `multiplier` is in basis points (10000 == 1.0x) and must be > 0.
    - `min_hold_time` is in seconds. It gates the advance *away* from this
      stage, not the advance into it.
    - Toggling `active` produces a new instance via `with_active`; the index
      never changes.
    """

    index: int
    label: str
    symbol: str
    multiplier: int
    min_hold_time: int = 0
    active: bool = True

    def with_active(self, flag: bool) -> "StageDefinition":
        return replace(self, active=bool(flag))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "label": self.label,
            "symbol": self.symbol,
            "multiplier": self.multiplier,
            "min_hold_time": self.min_hold_time,
            "active": self.active,
        }
