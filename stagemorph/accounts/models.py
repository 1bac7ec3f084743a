from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict


@dataclass(slots=True)
class AccountRecord:
    """
    Per-holder morph state. Zero values mean "never touched".

    - last_advance_time == 0 means the holder has never advanced, which skips
      the hold-time gate on the first advance.
    - locked_amount is cumulative: it grows with every lock and is never
      reduced (escrow drains do not touch it).
    - in_progress is the re-entrancy flag for holder operations.
    """

    current_stage: int = 0
    last_advance_time: int = 0
    advance_count: int = 0
    locked_amount: int = 0
    morphing_enabled: bool = False
    in_progress: bool = False

    def copy(self) -> "AccountRecord":
        return replace(self)

    def restore(self, saved: "AccountRecord") -> None:
        """Put the morph fields back to `saved`; in_progress is left to its owner."""
        self.current_stage = saved.current_stage
        self.last_advance_time = saved.last_advance_time
        self.advance_count = saved.advance_count
        self.locked_amount = saved.locked_amount
        self.morphing_enabled = saved.morphing_enabled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_stage": self.current_stage,
            "last_advance_time": self.last_advance_time,
            "advance_count": self.advance_count,
            "locked_amount": self.locked_amount,
            "morphing_enabled": self.morphing_enabled,
        }
