from __future__ import annotations

import logging
from typing import List, Tuple

from stagemorph.common.errors import CapacityExceeded, InvalidParameter, NotFound
from stagemorph.stages.models import StageDefinition

logger = logging.getLogger(__name__)

MAX_STAGES = 10


def _req_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidParameter(f"{field} must be a non-empty string")
    return value


def _req_int(value: object, field: str) -> int:
    # bool is an int subclass; never accept it as an amount.
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter(f"{field} must be an integer, got {type(value).__name__}")
    return value


class StageRegistry:
    """
    Ordered, append-only table of stage definitions.

    Indices are assigned sequentially from 0 and never reused or removed; only
    the `active` flag of an existing entry can change.
    """

    def __init__(self) -> None:
        self._stages: List[StageDefinition] = []

    def define(self, label: str, symbol: str, multiplier: int, min_hold_time: int = 0) -> int:
        label = _req_text(label, "label")
        symbol = _req_text(symbol, "symbol")
        multiplier = _req_int(multiplier, "multiplier")
        min_hold_time = _req_int(min_hold_time, "min_hold_time")
        if multiplier <= 0:
            raise InvalidParameter(f"multiplier must be > 0, got {multiplier}")
        if min_hold_time < 0:
            raise InvalidParameter(f"min_hold_time must be >= 0, got {min_hold_time}")
        if len(self._stages) >= MAX_STAGES:
            raise CapacityExceeded(f"stage registry is full ({MAX_STAGES} stages)")

        index = len(self._stages)
        self._stages.append(
            StageDefinition(
                index=index,
                label=label,
                symbol=symbol,
                multiplier=multiplier,
                min_hold_time=min_hold_time,
                active=True,
            )
        )
        logger.debug("stage defined index=%s label=%s multiplier=%s", index, label, multiplier)
        return index

    def get(self, index: int) -> StageDefinition:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0 or index >= len(self._stages):
            raise NotFound(f"stage {index!r} does not exist (count={len(self._stages)})")
        return self._stages[index]

    def set_active(self, index: int, flag: bool) -> None:
        stage = self.get(index)
        self._stages[index] = stage.with_active(flag)

    def count(self) -> int:
        return len(self._stages)

    def stages(self) -> Tuple[StageDefinition, ...]:
        return tuple(self._stages)

    def __len__(self) -> int:
        return len(self._stages)
