from __future__ import annotations

import pytest

from stagemorph.common.errors import CapacityExceeded, InvalidParameter, NotFound
from stagemorph.stages.registry import MAX_STAGES, StageRegistry


def test_define_assigns_sequential_indices() -> None:
    reg = StageRegistry()
    assert reg.define("Base", "BASE", 10_000, 0) == 0
    assert reg.define("Silver", "SLV", 20_000, 60) == 1
    assert reg.count() == 2

    s1 = reg.get(1)
    assert (s1.index, s1.label, s1.symbol, s1.multiplier, s1.min_hold_time, s1.active) == (
        1,
        "Silver",
        "SLV",
        20_000,
        60,
        True,
    )


@pytest.mark.parametrize(
    "label,symbol,multiplier,hold",
    [
        ("", "SLV", 20_000, 0),
        ("Silver", "", 20_000, 0),
        ("Silver", "SLV", 0, 0),
        ("Silver", "SLV", -5, 0),
        ("Silver", "SLV", 20_000, -1),
    ],
)
def test_define_rejects_invalid_parameters(label, symbol, multiplier, hold) -> None:
    reg = StageRegistry()
    with pytest.raises(InvalidParameter):
        reg.define(label, symbol, multiplier, hold)
    assert reg.count() == 0


def test_eleventh_stage_is_rejected_and_count_stays_at_max() -> None:
    reg = StageRegistry()
    for i in range(MAX_STAGES):
        reg.define(f"S{i}", f"S{i}", 10_000 + i, 0)
    with pytest.raises(CapacityExceeded):
        reg.define("Overflow", "OVF", 10_000, 0)
    assert reg.count() == MAX_STAGES == 10


def test_get_out_of_range_is_not_found() -> None:
    reg = StageRegistry()
    reg.define("Base", "BASE", 10_000, 0)
    with pytest.raises(NotFound):
        reg.get(1)
    with pytest.raises(NotFound):
        reg.get(-1)


def test_label_only_needs_to_be_non_empty() -> None:
    reg = StageRegistry()
    reg.define(" ", "\t", 10_000, 0)
    assert (reg.get(0).label, reg.get(0).symbol) == (" ", "\t")


def test_set_active_toggles_without_changing_identity() -> None:
    reg = StageRegistry()
    reg.define("Base", "BASE", 10_000, 0)
    reg.set_active(0, False)
    assert reg.get(0).active is False
    assert reg.get(0).index == 0
    reg.set_active(0, True)
    assert reg.get(0).active is True

    with pytest.raises(NotFound):
        reg.set_active(3, True)
