from __future__ import annotations

import pytest

from stagemorph.common.auth import AuthContext
from stagemorph.common.errors import (
    HoldTimeNotElapsed,
    InsufficientBalance,
    InvalidParameter,
    MorphingDisabled,
    NoNextStage,
    StageInactive,
)
from stagemorph.engine.events import TokensMorphed
from stagemorph.engine.morph import MorphEngine

from .conftest import ADMIN, START


def test_worked_example(funded: MorphEngine, sink) -> None:
    before_alice = funded.balance_of("alice")
    before_admin = funded.balance_of(ADMIN)

    r = funded.advance("alice", 1_000)

    assert (r.fee, r.net_amount, r.converted_amount) == (10, 990, 1980)
    assert (r.from_stage, r.to_stage, r.at) == (0, 1, START)
    assert funded.balance_of("alice") - before_alice == 980
    assert funded.balance_of(ADMIN) - before_admin == 10

    rec = funded.account("alice")
    assert (rec.current_stage, rec.last_advance_time, rec.advance_count) == (1, START, 1)

    morphed = sink.of_type(TokensMorphed)
    assert morphed[-1] == TokensMorphed(
        holder="alice", from_stage=0, to_stage=1, amount=1_000, converted_amount=1_980, fee=10
    )


def test_zero_fee_mints_nothing_to_admin(funded: MorphEngine, admin: AuthContext) -> None:
    funded.set_fee(admin, 0)
    before_admin = funded.balance_of(ADMIN)
    r = funded.advance("alice", 1_000)
    assert r.fee == 0
    assert r.converted_amount == 2_000
    assert funded.balance_of(ADMIN) == before_admin


def test_zero_amount_is_invalid_and_changes_nothing(funded: MorphEngine) -> None:
    before = funded.snapshot()
    with pytest.raises(InvalidParameter):
        funded.advance("alice", 0)
    assert funded.snapshot() == before


def test_advance_before_lock_is_disabled(engine: MorphEngine, admin: AuthContext) -> None:
    engine.add_stage(admin, "Silver", "SLV", 20_000, 0)
    engine.transfer(ADMIN, "bob", 1_000)
    with pytest.raises(MorphingDisabled):
        engine.advance("bob", 100)
    # Disabled is reported before the amount is even looked at.
    with pytest.raises(MorphingDisabled):
        engine.advance("bob", 0)


def test_insufficient_balance(funded: MorphEngine) -> None:
    with pytest.raises(InsufficientBalance):
        funded.advance("alice", funded.balance_of("alice") + 1)
    assert funded.account("alice").current_stage == 0


def test_no_next_stage(engine: MorphEngine) -> None:
    engine.transfer(ADMIN, "alice", 1_000)
    engine.lock_and_enable("alice", 100, 86_400)
    with pytest.raises(NoNextStage):
        engine.advance("alice", 100)


def test_inactive_next_stage(funded: MorphEngine, admin: AuthContext) -> None:
    funded.set_stage_active(admin, 1, False)
    with pytest.raises(StageInactive):
        funded.advance("alice", 100)
    funded.set_stage_active(admin, 1, True)
    assert funded.advance("alice", 100).to_stage == 1


def test_hold_time_uses_current_stage_and_is_inclusive(funded: MorphEngine, clock) -> None:
    funded.advance("alice", 1_000)  # into stage 1 (hold 3600)

    clock.advance(3_599)
    with pytest.raises(HoldTimeNotElapsed):
        funded.advance("alice", 100)

    clock.advance(1)  # exactly last_advance_time + min_hold_time
    r = funded.advance("alice", 100)
    assert r.to_stage == 2
    assert funded.account("alice").advance_count == 2


def test_target_stage_hold_time_does_not_gate_entry(engine: MorphEngine, admin: AuthContext, clock) -> None:
    # Entering stage 1 is not held back by its own hold time; leaving it is.
    engine.add_stage(admin, "Long", "LNG", 10_000, 10_000)
    engine.add_stage(admin, "After", "AFT", 10_000, 0)
    engine.transfer(ADMIN, "alice", 1_000)
    engine.lock_and_enable("alice", 100, 86_400)

    engine.advance("alice", 100)  # first advance: gate skipped
    with pytest.raises(HoldTimeNotElapsed):
        engine.advance("alice", 100)
    clock.advance(10_000)
    assert engine.advance("alice", 100).to_stage == 2


def test_preloaded_registry_is_used_and_first_advance_is_not_held(clock, sink) -> None:
    from stagemorph.stages.registry import StageRegistry

    reg = StageRegistry()
    reg.define("Base", "BASE", 10_000, 0)
    reg.define("Vault", "VLT", 10_000, 999_999)
    reg.define("Next", "NXT", 10_000, 0)
    engine = MorphEngine(administrator=ADMIN, stages=reg, events=sink, now_fn=clock, initial_supply=1_000)
    assert engine.stages.count() == 3
    engine.transfer(ADMIN, "alice", 500)
    engine.lock_and_enable("alice", 100, 86_400)

    assert engine.advance("alice", 100).to_stage == 1
    with pytest.raises(HoldTimeNotElapsed):
        engine.advance("alice", 50)
    assert engine.seconds_until_eligible("alice") == 999_999


@pytest.mark.parametrize("multiplier,hold", [(1, 999_999), (20_000, 0), (10_000, 60)])
def test_preloaded_registry_with_nonstandard_base_stage_is_rejected(multiplier, hold) -> None:
    from stagemorph.stages.registry import StageRegistry

    reg = StageRegistry()
    reg.define("Base", "BASE", multiplier, hold)
    with pytest.raises(InvalidParameter):
        MorphEngine(administrator=ADMIN, stages=reg)


def test_stage_never_decreases_and_count_increments(funded: MorphEngine, clock) -> None:
    seen = []
    for _ in range(2):
        before = funded.account("alice")
        funded.advance("alice", 100)
        after = funded.account("alice")
        assert after.current_stage == before.current_stage + 1
        assert after.advance_count == before.advance_count + 1
        seen.append(after.current_stage)
        clock.advance(3_600)
    assert seen == [1, 2]


def test_quote_matches_advance(funded: MorphEngine) -> None:
    q = funded.quote_advance("alice", 777)
    r = funded.advance("alice", 777)
    assert (q.from_stage, q.to_stage, q.fee, q.net_amount, q.converted_amount) == (
        r.from_stage,
        r.to_stage,
        r.fee,
        r.net_amount,
        r.converted_amount,
    )
