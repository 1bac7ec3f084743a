from __future__ import annotations

import pytest

from stagemorph.common.errors import ArithmeticOverflow, InsufficientBalance, InvalidParameter
from stagemorph.ledger.value_ledger import ESCROW, MAX_AMOUNT, Posting, ValueLedger


def _assert_supply_invariant(ledger: ValueLedger) -> None:
    assert sum(ledger.balances().values()) == ledger.total_supply
    assert ledger.total_supply == ledger.total_minted - ledger.total_burned
    assert all(v >= 0 for v in ledger.balances().values())


def test_mint_burn_transfer_keep_supply_consistent() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 100)
    ledger.transfer("alice", "bob", 40)
    ledger.transfer("bob", ESCROW, 15)
    ledger.burn("alice", 10)

    assert ledger.balance_of("alice") == 50
    assert ledger.balance_of("bob") == 25
    assert ledger.escrow_balance == 15
    assert ledger.total_supply == 90
    _assert_supply_invariant(ledger)


def test_zero_mint_is_a_noop() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 0)
    assert ledger.balance_of("alice") == 0
    assert ledger.total_supply == 0


def test_burn_more_than_balance_fails() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 5)
    with pytest.raises(InsufficientBalance):
        ledger.burn("alice", 6)
    assert ledger.balance_of("alice") == 5


def test_transfer_more_than_balance_fails() -> None:
    ledger = ValueLedger()
    with pytest.raises(InsufficientBalance):
        ledger.transfer("alice", "bob", 1)


def test_negative_amount_is_invalid() -> None:
    ledger = ValueLedger()
    with pytest.raises(InvalidParameter):
        ledger.mint("alice", -1)


def test_overflow_fails_closed() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", MAX_AMOUNT)
    with pytest.raises(ArithmeticOverflow):
        ledger.mint("bob", 1)
    assert ledger.total_supply == MAX_AMOUNT
    assert ledger.balance_of("bob") == 0


def test_batch_is_all_or_nothing() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 100)
    with pytest.raises(InsufficientBalance):
        ledger.apply(
            [
                Posting("burn", "alice", 100),
                Posting("mint", "alice", 200),
                Posting("burn", "bob", 1),
            ]
        )
    assert ledger.balance_of("alice") == 100
    assert ledger.total_supply == 100
    assert ledger.total_burned == 0


def test_batch_postings_see_earlier_postings() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 100)
    ledger.apply([Posting("burn", "alice", 100), Posting("mint", "alice", 250)])
    assert ledger.balance_of("alice") == 250
    _assert_supply_invariant(ledger)


def test_revert_undoes_a_batch_and_its_counters() -> None:
    ledger = ValueLedger()
    ledger.mint("alice", 1_000)
    before = (ledger.balances(), ledger.total_supply, ledger.total_minted, ledger.total_burned)

    applied = ledger.apply(
        [
            Posting("burn", "alice", 100),
            Posting("mint", "alice", 198),
            Posting("mint", "admin", 1),
            Posting("transfer", "alice", 50, counterparty=ESCROW),
        ]
    )
    ledger.revert(applied)

    assert (ledger.balances(), ledger.total_supply, ledger.total_minted, ledger.total_burned) == before
    _assert_supply_invariant(ledger)


def test_revert_fails_closed_when_funds_have_moved() -> None:
    ledger = ValueLedger()
    applied = ledger.apply([Posting("mint", "alice", 10)])
    ledger.transfer("alice", "bob", 10)

    with pytest.raises(InsufficientBalance):
        ledger.revert(applied)
    assert (ledger.balance_of("alice"), ledger.balance_of("bob"), ledger.total_supply) == (0, 10, 10)
