"""
Authoritative supply accounting.

This module is the only writer of balances. Every change goes through
`ValueLedger.apply`, which validates a whole batch of postings against a
scratch copy before committing anything:
- a batch either lands in full or leaves every balance untouched
- burns/transfers never take a balance below zero (InsufficientBalance)
- no balance and no total supply may exceed MAX_AMOUNT (ArithmeticOverflow)

Invariant after every commit:
  total_supply == sum(holder balances) + escrow == total_minted - total_burned
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Literal, Optional, Tuple

from stagemorph.common.errors import ArithmeticOverflow, InsufficientBalance, InvalidParameter

logger = logging.getLogger(__name__)

# Fail closed at the width of a 256-bit unsigned word.
MAX_AMOUNT = 2**256 - 1

PostingKind = Literal["mint", "burn", "transfer"]


class _EscrowAccount:
    """Reserved identity for the engine-owned escrow balance."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "ESCROW"

    def __str__(self) -> str:
        return "escrow"

    # Singleton: copies and pickles must resolve to the same identity.
    def __copy__(self) -> "_EscrowAccount":
        return self

    def __deepcopy__(self, memo: dict) -> "_EscrowAccount":
        return self

    def __reduce__(self) -> str:
        return "ESCROW"


ESCROW = _EscrowAccount()


@dataclass(frozen=True, slots=True)
class Posting:
    """
    One balance movement.

    - mint:     +amount to `account`
    - burn:     -amount from `account`
    - transfer: -amount from `account`, +amount to `counterparty`
    """

    kind: PostingKind
    account: Hashable
    amount: int
    counterparty: Optional[Hashable] = None

    def __post_init__(self) -> None:
        if self.kind not in ("mint", "burn", "transfer"):
            raise InvalidParameter(f"unknown posting kind {self.kind!r}")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise InvalidParameter(f"amount must be an integer, got {type(self.amount).__name__}")
        if self.amount < 0:
            raise InvalidParameter(f"amount must be >= 0, got {self.amount}")
        if self.kind == "transfer" and self.counterparty is None:
            raise InvalidParameter("transfer requires a counterparty")


def _checked_add(a: int, b: int, *, what: str) -> int:
    out = a + b
    if out > MAX_AMOUNT:
        raise ArithmeticOverflow(f"{what} would exceed MAX_AMOUNT ({a} + {b})")
    return out


class ValueLedger:
    def __init__(self) -> None:
        self._balances: Dict[Hashable, int] = {}
        self._total_supply: int = 0
        self._total_minted: int = 0
        self._total_burned: int = 0

    # --- reads ---

    def balance_of(self, holder: Hashable) -> int:
        return self._balances.get(holder, 0)

    @property
    def escrow_balance(self) -> int:
        return self._balances.get(ESCROW, 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    @property
    def total_minted(self) -> int:
        return self._total_minted

    @property
    def total_burned(self) -> int:
        return self._total_burned

    def balances(self) -> Dict[Hashable, int]:
        return dict(self._balances)

    # --- writes ---

    def mint(self, holder: Hashable, amount: int) -> None:
        self.apply([Posting("mint", holder, amount)])

    def burn(self, holder: Hashable, amount: int) -> None:
        self.apply([Posting("burn", holder, amount)])

    def transfer(self, src: Hashable, dst: Hashable, amount: int) -> None:
        self.apply([Posting("transfer", src, amount, counterparty=dst)])

    def apply(self, postings: Iterable[Posting]) -> Tuple[Posting, ...]:
        """
        Validate every posting against a scratch view, then commit all of them.

        Postings are evaluated in order, so a burn followed by a mint on the
        same account sees the post-burn balance.
        """
        batch = tuple(postings)
        scratch: Dict[Hashable, int] = {}
        supply = self._total_supply
        minted = 0
        burned = 0

        def _bal(acct: Hashable) -> int:
            if acct in scratch:
                return scratch[acct]
            return self._balances.get(acct, 0)

        for p in batch:
            if p.kind == "mint":
                supply = _checked_add(supply, p.amount, what="total supply")
                scratch[p.account] = _checked_add(_bal(p.account), p.amount, what=f"balance of {p.account!r}")
                minted += p.amount
            elif p.kind == "burn":
                have = _bal(p.account)
                if have < p.amount:
                    raise InsufficientBalance(f"cannot burn {p.amount} from {p.account!r}: balance={have}")
                scratch[p.account] = have - p.amount
                supply -= p.amount
                burned += p.amount
            else:
                have = _bal(p.account)
                if have < p.amount:
                    raise InsufficientBalance(
                        f"cannot transfer {p.amount} from {p.account!r}: balance={have}"
                    )
                scratch[p.account] = have - p.amount
                scratch[p.counterparty] = _checked_add(
                    _bal(p.counterparty), p.amount, what=f"balance of {p.counterparty!r}"
                )

        for acct, bal in scratch.items():
            # Absent and zero read the same; keep the table free of empties.
            if bal:
                self._balances[acct] = bal
            else:
                self._balances.pop(acct, None)
        self._total_supply = supply
        self._total_minted += minted
        self._total_burned += burned
        if batch:
            logger.debug("ledger batch applied postings=%d minted=%d burned=%d", len(batch), minted, burned)
        return batch

    def revert(self, applied: Iterable[Posting]) -> None:
        """
        Undo a batch previously returned by `apply`, newest posting first.

        The inverse goes through the same validation as any batch, so it fails
        (and changes nothing) if the funds it needs back have since moved.
        Mint/burn counters are restored rather than inflated by the inverse.
        """
        inverse = []
        reverted = 0
        for p in reversed(tuple(applied)):
            if p.kind == "mint":
                inverse.append(Posting("burn", p.account, p.amount))
                reverted += p.amount
            elif p.kind == "burn":
                inverse.append(Posting("mint", p.account, p.amount))
                reverted += p.amount
            else:
                inverse.append(Posting("transfer", p.counterparty, p.amount, counterparty=p.account))
        self.apply(inverse)
        # apply() counted each inverse mint/burn again; take both sides back out.
        self._total_minted -= reverted
        self._total_burned -= reverted
