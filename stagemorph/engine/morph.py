"""
Staged-value transformation engine.

A holder opts in by locking part of their balance into escrow
(`lock_and_enable`). From then on they may `advance` one stage at a time:
the advanced amount is burned and re-minted at the next stage's multiplier,
net of the conversion fee, which is minted to the administrator.

Ordering rules:
- every check runs before any mutation (fail fast, mutate last)
- ledger effects of one transition are submitted as a single batch, so they
  either all land or none do
- a holder operation that fails after its batch landed (e.g. an event sink
  raising) is rolled back: the batch is reverted and the record restored
- `can_advance` runs the very same gate helpers as `advance`
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Tuple

from stagemorph.accounts.models import AccountRecord
from stagemorph.accounts.store import AccountStore
from stagemorph.common.auth import AuthContext
from stagemorph.common.clock import SystemClock
from stagemorph.common.config import EngineSettings
from stagemorph.common.errors import (
    HoldTimeNotElapsed,
    InsufficientBalance,
    InvalidParameter,
    MorphError,
    MorphingDisabled,
    NoNextStage,
    ReentrantCall,
    StageInactive,
    Unauthorized,
)
from stagemorph.common.logging import log_event
from stagemorph.engine.conversion import Conversion, compute_conversion, validate_fee_rate
from stagemorph.engine.events import (
    AdministratorTransferred,
    EngineEvent,
    EscrowDrained,
    EventSink,
    FeeRateUpdated,
    LoggingEventSink,
    MorphingStatusChanged,
    StageAdded,
    StageStatusChanged,
    TokensLocked,
    TokensMorphed,
)
from stagemorph.ledger.value_ledger import ESCROW, Posting, ValueLedger
from stagemorph.stages.models import BPS_DENOMINATOR, StageDefinition
from stagemorph.stages.registry import StageRegistry

logger = logging.getLogger(__name__)

MIN_LOCK_DURATION = 86_400  # 1 day
MAX_LOCK_DURATION = 31_536_000  # 365 days


@dataclass(frozen=True, slots=True)
class MorphQuote:
    from_stage: int
    to_stage: int
    amount: int
    fee: int
    net_amount: int
    converted_amount: int


@dataclass(frozen=True, slots=True)
class MorphReceipt:
    holder: Hashable
    from_stage: int
    to_stage: int
    amount: int
    fee: int
    net_amount: int
    converted_amount: int
    at: int


@dataclass(frozen=True, slots=True)
class AccountView:
    holder: Hashable
    balance: int
    current_stage: int
    stage_label: str
    stage_symbol: str
    last_advance_time: int
    advance_count: int
    locked_amount: int
    morphing_enabled: bool


def _req_amount(amount: Any, *, field: str = "amount") -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidParameter(f"{field} must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidParameter(f"{field} must be > 0, got {amount}")
    return amount


class MorphEngine:
    """
    Orchestrates lock, advance, eligibility and administrative transitions.

    The registry, account store and ledger are owned collections handed in at
    construction; their lifetime is the engine's. When none are given, fresh
    empty ones are created.
    """

    def __init__(
        self,
        *,
        administrator: Hashable,
        stages: StageRegistry | None = None,
        accounts: AccountStore | None = None,
        ledger: ValueLedger | None = None,
        events: EventSink | None = None,
        now_fn: Callable[[], int] | None = None,
        fee_rate_bps: int = 0,
        base_label: str = "Base",
        base_symbol: str = "BASE",
        initial_supply: int = 0,
    ) -> None:
        if administrator is None or administrator is ESCROW:
            raise InvalidParameter("administrator identity is required")
        self._administrator: Hashable = administrator
        self._stages = stages if stages is not None else StageRegistry()
        self._accounts = accounts if accounts is not None else AccountStore()
        self._ledger = ledger if ledger is not None else ValueLedger()
        self._events: EventSink = events if events is not None else LoggingEventSink()
        self._now: Callable[[], int] = now_fn or SystemClock()
        self._fee_rate_bps = validate_fee_rate(fee_rate_bps)

        if self._stages.count() == 0:
            self._stages.define(base_label, base_symbol, BPS_DENOMINATOR, 0)
            self._emit(StageAdded(index=0, label=base_label, symbol=base_symbol, multiplier=BPS_DENOMINATOR))
        else:
            base = self._stages.get(0)
            if base.multiplier != BPS_DENOMINATOR or base.min_hold_time != 0:
                raise InvalidParameter(
                    f"stage 0 must have multiplier {BPS_DENOMINATOR} and no hold time, "
                    f"got multiplier={base.multiplier} min_hold_time={base.min_hold_time}"
                )

        if initial_supply:
            self._ledger.mint(administrator, _req_amount(initial_supply, field="initial_supply"))

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        *,
        administrator: Hashable,
        events: EventSink | None = None,
        now_fn: Callable[[], int] | None = None,
    ) -> "MorphEngine":
        return cls(
            administrator=administrator,
            events=events,
            now_fn=now_fn,
            fee_rate_bps=settings.fee_rate_bps,
            base_label=settings.token_name,
            base_symbol=settings.token_symbol,
            initial_supply=settings.initial_supply,
        )

    # --- collaborators / scalar state ---

    @property
    def administrator(self) -> Hashable:
        return self._administrator

    @property
    def fee_rate_bps(self) -> int:
        return self._fee_rate_bps

    @property
    def stages(self) -> StageRegistry:
        return self._stages

    @property
    def accounts(self) -> AccountStore:
        return self._accounts

    @property
    def ledger(self) -> ValueLedger:
        return self._ledger

    def balance_of(self, holder: Hashable) -> int:
        return self._ledger.balance_of(holder)

    @property
    def escrow_balance(self) -> int:
        return self._ledger.escrow_balance

    @property
    def total_supply(self) -> int:
        return self._ledger.total_supply

    # --- internals ---

    def _emit(self, event: EngineEvent) -> None:
        self._events.emit(event)

    def _reject(self, op: str, holder: Hashable, err: MorphError) -> None:
        log_event(
            logger,
            "morph.rejected",
            severity="WARNING",
            message=str(err),
            op=op,
            holder=str(holder),
            reason_code=err.reason_code,
        )

    def _require_admin(self, ctx: AuthContext) -> None:
        if not isinstance(ctx, AuthContext) or ctx.caller != self._administrator:
            caller = getattr(ctx, "caller", None)
            err = Unauthorized(f"caller {caller!r} is not the administrator")
            self._reject("admin", caller, err)
            raise err

    @contextmanager
    def _holder_operation(self, holder: Hashable, op: str) -> Iterator[Tuple[AccountRecord, List[Posting]]]:
        """
        Mark the holder's record busy for the whole call, event emission included.

        A second lock/advance for the same holder while the flag is up is
        rejected with ReentrantCall; the flag is always lowered on exit.

        Yields the live record and a journal. Batches the body applies must be
        added to the journal; if the body raises, they are reverted and the
        record is restored, so a failed call leaves no state behind.
        """
        if holder is None or holder is ESCROW:
            raise InvalidParameter("holder identity is required")
        record = self._accounts.get_or_create(holder)
        if record.in_progress:
            err = ReentrantCall(f"{op} re-entered for holder {holder!r}")
            self._reject(op, holder, err)
            raise err
        saved = record.copy()
        journal: List[Posting] = []
        record.in_progress = True
        try:
            yield record, journal
        except Exception as e:
            record.restore(saved)
            if journal:
                self._ledger.revert(journal)
                log_event(
                    logger,
                    "morph.rolled_back",
                    severity="WARNING",
                    op=op,
                    holder=str(holder),
                    postings=len(journal),
                )
            if isinstance(e, MorphError):
                self._reject(op, holder, e)
            raise
        finally:
            record.in_progress = False

    @staticmethod
    def _require_enabled(record: AccountRecord) -> None:
        if not record.morphing_enabled:
            raise MorphingDisabled("morphing is not enabled for this holder")

    def _resolve_next_stage(self, record: AccountRecord, now: int) -> StageDefinition:
        """
        Stage gates shared by `advance`, `can_advance` and `seconds_until_eligible`.

        The hold time read here is the *current* stage's, and it only applies
        once the holder has advanced at least once.
        """
        next_index = record.current_stage + 1
        if next_index >= self._stages.count():
            raise NoNextStage(f"no stage after {record.current_stage} (count={self._stages.count()})")
        target = self._stages.get(next_index)
        if not target.active:
            raise StageInactive(f"stage {next_index} is inactive")
        if record.last_advance_time > 0:
            current = self._stages.get(record.current_stage)
            ready_at = record.last_advance_time + current.min_hold_time
            if now < ready_at:
                raise HoldTimeNotElapsed(f"hold time not elapsed: now={now} ready_at={ready_at}")
        return target

    def _conversion(self, amount: int, target: StageDefinition) -> Conversion:
        return compute_conversion(amount=amount, fee_rate_bps=self._fee_rate_bps, multiplier_bps=target.multiplier)

    # --- holder operations ---

    def lock_and_enable(self, holder: Hashable, amount: int, duration: int) -> None:
        """
        Move `amount` into escrow and switch morphing on for `holder`.

        `duration` is range-checked and published on the event; nothing
        releases escrowed funds when it runs out.
        """
        with self._holder_operation(holder, "lock") as (record, journal):
            amount = _req_amount(amount)
            if isinstance(duration, bool) or not isinstance(duration, int):
                raise InvalidParameter(f"duration must be an integer, got {type(duration).__name__}")
            if duration < MIN_LOCK_DURATION or duration > MAX_LOCK_DURATION:
                raise InvalidParameter(
                    f"duration must be within [{MIN_LOCK_DURATION}, {MAX_LOCK_DURATION}] seconds, got {duration}"
                )
            have = self._ledger.balance_of(holder)
            if have < amount:
                raise InsufficientBalance(f"cannot lock {amount}: balance={have}")

            journal.extend(self._ledger.apply([Posting("transfer", holder, amount, counterparty=ESCROW)]))
            record.locked_amount += amount
            record.morphing_enabled = True

            log_event(
                logger,
                "morph.lock",
                holder=str(holder),
                amount=amount,
                duration=duration,
                locked_amount=record.locked_amount,
            )
            self._emit(TokensLocked(holder=holder, amount=amount, duration=duration))
            self._emit(MorphingStatusChanged(holder=holder, enabled=True))

    def advance(self, holder: Hashable, amount: int) -> MorphReceipt:
        """
        Convert `amount` of the holder's balance to the next stage.

        Rejections, in check order: MorphingDisabled, InvalidParameter,
        InsufficientBalance, NoNextStage, StageInactive, HoldTimeNotElapsed.
        """
        with self._holder_operation(holder, "advance") as (record, journal):
            self._require_enabled(record)
            amount = _req_amount(amount)
            have = self._ledger.balance_of(holder)
            if have < amount:
                raise InsufficientBalance(f"cannot advance {amount}: balance={have}")
            now = int(self._now())
            target = self._resolve_next_stage(record, now)
            conv = self._conversion(amount, target)

            postings = [
                Posting("burn", holder, amount),
                Posting("mint", holder, conv.converted_amount),
            ]
            if conv.fee > 0:
                postings.append(Posting("mint", self._administrator, conv.fee))
            journal.extend(self._ledger.apply(postings))

            from_stage = record.current_stage
            record.current_stage = target.index
            record.last_advance_time = now
            record.advance_count += 1

            receipt = MorphReceipt(
                holder=holder,
                from_stage=from_stage,
                to_stage=target.index,
                amount=amount,
                fee=conv.fee,
                net_amount=conv.net_amount,
                converted_amount=conv.converted_amount,
                at=now,
            )
            log_event(
                logger,
                "morph.advance",
                holder=str(holder),
                from_stage=from_stage,
                to_stage=target.index,
                amount=amount,
                fee=conv.fee,
                converted_amount=conv.converted_amount,
                advance_count=record.advance_count,
            )
            self._emit(
                TokensMorphed(
                    holder=holder,
                    from_stage=from_stage,
                    to_stage=target.index,
                    amount=amount,
                    converted_amount=conv.converted_amount,
                    fee=conv.fee,
                )
            )
            return receipt

    def transfer(self, sender: Hashable, to: Hashable, amount: int) -> None:
        if sender is ESCROW or to is ESCROW:
            raise InvalidParameter("escrow is only reachable through lock and drain")
        amount = _req_amount(amount)
        # A holder mid-operation cannot move funds its rollback may need back.
        if self._accounts.get(sender).in_progress:
            err = ReentrantCall(f"transfer re-entered for holder {sender!r}")
            self._reject("transfer", sender, err)
            raise err
        self._ledger.transfer(sender, to, amount)
        log_event(logger, "morph.transfer", sender=str(sender), to=str(to), amount=amount)

    # --- queries ---

    def can_advance(self, holder: Hashable) -> bool:
        """
        True iff morphing is enabled, an active next stage exists and the hold
        gate is open. Balance sufficiency is not part of eligibility.
        """
        record = self._accounts.get(holder)
        try:
            self._require_enabled(record)
            self._resolve_next_stage(record, int(self._now()))
        except MorphError:
            return False
        return True

    def seconds_until_eligible(self, holder: Hashable) -> Optional[int]:
        """0 when advancing is allowed now, remaining seconds while held, None when impossible."""
        record = self._accounts.get(holder)
        now = int(self._now())
        try:
            self._require_enabled(record)
            self._resolve_next_stage(record, now)
        except HoldTimeNotElapsed:
            current = self._stages.get(record.current_stage)
            return record.last_advance_time + current.min_hold_time - now
        except MorphError:
            return None
        return 0

    def quote_advance(self, holder: Hashable, amount: int) -> MorphQuote:
        """Preview the conversion for the holder's next stage. Ignores gates other than stage existence."""
        amount = _req_amount(amount)
        record = self._accounts.get(holder)
        next_index = record.current_stage + 1
        if next_index >= self._stages.count():
            raise NoNextStage(f"no stage after {record.current_stage} (count={self._stages.count()})")
        conv = self._conversion(amount, self._stages.get(next_index))
        return MorphQuote(
            from_stage=record.current_stage,
            to_stage=next_index,
            amount=amount,
            fee=conv.fee,
            net_amount=conv.net_amount,
            converted_amount=conv.converted_amount,
        )

    def account(self, holder: Hashable) -> AccountRecord:
        return self._accounts.get(holder)

    def account_view(self, holder: Hashable) -> AccountView:
        record = self._accounts.get(holder)
        stage = self._stages.get(record.current_stage)
        return AccountView(
            holder=holder,
            balance=self._ledger.balance_of(holder),
            current_stage=record.current_stage,
            stage_label=stage.label,
            stage_symbol=stage.symbol,
            last_advance_time=record.last_advance_time,
            advance_count=record.advance_count,
            locked_amount=record.locked_amount,
            morphing_enabled=record.morphing_enabled,
        )

    # --- administrative transitions ---

    def add_stage(self, ctx: AuthContext, label: str, symbol: str, multiplier: int, min_hold_time: int = 0) -> int:
        self._require_admin(ctx)
        try:
            index = self._stages.define(label, symbol, multiplier, min_hold_time)
        except MorphError as e:
            self._reject("add_stage", ctx.caller, e)
            raise
        log_event(
            logger,
            "morph.admin.add_stage",
            index=index,
            label=label,
            symbol=symbol,
            multiplier=multiplier,
            min_hold_time=min_hold_time,
        )
        self._emit(StageAdded(index=index, label=label, symbol=symbol, multiplier=multiplier))
        return index

    def set_fee(self, ctx: AuthContext, rate_bps: int) -> None:
        self._require_admin(ctx)
        try:
            rate_bps = validate_fee_rate(rate_bps)
        except MorphError as e:
            self._reject("set_fee", ctx.caller, e)
            raise
        old = self._fee_rate_bps
        self._fee_rate_bps = rate_bps
        log_event(logger, "morph.admin.set_fee", old_rate_bps=old, new_rate_bps=rate_bps)
        self._emit(FeeRateUpdated(old_rate_bps=old, new_rate_bps=rate_bps))

    def set_stage_active(self, ctx: AuthContext, index: int, flag: bool) -> None:
        # Stage 0 is deliberately not exempt.
        self._require_admin(ctx)
        try:
            self._stages.set_active(index, flag)
        except MorphError as e:
            self._reject("set_stage_active", ctx.caller, e)
            raise
        log_event(logger, "morph.admin.set_stage_active", index=index, active=bool(flag))
        self._emit(StageStatusChanged(index=index, active=bool(flag)))

    def set_morphing_enabled(self, ctx: AuthContext, holder: Hashable, flag: bool) -> None:
        self._require_admin(ctx)
        if holder is None or holder is ESCROW:
            raise InvalidParameter("holder identity is required")
        record = self._accounts.get_or_create(holder)
        record.morphing_enabled = bool(flag)
        log_event(logger, "morph.admin.set_morphing_enabled", holder=str(holder), enabled=bool(flag))
        self._emit(MorphingStatusChanged(holder=holder, enabled=bool(flag)))

    def emergency_drain(self, ctx: AuthContext, to: Hashable, amount: int) -> None:
        """
        Administrative override: move escrowed funds to `to` without holder consent.

        Any amount up to the escrow balance is accepted, zero included.
        """
        self._require_admin(ctx)
        try:
            if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
                raise InvalidParameter(f"amount must be a non-negative integer, got {amount!r}")
            if to is None or to is ESCROW:
                raise InvalidParameter("drain destination is required")
            escrow = self._ledger.escrow_balance
            if amount > escrow:
                raise InsufficientBalance(f"cannot drain {amount}: escrow={escrow}")
        except MorphError as e:
            self._reject("emergency_drain", ctx.caller, e)
            raise
        self._ledger.transfer(ESCROW, to, amount)
        log_event(
            logger,
            "morph.admin.emergency_drain",
            severity="WARNING",
            to=str(to),
            amount=amount,
            escrow_after=self._ledger.escrow_balance,
        )
        self._emit(EscrowDrained(to=to, amount=amount))

    def transfer_administration(self, ctx: AuthContext, new_administrator: Hashable) -> None:
        self._require_admin(ctx)
        if new_administrator is None or new_administrator is ESCROW:
            raise InvalidParameter("new administrator identity is required")
        previous = self._administrator
        self._administrator = new_administrator
        log_event(
            logger,
            "morph.admin.transfer_administration",
            previous=str(previous),
            current=str(new_administrator),
        )
        self._emit(AdministratorTransferred(previous=previous, current=new_administrator))

    # --- persisted state surface ---

    def snapshot(self) -> Dict[str, Any]:
        """
        Abstract key-value view of all persisted state.

        Accounts and balances are keyed by the holder identities themselves, so
        distinct holders never collide. Zero balances are omitted. The escrow
        balance is its own field.
        """
        balances = self._ledger.balances()
        escrow = balances.pop(ESCROW, 0)
        return {
            "stages": {str(s.index): s.to_dict() for s in self._stages.stages()},
            "accounts": {h: rec.to_dict() for h, rec in self._accounts.items()},
            "balances": balances,
            "escrow_balance": escrow,
            "fee_rate_bps": self._fee_rate_bps,
            "total_stages": self._stages.count(),
            "total_supply": self._ledger.total_supply,
            "administrator": self._administrator,
        }
