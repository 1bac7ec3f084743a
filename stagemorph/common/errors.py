"""
Error taxonomy for the staged-value engine.

Every failure is terminal for the call that raised it. Callers decide whether
to resubmit; nothing inside the engine retries.

Each error carries a stable `reason_code` (see `MorphReasonCode`) so log lines
and downstream consumers can route on it without parsing messages.
"""

from __future__ import annotations


class MorphReasonCode:
    """
    Canonical string reason codes for rejected operations.

    Note: keep these values stable; consumers may persist them.
    """

    OK = "OK"

    INVALID_PARAMETER = "INVALID_PARAMETER"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    NOT_FOUND = "NOT_FOUND"
    NO_NEXT_STAGE = "NO_NEXT_STAGE"
    STAGE_INACTIVE = "STAGE_INACTIVE"
    HOLD_TIME_NOT_ELAPSED = "HOLD_TIME_NOT_ELAPSED"
    MORPHING_DISABLED = "MORPHING_DISABLED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    ARITHMETIC_OVERFLOW = "ARITHMETIC_OVERFLOW"
    REENTRANT_CALL = "REENTRANT_CALL"


class MorphError(RuntimeError):
    """Base error for every rejected engine operation."""

    reason_code: str = MorphReasonCode.INVALID_PARAMETER


class InvalidParameter(MorphError):
    """Malformed input: zero amount, empty label, out-of-range fee or duration."""

    reason_code = MorphReasonCode.INVALID_PARAMETER


class InsufficientBalance(MorphError):
    reason_code = MorphReasonCode.INSUFFICIENT_BALANCE


class NotFound(MorphError):
    """Raised when a stage index does not exist."""

    reason_code = MorphReasonCode.NOT_FOUND


class NoNextStage(NotFound):
    """Raised when a holder already sits on the last defined stage."""

    reason_code = MorphReasonCode.NO_NEXT_STAGE


class StageInactive(MorphError):
    reason_code = MorphReasonCode.STAGE_INACTIVE


class HoldTimeNotElapsed(MorphError):
    reason_code = MorphReasonCode.HOLD_TIME_NOT_ELAPSED


class MorphingDisabled(MorphError):
    reason_code = MorphReasonCode.MORPHING_DISABLED


class CapacityExceeded(MorphError):
    reason_code = MorphReasonCode.CAPACITY_EXCEEDED


class Unauthorized(MorphError):
    """Raised when a non-administrator attempts a gated transition."""

    reason_code = MorphReasonCode.UNAUTHORIZED


class ArithmeticOverflow(MorphError):
    """Raised instead of wrapping when an amount would exceed MAX_AMOUNT."""

    reason_code = MorphReasonCode.ARITHMETIC_OVERFLOW


class ReentrantCall(MorphError):
    """Raised when a holder operation is invoked again before the first completes."""

    reason_code = MorphReasonCode.REENTRANT_CALL


__all__ = [
    "ArithmeticOverflow",
    "CapacityExceeded",
    "HoldTimeNotElapsed",
    "InsufficientBalance",
    "InvalidParameter",
    "MorphError",
    "MorphReasonCode",
    "MorphingDisabled",
    "NoNextStage",
    "NotFound",
    "ReentrantCall",
    "StageInactive",
    "Unauthorized",
]
