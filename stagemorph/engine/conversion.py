from __future__ import annotations

"""
Fee skim + stage multiplier conversion.

This module is intentionally pure (no ledger/registry dependency) so it's easy to test.

Formula (integer basis points, truncating division, no rounding adjustment):
  fee       = amount * fee_rate_bps // 10000
  net       = amount - fee
  converted = net * multiplier_bps // 10000
"""

from dataclasses import dataclass

from stagemorph.common.errors import InvalidParameter
from stagemorph.stages.models import BPS_DENOMINATOR

MAX_FEE_RATE_BPS = 1_000


@dataclass(frozen=True, slots=True)
class Conversion:
    amount: int
    fee: int
    net_amount: int
    converted_amount: int


def validate_fee_rate(fee_rate_bps: int) -> int:
    if isinstance(fee_rate_bps, bool) or not isinstance(fee_rate_bps, int):
        raise InvalidParameter(f"fee rate must be an integer, got {type(fee_rate_bps).__name__}")
    if fee_rate_bps < 0:
        raise InvalidParameter(f"fee rate must be >= 0, got {fee_rate_bps}")
    if fee_rate_bps > MAX_FEE_RATE_BPS:
        raise InvalidParameter(f"fee rate {fee_rate_bps} exceeds ceiling of {MAX_FEE_RATE_BPS} bps")
    return fee_rate_bps


def compute_conversion(*, amount: int, fee_rate_bps: int, multiplier_bps: int) -> Conversion:
    if amount < 0:
        raise InvalidParameter("amount must be >= 0")
    if multiplier_bps <= 0:
        raise InvalidParameter("multiplier must be > 0")
    fee = amount * fee_rate_bps // BPS_DENOMINATOR
    net = amount - fee
    converted = net * multiplier_bps // BPS_DENOMINATOR
    return Conversion(amount=amount, fee=fee, net_amount=net, converted_amount=converted)
