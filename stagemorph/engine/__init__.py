"""
Staged-value transformation engine.

This package is split into:
- conversion: pure fee/multiplier arithmetic
- events: notification types + sinks
- morph: MorphEngine (lock, advance, eligibility, administration)
"""

from .conversion import MAX_FEE_RATE_BPS, Conversion, compute_conversion  # noqa: F401
from .morph import (  # noqa: F401
    MAX_LOCK_DURATION,
    MIN_LOCK_DURATION,
    AccountView,
    MorphEngine,
    MorphQuote,
    MorphReceipt,
)
