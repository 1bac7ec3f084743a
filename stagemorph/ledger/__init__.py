"""
Value ledger (balances, supply, escrow).

- value_ledger: the single writer of balances; batched, all-or-nothing postings
"""

from .value_ledger import ESCROW, MAX_AMOUNT, Posting, ValueLedger  # noqa: F401
