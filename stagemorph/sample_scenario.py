"""
Deterministic sample scenario with hand-checked expected results.

Walkthrough (fee 100 bps, stage 1 = 2.0x with 1h hold, stage 2 = 1.5x):
- alice advances 1000 into stage 1: fee 10, net 990, converted 1980
- a second advance in the same second is held back by stage 1's hold time
- after 1h alice advances 500 into stage 2: fee 5, net 495, converted 742
- the administrator drains 1500 of alice's 2000 escrowed units to treasury
"""

from __future__ import annotations

from typing import Any, Dict

START_TIME = 1_700_000_000

SAMPLE_SCENARIO: Dict[str, Any] = {
    "administrator": "admin",
    "start_time": START_TIME,
    "settings": {
        "token_name": "Morph Token",
        "token_symbol": "MORPH",
        "fee_rate_bps": 100,
        "initial_supply": 1_000_000,
    },
    "steps": [
        {"op": "add_stage", "caller": "admin", "label": "Silver", "symbol": "SLV", "multiplier": 20_000, "min_hold_time": 3_600},
        {"op": "add_stage", "caller": "admin", "label": "Gold", "symbol": "GLD", "multiplier": 15_000},
        {"op": "transfer", "sender": "admin", "to": "alice", "amount": 10_000},
        {"op": "advance", "holder": "alice", "amount": 1_000},
        {"op": "lock", "holder": "alice", "amount": 2_000, "duration": 86_400},
        {"op": "can_advance", "holder": "alice"},
        {"op": "advance", "holder": "alice", "amount": 1_000},
        {"op": "advance", "holder": "alice", "amount": 500},
        {"op": "sleep", "seconds": 3_600},
        {"op": "advance", "holder": "alice", "amount": 500},
        {"op": "advance", "holder": "alice", "amount": 100},
        {"op": "emergency_drain", "caller": "admin", "to": "treasury", "amount": 1_500},
        {"op": "set_fee", "caller": "admin", "rate_bps": 1_001},
    ],
}

EXPECTED_REASON_CODES = {
    3: "MORPHING_DISABLED",
    7: "HOLD_TIME_NOT_ELAPSED",
    10: "NO_NEXT_STAGE",
    12: "INVALID_PARAMETER",
}

EXPECTED_BALANCES = {
    "admin": 990_015,
    "alice": 9_222,
    "treasury": 1_500,
}

EXPECTED_ESCROW = 500

EXPECTED_TOTAL_SUPPLY = 1_001_237

EXPECTED_ALICE = {
    "current_stage": 2,
    "last_advance_time": START_TIME + 3_600,
    "advance_count": 2,
    "locked_amount": 2_000,
    "morphing_enabled": True,
}
