from __future__ import annotations

import json
import os
import sys

# Allow running as: `python3 scripts/morph_scenario_demo.py` from repo root.
_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT not in sys.path:
    sys.path.insert(0, _ROOT)

from stagemorph.engine.events import InMemoryEventSink
from stagemorph.sample_scenario import EXPECTED_BALANCES, EXPECTED_ESCROW, EXPECTED_TOTAL_SUPPLY, SAMPLE_SCENARIO
from stagemorph.scenario import Scenario, run_scenario


def main() -> None:
    res = run_scenario(Scenario.model_validate(SAMPLE_SCENARIO), events=InMemoryEventSink())
    print("Replayed sample scenario:")
    print(json.dumps(res["snapshot"], default=str, indent=2, sort_keys=True))
    print("\nExpected balances:")
    expected = {"balances": EXPECTED_BALANCES, "escrow_balance": EXPECTED_ESCROW, "total_supply": EXPECTED_TOTAL_SUPPLY}
    print(json.dumps(expected, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
