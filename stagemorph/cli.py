#!/usr/bin/env python3
"""
Command-line entry point.

Examples:
  stagemorph run examples/scenario.json --out result.json
  stagemorph settings
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from stagemorph import __version__
from stagemorph.common.config import load_engine_settings
from stagemorph.common.logging import init_structured_logging
from stagemorph.engine.events import FanoutEventSink, InMemoryEventSink, LoggingEventSink
from stagemorph.scenario import Scenario, run_scenario


def _cmd_run(args: argparse.Namespace) -> int:
    path = Path(args.scenario)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"cannot read scenario {path}: {e}", file=sys.stderr)
        return 2
    try:
        scenario = Scenario.model_validate(raw)
    except ValidationError as e:
        print(f"invalid scenario {path}:\n{e}", file=sys.stderr)
        return 2

    recorded = InMemoryEventSink()
    try:
        out = run_scenario(scenario, events=FanoutEventSink(recorded, LoggingEventSink()))
    except ValueError as e:
        print(f"scenario aborted: {e}", file=sys.stderr)
        return 2
    out["events"] = [e.to_log_event() for e in recorded.events]

    text = json.dumps(out, indent=2, sort_keys=True, default=str)
    if args.out:
        Path(args.out).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    failed = sum(1 for r in out["results"] if not r["ok"])
    return 1 if (failed and args.strict) else 0


def _cmd_settings(args: argparse.Namespace) -> int:  # noqa: ARG001
    print(json.dumps(load_engine_settings().model_dump(), indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stagemorph", description="Staged-value ledger tooling.")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL (e.g. DEBUG, WARNING)")
    sub = p.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Replay a JSON scenario and print the resulting state")
    run.add_argument("scenario", help="Path to scenario JSON")
    run.add_argument("--out", default=None, help="Write the result JSON here instead of stdout")
    run.add_argument("--strict", action="store_true", help="Exit 1 if any step was rejected")
    run.set_defaults(func=_cmd_run)

    st = sub.add_parser("settings", help="Print the engine settings resolved from config dir/env")
    st.set_defaults(func=_cmd_settings)
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = load_engine_settings()
    init_structured_logging(
        service=settings.service_name,
        version=__version__,
        level=(args.log_level or settings.log_level).upper(),
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
