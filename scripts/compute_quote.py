#!/usr/bin/env python3
"""
Compute a quote from a request file and print it as JSON.

The request file is YAML or JSON with QuoteRequest field names, e.g.:

    service_type: MOVING
    volume_m3: 35
    distance_km: 420
    declared_value: 20000
    declared_value_insurance_requested: true
    piano: true
    scheduled_date: 2026-05-30

Usage:
  python3 scripts/compute_quote.py request.yaml [--policy-set default]
      [--base-price 0] [--disable toll-cost] [--enable ...] [--trace]
  python3 scripts/compute_quote.py request.yaml --all-scenarios
  python3 scripts/compute_quote.py request.yaml --scenario ECO --scenario PREMIUM

With a scenario option the output is a JSON list, one variant per scenario,
and --enable/--disable are ignored in favour of each scenario's selection.

Exit codes: 0 on success, 1 when the request file or policy set cannot be
read, 2 when the request, policy or a module fails (the error code is
printed to stderr).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from quote_config import get_active_policy  # noqa: E402
from quote_kernel.domain.validation import request_from_mapping  # noqa: E402
from quote_kernel.exceptions import QuoteKernelError  # noqa: E402
from quote_kernel.logging_config import configure_logging  # noqa: E402
from quote_kernel.services.quote_orchestrator import PipelineOptions  # noqa: E402
from quote_kernel.services.multi_quote import MultiQuoteService  # noqa: E402
from quote_modules.catalog import build_orchestrator  # noqa: E402


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None


def load_request_file(path: Path) -> dict:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of request fields")
    return data


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute a service quote")
    parser.add_argument("request", type=Path, help="YAML or JSON request file")
    parser.add_argument("--policy-set", default="default", help="Policy set name")
    parser.add_argument(
        "--config-dir", type=Path, default=None, help="Override policy sets directory"
    )
    parser.add_argument(
        "--base-price", type=_decimal_arg, default=Decimal("0"),
        help="Externally supplied base service price",
    )
    parser.add_argument("--enable", action="append", default=[], help="Only run these modules (plus essentials)")
    parser.add_argument("--disable", action="append", default=[], help="Never run these modules")
    parser.add_argument("--scenario", action="append", default=[], help="Price under this scenario")
    parser.add_argument("--all-scenarios", action="store_true", help="Price under every policy scenario")
    parser.add_argument("--trace", action="store_true", help="Print module outcomes to stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Structured debug logs on stderr")
    args = parser.parse_args(argv)

    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        data = load_request_file(args.request)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"error: cannot read request: {exc}", file=sys.stderr)
        return 1

    try:
        policy = get_active_policy(args.policy_set, config_dir=args.config_dir)
        orchestrator = build_orchestrator(policy)
        request = request_from_mapping(data)
        if args.scenario or args.all_scenarios:
            variants = MultiQuoteService(orchestrator).generate(
                request,
                args.base_price,
                scenario_ids=None if args.all_scenarios else args.scenario,
            )
            print(json.dumps([v.to_dict() for v in variants], indent=2))
            return 0
        options = PipelineOptions(
            enabled_modules=frozenset(args.enable),
            disabled_modules=frozenset(args.disable),
        )
        run = orchestrator.run(request, options)
        quote = orchestrator.assemble(run, args.base_price)
    except QuoteKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.trace:
        for outcome in run.outcomes:
            print(
                f"{outcome.module_id:28} {outcome.status.value:24} {outcome.reason}",
                file=sys.stderr,
            )

    print(json.dumps(quote.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
