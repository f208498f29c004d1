"""
Command-line interface for benefits-eligibility.

Usage:
    benefits-eligibility calculate household.json -o snapshot.json
    benefits-eligibility calculate household.json --as-of 2026-01-15
    benefits-eligibility rules
    benefits-eligibility diff before.json after.json
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from . import __version__
from .audit import SnapshotComparator
from .config import get_settings
from .errors import EligibilityError
from .models import Household
from .rules import load_rules
from .snapshot import build_snapshot


def _parse_as_of(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date or datetime: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_json(path: Path) -> dict:
    if not path.exists():
        print(f"Error: {path} not found", file=sys.stderr)
        sys.exit(1)
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON: {e}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"Error: {path} must contain a JSON object", file=sys.stderr)
        sys.exit(1)
    return data


def _calculate(args) -> int:
    settings = get_settings()
    data = _read_json(args.input)
    try:
        rules = load_rules(args.rules_dir)
        household = Household.from_dict(data)
        snapshot = build_snapshot(
            household.profile,
            household.income_sources,
            household.expenses,
            household.assets,
            args.as_of,
            rules=rules,
            ttl=settings.snapshot_ttl,
        )
    except EligibilityError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1

    output = snapshot.to_json(indent=2)
    if args.output:
        args.output.write_text(output + "\n")
        print(f"Wrote snapshot -> {args.output}", file=sys.stderr)
    else:
        print(output)
    return 0


def _rules(args) -> int:
    try:
        rules = load_rules(args.rules_dir)
    except EligibilityError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 1
    for table in rules.tables:
        print(
            f"{table.state}  {table.program:<9} {table.program_name:<16} "
            f"{table.effective_from.isoformat()} .. {table.effective_to.isoformat()}"
        )
    return 0


def _diff(args) -> int:
    before = _read_json(args.before)
    after = _read_json(args.after)
    diff = SnapshotComparator().compare(before, after)
    print(diff.detailed_report())
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="benefits-eligibility",
        description="Calculate SNAP and Medicaid eligibility snapshots from household data",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    calculate_parser = subparsers.add_parser(
        "calculate",
        help="Build an eligibility snapshot from a household JSON file",
    )
    calculate_parser.add_argument(
        "input",
        type=Path,
        help="Household JSON file (profile, income_sources, expenses, assets)",
    )
    calculate_parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )
    calculate_parser.add_argument(
        "--as-of",
        type=_parse_as_of,
        help="Calculation timestamp, ISO format (default: now, UTC)",
    )
    calculate_parser.add_argument(
        "--rules-dir",
        type=Path,
        help="Directory of rule-table JSON files (default: packaged tables)",
    )

    rules_parser = subparsers.add_parser(
        "rules",
        help="List loaded rule tables and their effective periods",
    )
    rules_parser.add_argument(
        "--rules-dir",
        type=Path,
        help="Directory of rule-table JSON files (default: packaged tables)",
    )

    diff_parser = subparsers.add_parser(
        "diff",
        help="Compare two snapshot JSON files",
    )
    diff_parser.add_argument("before", type=Path, help="Earlier snapshot JSON")
    diff_parser.add_argument("after", type=Path, help="Later snapshot JSON")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command == "calculate":
        sys.exit(_calculate(args))
    elif args.command == "rules":
        sys.exit(_rules(args))
    elif args.command == "diff":
        sys.exit(_diff(args))
    elif args.command is None:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
