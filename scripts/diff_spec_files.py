#!/usr/bin/env python3
"""
Compare two OpenAPI files and print the classified changes.

Usage:
    python scripts/diff_spec_files.py old.yaml new.yaml
    python scripts/diff_spec_files.py old.json new.json --ignore-descriptions

Exits with status 1 when any breaking change is found, so it can gate CI.
"""

import argparse
import sys
from pathlib import Path

# Add src to path so we can import livespec
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from livespec.config import DiffOptions
from livespec.services.spec_diff_engine import diff_specs, find_moved_endpoints
from livespec.services.spec_fetcher import parse_spec_text


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Diff two OpenAPI documents")
    parser.add_argument("old")
    parser.add_argument("new")
    parser.add_argument("--ignore-descriptions", action="store_true")
    parser.add_argument("--ignore-examples", action="store_true")
    args = parser.parse_args(argv)

    old_spec = parse_spec_text(Path(args.old).read_text(encoding="utf-8"))
    new_spec = parse_spec_text(Path(args.new).read_text(encoding="utf-8"))

    result = diff_specs(
        old_spec,
        new_spec,
        DiffOptions(
            ignore_descriptions=args.ignore_descriptions,
            ignore_examples=args.ignore_examples,
        ),
    )

    if not result.has_changes:
        print("No changes")
        return 0

    for change in result.changes:
        marker = "!" if change.is_breaking else " "
        print(f"{marker} [{change.type.value}] {change.description}")

    for removed, added in find_moved_endpoints(result):
        print(f"  moved {added.operation_id}: {removed.path} -> {added.path}")

    summary = result.summary
    print(f"\n{summary.describe()}; {summary.breaking} breaking, {summary.non_breaking} non-breaking")
    return 1 if summary.breaking else 0


if __name__ == "__main__":
    sys.exit(main())
