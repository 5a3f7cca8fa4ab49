"""Inspect a warfront snapshot from the command line.

    python -m warfront summary data/warfront.json
"""

import argparse
import sys
from pathlib import Path

from warfront.errors import FatalConfigError
from warfront.persistence import PersistenceManager


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="warfront", description="Inspect a warfront snapshot")
    sub = parser.add_subparsers(dest="command", required=True)
    summary = sub.add_parser("summary", help="Print the objective table")
    summary.add_argument("path", type=str, help="Snapshot document")
    args = parser.parse_args(argv)

    try:
        store = PersistenceManager(Path(args.path)).load()
    except FatalConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"{len(store.objectives)} objectives, {len(store.groups_by_id)} groups, "
          f"{len(store.units_by_id)} units, {len(store.players)} players")
    print(store.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
