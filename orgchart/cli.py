from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from orgchart.config import get_log_level, parse_counters
from orgchart.db.store import close_entity_store, get_entity_store
from orgchart.errors import OrgChartError
from orgchart.services.import_service import import_transactions_from_csv
from orgchart.services.transactions import TransactionEngine, default_context


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Apply organisation chart transactions")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("bootstrap", help="Create the root government entity")

    imp = sub.add_parser("import", help="Apply a transactions CSV in file order")
    imp.add_argument("csv", help="Transactions CSV (absolute, or relative to the project root)")
    imp.add_argument(
        "--counters",
        default="",
        help="Last used counters to continue from, e.g. minister=3,department=10",
    )
    default_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    imp.add_argument("--project-root", default=default_root, help="Base directory for relative CSV paths")

    args = parser.parse_args(argv)
    logging.basicConfig(level=get_log_level(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        engine = TransactionEngine(get_entity_store())
        if args.cmd == "bootstrap":
            gov = engine.bootstrap()
            print(gov.id)
            return 0

        if args.cmd == "import":
            try:
                counters = parse_counters(args.counters)
            except ValueError as exc:
                parser.error(str(exc))
            summary = import_transactions_from_csv(
                args.csv,
                project_root=args.project_root,
                engine=engine,
                context=default_context(counters),
            )
            print(json.dumps(summary, indent=2))
            return 0
    except (OrgChartError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        steps = getattr(exc, "completed_steps", None)
        if steps:
            print("completed steps before failure:", file=sys.stderr)
            for step in steps:
                print(f"  {step}", file=sys.stderr)
        return 1
    finally:
        close_entity_store()

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
