"""CLI commands for capturing snapshots and reading the change log.

Usage:
    sellerwatch init-db
    sellerwatch capture
    sellerwatch snapshots [--limit N]
    sellerwatch changes [--days N]
    sellerwatch item-history ITEM_ID
    sellerwatch rediff SNAPSHOT_ID
"""

import argparse
import json
import sys

from sellerwatch.config import Settings
from sellerwatch.db import init_db
from sellerwatch.logging_config import configure_logging
from sellerwatch.tools.dispatch import create_services, execute_tool


def _print_snapshots(result: dict) -> None:
    if not result["snapshots"]:
        print("No snapshots yet. Run `sellerwatch capture` first.")
        return
    for snap in result["snapshots"]:
        average = snap["average_ticket"]
        average_text = f"{average:.2f}" if average is not None else "-"
        print(
            f"#{snap['id']:<5} {snap['captured_at']}  "
            f"{snap['total_listing_count']:>4} listings  "
            f"{snap['total_sold_units']:>6} sold  avg {average_text}"
        )


def _print_changes(changes: list[dict]) -> None:
    for change in changes:
        line = f"{change['detected_at']}  {change['item_id']:<14} {change['change_type']:<9}"
        if change["previous_value"] is not None:
            line += f" {change['previous_value']} ->"
        if change["new_value"] is not None:
            line += f" {change['new_value']}"
        if change["percent_variation"] is not None:
            line += f" ({change['percent_variation']:+.2f}%)"
        print(line)


def _print_result(command: str, result: dict) -> None:
    if command == "capture":
        if result.get("baseline"):
            print(f"Baseline snapshot #{result['snapshot_id']} with {result['item_count']} items.")
        else:
            print(
                f"Snapshot #{result['snapshot_id']} with {result['item_count']} items, "
                f"{result['change_count']} changes detected."
            )
    elif command == "snapshots":
        _print_snapshots(result)
    elif command in ("changes", "item-history"):
        if not result["changes"]:
            print("No changes found.")
        _print_changes(result["changes"])
    elif command == "rediff":
        print(f"Snapshot #{result['snapshot_id']}: {result['change_count']} changes appended.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sellerwatch", description="Marketplace listing snapshots and change log"
    )
    parser.add_argument("--json", action="store_true", help="Print raw JSON results")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database tables")
    sub.add_parser("capture", help="Capture a snapshot now and log changes")

    snapshots = sub.add_parser("snapshots", help="List recent snapshots")
    snapshots.add_argument("--limit", type=int, default=None)

    changes = sub.add_parser("changes", help="List recent changes")
    changes.add_argument("--days", type=int, default=None)

    item = sub.add_parser("item-history", help="Change history of one item")
    item.add_argument("item_id")

    rediff = sub.add_parser("rediff", help="Re-run change detection for a stored snapshot")
    rediff.add_argument("snapshot_id", type=int)
    return parser


COMMAND_TOOLS = {
    "capture": ("capture_snapshot", lambda args: {}),
    "snapshots": ("list_snapshots", lambda args: {"limit": args.limit}),
    "changes": ("list_changes", lambda args: {"days": args.days}),
    "item-history": ("item_history", lambda args: {"item_id": args.item_id}),
    "rediff": ("rediff_snapshot", lambda args: {"snapshot_id": args.snapshot_id}),
}


def main(argv: list[str] | None = None) -> None:
    """Entry point for the sellerwatch CLI."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_level, settings.log_json, settings.log_file)

    engine = init_db(settings.database_path)
    if args.command == "init-db":
        print(f"Database ready at {settings.database_path}")
        return

    if args.command == "capture" and not settings.ml_access_token:
        print("Error: ML_ACCESS_TOKEN is not set in .env")
        sys.exit(1)

    services = create_services(settings, engine)
    tool_name, build_input = COMMAND_TOOLS[args.command]
    result = execute_tool(services, tool_name, build_input(args))

    if "error" in result:
        print(f"Error: {result['error']}")
        if result.get("phase"):
            print(f"  Failed phase: {result['phase']}")
        if result.get("snapshot_id"):
            print(f"  Snapshot #{result['snapshot_id']} was saved; retry with `rediff`.")
        sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    else:
        _print_result(args.command, result)


if __name__ == "__main__":
    main()
