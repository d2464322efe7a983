from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime, timedelta
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from marketsync.app import build_sync_service
from marketsync.config import configure_logging
from marketsync.domain.sync_service import CandidateView
from marketsync.domain.time_windows import TimeWindow, utcnow

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from marketsync.domain.reporting import SyncReport
    from marketsync.domain.sync_service import SyncService
    from marketsync.domain.time_windows import Clock

log = logging.getLogger(__name__)

DEFAULT_PULL_LIMIT = 500


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile the shop catalogue with eBay")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show how many items fall into each drift category")

    candidates = subparsers.add_parser("candidates", help="List items of one candidate view")
    candidates.add_argument("view", choices=[view.value for view in CandidateView])
    candidates.add_argument("--limit", type=int, help="Maximum number of items to show")

    new_listings = subparsers.add_parser("new-listings", help="List eligible unlisted items")
    new_listings.add_argument("--limit", type=int, help="Maximum number of items to list")

    content = subparsers.add_parser(
        "content-updates", help="Push changed titles, descriptions and prices"
    )
    content.add_argument("--limit", type=int, help="Maximum number of items to update")

    subparsers.add_parser("quantities", help="Correct remote quantities")
    subparsers.add_parser("oversold", help="Reduce listings that exceed available stock")
    subparsers.add_parser("end-stale", help="End listings of unavailable items")

    pull = subparsers.add_parser("pull-inventory", help="Adopt remote inventory items")
    pull.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_PULL_LIMIT,
        help=f"Maximum number of remote items to walk (default {DEFAULT_PULL_LIMIT})",
    )

    migrate = subparsers.add_parser("migrate", help="Migrate legacy listings")
    migrate.add_argument("listing_ids", nargs="+", metavar="LISTING_ID")

    import_orders = subparsers.add_parser("import-orders", help="Import new marketplace orders")
    window = import_orders.add_mutually_exclusive_group()
    window.add_argument(
        "--since",
        type=str,
        help="ISO-8601 timestamp (UTC) of the oldest order creation date to import",
    )
    window.add_argument(
        "--lookback-days",
        type=float,
        help="Relative lookback window in days (defaults to config)",
    )

    subparsers.add_parser("order-status", help="Push payment, shipment and cancellation state")

    order = subparsers.add_parser("order", help="Reconcile a single order")
    order.add_argument("order_id", metavar="ORDER_ID")
    order.add_argument("--only", choices=["payment", "cancellation"])

    subparsers.add_parser("sync-all", help="Run one full reconciliation cycle")

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _compute_since(args: argparse.Namespace, *, clock: Clock = utcnow) -> datetime | None:
    start = _parse_iso_datetime(args.since) if args.since else None
    lookback = timedelta(days=args.lookback_days) if args.lookback_days is not None else None
    if start is None and lookback is None:
        return None
    since, _ = TimeWindow(start=start, lookback=lookback).resolve(clock=clock)
    return since


def _validate(args: argparse.Namespace) -> datetime | None:
    limit = getattr(args, "limit", None)
    if limit is not None and limit < 1:
        raise ValueError("Limit must be positive")
    if args.command == "import-orders":
        return _compute_since(args)
    return None


def _print_report(report: SyncReport) -> None:
    print(report.summary())
    for error in report.errors:
        print(f"  {error}")


def _run_command(service: SyncService, args: argparse.Namespace, since: datetime | None) -> None:
    command = args.command
    if command == "status":
        for classification, count in service.status_overview().items():
            print(f"{classification}: {count}")
        return
    if command == "candidates":
        for decision in service.candidates(CandidateView(args.view), limit=args.limit):
            labels = ", ".join(str(item) for item in decision.classifications)
            print(f"{decision.item_id}: {labels}")
        return

    reports: list[SyncReport]
    if command == "new-listings":
        reports = [service.reconcile_new_listings(limit=args.limit)]
    elif command == "content-updates":
        reports = [service.reconcile_content_updates(limit=args.limit)]
    elif command == "quantities":
        reports = [service.reconcile_quantities()]
    elif command == "oversold":
        reports = [service.reconcile_oversold()]
    elif command == "end-stale":
        reports = [service.end_stale_listings()]
    elif command == "pull-inventory":
        reports = [service.pull_remote_inventory(args.limit)]
    elif command == "migrate":
        reports = [service.migrate_legacy_listings(args.listing_ids)]
    elif command == "import-orders":
        reports = [service.import_orders(since)]
    elif command == "order-status":
        reports = [service.synchronize_order_status()]
    elif command == "order":
        if args.only == "payment":
            reports = [service.reconcile_single_payment(args.order_id)]
        elif args.only == "cancellation":
            reports = [service.reconcile_single_cancellation(args.order_id)]
        else:
            reports = [service.reconcile_single_order(args.order_id)]
    elif command == "sync-all":
        reports = service.reconcile_all()
    else:
        raise ValueError(f"Unsupported command: {command}")

    for report in reports:
        _print_report(report)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        since = _validate(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        service = build_sync_service()
        _run_command(service, parsed_args, since)
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
