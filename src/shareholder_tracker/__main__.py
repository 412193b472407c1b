"""Command-line entry point.

Usage:
    python -m shareholder_tracker buyers --start 2024-01-01 --end 2024-03-31
    python -m shareholder_tracker behavior --start 2024-01-01 --end 2024-03-31 --correlation-threshold 0.5
    python -m shareholder_tracker compare --date1 2024-01-31 --date2 2024-02-29
    python -m shareholder_tracker growth --holder-id 42
    python -m shareholder_tracker stats

Results are printed as JSON on stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from shareholder_tracker.analytics.common import Granularity, to_jsonable
from shareholder_tracker.analytics.requests import AnalyticsRequest, AnalyticsValidationError
from shareholder_tracker.config import get_settings
from shareholder_tracker.service import AnalyticsService, HolderNotFoundError, SnapshotReadError
from shareholder_tracker.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

PERIOD_COMMANDS = {
    "buyers": "active_buyers",
    "sellers": "active_sellers",
    "entrants": "new_entrants",
    "behavior": "behavior_patterns",
    "timing": "timing_analysis",
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="shareholder-tracker", description="Shareholder position change analytics.")
    sub = p.add_subparsers(dest="command", required=True)

    for name in PERIOD_COMMANDS:
        cmd = sub.add_parser(name, help=f"{PERIOD_COMMANDS[name].replace('_', ' ')} over a period")
        cmd.add_argument("--start", required=True, help="Period start (YYYY-MM-DD)")
        cmd.add_argument("--end", required=True, help="Period end (YYYY-MM-DD)")
        cmd.add_argument(
            "--granularity",
            choices=[g.value for g in Granularity],
            default=Granularity.DAILY.value,
            help="Trend bucketing (default daily)",
        )
        if name in ("buyers", "sellers"):
            cmd.add_argument("--date", dest="single_date", default=None, help="Only events on this date")
        if name == "behavior":
            cmd.add_argument(
                "--correlation-threshold",
                type=float,
                default=None,
                help="Minimum pair correlation (default from ANALYTICS_CORRELATION_THRESHOLD)",
            )

    sub.add_parser("trends", help="Ownership totals, top holders and distribution")
    sub.add_parser("dates", help="Snapshot dates, newest first")
    sub.add_parser("stats", help="Latest snapshot date against the previous one")

    compare = sub.add_parser("compare", help="Compare holdings on two dates")
    compare.add_argument("--date1", required=True)
    compare.add_argument("--date2", required=True)

    growth = sub.add_parser("growth", help="One holder's position history")
    growth.add_argument("--holder-id", type=int, required=True)
    growth.add_argument("--start", default=None)
    growth.add_argument("--end", default=None)

    search = sub.add_parser("search", help="Find holders by name")
    search.add_argument("text")

    sub.add_parser("init-db", help="Create tables (development databases only)")
    return p


async def _run(args: argparse.Namespace) -> object:
    settings = get_settings()
    db = DatabaseManager.from_settings(settings.database)
    service = AnalyticsService(db, settings.analytics)
    try:
        if args.command == "init-db":
            await db.init_schema_async()
            return {"status": "ok"}
        if args.command in PERIOD_COMMANDS:
            request = AnalyticsRequest.from_params(
                start_date=args.start,
                end_date=args.end,
                granularity=args.granularity,
                single_date_filter=getattr(args, "single_date", None),
                correlation_threshold=getattr(args, "correlation_threshold", None),
            )
            return await getattr(service, PERIOD_COMMANDS[args.command])(request)
        if args.command == "trends":
            return await service.ownership_trends()
        if args.command == "dates":
            return {"dates": await service.list_dates()}
        if args.command == "stats":
            return await service.ownership_stats()
        if args.command == "compare":
            return await service.compare_dates(args.date1, args.date2)
        if args.command == "growth":
            return await service.holder_growth(args.holder_id, start=args.start, end=args.end)
        if args.command == "search":
            return [dto.__dict__ for dto in await service.search_holders(args.text)]
        raise ValueError(f"unknown command {args.command!r}")
    finally:
        await db.dispose_async()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.get_logging_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.debug("Settings: %s", settings.redacted_summary())

    try:
        result = asyncio.run(_run(args))
    except AnalyticsValidationError as exc:
        print(f"invalid request: {exc}", file=sys.stderr)
        return 2
    except HolderNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except SnapshotReadError as exc:
        logger.error("%s", exc)
        return 1

    json.dump(to_jsonable(result), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
