# -*- coding: utf-8 -*-
"""
CLI for the outbound delivery queue (run from cron or a scheduler).

Usage:
    python -m thryve.delivery.cli dispatch --channel push [--batch-size N]
    python -m thryve.delivery.cli dispatch --channel all
    python -m thryve.delivery.cli stats
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from ..app_db import init_app_db
from ..config import settings


def cmd_dispatch(args: argparse.Namespace) -> int:
    """Process one batch per requested channel."""
    from .dispatcher import Dispatcher
    from .queue import CHANNELS

    channels = list(CHANNELS) if args.channel == "all" else [args.channel]
    for channel in channels:
        report = Dispatcher(channel).run_batch(args.batch_size)
        print(
            f"{channel}: claimed={report.claimed} sent={report.sent} failed={report.failed} "
            f"retried={report.retried} deactivated={report.deactivated} skipped={report.skipped}"
        )
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show queue counts by channel and status."""
    from .queue import queue_stats

    print(f"Database: {settings.app_db_path}")
    for channel, counts in queue_stats().items():
        summary = " ".join(f"{status}={n}" for status, n in sorted(counts.items()))
        print(f"  {channel}: {summary}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Thryve delivery queue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    dispatch_parser = subparsers.add_parser("dispatch", help="Process one batch of queued deliveries")
    dispatch_parser.add_argument(
        "--channel",
        choices=["push", "email", "whatsapp", "all"],
        default="all",
        help="Channel to dispatch (default: all)",
    )
    dispatch_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Entries per batch (default: {settings.delivery_batch_size}, max 50)",
    )

    subparsers.add_parser("stats", help="Show queue statistics")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_app_db(settings.app_db_path)

    commands = {
        "dispatch": cmd_dispatch,
        "stats": cmd_stats,
    }
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
