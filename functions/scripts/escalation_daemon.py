"""
Daemon that periodically sends SMS escalations for unread safety alerts.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from neighborlink.config import get_settings
from neighborlink.dependencies import get_db_client, get_sms_client
from neighborlink.notifications import process_escalations

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="NeighborLink escalation daemon")
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=None,
        help="Max escalations to process per run (defaults to ESCALATION_BATCH_SIZE)",
    )
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=60,
        help="Seconds between runs",
    )
    parser.add_argument(
        "--jitter-seconds",
        type=int,
        default=10,
        help="Max random jitter added to sleep",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    limit = args.limit or settings.escalation_batch_size
    db = get_db_client()
    sms_client = get_sms_client()
    if sms_client is None:
        logger.warning("SMS provider not configured; due escalations will record errors")

    while True:
        try:
            summary = process_escalations(db, sms_client, limit=limit)
            logger.info("Escalation pass complete, processed %d", summary["processed"])
        except Exception as exc:
            logger.exception("Escalation pass failed: %s", exc)

        if args.once:
            return 0

        sleep_for = args.interval_seconds + random.uniform(0, args.jitter_seconds)
        logger.info("Sleeping for %.1fs", sleep_for)
        time.sleep(sleep_for)


if __name__ == "__main__":
    raise SystemExit(main())
