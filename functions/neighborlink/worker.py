"""
Background worker: drains the alert fan-out queue and processes due SMS
escalations between jobs.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from neighborlink.config import get_settings
from neighborlink.db import DbClient
from neighborlink.dependencies import (
    get_broadcaster,
    get_db_client,
    get_queue_client,
    get_sms_client,
)
from neighborlink.errors import NotFoundError, report_error
from neighborlink.notifications import process_alert, process_escalations
from neighborlink.queue import JobQueue
from neighborlink.realtime import Broadcaster

logger = logging.getLogger(__name__)


def handle_job(job: dict, db: DbClient, broadcaster: Broadcaster) -> None:
    kind = job.get("kind")
    if kind == "process_alert":
        targets = process_alert(
            db, broadcaster, job["alert_id"], priority=int(job.get("priority", 3))
        )
        logger.info("Alert %s fanned out to %d users", job["alert_id"], targets)
    else:
        logger.warning("Unknown job kind %r, dropping", kind)


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    broadcaster: Optional[Broadcaster] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue. Returns True if a job was handled.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()
    broadcaster = broadcaster or get_broadcaster()

    job = queue.dequeue(block=block, timeout=timeout)
    if not job:
        return False

    try:
        handle_job(job, db, broadcaster)
    except NotFoundError as exc:
        logger.warning("Dropping job %s: %s", job, exc)
    except Exception as exc:
        report_error(exc, route="worker")
        raise
    return True


def run_loop(poll_interval_seconds: float = 2.0, escalation_interval_seconds: float = 60.0) -> None:
    """
    Simple polling loop that blocks on the queue. Intended to be run under systemd/supervisor.
    """
    settings = get_settings()
    db = get_db_client()
    queue = get_queue_client()
    broadcaster = get_broadcaster()
    next_escalation_run = 0.0
    while True:
        if time.time() >= next_escalation_run:
            try:
                summary = process_escalations(
                    db, get_sms_client(), limit=settings.escalation_batch_size
                )
                if summary["processed"]:
                    logger.info("Processed %d escalations", summary["processed"])
            except Exception:
                logger.exception("Escalation processing failed")
            next_escalation_run = time.time() + escalation_interval_seconds

        try:
            processed = process_next(
                db=db,
                queue=queue,
                broadcaster=broadcaster,
                block=True,
                timeout=int(poll_interval_seconds),
            )
        except Exception:
            # Already reported; keep the loop alive for the next job.
            processed = True
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )
    run_loop()
