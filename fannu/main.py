"""
FanNu entry point

Runs the background jobs (scheduled broadcasts and drop windows) on an
interval, or serves the web app.
"""

import logging
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger
from dotenv import load_dotenv

from .actions import advance_drop_windows, dispatch_due_broadcasts
from .config import settings
from .database import init_db
from .logging_setup import setup_logging
from .utils import utcnow

logger = logging.getLogger(__name__)


def run_jobs(now=None) -> dict:
    """
    One pass of the background work

    1. Move drops whose window opened or closed
    2. Send scheduled broadcasts that are due
    """
    now = now or utcnow()
    windows = advance_drop_windows(now)
    sent = dispatch_due_broadcasts(now)
    if sent or windows["went_live"] or windows["ended"]:
        logger.info(
            "Jobs: %d drop(s) live, %d drop(s) ended, %d broadcast(s) sent",
            windows["went_live"], windows["ended"], sent,
        )
    return {**windows, "broadcasts_sent": sent}


def _run_jobs_safely():
    try:
        run_jobs()
    except Exception:
        logger.exception("Background jobs failed")


def run_scheduler(interval_minutes: Optional[int] = None):
    """Run the jobs every interval until interrupted"""
    interval = interval_minutes or settings.dispatch_interval_minutes
    logger.info("FanNu scheduler started")

    scheduler = BlockingScheduler()
    scheduler.add_job(
        _run_jobs_safely,
        trigger=IntervalTrigger(minutes=interval),
        id="fannu_jobs",
        name="Scheduled broadcasts and drop windows",
        max_instances=1,
        coalesce=True,
    )
    logger.info("Schedule: every %d minute(s)", interval)

    try:
        scheduler.start()
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
        scheduler.shutdown()


def main():
    import argparse

    parser = argparse.ArgumentParser(description="FanNu - drops, VIP lists and bookings for creators")
    parser.add_argument("--run-once", action="store_true", help="Run the background jobs once and exit")
    parser.add_argument("--serve", action="store_true", help="Serve the web app")
    parser.add_argument("--host", default="0.0.0.0", help="Web server host (with --serve)")
    parser.add_argument("--port", type=int, default=8000, help="Web server port (with --serve)")
    parser.add_argument("--interval", type=int, help="Minutes between job runs (default from settings)")

    args = parser.parse_args()

    load_dotenv()
    setup_logging()

    logger.info("Initializing database...")
    init_db(settings.database_url)

    if args.serve:
        from .web.app import run_server
        run_server(host=args.host, port=args.port)
    elif args.run_once:
        result = run_jobs()
        logger.info("Run complete: %s", result)
    else:
        run_scheduler(args.interval)


if __name__ == "__main__":
    main()
