"""
Long-running service: periodic mirror scans.
"""

from __future__ import annotations
import os

from dotenv import load_dotenv

from inbox_mirror.config import _load_env
from inbox_mirror.logging import logger, setup_logging
from inbox_mirror.pipeline.run import build_mirror, pr_filter_for
from inbox_mirror.scheduler import ScanScheduler


def main() -> None:
    """Main service entry point."""
    scheduler = None
    try:
        # Set up logging before the full config load so its messages are kept
        load_dotenv()
        setup_logging(
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            log_file=os.getenv("LOG_FILE", "").strip() or None,
        )

        cfg = _load_env()
        logger.info("Starting mailing-list mirror service")

        mirror = build_mirror(cfg)
        pr_filter = pr_filter_for(cfg["PR_FILTER"])

        if not cfg["SCHEDULER_ENABLED"]:
            logger.info("Scheduler disabled, scanning once")
            mirror.scan(pr_filter)
            return

        scheduler = ScanScheduler(
            scan_func=lambda: mirror.scan(pr_filter),
            interval_seconds=cfg["SCHEDULER_INTERVAL"],
        )
        scheduler.start()
        scheduler.wait()

    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    except Exception as e:
        logger.exception(f"Service failed: {e}")
        raise
    finally:
        if scheduler:
            scheduler.stop()
        logger.info("Service stopped")


if __name__ == "__main__":
    main()
