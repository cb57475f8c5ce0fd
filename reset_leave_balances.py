#!/usr/bin/env python3
"""
Yearly leave reset: carries unused leave (max 5 days) into the new year
and restores each user's annual entitlement.

Meant to be run from cron on January 1st. Users already on the current
year are skipped unless --force is given.
"""

import argparse
import logging
import sys

import model.leave_model  # noqa: F401
from db.database import SessionLocal
from service.leave_reset_service import run_yearly_reset
from utils.settings import get_settings

# Configure logging
logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the yearly leave balance reset")
    parser.add_argument(
        "--force",
        action="store_true",
        help="recompute every user, even those already on the current year",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.info("Starting yearly leave reset...")
    try:
        summary = run_yearly_reset(SessionLocal, force=args.force)
    except Exception:
        logger.exception("✗ Yearly leave reset failed!")
        return 1

    logger.info(
        f"Year {summary.year}: {summary.updated} updated, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    if summary.failed:
        logger.error(f"✗ Reset failed for users: {summary.failed_user_ids}")
        return 1

    logger.info("✓ Yearly leave reset completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
