"""
Maintenance Jobs

Periodic jobs registered with the background scheduler.
"""

import logging

from apscheduler.triggers.interval import IntervalTrigger

from student_records.core import email_validation
from student_records.core.scheduler import register_job

logger = logging.getLogger(__name__)

EMAIL_CACHE_SWEEP_JOB_ID = "email_validation_cache_sweep"
EMAIL_CACHE_SWEEP_INTERVAL_MINUTES = 30


async def sweep_email_validation_cache() -> int:
    """
    Drop expired entries from the email validation cache.

    Expired entries are otherwise only removed when read or when the cache
    fills up.

    Returns:
        Number of entries removed
    """
    validator = email_validation.email_validator
    if validator is None:
        logger.debug("Email validator not initialized, skipping cache sweep")
        return 0

    removed = validator.cache.purge_expired()
    logger.info(f"Email validation cache sweep removed {removed} expired entries")
    return removed


def register_maintenance_jobs() -> None:
    register_job(
        job_id=EMAIL_CACHE_SWEEP_JOB_ID,
        func=sweep_email_validation_cache,
        trigger=IntervalTrigger(minutes=EMAIL_CACHE_SWEEP_INTERVAL_MINUTES),
    )
