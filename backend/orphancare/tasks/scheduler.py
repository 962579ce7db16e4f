"""Background scheduler for the daily reconciliation and monthly report jobs"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session

from orphancare.core.metrics import scheduler_runs_counter
from orphancare.db.session import SessionLocal
from orphancare.tasks.reconciliation import reconcile_beneficiary_donor_counts
from orphancare.tasks.reports import send_monthly_reports

logger = logging.getLogger(__name__)


def next_midnight_utc(now: datetime) -> datetime:
    """Next 00:00 UTC strictly after `now`"""
    today = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
    return today + timedelta(days=1)


def next_first_of_month_utc(now: datetime) -> datetime:
    """Next 00:00 UTC on the 1st of a month strictly after `now`"""
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _reconcile(db: Session, run_at: datetime):
    reconcile_beneficiary_donor_counts(db)


def _monthly_report(db: Session, run_at: datetime):
    # The report window comes from the scheduled time, not the wake-up time
    send_monthly_reports(db, now=run_at)


def run_job(name: str, job: Callable[[Session, datetime], object], run_at: datetime) -> bool:
    """Run one job invocation in its own session; returns True on success"""
    db = SessionLocal()
    try:
        job(db, run_at)
        scheduler_runs_counter.labels(job=name, status="success").inc()
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"Error in scheduled job {name}: {e}", exc_info=True)
        scheduler_runs_counter.labels(job=name, status="failure").inc()
        return False
    finally:
        db.close()


async def _wait_until(run_at: datetime):
    """Sleep until the wall clock reaches `run_at`.

    asyncio.sleep follows the monotonic clock, which can drift from UTC over
    long sleeps, so the wall clock is re-checked after every wake-up.
    """
    while True:
        remaining = (run_at - _utcnow()).total_seconds()
        if remaining <= 0:
            return
        await asyncio.sleep(remaining)


async def _run_once(name: str, job: Callable[[Session, datetime], object], next_run: Callable[[datetime], datetime]) -> datetime:
    now = _utcnow()
    run_at = next_run(now)
    logger.info(f"Next {name} run at {run_at.isoformat()} (in {int((run_at - now).total_seconds())}s)")
    await _wait_until(run_at)

    # Jobs are synchronous database work; keep them off the event loop
    await asyncio.to_thread(run_job, name, job, run_at)
    return run_at


async def _run_forever(name: str, job: Callable[[Session, datetime], object], next_run: Callable[[datetime], datetime]):
    logger.info(f"Starting {name} scheduler task...")

    while True:
        await _run_once(name, job, next_run)


async def reconciliation_scheduler_task():
    """Daily at midnight UTC: recompute beneficiary donor counts"""
    await _run_forever("reconciliation", _reconcile, next_midnight_utc)


async def monthly_report_scheduler_task():
    """00:00 UTC on the 1st of each month: email admins last month's totals"""
    await _run_forever("monthly_report", _monthly_report, next_first_of_month_utc)
