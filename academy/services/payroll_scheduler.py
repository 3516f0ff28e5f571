"""
Monthly payroll accrual job.

main.py registers run_monthly_accrual with APScheduler to fire on the first
day of every month. At that moment the month worth recognizing is the one that
just closed, so the job accrues the month containing "yesterday".
"""
import logging
from datetime import date, timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from academy.core.db import AsyncSessionLocal
from academy.core.timeutils import local_today
from academy.services.settlement import BatchResult, accrue_monthly

logger = logging.getLogger(__name__)

JOB_ID = "monthly_salary_accrual"


async def run_monthly_accrual(
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    today: Optional[date] = None,
) -> BatchResult:
    today = today or local_today()
    period = today - timedelta(days=1)
    logger.info(f"Starting monthly salary accrual for {period:%Y-%m}")

    result = await accrue_monthly(session_factory, as_of=period)

    for failure in result.failures:
        logger.error(
            f"Accrual for coach {failure.coach_id} failed ({failure.error}): {failure.message}"
        )
    logger.info(
        f"Monthly salary accrual for {period:%Y-%m} done: "
        f"{len(result.settlements)} accrued, {len(result.skipped)} skipped, {len(result.failures)} failed"
    )
    return result
