from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import logging
import pytz
from academy.routers import attendance, coaches, students, salary
from academy.services.payroll_scheduler import JOB_ID, run_monthly_accrual
from academy.core.config import settings as app_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

timezone = pytz.timezone(app_settings.TIMEZONE)

scheduler = AsyncIOScheduler(timezone=timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events.
    """
    logger.info("Starting Academy Payroll API...")

    if app_settings.PAYROLL_ENABLED:
        # Accrue the month that just closed, on PAYROLL_DAY at PAYROLL_HOUR:00 local time
        scheduler.add_job(
            run_monthly_accrual,
            trigger=CronTrigger(
                day=app_settings.PAYROLL_DAY,
                hour=app_settings.PAYROLL_HOUR,
                minute=0,
                timezone=timezone,
            ),
            id=JOB_ID,
            name="Monthly Salary Accrual",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()

        next_run = scheduler.get_job(JOB_ID).next_run_time
        logger.info(f"Payroll scheduler started - next accrual at {next_run} ({app_settings.TIMEZONE})")
    else:
        logger.info("Payroll accrual is disabled in configuration")

    yield

    logger.info("Shutting down Academy Payroll API...")
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Payroll scheduler stopped")


app = FastAPI(
    title="Academy Payroll API",
    description="Attendance and coach salary settlement for the coaching academy",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint with scheduler status"""
    next_accrual = None

    if scheduler.running:
        job = scheduler.get_job(JOB_ID)
        if job and job.next_run_time:
            next_accrual = job.next_run_time.isoformat()

    return {
        "status": "ok",
        "service": "academy-payroll",
        "scheduler": "running" if scheduler.running else "stopped",
        "payroll_enabled": app_settings.PAYROLL_ENABLED,
        "next_accrual": next_accrual,
        "timezone": app_settings.TIMEZONE,
    }


app.include_router(attendance.router)
app.include_router(coaches.router)
app.include_router(students.router)
app.include_router(salary.router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
