"""
APScheduler Configuration.

Background scheduler that triggers the daily usage invoice generation.
The billing engine itself is stateless; jobs only invoke it.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings

logger = logging.getLogger(__name__)

# Job stores
jobstores = {
    'default': MemoryJobStore()
}

# Executors
executors = {
    'default': AsyncIOExecutor(),
}

# Job defaults
job_defaults = {
    'coalesce': True,  # Combine multiple pending executions into one
    'max_instances': 1,  # Only one instance of each job at a time
    'misfire_grace_time': 3600,
}

# Create scheduler
scheduler = AsyncIOScheduler(
    jobstores=jobstores,
    executors=executors,
    job_defaults=job_defaults,
    timezone=settings.SCHEDULER_TIMEZONE
)


async def run_invoice_generation():
    """Called by APScheduler; opens its own session for the batch."""
    from app.database import get_db_session
    from app.jobs.billing_jobs import run_invoice_generation_job

    try:
        async with get_db_session() as db:
            result = await run_invoice_generation_job(db)
        logger.info(
            f"Job 'generate_usage_invoices' completed: "
            f"{len(result['generated'])}/{result['contracts']} contracts invoiced"
        )
    except Exception as e:
        logger.exception(f"Job 'generate_usage_invoices' failed: {e}")


def start_scheduler():
    """Start the background job scheduler."""
    if not settings.BILLING_JOB_ENABLED:
        logger.info("Usage invoice job disabled, scheduler not started")
        return

    if not scheduler.running:
        scheduler.add_job(
            run_invoice_generation,
            'cron',
            hour=settings.BILLING_JOB_HOUR,
            minute=0,
            id='generate_usage_invoices',
            name='Generate Usage Invoices',
            replace_existing=True,
        )

        scheduler.start()
        logger.info("Background job scheduler started")

        for job in scheduler.get_jobs():
            logger.info(f"Scheduled job: {job.name} - Next run: {job.next_run_time}")


def shutdown_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status():
    """Get status of all scheduled jobs."""
    jobs = scheduler.get_jobs()
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in jobs
    ]
