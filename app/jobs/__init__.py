"""
Background Jobs Module

Handles scheduled tasks for:
- Usage invoice generation at the close of each billing period
"""

from app.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from app.jobs.billing_jobs import run_invoice_generation_job

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "run_invoice_generation_job",
]
