"""
Scheduled Usage Invoice Generation.

Closes every billing period that has come due for the active contracts:
- A contract with invoices continues right after its latest invoiced
  period, catching up on every cycle closed since then
- A contract without invoices starts with its last closed period; an
  ANNUAL contract starts with its first contract year instead
- Contracts whose next period is still open are counted as not due
- One contract's failure never stops the batch

Triggers:
- Daily cron job (via APScheduler) when BILLING_JOB_ENABLED is set
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, Any, Optional, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import DuplicatePeriod, BillingError
from app.models.contract import BillingCycle, Contract, ContractStatus
from app.services.billing_period import (
    BillingPeriod,
    calculate_billing_period,
    next_billing_period,
    period_closing_date,
)
from app.services.usage_invoice_service import UsageInvoiceService

logger = logging.getLogger(__name__)


def _first_period(billing_cycle: str, start_date: date, today: date) -> BillingPeriod:
    """Period a contract without invoices is billed for first."""
    if str(billing_cycle).strip().upper() == BillingCycle.ANNUAL.value:
        return calculate_billing_period(
            billing_cycle, period_closing_date(billing_cycle, start_date.replace(day=1))
        )
    return calculate_billing_period(billing_cycle, today)


def due_periods(
    billing_cycle: str,
    start_date: date,
    last_period_end: Optional[date],
    today: date
) -> List[BillingPeriod]:
    """
    Closed periods of a contract that still need an invoice, oldest first.

    Consecutive periods never overlap and leave no gap between them.
    """
    if last_period_end is None:
        period = _first_period(billing_cycle, start_date, today)
        if start_date > period.end:
            return []
    else:
        period = next_billing_period(billing_cycle, last_period_end)

    periods = []
    while period.end < today:
        periods.append(period)
        period = next_billing_period(billing_cycle, period.end)
    return periods


async def run_invoice_generation_job(
    db: AsyncSession,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Generate the due usage invoices of all active contracts.

    Returns:
        Summary with generated invoice numbers, skipped contracts and errors
    """
    now = now or datetime.now(timezone.utc)
    today = now.date() if isinstance(now, datetime) else now
    logger.info("Starting usage invoice generation job...")

    results = {
        "started_at": now.isoformat(),
        "contracts": 0,
        "generated": [],
        "already_invoiced": [],
        "not_started": [],
        "not_due": [],
        "errors": [],
    }

    query = (
        select(Contract.id, Contract.contract_number, Contract.billing_cycle, Contract.start_date)
        .where(Contract.status == ContractStatus.ACTIVE.value)
        .order_by(Contract.contract_number)
    )
    if settings.BILLING_JOB_CONTRACT_LIMIT:
        query = query.limit(settings.BILLING_JOB_CONTRACT_LIMIT)

    contracts = (await db.execute(query)).all()
    results["contracts"] = len(contracts)

    service = UsageInvoiceService(db)
    for contract_id, contract_number, billing_cycle, start_date in contracts:
        try:
            last_period_end = await service.get_last_invoiced_period_end(contract_id)
            periods = due_periods(billing_cycle, start_date, last_period_end, today)
            if not periods:
                key = "not_started" if last_period_end is None else "not_due"
                results[key].append(contract_number)
                continue

            for period in periods:
                invoice, _ = await service.generate_invoice(contract_id, now=now, period=period)
                results["generated"].append({
                    "contract_number": contract_number,
                    "invoice_number": invoice.invoice_number,
                    "period_start": period.start.isoformat(),
                    "period_end": period.end.isoformat(),
                    "total_amount": float(invoice.total_amount),
                })
        except DuplicatePeriod as e:
            results["already_invoiced"].append({
                "contract_number": contract_number,
                "invoice_number": e.invoice_number,
            })
        except BillingError as e:
            logger.error(f"Contract {contract_number}: {e}")
            results["errors"].append({"contract_number": contract_number, "error": str(e)})
        except Exception as e:
            logger.exception(f"Contract {contract_number}: invoice generation failed")
            await db.rollback()
            results["errors"].append({"contract_number": contract_number, "error": str(e)})

    logger.info(
        f"Usage invoice generation job completed: {len(results['generated'])} generated, "
        f"{len(results['not_due'])} not due, {len(results['errors'])} errors"
    )
    return results
