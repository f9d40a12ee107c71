"""
Usage Invoice Service.

Closes a contract's last billing period:
1. Compute the period from the contract's billing cycle
2. Meter every active service item for the goods owner and warehouse
3. Price each reading with the tiered rate engine
4. Persist the invoice and its line items, at most once per period
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone, date, timedelta
from decimal import Decimal
from typing import Optional, List, Tuple, Union

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.exceptions import ContractNotFound, DuplicatePeriod
from app.models.contract import Contract
from app.models.invoice import UsageInvoice, UsageInvoiceItem, InvoiceStatus
from app.services.billing_period import BillingPeriod, calculate_billing_period
from app.services.tiered_rate import RateTerms, UsageCalculation
from app.services.usage_meter import UsageMeter


logger = logging.getLogger(__name__)

# Attempts at allocating a free invoice number before giving up
MAX_NUMBER_ATTEMPTS = 3


@dataclass
class InvoiceDraft:
    """Invoice figures computed for a period but not persisted."""
    contract_id: uuid.UUID
    period: BillingPeriod
    due_date: date
    items: List[UsageCalculation] = field(default_factory=list)
    existing_invoice_number: Optional[str] = None

    @property
    def service_amount(self) -> Decimal:
        return sum((item.amount for item in self.items), Decimal("0"))

    @property
    def total_amount(self) -> Decimal:
        return self.service_amount


class UsageInvoiceService:
    """Service for usage-based invoice generation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.meter = UsageMeter(db)

    # =========================================================================
    # CONTRACT & USAGE
    # =========================================================================

    async def get_contract(self, contract_id: uuid.UUID) -> Contract:
        """Load a contract with its service items."""
        query = (
            select(Contract)
            .options(selectinload(Contract.service_items))
            .where(Contract.id == contract_id)
        )
        result = await self.db.execute(query)
        contract = result.scalar_one_or_none()
        if not contract:
            raise ContractNotFound(contract_id)
        return contract

    async def calculate_usage(
        self,
        contract: Contract,
        period: BillingPeriod
    ) -> List[UsageCalculation]:
        """Meter and price every active service item of the contract."""
        calculations = []
        for item in contract.service_items:
            if not item.is_active:
                continue

            terms = RateTerms.from_service_item(item)
            reading = await self.meter.measure(
                item.service_type,
                contract.goods_owner_id,
                contract.warehouse_id,
                period,
            )
            calculation = UsageCalculation.build(
                service_type=item.service_type,
                quantity_used=reading.quantity_used,
                terms=terms,
                calculation_details=reading.details,
                service_item_id=item.id,
                description=item.description,
            )
            logger.info(
                f"Contract {contract.contract_number}: {item.service_type} "
                f"used={calculation.quantity_used} billed={calculation.quantity_billed} "
                f"amount={calculation.amount}"
            )
            calculations.append(calculation)

        return calculations

    # =========================================================================
    # NUMBERING & DATES
    # =========================================================================

    async def _find_invoice_for_period(
        self,
        contract_id: uuid.UUID,
        period: BillingPeriod
    ) -> Optional[UsageInvoice]:
        query = select(UsageInvoice).where(
            and_(
                UsageInvoice.contract_id == contract_id,
                UsageInvoice.period_start == period.start,
                UsageInvoice.period_end == period.end,
            )
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_last_invoiced_period_end(self, contract_id: uuid.UUID) -> Optional[date]:
        """End date of the latest period invoiced for the contract, if any."""
        result = await self.db.execute(
            select(func.max(UsageInvoice.period_end))
            .where(UsageInvoice.contract_id == contract_id)
        )
        return result.scalar()

    async def _generate_invoice_number(self, now: datetime, offset: int = 0) -> str:
        """
        Generate the next invoice number of the month, e.g. FAT-202403-007.

        The sequence is the count of numbers already issued with the month
        prefix plus one; offset skips ahead after a collision.
        """
        prefix = f"{settings.INVOICE_NUMBER_PREFIX}-{now.strftime('%Y%m')}"

        query = select(func.count(UsageInvoice.id)).where(
            UsageInvoice.invoice_number.like(f"{prefix}-%")
        )
        count = await self.db.scalar(query) or 0
        return f"{prefix}-{count + 1 + offset:0{settings.INVOICE_SEQUENCE_PADDING}d}"

    @staticmethod
    def _calculate_due_date(due_days: Optional[int], period: BillingPeriod) -> date:
        if due_days is None:
            due_days = settings.DEFAULT_DUE_DAYS
        return period.end + timedelta(days=due_days)

    @staticmethod
    def _period_note(period: BillingPeriod) -> str:
        return (
            f"Usage invoice - Period: {period.start.strftime('%d/%m/%Y')} "
            f"to {period.end.strftime('%d/%m/%Y')}"
        )

    # =========================================================================
    # PREVIEW & GENERATION
    # =========================================================================

    async def preview_invoice(
        self,
        contract_id: uuid.UUID,
        now: Optional[datetime] = None
    ) -> InvoiceDraft:
        """Compute the invoice of the last closed period without saving it."""
        now = now or datetime.now(timezone.utc)
        contract = await self.get_contract(contract_id)
        period = calculate_billing_period(contract.billing_cycle, now)

        existing = await self._find_invoice_for_period(contract.id, period)
        items = await self.calculate_usage(contract, period)

        return InvoiceDraft(
            contract_id=contract.id,
            period=period,
            due_date=self._calculate_due_date(contract.due_days, period),
            items=items,
            existing_invoice_number=existing.invoice_number if existing else None,
        )

    async def generate_invoice(
        self,
        contract_id: Union[uuid.UUID, str],
        now: Optional[datetime] = None,
        period: Optional[BillingPeriod] = None
    ) -> Tuple[UsageInvoice, List[UsageCalculation]]:
        """
        Generate and persist the invoice of the contract's last closed period.

        An explicit period (the scheduled job catching up on closed cycles)
        replaces the one derived from `now`; numbering and issue date still
        follow `now`.

        Raises:
            ContractNotFound: unknown contract
            InvalidCadence: contract carries an unsupported billing cycle
            DuplicatePeriod: the period is already invoiced
        """
        if isinstance(contract_id, str):
            try:
                contract_id = uuid.UUID(contract_id)
            except ValueError:
                raise ContractNotFound(contract_id)
        now = now or datetime.now(timezone.utc)

        contract = await self.get_contract(contract_id)
        if period is None:
            period = calculate_billing_period(contract.billing_cycle, now)
        logger.info(
            f"Generating invoice for contract {contract.contract_number} "
            f"({contract.billing_cycle}) period {period}"
        )

        existing = await self._find_invoice_for_period(contract.id, period)
        if existing:
            raise DuplicatePeriod(existing.invoice_number)

        calculations = await self.calculate_usage(contract, period)
        service_amount = sum((c.amount for c in calculations), Decimal("0"))

        # Rollback expires the contract, keep what the header needs
        header = {
            "contract_id": contract.id,
            "customer_id": contract.customer_id,
            "recipient_id": contract.recipient_id,
            "warehouse_id": contract.warehouse_id,
            "period_start": period.start,
            "period_end": period.end,
            "issue_date": now.date() if isinstance(now, datetime) else now,
            "due_date": self._calculate_due_date(contract.due_days, period),
            "service_amount": service_amount,
            "total_amount": service_amount,
            "status": InvoiceStatus.PENDING.value,
            "notes": self._period_note(period),
        }

        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            invoice_number = await self._generate_invoice_number(now, offset=attempt - 1)
            invoice = UsageInvoice(
                invoice_number=invoice_number,
                line_items=self._build_line_items(calculations),
                **header,
            )
            self.db.add(invoice)

            try:
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                existing = await self._find_invoice_for_period(header["contract_id"], period)
                if existing:
                    raise DuplicatePeriod(existing.invoice_number)
                if attempt == MAX_NUMBER_ATTEMPTS:
                    raise
                logger.warning(
                    f"Invoice number {invoice_number} already taken, retrying "
                    f"(attempt {attempt}/{MAX_NUMBER_ATTEMPTS})"
                )
                continue

            logger.info(
                f"Invoice {invoice_number} generated: {len(calculations)} lines, "
                f"total {service_amount}"
            )
            return invoice, calculations

    @staticmethod
    def _build_line_items(calculations: List[UsageCalculation]) -> List[UsageInvoiceItem]:
        return [
            UsageInvoiceItem(
                line_number=line_number,
                service_item_id=calc.service_item_id,
                service_type=calc.service_type,
                description=calc.description,
                quantity_used=calc.quantity_used,
                quantity_included=calc.quantity_included,
                quantity_minimum=calc.quantity_minimum,
                quantity=calc.quantity_billed,
                unit_price=calc.unit_price,
                overage_price=calc.overage_price,
                amount=calc.amount,
                calculation_details=calc.calculation_details,
            )
            for line_number, calc in enumerate(calculations, start=1)
        ]

    # =========================================================================
    # READS
    # =========================================================================

    async def get_invoice(self, invoice_id: uuid.UUID) -> Optional[UsageInvoice]:
        """Get invoice by ID with its line items."""
        query = (
            select(UsageInvoice)
            .options(selectinload(UsageInvoice.line_items))
            .where(UsageInvoice.id == invoice_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_invoices(
        self,
        contract_id: Optional[uuid.UUID] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[UsageInvoice], int]:
        """List invoices, newest period first."""
        query = select(UsageInvoice)

        if contract_id:
            query = query.where(UsageInvoice.contract_id == contract_id)
        if status:
            query = query.where(UsageInvoice.status == status.value)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        query = query.order_by(
            UsageInvoice.period_end.desc(),
            UsageInvoice.invoice_number.desc()
        ).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total
