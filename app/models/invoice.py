"""
Usage Invoice Models.

- UsageInvoice: one invoice per contract and billing period
- UsageInvoiceItem: snapshot of one metered and priced service line

Both are append-only; status changes belong to the payment workflow.
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict, Any

from sqlalchemy import (
    String, DateTime, ForeignKey, Integer, Text,
    Numeric, Date, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, JSONType


class InvoiceStatus(str, Enum):
    """Usage invoice status."""
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class UsageInvoice(Base):
    """Invoice issued for a contract's closed billing period."""
    __tablename__ = "usage_invoices"
    __table_args__ = (
        UniqueConstraint('invoice_number', name='uq_invoice_number'),
        UniqueConstraint(
            'contract_id', 'period_start', 'period_end',
            name='uq_invoice_contract_period'
        ),
        Index('ix_usage_invoices_status', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("service_contracts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    recipient_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    service_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.PENDING.value,
        nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    line_items: Mapped[List["UsageInvoiceItem"]] = relationship(
        "UsageInvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="UsageInvoiceItem.line_number"
    )

    def __repr__(self) -> str:
        return f"<UsageInvoice(number='{self.invoice_number}', total={self.total_amount})>"


class UsageInvoiceItem(Base):
    """Priced service line of a usage invoice."""
    __tablename__ = "usage_invoice_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    invoice_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("usage_invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    service_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("contract_service_items.id", ondelete="SET NULL"),
        nullable=True
    )

    line_number: Mapped[int] = mapped_column(Integer, default=1)
    service_type: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    quantity_used: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    quantity_included: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    quantity_minimum: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=0,
        comment="Billed quantity"
    )
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    overage_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    calculation_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Raw counts used by the meter"
    )

    invoice: Mapped["UsageInvoice"] = relationship(
        "UsageInvoice",
        back_populates="line_items"
    )
