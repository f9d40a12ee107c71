"""
Service Contract Models.

Contracts between the warehouse operator and a customer:
- Contract: payer, recipient, location and billing cadence
- ContractServiceItem: one billable service with its tiered terms

Both are maintained by contract administration; billing only reads them.
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey, Integer, Text,
    Numeric, Date, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType


# ============================================================================
# ENUMS
# ============================================================================

class BillingCycle(str, Enum):
    """How often a contract is invoiced."""
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"


class ContractStatus(str, Enum):
    """Service contract status."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ServiceType(str, Enum):
    """Billable services a contract can carry."""
    # Metered
    INBOUND_UNIT = "INBOUND_UNIT"            # Pallets received
    OUTBOUND_UNIT = "OUTBOUND_UNIT"          # Items dispatched
    STORAGE_UNIT_DAY = "STORAGE_UNIT_DAY"    # Pallet-days in storage

    # Not metered yet
    FIXED_MONTHLY_FEE = "FIXED_MONTHLY_FEE"
    INTERNAL_MOVEMENT = "INTERNAL_MOVEMENT"
    PICKING = "PICKING"
    REPALLETIZING = "REPALLETIZING"


# ============================================================================
# MODELS
# ============================================================================

class Contract(Base):
    """
    Service contract with a customer.

    The payer receives the invoice; the recipient owns the goods whose
    movements are metered at the contracted warehouse.
    """
    __tablename__ = "service_contracts"
    __table_args__ = (
        UniqueConstraint('contract_number', name='uq_service_contract_number'),
        Index('ix_service_contracts_status', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    contract_number: Mapped[str] = mapped_column(String(30), nullable=False)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        index=True,
        comment="Payer"
    )
    recipient_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        nullable=True,
        index=True,
        comment="Owner of the goods; defaults to the payer"
    )
    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        index=True
    )

    billing_cycle: Mapped[str] = mapped_column(
        String(20),
        default=BillingCycle.MONTHLY.value,
        nullable=False
    )
    due_days: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Days after period end until payment is due"
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ContractStatus.ACTIVE.value,
        nullable=False
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    service_items: Mapped[List["ContractServiceItem"]] = relationship(
        "ContractServiceItem",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractServiceItem.created_at"
    )

    @property
    def goods_owner_id(self) -> uuid.UUID:
        return self.recipient_id or self.customer_id

    def __repr__(self) -> str:
        return f"<Contract(number='{self.contract_number}', cycle='{self.billing_cycle}')>"


class ContractServiceItem(Base):
    """Billable service line of a contract with its tiered pricing terms."""
    __tablename__ = "contract_service_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    contract_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("service_contracts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    service_type: Mapped[str] = mapped_column(String(30), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    included_quantity: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        default=0,
        comment="Volume covered at the unit price"
    )
    minimum_quantity: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        default=0,
        comment="Volume billed even when usage is lower"
    )
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    overage_unit_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 4),
        nullable=True,
        comment="Price beyond the included volume; unit price when empty"
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    contract: Mapped["Contract"] = relationship(
        "Contract",
        back_populates="service_items"
    )

    def __repr__(self) -> str:
        return f"<ContractServiceItem(type='{self.service_type}', unit_price={self.unit_price})>"
