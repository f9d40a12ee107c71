"""
Warehouse operation records read by usage metering.

Receiving, dispatch and storage are owned by the warehouse workflows;
only the columns needed to count billable volume are mapped here.
"""
import uuid
from datetime import datetime, timezone, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Date, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType


class ReceiptStatus(str, Enum):
    """Inbound receipt status."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ShipmentStatus(str, Enum):
    """Outbound shipment status."""
    PLANNED = "PLANNED"
    SEPARATED = "SEPARATED"
    EXPEDITED = "EXPEDITED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class InboundReceipt(Base):
    """Goods received at a warehouse on behalf of a recipient."""
    __tablename__ = "inbound_receipts"
    __table_args__ = (
        Index('ix_inbound_receipts_lookup', 'recipient_id', 'warehouse_id', 'receipt_date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReceiptStatus.PENDING.value,
        nullable=False
    )
    receipt_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    pallets: Mapped[List["ReceiptPallet"]] = relationship(
        "ReceiptPallet",
        back_populates="receipt",
        cascade="all, delete-orphan"
    )


class ReceiptPallet(Base):
    """Storage unit (pallet) built from an inbound receipt."""
    __tablename__ = "receipt_pallets"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    receipt_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("inbound_receipts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    barcode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    receipt: Mapped["InboundReceipt"] = relationship(
        "InboundReceipt",
        back_populates="pallets"
    )


class OutboundShipment(Base):
    """Goods dispatched from a warehouse on behalf of a recipient."""
    __tablename__ = "outbound_shipments"
    __table_args__ = (
        Index('ix_outbound_shipments_lookup', 'recipient_id', 'warehouse_id', 'dispatch_date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ShipmentStatus.PLANNED.value,
        nullable=False
    )
    dispatch_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    items: Mapped[List["OutboundShipmentItem"]] = relationship(
        "OutboundShipmentItem",
        back_populates="shipment",
        cascade="all, delete-orphan"
    )


class OutboundShipmentItem(Base):
    """Line item of an outbound shipment."""
    __tablename__ = "outbound_shipment_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    shipment_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("outbound_shipments.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0)

    shipment: Mapped["OutboundShipment"] = relationship(
        "OutboundShipment",
        back_populates="items"
    )


class StorageUnit(Base):
    """Storage position currently holding stock for a recipient."""
    __tablename__ = "storage_units"
    __table_args__ = (
        Index('ix_storage_units_lookup', 'recipient_id', 'warehouse_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    recipient_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    remaining_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
