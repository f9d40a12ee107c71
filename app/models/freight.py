"""Freight rate table models: distance brackets priced by weight."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String, Boolean, DateTime, ForeignKey, Integer, Numeric, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType


class Transporter(Base):
    """Third-party carrier that publishes freight tables."""
    __tablename__ = "transporters"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Transporter(code='{self.code}', name='{self.name}')>"


class FreightRateTable(Base):
    """
    Freight table of a payer.

    Without a transporter the table is a house table (own fleet pricing).
    """
    __tablename__ = "freight_rate_tables"
    __table_args__ = (
        Index("ix_freight_rate_tables_owner_active", "owner_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        comment="Payer the table is negotiated for"
    )
    transporter_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("transporters.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    transporter: Mapped[Optional["Transporter"]] = relationship("Transporter")
    brackets: Mapped[List["FreightRateBracket"]] = relationship(
        "FreightRateBracket",
        back_populates="rate_table",
        cascade="all, delete-orphan",
        order_by="FreightRateBracket.distance_min"
    )

    @property
    def transporter_name(self) -> Optional[str]:
        """Carrier name; requires the transporter relationship to be loaded."""
        return self.transporter.name if self.transporter else None

    def __repr__(self) -> str:
        return f"<FreightRateTable(name='{self.name}', active={self.is_active})>"


class FreightRateBracket(Base):
    """Distance range of a freight table with its prices and lead time."""
    __tablename__ = "freight_rate_brackets"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    rate_table_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("freight_rate_tables.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Closed interval in km
    distance_min: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    distance_max: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    value_up_to_300kg: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Flat freight up to the weight break"
    )
    value_per_kg_above_300: Mapped[Decimal] = mapped_column(
        Numeric(12, 4),
        nullable=False,
        comment="Per kg over the whole weight above the break"
    )
    toll_per_ton: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    lead_time_days: Mapped[int] = mapped_column(Integer, default=0)

    rate_table: Mapped["FreightRateTable"] = relationship(
        "FreightRateTable",
        back_populates="brackets"
    )

    def __repr__(self) -> str:
        return f"<FreightRateBracket({self.distance_min}-{self.distance_max} km)>"
