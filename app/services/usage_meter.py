"""
Usage Meter.

Counts the operational volume a contract consumed in a billing period,
per billable service kind. Reads warehouse operation records only.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, Any, Union

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.contract import ServiceType
from app.models.operations import (
    InboundReceipt, ReceiptPallet, OutboundShipment, OutboundShipmentItem,
    StorageUnit, ReceiptStatus, ShipmentStatus
)
from app.services.billing_period import BillingPeriod


logger = logging.getLogger(__name__)


@dataclass
class UsageReading:
    """Metered quantity plus the raw counts behind it."""
    quantity_used: int = 0
    details: Dict[str, Any] = field(default_factory=dict)


class UsageMeter:
    """Meters inbound pallets, outbound items and storage pallet-days."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def measure(
        self,
        service_type: Union[ServiceType, str],
        recipient_id: uuid.UUID,
        warehouse_id: uuid.UUID,
        period: BillingPeriod
    ) -> UsageReading:
        """
        Meter one service kind for the goods owner at a warehouse.

        Service kinds without a meter read as zero usage.
        """
        kind = service_type.value if isinstance(service_type, ServiceType) else str(service_type)

        if kind == ServiceType.INBOUND_UNIT.value:
            return await self._measure_inbound(recipient_id, warehouse_id, period)
        if kind == ServiceType.OUTBOUND_UNIT.value:
            return await self._measure_outbound(recipient_id, warehouse_id, period)
        if kind == ServiceType.STORAGE_UNIT_DAY.value:
            return await self._measure_storage(recipient_id, warehouse_id, period)

        logger.debug(f"No meter for service type {kind}, usage is zero")
        return UsageReading()

    async def _measure_inbound(
        self,
        recipient_id: uuid.UUID,
        warehouse_id: uuid.UUID,
        period: BillingPeriod
    ) -> UsageReading:
        """Pallets of confirmed receipts dated within the period."""
        receipt_filter = and_(
            InboundReceipt.recipient_id == recipient_id,
            InboundReceipt.warehouse_id == warehouse_id,
            InboundReceipt.status == ReceiptStatus.CONFIRMED.value,
            InboundReceipt.receipt_date >= period.start,
            InboundReceipt.receipt_date <= period.end,
        )

        receipts = await self.db.scalar(
            select(func.count(InboundReceipt.id)).where(receipt_filter)
        ) or 0

        pallets = await self.db.scalar(
            select(func.count(ReceiptPallet.id))
            .join(InboundReceipt, ReceiptPallet.receipt_id == InboundReceipt.id)
            .where(receipt_filter)
        ) or 0

        return UsageReading(
            quantity_used=pallets,
            details={"receipts": receipts, "pallets": pallets},
        )

    async def _measure_outbound(
        self,
        recipient_id: uuid.UUID,
        warehouse_id: uuid.UUID,
        period: BillingPeriod
    ) -> UsageReading:
        """Line items of expedited shipments dispatched within the period."""
        shipment_filter = and_(
            OutboundShipment.recipient_id == recipient_id,
            OutboundShipment.warehouse_id == warehouse_id,
            OutboundShipment.status == ShipmentStatus.EXPEDITED.value,
            OutboundShipment.dispatch_date >= period.start,
            OutboundShipment.dispatch_date <= period.end,
        )

        shipments = await self.db.scalar(
            select(func.count(OutboundShipment.id)).where(shipment_filter)
        ) or 0

        items = await self.db.scalar(
            select(func.count(OutboundShipmentItem.id))
            .join(OutboundShipment, OutboundShipmentItem.shipment_id == OutboundShipment.id)
            .where(shipment_filter)
        ) or 0

        return UsageReading(
            quantity_used=items,
            details={"shipments": shipments, "items": items},
        )

    async def _measure_storage(
        self,
        recipient_id: uuid.UUID,
        warehouse_id: uuid.UUID,
        period: BillingPeriod
    ) -> UsageReading:
        """
        Pallet-days approximated from the current storage snapshot.

        Units that entered or left storage during the period are not
        accounted for; there is no daily occupancy ledger.
        """
        units = await self.db.scalar(
            select(func.count(StorageUnit.id)).where(
                and_(
                    StorageUnit.recipient_id == recipient_id,
                    StorageUnit.warehouse_id == warehouse_id,
                    StorageUnit.remaining_quantity > 0,
                )
            )
        ) or 0

        days = period.days
        return UsageReading(
            quantity_used=units * days,
            details={"units_in_storage": units, "days_in_period": days},
        )
