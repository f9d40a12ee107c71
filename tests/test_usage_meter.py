"""Tests for usage metering against warehouse operation records."""
import uuid
from datetime import date

import pytest

from app.models.contract import ServiceType
from app.models.operations import ReceiptStatus, ShipmentStatus
from app.services.billing_period import BillingPeriod
from app.services.usage_meter import UsageMeter


MARCH = BillingPeriod(date(2024, 3, 1), date(2024, 3, 31))


@pytest.fixture
def recipient_id():
    return uuid.uuid4()


class TestInboundUnits:

    async def test_counts_pallets_of_confirmed_receipts_in_period(
        self, db, warehouse_id, recipient_id, add_receipt
    ):
        await add_receipt(recipient_id, date(2024, 3, 1), pallets=4)
        await add_receipt(recipient_id, date(2024, 3, 31), pallets=6)
        # Excluded: outside period, not confirmed, other recipient, other warehouse
        await add_receipt(recipient_id, date(2024, 4, 1), pallets=9)
        await add_receipt(recipient_id, date(2024, 2, 29), pallets=9)
        await add_receipt(recipient_id, date(2024, 3, 10), pallets=9, status=ReceiptStatus.PENDING.value)
        await add_receipt(uuid.uuid4(), date(2024, 3, 10), pallets=9)
        await add_receipt(recipient_id, date(2024, 3, 10), pallets=9, warehouse=uuid.uuid4())

        reading = await UsageMeter(db).measure(
            ServiceType.INBOUND_UNIT, recipient_id, warehouse_id, MARCH
        )

        assert reading.quantity_used == 10
        assert reading.details == {"receipts": 2, "pallets": 10}

    async def test_receipt_without_pallets_counts_zero(
        self, db, warehouse_id, recipient_id, add_receipt
    ):
        await add_receipt(recipient_id, date(2024, 3, 5), pallets=0)

        reading = await UsageMeter(db).measure(
            "INBOUND_UNIT", recipient_id, warehouse_id, MARCH
        )

        assert reading.quantity_used == 0
        assert reading.details == {"receipts": 1, "pallets": 0}


class TestOutboundUnits:

    async def test_counts_items_of_expedited_shipments(
        self, db, warehouse_id, recipient_id, add_shipment
    ):
        await add_shipment(recipient_id, date(2024, 3, 2), items=3)
        await add_shipment(recipient_id, date(2024, 3, 20), items=2)
        await add_shipment(recipient_id, date(2024, 3, 21), items=7, status=ShipmentStatus.PLANNED.value)
        await add_shipment(recipient_id, date(2024, 3, 22), items=7, status=ShipmentStatus.DELIVERED.value)
        await add_shipment(recipient_id, date(2024, 2, 28), items=7)
        await add_shipment(recipient_id, None, items=7)

        reading = await UsageMeter(db).measure(
            ServiceType.OUTBOUND_UNIT, recipient_id, warehouse_id, MARCH
        )

        assert reading.quantity_used == 5
        assert reading.details == {"shipments": 2, "items": 5}


class TestStorageUnitDays:

    async def test_units_in_stock_times_period_days(
        self, db, warehouse_id, recipient_id, add_storage_units
    ):
        await add_storage_units(recipient_id, [10, 1, 0.5, 0])
        await add_storage_units(uuid.uuid4(), [10])

        reading = await UsageMeter(db).measure(
            ServiceType.STORAGE_UNIT_DAY, recipient_id, warehouse_id, MARCH
        )

        assert reading.quantity_used == 3 * 31
        assert reading.details == {"units_in_storage": 3, "days_in_period": 31}

    async def test_empty_storage(self, db, warehouse_id, recipient_id):
        reading = await UsageMeter(db).measure(
            ServiceType.STORAGE_UNIT_DAY, recipient_id, warehouse_id, MARCH
        )
        assert reading.quantity_used == 0


class TestUnmeteredKinds:

    @pytest.mark.parametrize("kind", [
        ServiceType.PICKING,
        ServiceType.FIXED_MONTHLY_FEE,
        "SOMETHING_NEW",
    ])
    async def test_reads_as_zero(self, db, warehouse_id, recipient_id, kind):
        reading = await UsageMeter(db).measure(kind, recipient_id, warehouse_id, MARCH)
        assert reading.quantity_used == 0
        assert reading.details == {}
