"""Tests for usage invoice generation."""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from app.core.exceptions import ContractNotFound, DuplicatePeriod, InvalidCadence
from app.models.contract import ServiceType
from app.models.invoice import UsageInvoice, UsageInvoiceItem, InvoiceStatus
from app.services.usage_invoice_service import UsageInvoiceService


NOW = datetime(2024, 4, 15, 9, 30, tzinfo=timezone.utc)

INBOUND_ITEM = {
    "service_type": ServiceType.INBOUND_UNIT.value,
    "description": "Pallet receiving",
    "included_quantity": Decimal("100"),
    "minimum_quantity": Decimal("20"),
    "unit_price": Decimal("2.00"),
    "overage_unit_price": Decimal("3.00"),
}


async def count_invoices(db):
    return await db.scalar(select(func.count(UsageInvoice.id)))


class TestGenerateInvoice:

    async def test_bills_overage_for_march(self, db, make_contract, add_receipt):
        contract = await make_contract(items=[INBOUND_ITEM])
        await add_receipt(contract.customer_id, date(2024, 3, 4), pallets=100)
        await add_receipt(contract.customer_id, date(2024, 3, 28), pallets=30)

        invoice, calculations = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        assert invoice.invoice_number == "FAT-202404-001"
        assert invoice.period_start == date(2024, 3, 1)
        assert invoice.period_end == date(2024, 3, 31)
        assert invoice.issue_date == date(2024, 4, 15)
        assert invoice.due_date == date(2024, 4, 10)
        assert invoice.service_amount == Decimal("290.00")
        assert invoice.total_amount == Decimal("290.00")
        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.notes == "Usage invoice - Period: 01/03/2024 to 31/03/2024"

        assert len(calculations) == 1
        calc = calculations[0]
        assert calc.quantity_used == Decimal("130")
        assert calc.quantity_billed == Decimal("130")
        assert calc.amount == Decimal("290.00")
        assert calc.calculation_details == {"receipts": 2, "pallets": 130}

    async def test_line_items_snapshot_calculation(self, db, make_contract, add_receipt):
        contract = await make_contract(items=[INBOUND_ITEM])
        await add_receipt(contract.customer_id, date(2024, 3, 4), pallets=5)

        invoice, _ = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        stored = await UsageInvoiceService(db).get_invoice(invoice.id)
        assert len(stored.line_items) == 1
        line = stored.line_items[0]
        assert line.line_number == 1
        assert line.service_item_id == contract.service_items[0].id
        assert line.quantity_used == Decimal("5")
        assert line.quantity == Decimal("20")
        assert line.amount == Decimal("40.00")
        assert line.overage_price == Decimal("3.00")
        assert line.calculation_details == {"receipts": 1, "pallets": 5}

    async def test_meters_recipient_goods_and_copies_parties(self, db, make_contract, add_receipt):
        recipient_id = uuid.uuid4()
        contract = await make_contract(items=[INBOUND_ITEM], recipient_id=recipient_id)
        await add_receipt(recipient_id, date(2024, 3, 4), pallets=110)
        await add_receipt(contract.customer_id, date(2024, 3, 4), pallets=50)

        invoice, calculations = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        assert calculations[0].quantity_used == Decimal("110")
        assert invoice.customer_id == contract.customer_id
        assert invoice.recipient_id == recipient_id
        assert invoice.warehouse_id == contract.warehouse_id

    async def test_sums_several_lines_and_skips_inactive_items(
        self, db, make_contract, add_shipment, add_storage_units
    ):
        contract = await make_contract(items=[
            {
                "service_type": ServiceType.OUTBOUND_UNIT.value,
                "unit_price": Decimal("1.50"),
            },
            {
                "service_type": ServiceType.STORAGE_UNIT_DAY.value,
                "unit_price": Decimal("0.80"),
                "included_quantity": Decimal("1000"),
            },
            {
                "service_type": ServiceType.PICKING.value,
                "unit_price": Decimal("0.25"),
            },
            {
                "service_type": ServiceType.INBOUND_UNIT.value,
                "unit_price": Decimal("9.99"),
                "minimum_quantity": Decimal("10"),
                "is_active": False,
            },
        ])
        await add_shipment(contract.customer_id, date(2024, 3, 10), items=4)
        await add_storage_units(contract.customer_id, [5, 5])

        invoice, calculations = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        assert [c.service_type for c in calculations] == [
            ServiceType.OUTBOUND_UNIT.value,
            ServiceType.STORAGE_UNIT_DAY.value,
            ServiceType.PICKING.value,
        ]
        # 4 items x 1.50 + 62 pallet-days x 0.80 + 0 picks
        assert [c.amount for c in calculations] == [
            Decimal("6.00"), Decimal("49.60"), Decimal("0.00")
        ]
        assert invoice.total_amount == Decimal("55.60")

    async def test_contract_due_days_override_default(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM], due_days=5)

        invoice, _ = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        assert invoice.due_date == date(2024, 4, 5)

    async def test_numbers_are_sequential_within_month(self, db, make_contract):
        first = await make_contract(items=[INBOUND_ITEM])
        second = await make_contract(items=[INBOUND_ITEM])
        service = UsageInvoiceService(db)

        invoice_1, _ = await service.generate_invoice(first.id, now=NOW)
        invoice_2, _ = await service.generate_invoice(second.id, now=NOW)

        assert invoice_1.invoice_number == "FAT-202404-001"
        assert invoice_2.invoice_number == "FAT-202404-002"

    async def test_contract_without_items_gets_empty_invoice(self, db, make_contract):
        contract = await make_contract(items=[])

        invoice, calculations = await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)

        assert calculations == []
        assert invoice.total_amount == Decimal("0")

    async def test_accepts_string_contract_id(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM])

        invoice, _ = await UsageInvoiceService(db).generate_invoice(str(contract.id), now=NOW)

        assert invoice.contract_id == contract.id


class TestGenerateInvoiceFailures:

    async def test_second_run_for_same_period_is_rejected(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM])
        service = UsageInvoiceService(db)

        invoice, _ = await service.generate_invoice(contract.id, now=NOW)
        with pytest.raises(DuplicatePeriod) as exc_info:
            await service.generate_invoice(contract.id, now=datetime(2024, 4, 28, tzinfo=timezone.utc))

        assert exc_info.value.invoice_number == invoice.invoice_number
        assert str(exc_info.value) == (
            f"Already exists an invoice for this period: {invoice.invoice_number}"
        )
        assert await count_invoices(db) == 1

    async def test_next_period_is_billed_again(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM])
        service = UsageInvoiceService(db)

        await service.generate_invoice(contract.id, now=NOW)
        invoice, _ = await service.generate_invoice(
            contract.id, now=datetime(2024, 5, 2, tzinfo=timezone.utc)
        )

        assert invoice.period_start == date(2024, 4, 1)
        assert invoice.invoice_number == "FAT-202405-001"
        assert await count_invoices(db) == 2

    async def test_unique_constraint_violation_reports_duplicate(
        self, db, make_contract, monkeypatch
    ):
        contract = await make_contract(items=[INBOUND_ITEM])
        contract_id = contract.id
        service = UsageInvoiceService(db)
        first, _ = await service.generate_invoice(contract_id, now=NOW)
        first_number = first.invoice_number

        # A concurrent run that passed the pre-check before the first insert
        original = service._find_invoice_for_period
        calls = {"n": 0}

        async def stale_check(contract_id, period):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return await original(contract_id, period)

        monkeypatch.setattr(service, "_find_invoice_for_period", stale_check)

        with pytest.raises(DuplicatePeriod) as exc_info:
            await service.generate_invoice(contract_id, now=NOW)

        assert exc_info.value.invoice_number == first_number
        assert await count_invoices(db) == 1
        assert await db.scalar(select(func.count(UsageInvoiceItem.id))) == 1

    async def test_taken_number_is_skipped(self, db, make_contract):
        other = await make_contract(items=[])
        contract = await make_contract(items=[INBOUND_ITEM])
        contract_id = contract.id
        db.add(UsageInvoice(
            invoice_number="FAT-202404-002",
            contract_id=other.id,
            customer_id=other.customer_id,
            warehouse_id=other.warehouse_id,
            period_start=date(2024, 1, 1),
            period_end=date(2024, 1, 31),
            issue_date=date(2024, 4, 1),
            due_date=date(2024, 2, 10),
        ))
        await db.commit()

        invoice, _ = await UsageInvoiceService(db).generate_invoice(contract_id, now=NOW)

        assert invoice.invoice_number == "FAT-202404-003"

    async def test_unknown_contract(self, db):
        missing = uuid.uuid4()
        with pytest.raises(ContractNotFound, match=str(missing)):
            await UsageInvoiceService(db).generate_invoice(missing, now=NOW)

    async def test_malformed_contract_id(self, db):
        with pytest.raises(ContractNotFound, match="not-a-uuid"):
            await UsageInvoiceService(db).generate_invoice("not-a-uuid", now=NOW)

    async def test_unsupported_cycle(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM], billing_cycle="DAILY")
        with pytest.raises(InvalidCadence):
            await UsageInvoiceService(db).generate_invoice(contract.id, now=NOW)
        assert await count_invoices(db) == 0


class TestPreviewAndReads:

    async def test_preview_persists_nothing(self, db, make_contract, add_receipt):
        contract = await make_contract(items=[INBOUND_ITEM])
        await add_receipt(contract.customer_id, date(2024, 3, 4), pallets=130)

        draft = await UsageInvoiceService(db).preview_invoice(contract.id, now=NOW)

        assert draft.period.start == date(2024, 3, 1)
        assert draft.due_date == date(2024, 4, 10)
        assert draft.total_amount == Decimal("290.00")
        assert draft.existing_invoice_number is None
        assert await count_invoices(db) == 0

    async def test_preview_reports_existing_invoice(self, db, make_contract):
        contract = await make_contract(items=[INBOUND_ITEM])
        service = UsageInvoiceService(db)
        invoice, _ = await service.generate_invoice(contract.id, now=NOW)

        draft = await service.preview_invoice(contract.id, now=NOW)

        assert draft.existing_invoice_number == invoice.invoice_number

    async def test_list_invoices_filters(self, db, make_contract):
        first = await make_contract(items=[INBOUND_ITEM])
        second = await make_contract(items=[INBOUND_ITEM])
        service = UsageInvoiceService(db)
        await service.generate_invoice(first.id, now=NOW)
        await service.generate_invoice(first.id, now=datetime(2024, 5, 3, tzinfo=timezone.utc))
        await service.generate_invoice(second.id, now=NOW)

        invoices, total = await service.list_invoices(contract_id=first.id)
        assert total == 2
        assert [i.period_start for i in invoices] == [date(2024, 4, 1), date(2024, 3, 1)]

        invoices, total = await service.list_invoices(status=InvoiceStatus.PAID)
        assert total == 0

        invoices, total = await service.list_invoices(skip=1, limit=1)
        assert total == 3
        assert len(invoices) == 1

    async def test_get_missing_invoice(self, db):
        assert await UsageInvoiceService(db).get_invoice(uuid.uuid4()) is None
