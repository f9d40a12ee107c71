"""
Shared fixtures: an in-memory SQLite database per test, record factories
and an HTTP client bound to the same database.
"""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db
from app.main import app
from app.models import (
    Contract, ContractServiceItem, BillingCycle, ContractStatus,
    InboundReceipt, ReceiptPallet, OutboundShipment, OutboundShipmentItem, StorageUnit,
    ReceiptStatus, ShipmentStatus,
    Transporter, FreightRateTable, FreightRateBracket,
)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# FACTORIES
# ============================================================================

@pytest.fixture
def warehouse_id():
    return uuid.uuid4()


@pytest.fixture
def make_contract(db, warehouse_id):
    """Create a contract with service items given as dicts of item fields."""
    counter = {"n": 0}

    async def _make(
        items=(),
        billing_cycle=BillingCycle.MONTHLY.value,
        status=ContractStatus.ACTIVE.value,
        due_days=None,
        customer_id=None,
        recipient_id=None,
        start_date=date(2023, 1, 1),
    ):
        counter["n"] += 1
        contract = Contract(
            contract_number=f"CT-{counter['n']:04d}",
            customer_id=customer_id or uuid.uuid4(),
            recipient_id=recipient_id,
            warehouse_id=warehouse_id,
            billing_cycle=billing_cycle,
            due_days=due_days,
            status=status,
            start_date=start_date,
            service_items=[
                ContractServiceItem(
                    service_type=item["service_type"],
                    description=item.get("description"),
                    included_quantity=item.get("included_quantity", Decimal("0")),
                    minimum_quantity=item.get("minimum_quantity", Decimal("0")),
                    unit_price=item["unit_price"],
                    overage_unit_price=item.get("overage_unit_price"),
                    is_active=item.get("is_active", True),
                )
                for item in items
            ],
        )
        db.add(contract)
        await db.commit()
        return contract

    return _make


@pytest.fixture
def add_receipt(db, warehouse_id):
    """Record an inbound receipt with a number of pallets."""
    async def _add(recipient_id, receipt_date, pallets, status=ReceiptStatus.CONFIRMED.value, warehouse=None):
        receipt = InboundReceipt(
            recipient_id=recipient_id,
            warehouse_id=warehouse or warehouse_id,
            status=status,
            receipt_date=receipt_date,
            pallets=[ReceiptPallet(barcode=f"PLT{i:05d}") for i in range(pallets)],
        )
        db.add(receipt)
        await db.commit()
        return receipt

    return _add


@pytest.fixture
def add_shipment(db, warehouse_id):
    """Record an outbound shipment with a number of line items."""
    async def _add(recipient_id, dispatch_date, items, status=ShipmentStatus.EXPEDITED.value):
        shipment = OutboundShipment(
            recipient_id=recipient_id,
            warehouse_id=warehouse_id,
            status=status,
            dispatch_date=dispatch_date,
            items=[
                OutboundShipmentItem(product_id=uuid.uuid4(), quantity=Decimal("1"))
                for _ in range(items)
            ],
        )
        db.add(shipment)
        await db.commit()
        return shipment

    return _add


@pytest.fixture
def add_storage_units(db, warehouse_id):
    """Record storage units holding the given remaining quantities."""
    async def _add(recipient_id, quantities):
        units = [
            StorageUnit(
                recipient_id=recipient_id,
                warehouse_id=warehouse_id,
                remaining_quantity=Decimal(str(q)),
            )
            for q in quantities
        ]
        db.add_all(units)
        await db.commit()
        return units

    return _add


@pytest.fixture
def make_rate_table(db):
    """
    Create a freight table; brackets are tuples of
    (distance_min, distance_max, value_up_to_300kg, value_per_kg_above_300[, toll_per_ton, lead_time_days]).
    """
    async def _make(owner_id, name, brackets=(), transporter_name=None, is_active=True):
        transporter = None
        if transporter_name:
            transporter = Transporter(
                code=transporter_name.upper()[:20],
                name=transporter_name,
            )
        table = FreightRateTable(
            owner_id=owner_id,
            name=name,
            is_active=is_active,
            transporter=transporter,
            brackets=[
                FreightRateBracket(
                    distance_min=Decimal(str(b[0])),
                    distance_max=Decimal(str(b[1])),
                    value_up_to_300kg=Decimal(str(b[2])),
                    value_per_kg_above_300=Decimal(str(b[3])),
                    toll_per_ton=Decimal(str(b[4])) if len(b) > 4 else Decimal("0"),
                    lead_time_days=b[5] if len(b) > 5 else 1,
                )
                for b in brackets
            ],
        )
        db.add(table)
        await db.commit()
        return table

    return _make
