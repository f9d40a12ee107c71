"""
Freight Tariff Service.

Resolves freight cost from distance and weight against stored freight
tables:
1. Single table: find the bracket covering the distance and price it
2. All tables of a payer: price every usable table, cheapest first
3. Default table: quick simulation against the first active table
"""
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, List, Dict, Any

from pydantic import ValidationError
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload, joinedload

from app.config import settings
from app.core.exceptions import NoBracketForDistance, NoActiveTable, InvalidRateTable
from app.models.freight import FreightRateTable
from app.schemas.freight import RateBracketSchema, RateTableSchema
from app.services.tiered_rate import Number, to_decimal, quantize_money


logger = logging.getLogger(__name__)


@dataclass
class FreightQuote:
    """Freight price resolved from one table."""
    table_id: Optional[uuid.UUID]
    table_name: str
    transporter_name: Optional[str]
    is_house_table: bool
    bracket: RateBracketSchema
    freight_value: Decimal
    toll_value: Decimal
    total_value: Decimal
    lead_time_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_id": self.table_id,
            "table_name": self.table_name,
            "transporter_name": self.transporter_name,
            "is_house_table": self.is_house_table,
            "bracket": self.bracket,
            "freight_value": self.freight_value,
            "toll_value": self.toll_value,
            "total_value": self.total_value,
            "lead_time_days": self.lead_time_days,
        }


# ============================================================================
# SINGLE TABLE RESOLUTION
# ============================================================================

def find_bracket(table: RateTableSchema, distance: Number) -> RateBracketSchema:
    """Return the bracket whose closed distance range covers the distance."""
    distance = to_decimal(distance)
    for bracket in table.brackets:
        if bracket.covers(distance):
            return bracket
    raise NoBracketForDistance(distance, table.name)


def calculate_quote(
    table: RateTableSchema,
    distance: Number,
    weight: Number,
    weight_break: Optional[Number] = None
) -> FreightQuote:
    """
    Price a shipment against one table.

    Up to the weight break the bracket's flat value applies; above it the
    whole weight is charged per kg. Toll is prorated per ton.

    Raises:
        NoActiveTable: the table is inactive
        NoBracketForDistance: no bracket covers the distance
    """
    if not table.is_active:
        raise NoActiveTable(f"Freight table '{table.name}' is not active")

    weight = to_decimal(weight)
    weight_break = to_decimal(
        settings.FREIGHT_WEIGHT_BREAK_KG if weight_break is None else weight_break
    )
    bracket = find_bracket(table, distance)

    if weight <= weight_break:
        freight_value = bracket.value_up_to_300kg
    else:
        freight_value = weight * bracket.value_per_kg_above_300

    toll_value = weight / Decimal("1000") * bracket.toll_per_ton
    # Components are rounded on their own; the total is the sum of the
    # rounded freight and toll, so it can exceed the unrounded sum by a cent
    freight_value = quantize_money(freight_value)
    toll_value = quantize_money(toll_value)

    return FreightQuote(
        table_id=table.id,
        table_name=table.name,
        transporter_name=table.transporter_name,
        is_house_table=table.is_house_table,
        bracket=bracket,
        freight_value=freight_value,
        toll_value=toll_value,
        total_value=freight_value + toll_value,
        lead_time_days=bracket.lead_time_days,
    )


def rank_quotes(
    tables: List[RateTableSchema],
    distance: Number,
    weight: Number,
    weight_break: Optional[Number] = None
) -> List[FreightQuote]:
    """Quote every table that covers the distance, cheapest first."""
    quotes = []
    for table in tables:
        if not table.brackets:
            logger.warning(f"Freight table '{table.name}' has no brackets, skipped")
            continue
        try:
            quotes.append(calculate_quote(table, distance, weight, weight_break))
        except NoBracketForDistance as e:
            logger.warning(f"{e}, skipped")
        except NoActiveTable as e:
            logger.warning(f"{e}, skipped")

    # sorted() is stable: equal totals keep table order
    return sorted(quotes, key=lambda q: q.total_value)


# ============================================================================
# STORED TABLES
# ============================================================================

class FreightTariffService:
    """Resolves quotes against the freight tables stored for payers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _table_query(self):
        return select(FreightRateTable).options(
            selectinload(FreightRateTable.brackets),
            joinedload(FreightRateTable.transporter),
        )

    @staticmethod
    def to_schema(table: FreightRateTable) -> RateTableSchema:
        """Validate a stored table into its typed record."""
        try:
            return RateTableSchema.model_validate(table)
        except ValidationError as e:
            raise InvalidRateTable(f"Freight table '{table.name}' is invalid: {e}") from e

    async def resolve_table_by_id(
        self,
        table_id: uuid.UUID,
        distance: Number,
        weight: Number
    ) -> FreightQuote:
        """Quote against one stored table, which must exist and be active."""
        result = await self.db.execute(
            self._table_query().where(FreightRateTable.id == table_id)
        )
        table = result.unique().scalar_one_or_none()
        if not table or not table.is_active:
            raise NoActiveTable(f"Freight table not found or inactive: {table_id}")

        return calculate_quote(self.to_schema(table), distance, weight)

    async def resolve_all_tables_for_payer(
        self,
        payer_id: uuid.UUID,
        distance: Number,
        weight: Number
    ) -> List[FreightQuote]:
        """
        Quote every active table of a payer, cheapest first.

        Tables that fail validation, have no brackets or do not cover the
        distance are skipped.

        Raises:
            NoActiveTable: the payer has no active table
        """
        result = await self.db.execute(
            self._table_query()
            .where(
                and_(
                    FreightRateTable.owner_id == payer_id,
                    FreightRateTable.is_active == True,  # noqa: E712
                )
            )
            .order_by(FreightRateTable.name)
        )
        tables = list(result.unique().scalars().all())
        if not tables:
            raise NoActiveTable(f"No active freight table found for payer {payer_id}")

        schemas = []
        for table in tables:
            try:
                schemas.append(self.to_schema(table))
            except InvalidRateTable as e:
                logger.warning(f"{e}, skipped")

        quotes = rank_quotes(schemas, distance, weight)
        logger.info(
            f"Payer {payer_id}: {len(quotes)} of {len(tables)} tables quoted "
            f"for {distance} km / {weight} kg"
        )
        return quotes

    async def resolve_default_table(
        self,
        distance: Number,
        weight: Number,
        owner_id: Optional[uuid.UUID] = None
    ) -> FreightQuote:
        """Quote against the first active table, optionally of one owner."""
        query = self._table_query().where(FreightRateTable.is_active == True)  # noqa: E712
        if owner_id:
            query = query.where(FreightRateTable.owner_id == owner_id)
        query = query.order_by(FreightRateTable.created_at, FreightRateTable.name).limit(1)

        result = await self.db.execute(query)
        table = result.unique().scalar_one_or_none()
        if not table:
            raise NoActiveTable()

        return calculate_quote(self.to_schema(table), distance, weight)
