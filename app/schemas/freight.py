"""
Freight Schemas.

Typed records for freight tables (validated on construction) and the
request/response bodies of the freight simulation endpoints.
"""
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, model_validator


# ============================================================================
# RATE TABLE RECORDS
# ============================================================================

class RateBracketSchema(BaseModel):
    """Distance bracket of a freight table."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    distance_min: Decimal = Field(..., ge=0)
    distance_max: Decimal = Field(..., ge=0)
    value_up_to_300kg: Decimal = Field(..., ge=0)
    value_per_kg_above_300: Decimal = Field(..., ge=0)
    toll_per_ton: Decimal = Field(default=Decimal("0"), ge=0)
    lead_time_days: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.distance_min > self.distance_max:
            raise ValueError(
                f"distance_min {self.distance_min} is greater than distance_max {self.distance_max}"
            )
        return self

    def covers(self, distance: Decimal) -> bool:
        return self.distance_min <= distance <= self.distance_max


class RateTableSchema(BaseModel):
    """Freight table with its brackets, sorted by starting distance."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    name: str = Field(..., max_length=200)
    owner_id: Optional[UUID] = None
    transporter_id: Optional[UUID] = None
    transporter_name: Optional[str] = None
    is_active: bool = True
    brackets: List[RateBracketSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_brackets(self):
        ordered = sorted(self.brackets, key=lambda b: b.distance_min)
        for previous, current in zip(ordered, ordered[1:]):
            if current.distance_min <= previous.distance_max:
                raise ValueError(
                    f"Brackets {previous.distance_min}-{previous.distance_max} and "
                    f"{current.distance_min}-{current.distance_max} overlap"
                )
        self.brackets = ordered
        return self

    @property
    def is_house_table(self) -> bool:
        return self.transporter_id is None


# ============================================================================
# REQUESTS
# ============================================================================

class ShipmentMeasures(BaseModel):
    """Distance and weight of the shipment being quoted."""
    distance: Decimal = Field(..., ge=0, description="Distance in km")
    weight: Decimal = Field(..., ge=0, description="Weight in kg")


class TableQuoteRequest(ShipmentMeasures):
    """Quote against one stored table."""
    table_id: UUID


class PayerQuotesRequest(ShipmentMeasures):
    """Quote against every active table of a payer."""
    payer_id: UUID


class SimulateFreightRequest(ShipmentMeasures):
    """Quick simulation against the first active table."""
    owner_id: Optional[UUID] = None


# ============================================================================
# RESPONSES
# ============================================================================

class FreightQuoteResponse(BaseModel):
    """Freight price resolved from one table."""
    table_id: Optional[UUID]
    table_name: str
    transporter_name: Optional[str] = None
    is_house_table: bool
    bracket: RateBracketSchema
    freight_value: Decimal
    toll_value: Decimal
    total_value: Decimal
    lead_time_days: int


class PayerQuotesResponse(BaseModel):
    """Quotes of every usable table, cheapest first."""
    payer_id: UUID
    quotes: List[FreightQuoteResponse]
    cheapest: Optional[FreightQuoteResponse] = None
