"""
Tiered Rate Engine.

Turns a metered quantity and the terms of a contract service item into a
billed quantity and amount:
1. Usage within the included volume is billed at the unit price, with the
   minimum quantity as a floor
2. Usage beyond the included volume is billed at the overage price
   (unit price when the item has none)
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any, Union
import uuid

from app.core.exceptions import InvalidRateTerms


CENTS = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Optional[Number]) -> Decimal:
    """Convert a numeric value to Decimal; None counts as zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from expanding to binary noise
    return Decimal(str(value))


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class RateTerms:
    """Pricing terms of one contracted service."""
    unit_price: Decimal
    included_quantity: Decimal = Decimal("0")
    minimum_quantity: Decimal = Decimal("0")
    overage_unit_price: Optional[Decimal] = None

    def __post_init__(self):
        self.unit_price = to_decimal(self.unit_price)
        self.included_quantity = to_decimal(self.included_quantity)
        self.minimum_quantity = to_decimal(self.minimum_quantity)
        if self.overage_unit_price is not None:
            self.overage_unit_price = to_decimal(self.overage_unit_price)

        for name in ("unit_price", "included_quantity", "minimum_quantity", "overage_unit_price"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise InvalidRateTerms(f"{name} cannot be negative: {value}")

    @property
    def effective_overage_price(self) -> Decimal:
        if self.overage_unit_price is None:
            return self.unit_price
        return self.overage_unit_price

    @classmethod
    def from_service_item(cls, item) -> "RateTerms":
        """Build terms from a ContractServiceItem row."""
        return cls(
            unit_price=item.unit_price,
            included_quantity=item.included_quantity,
            minimum_quantity=item.minimum_quantity,
            overage_unit_price=item.overage_unit_price,
        )


@dataclass(frozen=True)
class TieredCharge:
    """Billed quantity and amount for one service line."""
    quantity_billed: Decimal
    amount: Decimal


def calculate_tiered_charge(quantity_used: Number, terms: RateTerms) -> TieredCharge:
    """
    Price a metered quantity.

    Args:
        quantity_used: Metered volume for the period
        terms: Contracted pricing terms

    Returns:
        TieredCharge with the amount rounded to cents
    """
    used = to_decimal(quantity_used)
    if used < 0:
        raise InvalidRateTerms(f"quantity_used cannot be negative: {used}")

    if used <= terms.included_quantity:
        quantity_billed = max(used, terms.minimum_quantity)
        amount = quantity_billed * terms.unit_price
    else:
        excess = used - terms.included_quantity
        amount = (
            terms.included_quantity * terms.unit_price
            + excess * terms.effective_overage_price
        )
        quantity_billed = used
        # The minimum floors the overage tier too: with minimum > included the
        # charge would otherwise drop when usage first exceeds the allowance
        amount = max(amount, terms.minimum_quantity * terms.unit_price)

    return TieredCharge(quantity_billed=quantity_billed, amount=quantize_money(amount))


@dataclass
class UsageCalculation:
    """Metered and priced usage of one contract service item."""
    service_type: str
    quantity_used: Decimal
    quantity_included: Decimal
    quantity_minimum: Decimal
    quantity_billed: Decimal
    unit_price: Decimal
    overage_price: Decimal
    amount: Decimal
    calculation_details: Dict[str, Any] = field(default_factory=dict)
    service_item_id: Optional[uuid.UUID] = None
    description: Optional[str] = None

    @classmethod
    def build(
        cls,
        service_type: str,
        quantity_used: Number,
        terms: RateTerms,
        calculation_details: Optional[Dict[str, Any]] = None,
        service_item_id: Optional[uuid.UUID] = None,
        description: Optional[str] = None,
    ) -> "UsageCalculation":
        charge = calculate_tiered_charge(quantity_used, terms)
        return cls(
            service_type=service_type,
            quantity_used=to_decimal(quantity_used),
            quantity_included=terms.included_quantity,
            quantity_minimum=terms.minimum_quantity,
            quantity_billed=charge.quantity_billed,
            unit_price=terms.unit_price,
            overage_price=terms.effective_overage_price,
            amount=charge.amount,
            calculation_details=calculation_details or {},
            service_item_id=service_item_id,
            description=description,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_item_id": str(self.service_item_id) if self.service_item_id else None,
            "service_type": self.service_type,
            "description": self.description,
            "quantity_used": float(self.quantity_used),
            "quantity_included": float(self.quantity_included),
            "quantity_minimum": float(self.quantity_minimum),
            "quantity_billed": float(self.quantity_billed),
            "unit_price": float(self.unit_price),
            "overage_price": float(self.overage_price),
            "amount": float(self.amount),
            "calculation_details": self.calculation_details,
        }
