# Services module
from app.services.billing_period import (
    BillingPeriod,
    calculate_billing_period,
    next_billing_period,
    period_closing_date,
)
from app.services.tiered_rate import RateTerms, UsageCalculation, calculate_tiered_charge
from app.services.usage_meter import UsageMeter, UsageReading
from app.services.usage_invoice_service import UsageInvoiceService
from app.services.freight_tariff_service import (
    FreightTariffService, FreightQuote, calculate_quote, find_bracket
)

__all__ = [
    "BillingPeriod",
    "calculate_billing_period",
    "next_billing_period",
    "period_closing_date",
    "RateTerms",
    "UsageCalculation",
    "calculate_tiered_charge",
    "UsageMeter",
    "UsageReading",
    "UsageInvoiceService",
    "FreightTariffService",
    "FreightQuote",
    "calculate_quote",
    "find_bracket",
]
