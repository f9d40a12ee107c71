"""Domain errors raised by the billing and freight engines."""
from typing import Optional


class BillingError(Exception):
    """Base class for invoice generation failures."""
    pass


class ContractNotFound(BillingError):
    """Raised when the contract does not exist."""

    def __init__(self, contract_id):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class InvalidCadence(BillingError):
    """Raised for a billing cycle the period calculator does not know."""

    def __init__(self, cadence):
        self.cadence = cadence
        super().__init__(f"Unsupported billing cycle: {cadence}")


class DuplicatePeriod(BillingError):
    """Raised when the contract already has an invoice for the period."""

    def __init__(self, invoice_number: Optional[str]):
        self.invoice_number = invoice_number
        super().__init__(f"Already exists an invoice for this period: {invoice_number}")


class InvalidRateTerms(BillingError, ValueError):
    """Raised when a service item carries negative quantities or prices."""
    pass


class FreightError(Exception):
    """Base class for freight resolution failures."""
    pass


class NoBracketForDistance(FreightError):
    """Raised when no bracket of the table covers the distance."""

    def __init__(self, distance, table_name: Optional[str] = None):
        self.distance = distance
        self.table_name = table_name
        message = f"Distance {distance} km is outside the registered brackets"
        if table_name:
            message += f" of table '{table_name}'"
        super().__init__(message)


class NoActiveTable(FreightError):
    """Raised when there is no active freight table to quote from."""

    def __init__(self, message: str = "No active freight table found"):
        super().__init__(message)


class InvalidRateTable(FreightError, ValueError):
    """Raised when a stored table fails bracket validation."""
    pass
