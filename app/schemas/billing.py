"""
Usage Billing Schemas.

Pydantic schemas for invoice generation, preview and invoice reads.
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from app.models.invoice import InvoiceStatus


class GenerateInvoiceRequest(BaseModel):
    """Request to invoice the last closed period of a contract."""
    contract_id: UUID


class UsageCalculationResponse(BaseModel):
    """Metered and priced usage of one contract service item."""
    model_config = ConfigDict(from_attributes=True)

    service_item_id: Optional[UUID] = None
    service_type: str
    description: Optional[str] = None
    quantity_used: Decimal
    quantity_included: Decimal
    quantity_minimum: Decimal
    quantity_billed: Decimal
    unit_price: Decimal
    overage_price: Decimal
    amount: Decimal
    calculation_details: Dict[str, Any] = Field(default_factory=dict)


class UsageInvoiceItemResponse(BaseModel):
    """Schema for a stored invoice line."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    line_number: int
    service_item_id: Optional[UUID]
    service_type: str
    description: Optional[str]
    quantity_used: Decimal
    quantity_included: Decimal
    quantity_minimum: Decimal
    quantity: Decimal
    unit_price: Decimal
    overage_price: Decimal
    amount: Decimal
    calculation_details: Optional[Dict[str, Any]]


class UsageInvoiceResponse(BaseModel):
    """Schema for a stored invoice."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    contract_id: UUID
    customer_id: UUID
    recipient_id: Optional[UUID]
    warehouse_id: UUID
    period_start: date
    period_end: date
    issue_date: date
    due_date: date
    service_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    notes: Optional[str]
    created_at: datetime


class UsageInvoiceDetailResponse(UsageInvoiceResponse):
    """Invoice with its line items."""
    line_items: List[UsageInvoiceItemResponse] = []


class GenerateInvoiceResponse(BaseModel):
    """Successful invoice generation."""
    success: bool = True
    invoice: UsageInvoiceResponse
    items: List[UsageCalculationResponse]
    message: str


class InvoicePreviewResponse(BaseModel):
    """Invoice figures for the last closed period, not persisted."""
    contract_id: UUID
    period_start: date
    period_end: date
    due_date: date
    service_amount: Decimal
    total_amount: Decimal
    items: List[UsageCalculationResponse]
    existing_invoice_number: Optional[str] = None
