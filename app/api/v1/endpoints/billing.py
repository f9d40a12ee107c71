"""
Usage Billing API Endpoints.

- Generate the invoice of a contract's last closed period
- Preview the figures of that invoice without saving it
- Read generated invoices
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.exceptions import BillingError, ContractNotFound, DuplicatePeriod
from app.models.invoice import InvoiceStatus
from app.schemas.billing import (
    GenerateInvoiceRequest, GenerateInvoiceResponse, InvoicePreviewResponse,
    UsageCalculationResponse, UsageInvoiceResponse, UsageInvoiceDetailResponse,
)
from app.services.usage_invoice_service import UsageInvoiceService


logger = logging.getLogger(__name__)

router = APIRouter()


def _error_response(exc: Exception) -> JSONResponse:
    """Structured error payload for a failed billing invocation."""
    if isinstance(exc, DuplicatePeriod):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, ContractNotFound):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


# ============================================================================
# GENERATION
# ============================================================================

@router.post(
    "/invoices/generate",
    response_model=GenerateInvoiceResponse,
    summary="Generate Usage Invoice"
)
async def generate_invoice(
    data: GenerateInvoiceRequest,
    db: AsyncSession = Depends(get_db)
):
    """Generate the invoice of the contract's last closed billing period."""
    service = UsageInvoiceService(db)
    try:
        invoice, calculations = await service.generate_invoice(data.contract_id)
    except BillingError as e:
        logger.warning(f"Invoice generation for contract {data.contract_id} failed: {e}")
        return _error_response(e)
    except Exception as e:
        logger.exception(f"Invoice generation for contract {data.contract_id} failed")
        await db.rollback()
        return _error_response(e)

    return GenerateInvoiceResponse(
        success=True,
        invoice=UsageInvoiceResponse.model_validate(invoice),
        items=[UsageCalculationResponse.model_validate(c) for c in calculations],
        message=f"Invoice {invoice.invoice_number} generated successfully",
    )


@router.post(
    "/invoices/preview",
    response_model=InvoicePreviewResponse,
    summary="Preview Usage Invoice"
)
async def preview_invoice(
    data: GenerateInvoiceRequest,
    db: AsyncSession = Depends(get_db)
):
    """Compute the invoice of the last closed period without saving it."""
    service = UsageInvoiceService(db)
    try:
        draft = await service.preview_invoice(data.contract_id)
    except BillingError as e:
        return _error_response(e)

    return InvoicePreviewResponse(
        contract_id=draft.contract_id,
        period_start=draft.period.start,
        period_end=draft.period.end,
        due_date=draft.due_date,
        service_amount=draft.service_amount,
        total_amount=draft.total_amount,
        items=[UsageCalculationResponse.model_validate(c) for c in draft.items],
        existing_invoice_number=draft.existing_invoice_number,
    )


# ============================================================================
# READS
# ============================================================================

@router.get(
    "/invoices",
    summary="List Usage Invoices"
)
async def list_invoices(
    contract_id: Optional[UUID] = None,
    status: Optional[InvoiceStatus] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """List usage invoices."""
    service = UsageInvoiceService(db)
    invoices, total = await service.list_invoices(
        contract_id=contract_id,
        status=status,
        skip=skip,
        limit=limit
    )
    return {
        "items": [UsageInvoiceResponse.model_validate(i) for i in invoices],
        "total": total,
        "skip": skip,
        "limit": limit
    }


@router.get(
    "/invoices/{invoice_id}",
    response_model=UsageInvoiceDetailResponse,
    summary="Get Usage Invoice"
)
async def get_invoice(
    invoice_id: UUID,
    db: AsyncSession = Depends(get_db)
):
    """Get a usage invoice with its line items."""
    service = UsageInvoiceService(db)
    invoice = await service.get_invoice(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice
