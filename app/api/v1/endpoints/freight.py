"""
Freight Simulation API Endpoints.

Quotes a shipment's distance and weight against stored freight tables.
Nothing is persisted.
"""
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.core.exceptions import FreightError, NoActiveTable
from app.schemas.freight import (
    TableQuoteRequest, PayerQuotesRequest, SimulateFreightRequest,
    FreightQuoteResponse, PayerQuotesResponse,
)
from app.services.freight_tariff_service import FreightTariffService, FreightQuote


logger = logging.getLogger(__name__)

router = APIRouter()


def _quote_response(quote: FreightQuote) -> FreightQuoteResponse:
    return FreightQuoteResponse(**quote.to_dict())


def _error_response(exc: FreightError) -> JSONResponse:
    if isinstance(exc, NoActiveTable):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@router.post(
    "/quote",
    response_model=FreightQuoteResponse,
    summary="Quote Against One Table"
)
async def quote_table(
    data: TableQuoteRequest,
    db: AsyncSession = Depends(get_db)
):
    """Quote a shipment against one freight table."""
    service = FreightTariffService(db)
    try:
        quote = await service.resolve_table_by_id(data.table_id, data.distance, data.weight)
    except FreightError as e:
        return _error_response(e)
    return _quote_response(quote)


@router.post(
    "/quotes",
    response_model=PayerQuotesResponse,
    summary="Quote Against All Tables of a Payer"
)
async def quote_payer_tables(
    data: PayerQuotesRequest,
    db: AsyncSession = Depends(get_db)
):
    """Quote a shipment against every active table of the payer, cheapest first."""
    service = FreightTariffService(db)
    try:
        quotes = await service.resolve_all_tables_for_payer(
            data.payer_id, data.distance, data.weight
        )
    except FreightError as e:
        return _error_response(e)

    responses = [_quote_response(q) for q in quotes]
    return PayerQuotesResponse(
        payer_id=data.payer_id,
        quotes=responses,
        cheapest=responses[0] if responses else None,
    )


@router.post(
    "/simulate",
    response_model=FreightQuoteResponse,
    summary="Simulate Freight"
)
async def simulate_freight(
    data: SimulateFreightRequest,
    db: AsyncSession = Depends(get_db)
):
    """Quick simulation against the first active table."""
    service = FreightTariffService(db)
    try:
        quote = await service.resolve_default_table(
            data.distance, data.weight, owner_id=data.owner_id
        )
    except FreightError as e:
        return _error_response(e)
    return _quote_response(quote)
