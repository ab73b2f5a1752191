"""GET /v1/early-payments/history - Early payment history with savings summary"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from paylater_gateway.api.v1.schemas import EarlyPaymentRecordSchema, HistoryResponse, HistorySummarySchema
from paylater_gateway.api.dependencies import parse_transaction_id
from paylater_gateway.infrastructure.database.session import get_db
from paylater_gateway.infrastructure.database.repositories import EarlyPaymentRepository
from paylater_gateway.domain.models import EarlyPaymentRecordStatus
from paylater_gateway.domain.settlement import (
    filter_early_payment_history,
    sort_early_payment_history,
    summarize_early_payment_history,
)

router = APIRouter()


@router.get("/early-payments/history", response_model=HistoryResponse)
def get_early_payment_history(
    transaction_id: Optional[str] = Query(None, description="Limit to one transaction"),
    status: Optional[EarlyPaymentRecordStatus] = Query(None, description="Record status filter"),
    search: Optional[str] = Query(None, description="Matches record or transaction id"),
    period_days: Optional[int] = Query(None, gt=0, description="Only the last N days"),
    limit: int = Query(100, gt=0, le=500),
    db: Session = Depends(get_db),
):
    """
    Retrieve early payments, newest first.

    The summary covers every record matching the filters; `limit` only
    truncates the returned page.

    Returns:
        Filtered records and a savings summary over the completed ones
    """
    repo = EarlyPaymentRepository(db)
    records = repo.list_records(
        transaction_id=parse_transaction_id(transaction_id) if transaction_id else None,
    )

    records = filter_early_payment_history(records, status=status, search=search, period_days=period_days)
    records = sort_early_payment_history(records)
    summary = summarize_early_payment_history(records)

    return HistoryResponse(
        records=[EarlyPaymentRecordSchema.model_validate(r) for r in records[:limit]],
        summary=HistorySummarySchema.model_validate(summary),
    )
