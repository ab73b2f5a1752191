"""POST /v1/transactions and GET /v1/transactions/{transaction_id}/schedule"""

import uuid
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from paylater_gateway.api.v1.schemas import (
    CreateTransactionRequest,
    NextPaymentSchema,
    PaymentSchema,
    ProgressSchema,
    ScheduleResponse,
    ScheduleSummarySchema,
    TransactionResponse,
    ValidationSchema,
)
from paylater_gateway.api.dependencies import get_request_id, load_transaction
from paylater_gateway.config import settings
from paylater_gateway.infrastructure.database.session import get_db
from paylater_gateway.infrastructure.database.repositories import TransactionRepository
from paylater_gateway.domain.installments import generate_payment_schedule
from paylater_gateway.utils.date_utils import utc_now
from paylater_gateway.domain.schedule import (
    get_next_payment_info,
    get_payment_progress,
    get_payment_schedule_summary,
    is_transaction_settled,
    sort_payments,
    validate_transaction,
)

router = APIRouter()


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    request_body: CreateTransactionRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a completed checkout and generate its installment schedule.

    Flow:
    1. Split the amount across the plan's installments
    2. Check the generated schedule
    3. Persist transaction + installments
    """
    request_id = get_request_id(request)
    transaction_id = uuid.uuid4()

    payments = generate_payment_schedule(
        str(transaction_id),
        request_body.amount,
        request_body.payment_plan,
        interval_days=settings.installment_interval_days,
        start_date=request_body.first_due_date,
    )

    try:
        transaction = TransactionRepository(db).create_transaction(
            transaction_id=transaction_id,
            amount=request_body.amount,
            payment_plan=request_body.payment_plan,
            payments=payments,
            merchant_id=request_body.merchant_id,
            items=request_body.items,
        )

        validation = validate_transaction(transaction, settings.rounding_tolerance_per_installment)
        if not validation.is_valid:
            db.rollback()
            raise HTTPException(status_code=422, detail="; ".join(validation.errors))

        db.commit()

    except HTTPException:
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Transaction created",
        extra={
            "request_id": request_id,
            "transaction_id": transaction.id,
            "payment_plan": transaction.payment_plan.value,
            "installments": len(transaction.payments),
        },
    )
    return TransactionResponse.model_validate(transaction)


@router.get("/transactions/{transaction_id}/schedule", response_model=ScheduleResponse)
def get_schedule(transaction_id: str, db: Session = Depends(get_db)):
    """
    Retrieve the installment schedule summary with progress, next-due view and integrity report.

    Structural problems are reported, never raised.
    """
    transaction = load_transaction(transaction_id, db)
    payments = sort_payments(transaction.payments)
    now = utc_now()

    validation = validate_transaction(transaction, settings.rounding_tolerance_per_installment)
    if validation.warnings:
        logging.warning(
            "Schedule due dates out of order",
            extra={"transaction_id": transaction.id, "warnings": validation.warnings},
        )

    return ScheduleResponse(
        transaction_id=transaction.id,
        payments=[PaymentSchema.model_validate(p) for p in payments],
        progress=ProgressSchema.model_validate(get_payment_progress(payments)),
        summary=ScheduleSummarySchema.model_validate(get_payment_schedule_summary(transaction, now)),
        next=NextPaymentSchema.model_validate(get_next_payment_info(payments, now)),
        validation=ValidationSchema.model_validate(validation),
        settled=is_transaction_settled(transaction),
    )
