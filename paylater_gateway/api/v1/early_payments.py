"""Early payment quoting, simulation, submission and cancellation endpoints"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from paylater_gateway.api.v1.schemas import (
    CancelEarlyPaymentRequest,
    CustomSavingsRequest,
    CustomSavingsResponse,
    EarlyPaymentOptionSchema,
    EarlyPaymentOptionsResponse,
    EarlyPaymentRecordSchema,
    PartialOptionsRequest,
    PartialOptionsResponse,
    PartialPaymentOptionSchema,
    ProcessEarlyPaymentRequest,
    SimulateRequest,
    SimulateResponse,
    SimulationSchema,
)
from paylater_gateway.api.dependencies import (
    get_processor_client,
    get_request_id,
    load_merchant_config,
    load_transaction,
    resolve_discount_policy,
)
from paylater_gateway.infrastructure.database.session import get_db
from paylater_gateway.infrastructure.database.repositories import EarlyPaymentRepository
from paylater_gateway.infrastructure.clients.processor import ProcessorClient
from paylater_gateway.domain.models import EarlyPaymentScenario, EarlyPaymentType
from paylater_gateway.domain.settlement import (
    apply_record_status,
    get_best_early_payment_option,
    get_early_payment_options,
    is_cancellable,
    quote_custom_amount,
    quote_full_payoff,
    quote_partial_payoff,
    simulate_early_payment_scenarios,
)
from paylater_gateway.domain.exceptions import (
    InvalidSelectionError,
    InvalidStatusTransitionError,
    NoScheduledInstallmentsError,
    ProcessorAPIError,
)
from paylater_gateway.infrastructure.observability.metrics import (
    processor_failures_counter,
    quote_counter,
    record_early_payment,
)
from paylater_gateway.infrastructure.observability.logging import log_early_payment, log_quote

router = APIRouter()


@router.get("/transactions/{transaction_id}/early-payment-options", response_model=EarlyPaymentOptionsResponse)
def get_options(transaction_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Quote paying the transaction off early.

    Returns full payoff and next-installment options with the recommended one;
    an empty list when no installments remain scheduled.
    """
    transaction = load_transaction(transaction_id, db)
    policy = resolve_discount_policy(load_merchant_config(transaction, db))

    options = get_early_payment_options(transaction, policy)
    best = get_best_early_payment_option(options)

    quote_counter.labels(kind="options").inc()
    log_quote(get_request_id(request), transaction.id, "options", len(options))

    return EarlyPaymentOptionsResponse(
        transaction_id=transaction.id,
        options=[EarlyPaymentOptionSchema.model_validate(o) for o in options],
        recommended=EarlyPaymentOptionSchema.model_validate(best) if best else None,
    )


@router.post("/transactions/{transaction_id}/partial-payment-options", response_model=PartialOptionsResponse)
def get_partial_options(
    transaction_id: str,
    request_body: PartialOptionsRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Per-installment quotes for a selection of scheduled installments"""
    transaction = load_transaction(transaction_id, db)
    policy = resolve_discount_policy(load_merchant_config(transaction, db))

    try:
        quote = quote_partial_payoff(transaction, request_body.installment_ids, policy, request_body.payment_date)
    except InvalidSelectionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NoScheduledInstallmentsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    quote_counter.labels(kind="partial").inc()
    log_quote(get_request_id(request), transaction.id, "partial", len(quote.options))

    return PartialOptionsResponse(
        transaction_id=transaction.id,
        options=[PartialPaymentOptionSchema.model_validate(o) for o in quote.options],
        aggregate=EarlyPaymentOptionSchema.model_validate(quote.aggregate),
    )


@router.post("/transactions/{transaction_id}/calculate-custom-savings", response_model=CustomSavingsResponse)
def calculate_custom_savings(
    transaction_id: str,
    request_body: CustomSavingsRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Savings for paying an arbitrary amount toward the outstanding balance"""
    transaction = load_transaction(transaction_id, db)
    policy = resolve_discount_policy(load_merchant_config(transaction, db))

    try:
        quote = quote_custom_amount(transaction, request_body.custom_amount, policy, request_body.payment_date)
    except InvalidSelectionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NoScheduledInstallmentsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    quote_counter.labels(kind="custom").inc()
    log_quote(get_request_id(request), transaction.id, "custom", 1)

    return CustomSavingsResponse.model_validate(quote)


@router.post("/transactions/{transaction_id}/simulate-early-payment", response_model=SimulateResponse)
def simulate(
    transaction_id: str,
    request_body: SimulateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Compare hypothetical payoff scenarios; higher recommendation_score means more savings"""
    transaction = load_transaction(transaction_id, db)
    policy = resolve_discount_policy(load_merchant_config(transaction, db))

    scenarios = [
        EarlyPaymentScenario(
            payment_type=s.payment_type,
            amount=s.amount,
            installment_ids=s.installment_ids,
            payment_date=s.payment_date,
        )
        for s in request_body.scenarios
    ]

    try:
        results = simulate_early_payment_scenarios(transaction, scenarios, policy)
    except InvalidSelectionError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NoScheduledInstallmentsError as e:
        raise HTTPException(status_code=409, detail=str(e))

    quote_counter.labels(kind="simulation").inc()
    log_quote(get_request_id(request), transaction.id, "simulation", len(results))

    return SimulateResponse(
        transaction_id=transaction.id,
        simulations=[SimulationSchema.model_validate(r) for r in results],
    )


@router.post("/early-payments/process", response_model=EarlyPaymentRecordSchema)
async def process_early_payment(
    request_body: ProcessEarlyPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    processor: ProcessorClient = Depends(get_processor_client),
):
    """
    Submit an early payment to the processor.

    Flow:
    1. Recompute the quote from the current schedule
    2. Check merchant eligibility rules
    3. Submit to the processor (once, no retry)
    4. Append the returned record to history

    Installment status changes are left to the processor.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    transaction = load_transaction(request_body.transaction_id, db)
    config = load_merchant_config(transaction, db)
    policy = resolve_discount_policy(config)

    try:
        if request_body.payment_type == EarlyPaymentType.FULL:
            option = quote_full_payoff(transaction, policy)
        else:
            if not config.allow_partial_payments:
                raise HTTPException(status_code=422, detail="Partial early payments are not allowed for this merchant")
            option = quote_partial_payoff(transaction, request_body.installment_ids, policy).aggregate

        eligibility = config.can_process_early_payment(option.final_amount, request_body.payment_method_type)
        if not eligibility.allowed:
            raise HTTPException(status_code=422, detail=eligibility.reason)

        record = await processor.submit_early_payment(
            option,
            request_body.payment_method_id,
            requires_approval=config.requires_approval(option.final_amount),
        )

        EarlyPaymentRepository(db).add_record(record)
        db.commit()

    except HTTPException:
        db.rollback()
        raise

    except InvalidSelectionError as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    except NoScheduledInstallmentsError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except ProcessorAPIError as e:
        processor_failures_counter.labels(operation="submit").inc()
        db.rollback()
        logging.error(f"Processor error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail=e.detail)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    duration_ms = (time.time() - start_time) * 1000
    record_early_payment(record.payment_type.value, record.status.value, record.savings)
    log_early_payment(
        request_id,
        transaction.id,
        record.payment_type.value,
        record.status.value,
        str(record.savings),
        duration_ms,
    )

    return EarlyPaymentRecordSchema.model_validate(record)


@router.post("/early-payments/{record_id}/cancel", response_model=EarlyPaymentRecordSchema)
async def cancel_early_payment(
    record_id: str,
    request_body: CancelEarlyPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    processor: ProcessorClient = Depends(get_processor_client),
):
    """
    Cancel an early payment through the processor and reflect the status it reports.

    Only processing or completed payments can be refunded.
    """
    request_id = get_request_id(request)
    repo = EarlyPaymentRepository(db)

    record = repo.get_record(record_id)
    if not record:
        raise HTTPException(status_code=404, detail="Early payment not found")

    if not is_cancellable(record):
        raise HTTPException(
            status_code=409,
            detail=f"Early payment {record_id} is {record.status.value} and cannot be cancelled",
        )

    try:
        reported = await processor.cancel_early_payment(record_id, request_body.reason)
        updated = apply_record_status(record, reported.status)

        repo.update_status(record_id, updated.status, request_body.reason)
        db.commit()

    except InvalidStatusTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except ProcessorAPIError as e:
        processor_failures_counter.labels(operation="cancel").inc()
        db.rollback()
        logging.error(f"Processor error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail=e.detail)

    logging.info(
        "Early payment cancelled",
        extra={"request_id": request_id, "early_payment_id": record_id, "status": updated.status.value},
    )
    return EarlyPaymentRecordSchema.model_validate(updated)
