"""Installment schedule views - ordering, progress, next-due and integrity checks"""

import dataclasses
from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, List
from paylater_gateway.domain.models import (
    CENTS,
    NextPaymentInfo,
    Payment,
    PaymentProgress,
    PaymentScheduleSummary,
    PaymentStatus,
    ScheduleRow,
    SequenceValidation,
    SortingMethod,
    SortingOptions,
    SortingOrder,
    Transaction,
)
from paylater_gateway.utils.date_utils import ceil_days_between, utc_now

# Allowed status moves for a single installment.
# scheduled -> completed is only valid as the result of an early payoff.
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.SCHEDULED: frozenset({PaymentStatus.PROCESSING}),
    PaymentStatus.PROCESSING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.SCHEDULED}),
    PaymentStatus.COMPLETED: frozenset(),
}


def _sort_key(payment: Payment, sort_by: SortingMethod) -> tuple:
    if sort_by == SortingMethod.DUE_DATE:
        return (payment.due_date,)
    if sort_by == SortingMethod.INSTALLMENT_NUMBER:
        return (payment.installment_number,)
    return (payment.installment_number, payment.due_date)


def sort_payments(payments: List[Payment], options: SortingOptions | None = None) -> List[Payment]:
    """
    Return a new list of payments in schedule order.

    hybrid: installment number first, due date breaks ties.
    DESC reverses the whole comparison; equal keys keep their input order.
    """
    options = options or SortingOptions()
    return sorted(
        payments,
        key=lambda p: _sort_key(p, options.sort_by),
        reverse=options.order == SortingOrder.DESC,
    )


def sort_transactions_with_payments(
    transactions: List[Transaction],
    options: SortingOptions | None = None,
) -> List[Transaction]:
    """
    Sort each transaction's payments, then order transactions by the due date
    of their first sorted payment. Transactions without payments go last.
    """
    options = options or SortingOptions()
    with_sorted = [
        dataclasses.replace(txn, payments=sort_payments(txn.payments, options))
        for txn in transactions
    ]

    dated = [txn for txn in with_sorted if txn.payments]
    empty = [txn for txn in with_sorted if not txn.payments]

    dated = sorted(
        dated,
        key=lambda t: t.payments[0].due_date,
        reverse=options.order == SortingOrder.DESC,
    )
    return dated + empty


def get_payment_progress(payments: List[Payment]) -> PaymentProgress:
    """Paid vs remaining totals; percentage is 0 for an empty or zero-value schedule"""
    total_amount = sum((p.amount for p in payments), Decimal("0"))
    completed = [p for p in payments if p.status == PaymentStatus.COMPLETED]
    paid_amount = sum((p.amount for p in completed), Decimal("0"))

    progress_percentage = float(paid_amount / total_amount * 100) if total_amount > 0 else 0.0

    return PaymentProgress(
        total_amount=total_amount,
        paid_amount=paid_amount,
        remaining_amount=total_amount - paid_amount,
        total_payments=len(payments),
        completed_payments=len(completed),
        progress_percentage=progress_percentage,
    )


def get_next_payment_info(payments: List[Payment], now: datetime | None = None) -> NextPaymentInfo:
    """
    Partition scheduled payments into overdue and upcoming relative to `now`.

    Overdue is a plain due date comparison; there is no grace period here.
    """
    now = now or utc_now()
    scheduled = [p for p in payments if p.status == PaymentStatus.SCHEDULED]

    overdue = [p for p in scheduled if p.due_date < now]
    upcoming = sorted((p for p in scheduled if p.due_date >= now), key=lambda p: p.due_date)

    next_payment = upcoming[0] if upcoming else None
    days_until_next = ceil_days_between(now, next_payment.due_date) if next_payment else None

    return NextPaymentInfo(
        next_payment=next_payment,
        upcoming_payments=upcoming,
        overdue_payments=overdue,
        days_until_next=days_until_next,
    )


def validate_payment_sequence(payments: List[Payment]) -> SequenceValidation:
    """
    Check schedule integrity without raising.

    Errors (fatal):
    - installment numbers are not exactly 1..N
    - any amount is zero or negative

    Warnings:
    - a due date is not strictly after the previous installment's
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not payments:
        return SequenceValidation(is_valid=True)

    numbers = sorted(p.installment_number for p in payments)
    if numbers != list(range(1, len(payments) + 1)):
        errors.append("Installment numbers are not sequential or have duplicates")

    ordered = sort_payments(payments, SortingOptions(sort_by=SortingMethod.INSTALLMENT_NUMBER))
    for previous, current in zip(ordered, ordered[1:]):
        if current.due_date <= previous.due_date:
            warnings.append(
                f"Payment {current.installment_number} due date is not after "
                f"payment {previous.installment_number}"
            )

    if any(p.amount <= 0 for p in payments):
        errors.append("Some payments have zero or negative amounts")

    return SequenceValidation(is_valid=not errors, errors=errors, warnings=warnings)


def validate_transaction(transaction: Transaction, tolerance_per_installment: Decimal = CENTS) -> SequenceValidation:
    """Sequence checks plus the installment total against the transaction amount"""
    result = validate_payment_sequence(transaction.payments)
    if not transaction.payments:
        return result

    total = sum((p.amount for p in transaction.payments), Decimal("0"))
    tolerance = tolerance_per_installment * len(transaction.payments)
    if abs(total - transaction.amount) > tolerance:
        result.errors.append(
            f"Installments total {total} does not match transaction amount {transaction.amount}"
        )
        result.is_valid = False

    return result


def get_payment_schedule_summary(transaction: Transaction, now: datetime | None = None) -> PaymentScheduleSummary:
    payments = transaction.payments
    progress = get_payment_progress(payments)
    next_info = get_next_payment_info(payments, now)

    return PaymentScheduleSummary(
        total_amount=progress.total_amount,
        paid_amount=progress.paid_amount,
        remaining_amount=progress.remaining_amount,
        total_installments=progress.total_payments,
        completed_installments=progress.completed_payments,
        next_payment=next_info.next_payment,
        schedule=[
            ScheduleRow(
                installment_number=p.installment_number,
                amount=p.amount,
                due_date=p.due_date,
                status=p.status,
                paid_at=p.payment_date,
            )
            for p in sort_payments(payments)
        ],
    )


def is_next_payment(payment: Payment, payments: List[Payment], now: datetime | None = None) -> bool:
    next_payment = get_next_payment_info(payments, now).next_payment
    return next_payment is not None and next_payment.id == payment.id


def is_payment_overdue(payment: Payment, now: datetime | None = None) -> bool:
    now = now or utc_now()
    return payment.status == PaymentStatus.SCHEDULED and payment.due_date < now


def get_days_until_due(payment: Payment, now: datetime | None = None) -> int:
    """Ceiling of days until due; negative once the due date has passed"""
    return ceil_days_between(now or utc_now(), payment.due_date)


def can_transition(current: PaymentStatus, target: PaymentStatus, early_payoff: bool = False) -> bool:
    if early_payoff and current == PaymentStatus.SCHEDULED and target == PaymentStatus.COMPLETED:
        return True
    return target in PAYMENT_TRANSITIONS[current]


def is_transaction_settled(transaction: Transaction) -> bool:
    """
    A transaction is terminal once every installment has completed.

    Failed installments do not count: failed -> scheduled is a retry, so a
    failed installment is still owed.
    """
    return bool(transaction.payments) and all(
        p.status == PaymentStatus.COMPLETED for p in transaction.payments
    )
