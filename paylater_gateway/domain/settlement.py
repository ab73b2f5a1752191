"""Early settlement engine - payoff quotes, scenario simulation and savings history"""

import dataclasses
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, FrozenSet, List, Optional
from paylater_gateway.domain.exceptions import (
    InvalidSelectionError,
    InvalidStatusTransitionError,
    NoScheduledInstallmentsError,
)
from paylater_gateway.domain.models import (
    CustomPaymentQuote,
    EarlyPaymentOption,
    EarlyPaymentRecord,
    EarlyPaymentRecordStatus,
    EarlyPaymentScenario,
    EarlyPaymentType,
    HistorySummary,
    PartialPaymentOption,
    PartialPaymentQuote,
    Payment,
    PaymentStatus,
    ScenarioResult,
    Transaction,
    to_money,
)
from paylater_gateway.domain.policy import DiscountPolicy
from paylater_gateway.domain.schedule import sort_payments
from paylater_gateway.utils.date_utils import ceil_days_between, utc_now

ZERO = Decimal("0.00")

RECORD_TRANSITIONS: Dict[EarlyPaymentRecordStatus, FrozenSet[EarlyPaymentRecordStatus]] = {
    EarlyPaymentRecordStatus.PENDING_APPROVAL: frozenset(
        {EarlyPaymentRecordStatus.PROCESSING, EarlyPaymentRecordStatus.FAILED}
    ),
    EarlyPaymentRecordStatus.PROCESSING: frozenset(
        {
            EarlyPaymentRecordStatus.COMPLETED,
            EarlyPaymentRecordStatus.FAILED,
            EarlyPaymentRecordStatus.REFUNDED,
        }
    ),
    EarlyPaymentRecordStatus.COMPLETED: frozenset(
        {EarlyPaymentRecordStatus.REFUNDED, EarlyPaymentRecordStatus.DISPUTED}
    ),
    EarlyPaymentRecordStatus.FAILED: frozenset(),
    EarlyPaymentRecordStatus.REFUNDED: frozenset(),
    EarlyPaymentRecordStatus.DISPUTED: frozenset(),
}


def scheduled_payments(transaction: Transaction) -> List[Payment]:
    """Installments still eligible for early payoff, in schedule order"""
    return sort_payments([p for p in transaction.payments if p.status == PaymentStatus.SCHEDULED])


def _require_scheduled(transaction: Transaction) -> List[Payment]:
    payments = scheduled_payments(transaction)
    if not payments:
        raise NoScheduledInstallmentsError(f"No scheduled installments remain on transaction {transaction.id}")
    return payments


def _days_early(payments: List[Payment], payment_date: datetime) -> int:
    earliest_due = min(p.due_date for p in payments)
    return max(ceil_days_between(payment_date, earliest_due), 0)


def _discount(
    policy: DiscountPolicy,
    principal: Decimal,
    payments: List[Payment],
    payment_date: datetime,
    transaction: Transaction,
) -> Decimal:
    """Policy output clamped to [0, principal]"""
    raw = policy.discount_for(principal, _days_early(payments, payment_date), transaction)
    return min(max(to_money(raw), ZERO), principal)


def _quote(
    transaction: Transaction,
    payments: List[Payment],
    payment_type: EarlyPaymentType,
    policy: DiscountPolicy,
    payment_date: datetime,
) -> EarlyPaymentOption:
    original = sum((p.amount for p in payments), ZERO)
    discount = _discount(policy, original, payments, payment_date, transaction)
    return EarlyPaymentOption(
        transaction_id=transaction.id,
        payment_type=payment_type,
        original_amount=original,
        discount_amount=discount,
        final_amount=original - discount,
        net_savings=discount,
        covered_installment_ids=[p.id for p in payments],
    )


def quote_full_payoff(
    transaction: Transaction,
    policy: DiscountPolicy,
    payment_date: datetime | None = None,
) -> EarlyPaymentOption:
    """
    Quote paying every remaining scheduled installment now.

    Raises:
        NoScheduledInstallmentsError: Nothing left to pay off
    """
    payments = _require_scheduled(transaction)
    return _quote(transaction, payments, EarlyPaymentType.FULL, policy, payment_date or utc_now())


def _select(transaction: Transaction, installment_ids: List[str]) -> List[Payment]:
    payments = _require_scheduled(transaction)
    if not installment_ids:
        raise InvalidSelectionError("At least one installment must be selected")

    by_id = {p.id: p for p in payments}
    unknown = [i for i in installment_ids if i not in by_id]
    if unknown:
        raise InvalidSelectionError(
            f"Installments not scheduled on transaction {transaction.id}: {', '.join(unknown)}"
        )

    selected = set(installment_ids)
    return [p for p in payments if p.id in selected]


def quote_partial_payoff(
    transaction: Transaction,
    installment_ids: List[str],
    policy: DiscountPolicy,
    payment_date: datetime | None = None,
) -> PartialPaymentQuote:
    """
    Quote paying a subset of scheduled installments, one option per installment
    plus the aggregate across the selection.

    Raises:
        InvalidSelectionError: Empty selection or ids not among the scheduled installments
        NoScheduledInstallmentsError: Nothing left to pay off
    """
    payment_date = payment_date or utc_now()
    selected = _select(transaction, installment_ids)

    options = []
    for payment in selected:
        discount = _discount(policy, payment.amount, [payment], payment_date, transaction)
        options.append(
            PartialPaymentOption(
                installment_id=payment.id,
                amount=payment.amount,
                due_date=payment.due_date,
                discount_amount=discount,
                final_amount=payment.amount - discount,
                net_savings=discount,
            )
        )

    original = sum((o.amount for o in options), ZERO)
    discount = sum((o.discount_amount for o in options), ZERO)
    aggregate = EarlyPaymentOption(
        transaction_id=transaction.id,
        payment_type=EarlyPaymentType.PARTIAL,
        original_amount=original,
        discount_amount=discount,
        final_amount=original - discount,
        net_savings=discount,
        covered_installment_ids=[p.id for p in selected],
    )
    return PartialPaymentQuote(options=options, aggregate=aggregate)


def get_early_payment_options(
    transaction: Transaction,
    policy: DiscountPolicy,
    payment_date: datetime | None = None,
) -> List[EarlyPaymentOption]:
    """Full payoff plus paying just the next installment; empty when nothing is scheduled"""
    payments = scheduled_payments(transaction)
    if not payments:
        return []

    options = [quote_full_payoff(transaction, policy, payment_date)]
    if len(payments) > 1:
        options.append(quote_partial_payoff(transaction, [payments[0].id], policy, payment_date).aggregate)
    return options


def get_best_early_payment_option(options: List[EarlyPaymentOption]) -> Optional[EarlyPaymentOption]:
    """Greatest net savings wins; full beats partial on a tie"""
    if not options:
        return None
    return max(
        options,
        key=lambda o: (o.net_savings, o.payment_type == EarlyPaymentType.FULL),
    )


def quote_custom_amount(
    transaction: Transaction,
    custom_amount: Decimal,
    policy: DiscountPolicy,
    payment_date: datetime | None = None,
) -> CustomPaymentQuote:
    """
    Quote an arbitrary payoff amount against the outstanding scheduled balance.

    The amount applied is capped at the outstanding balance; the discount never
    exceeds the proposed amount and the final amount never exceeds what is applied.

    Raises:
        InvalidSelectionError: custom_amount <= 0
        NoScheduledInstallmentsError: Nothing left to pay off
    """
    if custom_amount <= 0:
        raise InvalidSelectionError(f"Custom amount must be positive, got: {custom_amount}")

    payments = _require_scheduled(transaction)
    outstanding = sum((p.amount for p in payments), ZERO)
    applied = min(to_money(custom_amount), outstanding)

    discount = min(_discount(policy, applied, payments, payment_date or utc_now(), transaction), custom_amount)
    final = min(applied - discount, applied)

    return CustomPaymentQuote(
        outstanding_amount=outstanding,
        custom_amount=custom_amount,
        original_amount=applied,
        discount_amount=discount,
        final_amount=final,
        savings=discount,
    )


def simulate_early_payment_scenarios(
    transaction: Transaction,
    scenarios: List[EarlyPaymentScenario],
    policy: DiscountPolicy,
) -> List[ScenarioResult]:
    """
    Quote each hypothetical scenario and score it.

    recommendation_score is net savings scaled to 0-100 against the best
    scenario in the batch, so ranking by score equals ranking by savings.
    Partial scenarios take either installment ids or a custom amount.
    """
    quotes = []
    for scenario in scenarios:
        if scenario.payment_type == EarlyPaymentType.FULL:
            option = quote_full_payoff(transaction, policy, scenario.payment_date)
            quotes.append((option.original_amount, option.discount_amount, option.final_amount))
        elif scenario.installment_ids:
            option = quote_partial_payoff(transaction, scenario.installment_ids, policy, scenario.payment_date).aggregate
            quotes.append((option.original_amount, option.discount_amount, option.final_amount))
        elif scenario.amount is not None:
            custom = quote_custom_amount(transaction, scenario.amount, policy, scenario.payment_date)
            quotes.append((custom.original_amount, custom.discount_amount, custom.final_amount))
        else:
            raise InvalidSelectionError("Partial scenario needs installment ids or an amount")

    best_savings = max((discount for _, discount, _ in quotes), default=ZERO)

    results = []
    for scenario, (original, discount, final) in zip(scenarios, quotes):
        score = round(float(discount / best_savings * 100), 2) if best_savings > 0 else 0.0
        results.append(
            ScenarioResult(
                scenario=scenario,
                original_amount=original,
                discount_amount=discount,
                final_amount=final,
                net_savings=discount,
                recommendation_score=score,
            )
        )
    return results


def is_cancellable(record: EarlyPaymentRecord) -> bool:
    """Only processing or completed early payments can be refunded"""
    return EarlyPaymentRecordStatus.REFUNDED in RECORD_TRANSITIONS[record.status]


def apply_record_status(record: EarlyPaymentRecord, status: EarlyPaymentRecordStatus) -> EarlyPaymentRecord:
    """
    Reflect a status reported by the processor or the cancellation API.

    Raises:
        InvalidStatusTransitionError: Move not allowed from the record's current status
    """
    if status == record.status:
        return record
    if status not in RECORD_TRANSITIONS[record.status]:
        raise InvalidStatusTransitionError(
            f"Early payment {record.id} cannot move from {record.status.value} to {status.value}"
        )
    return dataclasses.replace(record, status=status)


def filter_early_payment_history(
    records: List[EarlyPaymentRecord],
    transaction_id: str | None = None,
    status: EarlyPaymentRecordStatus | None = None,
    search: str | None = None,
    period_days: int | None = None,
    now: datetime | None = None,
) -> List[EarlyPaymentRecord]:
    filtered = list(records)

    if transaction_id:
        filtered = [r for r in filtered if r.transaction_id == transaction_id]

    if search:
        term = search.lower()
        filtered = [r for r in filtered if term in r.id.lower() or term in r.transaction_id.lower()]

    if status is not None:
        filtered = [r for r in filtered if r.status == status]

    if period_days:
        cutoff = (now or utc_now()) - timedelta(days=period_days)
        filtered = [r for r in filtered if r.processed_at >= cutoff]

    return filtered


def sort_early_payment_history(
    records: List[EarlyPaymentRecord],
    field: str = "processed_at",
    descending: bool = True,
) -> List[EarlyPaymentRecord]:
    return sorted(records, key=lambda r: getattr(r, field), reverse=descending)


def summarize_early_payment_history(records: List[EarlyPaymentRecord]) -> HistorySummary:
    """Aggregate completed early payments; rates are 0 when there is nothing to divide by"""
    completed = [r for r in records if r.status == EarlyPaymentRecordStatus.COMPLETED]

    total_original = sum((r.original_amount for r in completed), ZERO)
    total_final = sum((r.final_amount for r in completed), ZERO)
    total_savings = sum((r.savings for r in completed), ZERO)

    average_savings = to_money(total_savings / len(completed)) if completed else ZERO
    savings_rate = float(total_savings / total_original * 100) if total_original > 0 else 0.0

    return HistorySummary(
        total_transactions=len(completed),
        total_original_amount=total_original,
        total_final_amount=total_final,
        total_savings=total_savings,
        average_savings=average_savings,
        savings_rate=savings_rate,
    )


def get_total_savings(records: List[EarlyPaymentRecord]) -> Decimal:
    return sum(
        (r.savings for r in records if r.status == EarlyPaymentRecordStatus.COMPLETED),
        ZERO,
    )


def get_recent_payments(records: List[EarlyPaymentRecord], limit: int) -> List[EarlyPaymentRecord]:
    return sort_early_payment_history(records)[:limit]
