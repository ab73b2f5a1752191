"""Unit tests for early settlement quotes, simulation and history"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from paylater_gateway.domain.exceptions import (
    InvalidSelectionError,
    InvalidStatusTransitionError,
    NoScheduledInstallmentsError,
)
from paylater_gateway.domain.models import (
    EarlyPaymentOption,
    EarlyPaymentRecord,
    EarlyPaymentRecordStatus,
    EarlyPaymentScenario,
    EarlyPaymentType,
    PaymentStatus,
)
from paylater_gateway.domain.policy import FlatRateDiscountPolicy
from paylater_gateway.domain.settlement import (
    apply_record_status,
    filter_early_payment_history,
    get_best_early_payment_option,
    get_early_payment_options,
    get_recent_payments,
    get_total_savings,
    is_cancellable,
    quote_custom_amount,
    quote_full_payoff,
    quote_partial_payoff,
    simulate_early_payment_scenarios,
    sort_early_payment_history,
    summarize_early_payment_history,
)

TEN_PERCENT = FlatRateDiscountPolicy(Decimal("0.10"))
PAY_DATE = datetime(2024, 1, 15)


class OverreachingPolicy:
    """Returns more than the principal to exercise clamping"""

    def discount_for(self, principal, days_early, transaction):
        return principal * 2


class NegativePolicy:
    def discount_for(self, principal, days_early, transaction):
        return Decimal("-5")


class RecordingPolicy:
    def __init__(self):
        self.calls = []

    def discount_for(self, principal, days_early, transaction):
        self.calls.append((principal, days_early))
        return Decimal("0")


def _option(payment_type: EarlyPaymentType, savings: str) -> EarlyPaymentOption:
    savings = Decimal(savings)
    return EarlyPaymentOption(
        transaction_id="txn_1",
        payment_type=payment_type,
        original_amount=Decimal("200"),
        discount_amount=savings,
        final_amount=Decimal("200") - savings,
        net_savings=savings,
    )


def _record(record_id: str, status: EarlyPaymentRecordStatus, original: str, savings: str, days_ago: int = 1):
    return EarlyPaymentRecord(
        id=record_id,
        transaction_id="txn_1",
        original_amount=Decimal(original),
        final_amount=Decimal(original) - Decimal(savings),
        savings=Decimal(savings),
        processed_at=datetime(2024, 6, 30) - timedelta(days=days_ago),
        status=status,
    )


def test_full_payoff_ten_percent_on_two_remaining(monthly_transaction):
    """Test full payoff covers every scheduled installment"""
    option = quote_full_payoff(monthly_transaction, TEN_PERCENT, PAY_DATE)

    assert option.payment_type == EarlyPaymentType.FULL
    assert option.original_amount == Decimal("200.00")
    assert option.discount_amount == Decimal("20.00")
    assert option.final_amount == Decimal("180.00")
    assert option.net_savings == Decimal("20.00")
    assert option.covered_installment_ids == ["pay_2", "pay_3"]
    assert option.discount_percentage == 10.0


def test_full_payoff_no_scheduled_installments(monthly_transaction):
    """Test a fully paid transaction cannot be settled early"""
    for payment in monthly_transaction.payments:
        payment.status = PaymentStatus.COMPLETED

    with pytest.raises(NoScheduledInstallmentsError):
        quote_full_payoff(monthly_transaction, TEN_PERCENT, PAY_DATE)


def test_full_payoff_excludes_processing_installments(monthly_transaction):
    """Test installments already in flight are not quoted"""
    monthly_transaction.payments[1].status = PaymentStatus.PROCESSING

    option = quote_full_payoff(monthly_transaction, TEN_PERCENT, PAY_DATE)

    assert option.original_amount == Decimal("100.00")
    assert option.covered_installment_ids == ["pay_3"]


def test_full_payoff_discount_clamped_to_principal(monthly_transaction):
    """Test a discount above the principal is capped at the principal"""
    option = quote_full_payoff(monthly_transaction, OverreachingPolicy(), PAY_DATE)

    assert option.discount_amount == Decimal("200.00")
    assert option.final_amount == Decimal("0.00")


def test_full_payoff_negative_discount_clamped_to_zero(monthly_transaction):
    """Test a negative discount never raises the amount due"""
    option = quote_full_payoff(monthly_transaction, NegativePolicy(), PAY_DATE)

    assert option.discount_amount == Decimal("0.00")
    assert option.final_amount == option.original_amount


def test_full_payoff_days_early_to_earliest_due_date(monthly_transaction):
    """Test days early is measured to the earliest scheduled due date"""
    policy = RecordingPolicy()

    quote_full_payoff(monthly_transaction, policy, PAY_DATE)

    assert policy.calls == [(Decimal("200.00"), 17)]


def test_full_payoff_days_early_never_negative(monthly_transaction):
    """Test paying after the due date counts as zero days early"""
    policy = RecordingPolicy()

    quote_full_payoff(monthly_transaction, policy, datetime(2024, 2, 20))

    assert policy.calls[0][1] == 0


def test_partial_payoff_options_and_aggregate(monthly_transaction):
    """Test one option per selected installment plus the aggregate"""
    quote = quote_partial_payoff(monthly_transaction, ["pay_3"], TEN_PERCENT, PAY_DATE)

    assert len(quote.options) == 1
    option = quote.options[0]
    assert option.installment_id == "pay_3"
    assert option.discount_amount == Decimal("10.00")
    assert option.final_amount == Decimal("90.00")
    assert option.selected is True

    assert quote.aggregate.payment_type == EarlyPaymentType.PARTIAL
    assert quote.aggregate.original_amount == Decimal("100.00")
    assert quote.aggregate.net_savings == Decimal("10.00")
    assert quote.aggregate.covered_installment_ids == ["pay_3"]


def test_partial_payoff_aggregate_sums_selection(monthly_transaction):
    """Test options follow schedule order and the aggregate sums them"""
    quote = quote_partial_payoff(monthly_transaction, ["pay_3", "pay_2"], TEN_PERCENT, PAY_DATE)

    assert [o.installment_id for o in quote.options] == ["pay_2", "pay_3"]
    assert quote.aggregate.original_amount == Decimal("200.00")
    assert quote.aggregate.final_amount == Decimal("180.00")


def test_partial_payoff_unknown_installment(monthly_transaction):
    """Test an unknown id is named in the error"""
    with pytest.raises(InvalidSelectionError, match="pay_9"):
        quote_partial_payoff(monthly_transaction, ["pay_2", "pay_9"], TEN_PERCENT, PAY_DATE)


def test_partial_payoff_completed_installment_not_selectable(monthly_transaction):
    """Test completed installments cannot be paid early"""
    with pytest.raises(InvalidSelectionError):
        quote_partial_payoff(monthly_transaction, ["pay_1"], TEN_PERCENT, PAY_DATE)


def test_partial_payoff_empty_selection(monthly_transaction):
    """Test an empty selection is rejected"""
    with pytest.raises(InvalidSelectionError):
        quote_partial_payoff(monthly_transaction, [], TEN_PERCENT, PAY_DATE)


def test_options_full_and_next_installment(monthly_transaction):
    """Test options are full payoff then the next installment"""
    options = get_early_payment_options(monthly_transaction, TEN_PERCENT, PAY_DATE)

    assert [o.payment_type for o in options] == [EarlyPaymentType.FULL, EarlyPaymentType.PARTIAL]
    assert options[1].covered_installment_ids == ["pay_2"]


def test_options_single_remaining_installment(monthly_transaction):
    """Test one remaining installment yields only the full option"""
    monthly_transaction.payments[1].status = PaymentStatus.COMPLETED

    options = get_early_payment_options(monthly_transaction, TEN_PERCENT, PAY_DATE)

    assert [o.payment_type for o in options] == [EarlyPaymentType.FULL]


def test_options_empty_when_nothing_scheduled(monthly_transaction):
    """Test no options once every installment is completed"""
    for payment in monthly_transaction.payments:
        payment.status = PaymentStatus.COMPLETED

    assert get_early_payment_options(monthly_transaction, TEN_PERCENT, PAY_DATE) == []


def test_best_option_highest_savings():
    """Test the option with the highest savings wins"""
    full = _option(EarlyPaymentType.FULL, "20")
    partial = _option(EarlyPaymentType.PARTIAL, "12")

    assert get_best_early_payment_option([partial, full]) is full


def test_best_option_tie_prefers_full():
    """Test equal savings prefer full payoff"""
    partial = _option(EarlyPaymentType.PARTIAL, "20")
    full = _option(EarlyPaymentType.FULL, "20")

    assert get_best_early_payment_option([partial, full]) is full


def test_best_option_of_nothing():
    """Test no options gives no best option"""
    assert get_best_early_payment_option([]) is None


def test_custom_amount_within_balance(monthly_transaction):
    """Test a custom amount below the outstanding balance"""
    quote = quote_custom_amount(monthly_transaction, Decimal("150"), TEN_PERCENT, PAY_DATE)

    assert quote.outstanding_amount == Decimal("200.00")
    assert quote.original_amount == Decimal("150.00")
    assert quote.discount_amount == Decimal("15.00")
    assert quote.final_amount == Decimal("135.00")
    assert quote.savings == Decimal("15.00")


def test_custom_amount_capped_at_outstanding(monthly_transaction):
    """Test a custom amount above the balance is capped"""
    quote = quote_custom_amount(monthly_transaction, Decimal("500"), TEN_PERCENT, PAY_DATE)

    assert quote.original_amount == Decimal("200.00")
    assert quote.final_amount <= quote.original_amount


def test_custom_amount_discount_never_exceeds_amount(monthly_transaction):
    """Test the custom discount is clamped to the amount"""
    quote = quote_custom_amount(monthly_transaction, Decimal("50"), OverreachingPolicy(), PAY_DATE)

    assert quote.discount_amount <= Decimal("50")
    assert quote.final_amount >= 0


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
def test_custom_amount_non_positive(monthly_transaction, amount):
    """Test zero and negative custom amounts are rejected"""
    with pytest.raises(InvalidSelectionError):
        quote_custom_amount(monthly_transaction, amount, TEN_PERCENT, PAY_DATE)


def test_simulation_scores_follow_savings(monthly_transaction):
    """Test scores scale with savings relative to the best scenario"""
    scenarios = [
        EarlyPaymentScenario(EarlyPaymentType.PARTIAL, installment_ids=["pay_2"], payment_date=PAY_DATE),
        EarlyPaymentScenario(EarlyPaymentType.FULL, payment_date=PAY_DATE),
        EarlyPaymentScenario(EarlyPaymentType.PARTIAL, amount=Decimal("50"), payment_date=PAY_DATE),
    ]

    results = simulate_early_payment_scenarios(monthly_transaction, scenarios, TEN_PERCENT)

    assert [r.net_savings for r in results] == [Decimal("10.00"), Decimal("20.00"), Decimal("5.00")]
    assert [r.recommendation_score for r in results] == [50.0, 100.0, 25.0]
    ranked = sorted(results, key=lambda r: r.recommendation_score, reverse=True)
    assert ranked[0].scenario.payment_type == EarlyPaymentType.FULL


def test_simulation_zero_savings_scores_zero(monthly_transaction):
    """Test no savings anywhere scores every scenario zero"""
    results = simulate_early_payment_scenarios(
        monthly_transaction,
        [EarlyPaymentScenario(EarlyPaymentType.FULL, payment_date=PAY_DATE)],
        FlatRateDiscountPolicy(Decimal("0")),
    )

    assert results[0].recommendation_score == 0.0


def test_simulation_partial_scenario_needs_selection(monthly_transaction):
    """Test a partial scenario without ids or amount is rejected"""
    with pytest.raises(InvalidSelectionError):
        simulate_early_payment_scenarios(
            monthly_transaction, [EarlyPaymentScenario(EarlyPaymentType.PARTIAL)], TEN_PERCENT
        )


def test_completed_record_can_be_refunded():
    """Test refunding returns a new record"""
    record = _record("ep_1", EarlyPaymentRecordStatus.COMPLETED, "100", "10")

    updated = apply_record_status(record, EarlyPaymentRecordStatus.REFUNDED)

    assert updated.status == EarlyPaymentRecordStatus.REFUNDED
    assert record.status == EarlyPaymentRecordStatus.COMPLETED


def test_processing_record_can_be_refunded():
    """Test a processing record can be refunded"""
    record = _record("ep_1", EarlyPaymentRecordStatus.PROCESSING, "100", "10")

    assert apply_record_status(record, EarlyPaymentRecordStatus.REFUNDED).status == EarlyPaymentRecordStatus.REFUNDED


@pytest.mark.parametrize(
    "status",
    [EarlyPaymentRecordStatus.FAILED, EarlyPaymentRecordStatus.REFUNDED, EarlyPaymentRecordStatus.DISPUTED],
)
def test_terminal_records_do_not_move(status):
    """Test terminal records reject further transitions"""
    record = _record("ep_1", status, "100", "10")

    with pytest.raises(InvalidStatusTransitionError):
        apply_record_status(record, EarlyPaymentRecordStatus.COMPLETED)


def test_same_record_status_is_a_no_op():
    """Test applying the current status returns the record unchanged"""
    record = _record("ep_1", EarlyPaymentRecordStatus.REFUNDED, "100", "10")

    assert apply_record_status(record, EarlyPaymentRecordStatus.REFUNDED) is record


def test_history_savings_rate_over_completed():
    """Test the summary counts completed records only"""
    records = [
        _record("ep_1", EarlyPaymentRecordStatus.COMPLETED, "300", "30"),
        _record("ep_2", EarlyPaymentRecordStatus.COMPLETED, "200", "20"),
        _record("ep_3", EarlyPaymentRecordStatus.FAILED, "1000", "100"),
    ]

    summary = summarize_early_payment_history(records)

    assert summary.total_transactions == 2
    assert summary.total_original_amount == Decimal("500")
    assert summary.total_savings == Decimal("50")
    assert summary.savings_rate == pytest.approx(10.0)
    assert summary.average_savings == Decimal("25.00")
    assert summary.total_final_amount == Decimal("450")


def test_history_empty_is_zero():
    """Test an empty history summarizes to zeros"""
    summary = summarize_early_payment_history([])

    assert summary.savings_rate == 0.0
    assert summary.average_savings == Decimal("0.00")


def test_history_sorted_newest_first():
    """Test history and recent payments are newest first"""
    records = [
        _record("old", EarlyPaymentRecordStatus.COMPLETED, "100", "1", days_ago=10),
        _record("new", EarlyPaymentRecordStatus.COMPLETED, "100", "1", days_ago=1),
    ]

    assert [r.id for r in sort_early_payment_history(records)] == ["new", "old"]
    assert [r.id for r in get_recent_payments(records, 1)] == ["new"]


def test_history_filters():
    """Test period, status, search and transaction filters"""
    records = [
        _record("ep_recent", EarlyPaymentRecordStatus.COMPLETED, "100", "5", days_ago=3),
        _record("ep_old", EarlyPaymentRecordStatus.COMPLETED, "100", "5", days_ago=40),
        _record("ep_refund", EarlyPaymentRecordStatus.REFUNDED, "100", "5", days_ago=3),
    ]
    now = datetime(2024, 6, 30)

    recent = filter_early_payment_history(records, period_days=30, now=now)
    completed = filter_early_payment_history(records, status=EarlyPaymentRecordStatus.COMPLETED)
    searched = filter_early_payment_history(records, search="REFUND")

    assert [r.id for r in recent] == ["ep_recent", "ep_refund"]
    assert [r.id for r in completed] == ["ep_recent", "ep_old"]
    assert [r.id for r in searched] == ["ep_refund"]
    assert filter_early_payment_history(records, transaction_id="other") == []


def test_total_savings_counts_completed_only():
    """Test disputed records add no savings"""
    records = [
        _record("ep_1", EarlyPaymentRecordStatus.COMPLETED, "100", "5"),
        _record("ep_2", EarlyPaymentRecordStatus.DISPUTED, "100", "5"),
    ]

    assert get_total_savings(records) == Decimal("5")


@pytest.mark.parametrize(
    "status,expected",
    [
        (EarlyPaymentRecordStatus.PROCESSING, True),
        (EarlyPaymentRecordStatus.COMPLETED, True),
        (EarlyPaymentRecordStatus.PENDING_APPROVAL, False),
        (EarlyPaymentRecordStatus.REFUNDED, False),
        (EarlyPaymentRecordStatus.FAILED, False),
    ],
)
def test_is_cancellable(status, expected):
    """Test only processing and completed records can be cancelled"""
    assert is_cancellable(_record("ep_1", status, "100", "10")) is expected
