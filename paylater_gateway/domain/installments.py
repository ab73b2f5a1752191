"""Installment schedule generation for BNPL checkouts"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List
from paylater_gateway.domain.models import CENTS, Payment, PaymentPlan, PaymentStatus
from paylater_gateway.utils.date_utils import generate_due_dates, utc_now


def generate_payment_schedule(
    transaction_id: str,
    amount: Decimal,
    payment_plan: PaymentPlan,
    interval_days: int = 14,
    start_date: datetime | None = None,
    now: datetime | None = None,
) -> List[Payment]:
    """
    Split a checkout total into the installments of its payment plan.

    Requirements:
    - Equal installments rounded to the cent
    - `interval_days` apart (bi-weekly by default)
    - Last installment absorbs rounding remainder so the total is exact
    - Installment numbers follow due date order, starting at 1
    - First installment starts out processing when it is already due

    Args:
        transaction_id: Owning transaction
        amount: Total to split
        payment_plan: Determines the installment count
        interval_days: Days between due dates (default 14)
        start_date: First due date (default: now + interval_days)
        now: Evaluation instant (default: current UTC time)

    Returns:
        List of Payment objects ordered by installment number

    Example:
        $100.00 in 3 → [$33.33, $33.33, $33.34]
    """
    if amount <= 0:
        return []

    now = now or utc_now()
    if start_date is None:
        start_date = now + timedelta(days=interval_days)

    count = payment_plan.installment_count
    base_amount = (amount / count).quantize(CENTS, rounding=ROUND_HALF_UP)
    last_amount = amount - base_amount * (count - 1)

    payments = []
    for number, due_date in enumerate(sorted(generate_due_dates(start_date, count, interval_days)), start=1):
        status = PaymentStatus.PROCESSING if number == 1 and due_date <= now else PaymentStatus.SCHEDULED
        payments.append(
            Payment(
                id=str(uuid.uuid4()),
                transaction_id=transaction_id,
                installment_number=number,
                amount=last_amount if number == count else base_amount,
                due_date=due_date,
                status=status,
            )
        )

    return payments
