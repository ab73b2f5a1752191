"""Early payment discount policies and merchant eligibility rules"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Protocol
from paylater_gateway.domain.models import Transaction, to_money

TIME_RANGES = ("0-7days", "8-14days", "15-30days", "31+days")


class DiscountPolicy(Protocol):
    """Supplies the discount for paying `principal` off `days_early` days ahead"""

    def discount_for(self, principal: Decimal, days_early: int, transaction: Transaction) -> Decimal:
        ...


@dataclass
class FlatRateDiscountPolicy:
    """Same rate regardless of timing or merchant"""

    rate: Decimal

    def discount_for(self, principal: Decimal, days_early: int, transaction: Transaction) -> Decimal:
        return to_money(principal * self.rate)


@dataclass
class DiscountTier:
    """A single discount band keyed on how early the payment is made"""

    time_range: str
    discount_rate: Decimal
    minimum_amount: Decimal
    maximum_discount: Decimal
    description: str = ""

    def covers(self, days_early: int) -> bool:
        if self.time_range == "0-7days":
            return days_early <= 7
        if self.time_range == "8-14days":
            return 8 <= days_early <= 14
        if self.time_range == "15-30days":
            return 15 <= days_early <= 30
        if self.time_range == "31+days":
            return days_early >= 31
        return False


@dataclass
class EligibilityResult:
    allowed: bool
    reason: Optional[str] = None


@dataclass
class EarlyPaymentConfig:
    """
    Merchant early payment configuration.

    Acts as a DiscountPolicy: the best applicable tier's rate, capped by the
    tier's maximum discount. No tier applies when the merchant has disabled
    early payment.
    """

    merchant_id: str
    enabled: bool = True
    discount_tiers: List[DiscountTier] = field(default_factory=list)
    allow_partial_payments: bool = True
    require_merchant_approval: bool = False
    minimum_early_payment_amount: Decimal = Decimal("0.00")
    maximum_early_payment_amount: Optional[Decimal] = None
    excluded_payment_methods: List[str] = field(default_factory=list)
    require_approval_amount: Optional[Decimal] = None

    def applicable_tier(self, days_early: int, amount: Decimal) -> Optional[DiscountTier]:
        if not self.enabled:
            return None

        best = None
        for tier in self.discount_tiers:
            if tier.covers(days_early) and amount >= tier.minimum_amount:
                if best is None or tier.discount_rate > best.discount_rate:
                    best = tier
        return best

    def discount_for(self, principal: Decimal, days_early: int, transaction: Transaction) -> Decimal:
        tier = self.applicable_tier(days_early, principal)
        if tier is None:
            return Decimal("0.00")
        return to_money(min(principal * tier.discount_rate, tier.maximum_discount))

    def can_process_early_payment(self, amount: Decimal, payment_method_type: str | None = None) -> EligibilityResult:
        if not self.enabled:
            return EligibilityResult(False, "Early payment is disabled for this merchant")

        if amount < self.minimum_early_payment_amount:
            return EligibilityResult(False, f"Minimum early payment amount is ${self.minimum_early_payment_amount}")

        if self.maximum_early_payment_amount is not None and amount > self.maximum_early_payment_amount:
            return EligibilityResult(False, f"Maximum early payment amount is ${self.maximum_early_payment_amount}")

        if payment_method_type and payment_method_type in self.excluded_payment_methods:
            return EligibilityResult(False, f"Payment method {payment_method_type} not allowed for early payment")

        return EligibilityResult(True)

    def requires_approval(self, amount: Decimal) -> bool:
        if self.require_merchant_approval:
            return True
        return self.require_approval_amount is not None and amount >= self.require_approval_amount

    def is_early_payment_beneficial(self, amount: Decimal, days_early: int, transaction: Transaction) -> bool:
        """Worth it when the discount is at least $1 or 0.5% of the amount"""
        minimum_benefit = max(Decimal("1"), amount * Decimal("0.005"))
        return self.discount_for(amount, days_early, transaction) >= minimum_benefit

    def validate_configuration(self) -> List[str]:
        errors = []

        if not self.discount_tiers:
            errors.append("At least one discount tier must be configured")

        for index, tier in enumerate(self.discount_tiers, start=1):
            if tier.time_range not in TIME_RANGES:
                errors.append(f"Discount tier {index}: Unknown time range {tier.time_range}")
            if tier.discount_rate <= 0 or tier.discount_rate > 1:
                errors.append(f"Discount tier {index}: Rate must be between 0 and 1")
            if tier.minimum_amount < 0:
                errors.append(f"Discount tier {index}: Minimum amount cannot be negative")
            if tier.maximum_discount <= 0:
                errors.append(f"Discount tier {index}: Maximum discount must be positive")

        if self.minimum_early_payment_amount < 0:
            errors.append("Minimum early payment amount cannot be negative")

        if (
            self.maximum_early_payment_amount is not None
            and self.maximum_early_payment_amount < self.minimum_early_payment_amount
        ):
            errors.append("Maximum early payment amount cannot be less than minimum")

        return errors

    @classmethod
    def default(cls, merchant_id: str) -> "EarlyPaymentConfig":
        """Standard 2% / 1.5% / 1% tiers for the first 30 days"""
        return cls(
            merchant_id=merchant_id,
            minimum_early_payment_amount=Decimal("10.00"),
            discount_tiers=[
                DiscountTier("0-7days", Decimal("0.02"), Decimal("10"), Decimal("50"), "Pay within 7 days for 2% discount"),
                DiscountTier("8-14days", Decimal("0.015"), Decimal("10"), Decimal("30"), "Pay within 14 days for 1.5% discount"),
                DiscountTier("15-30days", Decimal("0.01"), Decimal("10"), Decimal("20"), "Pay within 30 days for 1% discount"),
            ],
        )
