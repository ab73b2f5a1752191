"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional

CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a number or string to a cent-quantized Decimal"""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class PaymentStatus(str, Enum):
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentPlan(str, Enum):
    PAY_IN_2 = "pay_in_2"
    PAY_IN_3 = "pay_in_3"
    PAY_IN_4 = "pay_in_4"

    @property
    def installment_count(self) -> int:
        return int(self.value.rsplit("_", 1)[1])


class EarlyPaymentType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class EarlyPaymentRecordStatus(str, Enum):
    COMPLETED = "completed"
    PROCESSING = "processing"
    FAILED = "failed"
    PENDING_APPROVAL = "pending_approval"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


class SortingMethod(str, Enum):
    HYBRID = "hybrid"
    INSTALLMENT_NUMBER = "installment_number"
    DUE_DATE = "due_date"


class SortingOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass
class Payment:
    """Single scheduled installment within a transaction"""

    id: str
    transaction_id: str
    installment_number: int
    amount: Decimal
    due_date: datetime
    status: PaymentStatus = PaymentStatus.SCHEDULED
    payment_date: Optional[datetime] = None


@dataclass
class Transaction:
    """One BNPL purchase and the installments that repay it"""

    id: str
    amount: Decimal
    payment_plan: PaymentPlan
    status: TransactionStatus = TransactionStatus.APPROVED
    items: List[Dict[str, Any]] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    merchant_id: Optional[str] = None


@dataclass
class SortingOptions:
    sort_by: SortingMethod = SortingMethod.HYBRID
    order: SortingOrder = SortingOrder.ASC


@dataclass
class PaymentProgress:
    """Paid vs outstanding totals for a payment list"""

    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    total_payments: int
    completed_payments: int
    progress_percentage: float


@dataclass
class NextPaymentInfo:
    next_payment: Optional[Payment]
    upcoming_payments: List[Payment]
    overdue_payments: List[Payment]
    days_until_next: Optional[int]


@dataclass
class SequenceValidation:
    """Outcome of a structural schedule check; errors are fatal, warnings are not"""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ScheduleRow:
    installment_number: int
    amount: Decimal
    due_date: datetime
    status: PaymentStatus
    paid_at: Optional[datetime] = None


@dataclass
class PaymentScheduleSummary:
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    total_installments: int
    completed_installments: int
    next_payment: Optional[Payment]
    schedule: List[ScheduleRow]


@dataclass
class EarlyPaymentOption:
    """Computed payoff quote. Never persisted."""

    transaction_id: str
    payment_type: EarlyPaymentType
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    net_savings: Decimal
    covered_installment_ids: List[str] = field(default_factory=list)

    @property
    def discount_percentage(self) -> float:
        if self.original_amount <= 0:
            return 0.0
        return round(float(self.discount_amount / self.original_amount * 100), 2)


@dataclass
class PartialPaymentOption:
    """Payoff quote scoped to a single installment"""

    installment_id: str
    amount: Decimal
    due_date: datetime
    discount_amount: Decimal
    final_amount: Decimal
    net_savings: Decimal
    selected: bool = True


@dataclass
class PartialPaymentQuote:
    options: List[PartialPaymentOption]
    aggregate: EarlyPaymentOption


@dataclass
class CustomPaymentQuote:
    """Quote for an arbitrary payoff amount not aligned to installments"""

    outstanding_amount: Decimal
    custom_amount: Decimal
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    savings: Decimal


@dataclass
class EarlyPaymentScenario:
    payment_type: EarlyPaymentType
    amount: Optional[Decimal] = None
    installment_ids: Optional[List[str]] = None
    payment_date: Optional[datetime] = None


@dataclass
class ScenarioResult:
    scenario: EarlyPaymentScenario
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    net_savings: Decimal
    recommendation_score: float


@dataclass
class PaymentMethodDetails:
    brand: str
    last4: str


@dataclass
class EarlyPaymentRecord:
    """Durable outcome of an executed early payment"""

    id: str
    transaction_id: str
    original_amount: Decimal
    final_amount: Decimal
    savings: Decimal
    processed_at: datetime
    status: EarlyPaymentRecordStatus
    payment_method_details: Optional[PaymentMethodDetails] = None
    payment_type: EarlyPaymentType = EarlyPaymentType.FULL
    covered_installment_ids: List[str] = field(default_factory=list)


@dataclass
class HistorySummary:
    total_transactions: int
    total_original_amount: Decimal
    total_final_amount: Decimal
    total_savings: Decimal
    average_savings: Decimal
    savings_rate: float
