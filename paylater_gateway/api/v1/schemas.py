"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from paylater_gateway.domain.models import (
    EarlyPaymentRecordStatus,
    EarlyPaymentType,
    PaymentPlan,
    PaymentStatus,
    TransactionStatus,
)
from paylater_gateway.utils.date_utils import to_naive_utc

# Request datetimes are compared against naive UTC storage
UTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]


class DomainSchema(BaseModel):
    """Base for responses built straight from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


class CreateTransactionRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Checkout total")
    payment_plan: PaymentPlan = PaymentPlan.PAY_IN_4
    merchant_id: Optional[str] = None
    items: List[Dict[str, Any]] = Field(default_factory=list)
    first_due_date: Optional[UTCDateTime] = None


class PaymentSchema(DomainSchema):
    """Single installment in a schedule"""

    id: str
    installment_number: int
    amount: Decimal
    due_date: datetime
    status: PaymentStatus
    payment_date: Optional[datetime] = None


class TransactionResponse(DomainSchema):
    id: str
    amount: Decimal
    payment_plan: PaymentPlan
    status: TransactionStatus
    merchant_id: Optional[str] = None
    payments: List[PaymentSchema]


class ProgressSchema(DomainSchema):
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    total_payments: int
    completed_payments: int
    progress_percentage: float


class NextPaymentSchema(DomainSchema):
    next_payment: Optional[PaymentSchema] = None
    upcoming_payments: List[PaymentSchema]
    overdue_payments: List[PaymentSchema]
    days_until_next: Optional[int] = None


class ValidationSchema(DomainSchema):
    is_valid: bool
    errors: List[str]
    warnings: List[str]


class ScheduleRowSchema(DomainSchema):
    installment_number: int
    amount: Decimal
    due_date: datetime
    status: PaymentStatus
    paid_at: Optional[datetime] = None


class ScheduleSummarySchema(DomainSchema):
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    total_installments: int
    completed_installments: int
    next_payment: Optional[PaymentSchema] = None
    schedule: List[ScheduleRowSchema]


class ScheduleResponse(BaseModel):
    """Response for GET /v1/transactions/{transaction_id}/schedule"""

    transaction_id: str
    summary: ScheduleSummarySchema
    payments: List[PaymentSchema]
    progress: ProgressSchema
    next: NextPaymentSchema
    validation: ValidationSchema
    settled: bool


class EarlyPaymentOptionSchema(DomainSchema):
    transaction_id: str
    payment_type: EarlyPaymentType
    original_amount: Decimal
    discount_amount: Decimal
    discount_percentage: float
    final_amount: Decimal
    net_savings: Decimal
    covered_installment_ids: List[str]


class EarlyPaymentOptionsResponse(BaseModel):
    """Response for GET /v1/transactions/{transaction_id}/early-payment-options"""

    transaction_id: str
    options: List[EarlyPaymentOptionSchema]
    recommended: Optional[EarlyPaymentOptionSchema] = None


class PartialOptionsRequest(BaseModel):
    installment_ids: List[str]
    payment_date: Optional[UTCDateTime] = None


class PartialPaymentOptionSchema(DomainSchema):
    installment_id: str
    amount: Decimal
    due_date: datetime
    discount_amount: Decimal
    final_amount: Decimal
    net_savings: Decimal
    selected: bool


class PartialOptionsResponse(BaseModel):
    transaction_id: str
    options: List[PartialPaymentOptionSchema]
    aggregate: EarlyPaymentOptionSchema


class CustomSavingsRequest(BaseModel):
    custom_amount: Decimal
    payment_date: Optional[UTCDateTime] = None


class CustomSavingsResponse(DomainSchema):
    outstanding_amount: Decimal
    custom_amount: Decimal
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    savings: Decimal


class ScenarioSchema(DomainSchema):
    payment_type: EarlyPaymentType
    amount: Optional[Decimal] = None
    installment_ids: Optional[List[str]] = None
    payment_date: Optional[UTCDateTime] = None


class SimulateRequest(BaseModel):
    scenarios: List[ScenarioSchema] = Field(..., min_length=1)


class SimulationSchema(DomainSchema):
    scenario: ScenarioSchema
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    net_savings: Decimal
    recommendation_score: float


class SimulateResponse(BaseModel):
    transaction_id: str
    simulations: List[SimulationSchema]


class ProcessEarlyPaymentRequest(BaseModel):
    """Request body for POST /v1/early-payments/process"""

    transaction_id: str
    payment_type: EarlyPaymentType
    payment_method_id: str = Field(..., min_length=1)
    payment_method_type: Optional[str] = None
    installment_ids: List[str] = Field(default_factory=list)


class PaymentMethodSchema(DomainSchema):
    brand: str
    last4: str


class EarlyPaymentRecordSchema(DomainSchema):
    id: str
    transaction_id: str
    payment_type: EarlyPaymentType
    original_amount: Decimal
    final_amount: Decimal
    savings: Decimal
    processed_at: datetime
    status: EarlyPaymentRecordStatus
    payment_method_details: Optional[PaymentMethodSchema] = None
    covered_installment_ids: List[str]


class CancelEarlyPaymentRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class HistorySummarySchema(DomainSchema):
    total_transactions: int
    total_original_amount: Decimal
    total_final_amount: Decimal
    total_savings: Decimal
    average_savings: Decimal
    savings_rate: float


class HistoryResponse(BaseModel):
    """Response for GET /v1/early-payments/history"""

    records: List[EarlyPaymentRecordSchema]
    summary: HistorySummarySchema


class DiscountTierSchema(DomainSchema):
    time_range: str = Field(..., description="0-7days | 8-14days | 15-30days | 31+days")
    discount_rate: Decimal
    minimum_amount: Decimal = Decimal("0.00")
    maximum_discount: Decimal
    description: str = ""


class EarlyPaymentConfigRequest(BaseModel):
    """Request body for PUT /v1/early-payments/config/{merchant_id}"""

    enabled: bool = True
    discount_tiers: List[DiscountTierSchema]
    allow_partial_payments: bool = True
    require_merchant_approval: bool = False
    minimum_early_payment_amount: Decimal = Decimal("0.00")
    maximum_early_payment_amount: Optional[Decimal] = None
    excluded_payment_methods: List[str] = Field(default_factory=list)
    require_approval_amount: Optional[Decimal] = None


class EarlyPaymentConfigSchema(DomainSchema):
    merchant_id: str
    enabled: bool
    discount_tiers: List[DiscountTierSchema]
    allow_partial_payments: bool
    require_merchant_approval: bool
    minimum_early_payment_amount: Decimal
    maximum_early_payment_amount: Optional[Decimal] = None
    excluded_payment_methods: List[str]
    require_approval_amount: Optional[Decimal] = None
