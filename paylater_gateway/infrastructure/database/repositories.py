"""Data access layer for BNPL entities"""

import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from paylater_gateway.infrastructure.database.models import (
    BNPLPayment,
    BNPLTransaction,
    EarlyPaymentConfigRow,
    EarlyPaymentRecordRow,
)
from paylater_gateway.domain.models import (
    EarlyPaymentRecord,
    EarlyPaymentRecordStatus,
    EarlyPaymentType,
    Payment,
    PaymentMethodDetails,
    PaymentPlan,
    PaymentStatus,
    Transaction,
    TransactionStatus,
)
from paylater_gateway.domain.policy import DiscountTier, EarlyPaymentConfig


def _to_payment(row: BNPLPayment) -> Payment:
    return Payment(
        id=str(row.id),
        transaction_id=str(row.transaction_id),
        installment_number=row.installment_number,
        amount=Decimal(row.amount),
        due_date=row.due_date,
        status=PaymentStatus(row.status),
        payment_date=row.payment_date,
    )


def _to_transaction(row: BNPLTransaction) -> Transaction:
    return Transaction(
        id=str(row.id),
        amount=Decimal(row.amount),
        payment_plan=PaymentPlan(row.payment_plan),
        status=TransactionStatus(row.status),
        items=row.items or [],
        payments=[_to_payment(p) for p in row.payments],
        merchant_id=row.merchant_id,
    )


def _to_record(row: EarlyPaymentRecordRow) -> EarlyPaymentRecord:
    method = None
    if row.payment_method_brand:
        method = PaymentMethodDetails(brand=row.payment_method_brand, last4=row.payment_method_last4 or "")
    return EarlyPaymentRecord(
        id=row.id,
        transaction_id=str(row.transaction_id),
        original_amount=Decimal(row.original_amount),
        final_amount=Decimal(row.final_amount),
        savings=Decimal(row.savings),
        processed_at=row.processed_at,
        status=EarlyPaymentRecordStatus(row.status),
        payment_method_details=method,
        payment_type=EarlyPaymentType(row.payment_type),
        covered_installment_ids=list(row.covered_installment_ids or []),
    )


class TransactionRepository:
    """Repository for transactions and their installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        transaction_id: uuid.UUID,
        amount: Decimal,
        payment_plan: PaymentPlan,
        payments: List[Payment],
        merchant_id: str | None = None,
        items: List[Dict[str, Any]] | None = None,
    ) -> Transaction:
        """Persist a checkout together with its generated schedule"""
        db_transaction = BNPLTransaction(
            id=transaction_id,
            merchant_id=merchant_id,
            amount=amount,
            payment_plan=payment_plan.value,
            status=TransactionStatus.APPROVED.value,
            items=items or [],
        )
        self.db.add(db_transaction)
        self.db.flush()

        for payment in payments:
            self.db.add(
                BNPLPayment(
                    id=uuid.UUID(payment.id),
                    transaction_id=transaction_id,
                    installment_number=payment.installment_number,
                    amount=payment.amount,
                    due_date=payment.due_date,
                    status=payment.status.value,
                )
            )
        self.db.flush()
        self.db.refresh(db_transaction)

        return _to_transaction(db_transaction)

    def get_transaction(self, transaction_id: uuid.UUID) -> Optional[Transaction]:
        """Fetch transaction with installments"""
        row = (
            self.db.query(BNPLTransaction)
            .filter(BNPLTransaction.id == transaction_id)
            .first()
        )
        return _to_transaction(row) if row else None


class EarlyPaymentRepository:
    """Repository for early payment history"""

    def __init__(self, db: Session):
        self.db = db

    def add_record(self, record: EarlyPaymentRecord) -> None:
        method = record.payment_method_details
        self.db.add(
            EarlyPaymentRecordRow(
                id=record.id,
                transaction_id=uuid.UUID(record.transaction_id),
                payment_type=record.payment_type.value,
                original_amount=record.original_amount,
                final_amount=record.final_amount,
                savings=record.savings,
                status=record.status.value,
                covered_installment_ids=record.covered_installment_ids,
                payment_method_brand=method.brand if method else None,
                payment_method_last4=method.last4 if method else None,
                processed_at=record.processed_at,
            )
        )
        self.db.flush()

    def get_record(self, record_id: str) -> Optional[EarlyPaymentRecord]:
        row = self.db.get(EarlyPaymentRecordRow, record_id)
        return _to_record(row) if row else None

    def update_status(self, record_id: str, status: EarlyPaymentRecordStatus, reason: str | None = None) -> None:
        row = self.db.get(EarlyPaymentRecordRow, record_id)
        row.status = status.value
        if reason:
            row.cancel_reason = reason
        self.db.flush()

    def list_records(self, transaction_id: uuid.UUID | None = None) -> List[EarlyPaymentRecord]:
        """Fetch early payments, newest first"""
        query = self.db.query(EarlyPaymentRecordRow)
        if transaction_id is not None:
            query = query.filter(EarlyPaymentRecordRow.transaction_id == transaction_id)
        rows = query.order_by(EarlyPaymentRecordRow.processed_at.desc(), EarlyPaymentRecordRow.id).all()
        return [_to_record(r) for r in rows]


class EarlyPaymentConfigRepository:
    """Repository for merchant early payment configuration"""

    def __init__(self, db: Session):
        self.db = db

    def get_config(self, merchant_id: str) -> Optional[EarlyPaymentConfig]:
        row = self.db.get(EarlyPaymentConfigRow, merchant_id)
        if not row:
            return None

        return EarlyPaymentConfig(
            merchant_id=row.merchant_id,
            enabled=row.enabled,
            discount_tiers=[
                DiscountTier(
                    time_range=t["time_range"],
                    discount_rate=Decimal(str(t["discount_rate"])),
                    minimum_amount=Decimal(str(t["minimum_amount"])),
                    maximum_discount=Decimal(str(t["maximum_discount"])),
                    description=t.get("description", ""),
                )
                for t in row.discount_tiers
            ],
            allow_partial_payments=row.allow_partial_payments,
            require_merchant_approval=row.require_merchant_approval,
            minimum_early_payment_amount=Decimal(row.minimum_early_payment_amount),
            maximum_early_payment_amount=(
                Decimal(row.maximum_early_payment_amount) if row.maximum_early_payment_amount is not None else None
            ),
            excluded_payment_methods=row.excluded_payment_methods or [],
            require_approval_amount=(
                Decimal(row.require_approval_amount) if row.require_approval_amount is not None else None
            ),
        )

    def save_config(self, config: EarlyPaymentConfig) -> None:
        """Insert or replace a merchant's configuration"""
        row = EarlyPaymentConfigRow(
            merchant_id=config.merchant_id,
            enabled=config.enabled,
            discount_tiers=[
                {
                    "time_range": t.time_range,
                    "discount_rate": str(t.discount_rate),
                    "minimum_amount": str(t.minimum_amount),
                    "maximum_discount": str(t.maximum_discount),
                    "description": t.description,
                }
                for t in config.discount_tiers
            ],
            allow_partial_payments=config.allow_partial_payments,
            require_merchant_approval=config.require_merchant_approval,
            minimum_early_payment_amount=config.minimum_early_payment_amount,
            maximum_early_payment_amount=config.maximum_early_payment_amount,
            excluded_payment_methods=config.excluded_payment_methods,
            require_approval_amount=config.require_approval_amount,
        )
        self.db.merge(row)
        self.db.flush()
