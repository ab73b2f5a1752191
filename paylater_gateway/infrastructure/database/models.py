"""SQLAlchemy ORM models for transactions, installments and early payments"""

import uuid
from sqlalchemy import Column, Boolean, DateTime, Integer, ForeignKey, Numeric, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class BNPLTransaction(Base):
    """Completed checkout paid in installments"""

    __tablename__ = "bnpl_transaction"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    merchant_id = Column(Text, nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_plan = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="approved")
    items = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    payments = relationship(
        "BNPLPayment",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="BNPLPayment.installment_number",
    )


class BNPLPayment(Base):
    """Individual installment within a transaction"""

    __tablename__ = "bnpl_payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("bnpl_transaction.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, default="scheduled")
    payment_date = Column(DateTime, nullable=True)

    transaction = relationship("BNPLTransaction", back_populates="payments")


class EarlyPaymentRecordRow(Base):
    """Outcome of an early payment as reported by the processor"""

    __tablename__ = "early_payment_record"

    id = Column(Text, primary_key=True)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("bnpl_transaction.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_type = Column(Text, nullable=False)
    original_amount = Column(Numeric(12, 2), nullable=False)
    final_amount = Column(Numeric(12, 2), nullable=False)
    savings = Column(Numeric(12, 2), nullable=False)
    status = Column(Text, nullable=False)
    covered_installment_ids = Column(JSON, nullable=False, default=list)
    payment_method_brand = Column(Text, nullable=True)
    payment_method_last4 = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=False)
    cancel_reason = Column(Text, nullable=True)


class EarlyPaymentConfigRow(Base):
    """Merchant early payment discount configuration"""

    __tablename__ = "early_payment_config"

    merchant_id = Column(Text, primary_key=True)
    enabled = Column(Boolean, nullable=False, default=True)
    discount_tiers = Column(JSON, nullable=False)
    allow_partial_payments = Column(Boolean, nullable=False, default=True)
    require_merchant_approval = Column(Boolean, nullable=False, default=False)
    minimum_early_payment_amount = Column(Numeric(12, 2), nullable=False, default=0)
    maximum_early_payment_amount = Column(Numeric(12, 2), nullable=True)
    excluded_payment_methods = Column(JSON, nullable=True)
    require_approval_amount = Column(Numeric(12, 2), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
