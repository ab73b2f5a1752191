"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import HTTPException, Request
from sqlalchemy.orm import Session
from paylater_gateway.config import settings
from paylater_gateway.domain.models import Transaction
from paylater_gateway.domain.policy import DiscountPolicy, EarlyPaymentConfig, FlatRateDiscountPolicy
from paylater_gateway.infrastructure.clients.processor import ProcessorClient
from paylater_gateway.infrastructure.database.repositories import (
    EarlyPaymentConfigRepository,
    TransactionRepository,
)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_processor_client() -> ProcessorClient:
    """Provide payment processor client instance"""
    return ProcessorClient()


def parse_transaction_id(transaction_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(transaction_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid transaction ID format")


def load_transaction(transaction_id: str, db: Session) -> Transaction:
    """Fetch a transaction snapshot or fail with 400/404"""
    transaction = TransactionRepository(db).get_transaction(parse_transaction_id(transaction_id))
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction


def load_merchant_config(transaction: Transaction, db: Session) -> EarlyPaymentConfig:
    """Merchant's stored configuration, or the default tiers"""
    merchant_id = transaction.merchant_id or "default"
    return EarlyPaymentConfigRepository(db).get_config(merchant_id) or EarlyPaymentConfig.default(merchant_id)


def resolve_discount_policy(config: EarlyPaymentConfig) -> DiscountPolicy:
    if settings.discount_policy == "flat":
        return FlatRateDiscountPolicy(settings.flat_discount_rate)
    return config
