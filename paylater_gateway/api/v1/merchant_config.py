"""Merchant early payment configuration - the tiers that drive discounts"""

import dataclasses
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from paylater_gateway.api.v1.schemas import EarlyPaymentConfigRequest, EarlyPaymentConfigSchema
from paylater_gateway.api.dependencies import get_request_id
from paylater_gateway.infrastructure.database.session import get_db
from paylater_gateway.infrastructure.database.repositories import EarlyPaymentConfigRepository
from paylater_gateway.domain.policy import DiscountTier, EarlyPaymentConfig

router = APIRouter()


def _save(config: EarlyPaymentConfig, db: Session, request_id: str) -> EarlyPaymentConfigSchema:
    """Reject invalid configurations with 422, otherwise persist and commit"""
    errors = config.validate_configuration()
    if errors:
        raise HTTPException(status_code=422, detail=errors)

    EarlyPaymentConfigRepository(db).save_config(config)
    db.commit()

    logging.info(
        "Early payment configuration saved",
        extra={"request_id": request_id, "merchant_id": config.merchant_id, "enabled": config.enabled},
    )
    return EarlyPaymentConfigSchema.model_validate(config)


@router.get("/early-payments/config/{merchant_id}", response_model=EarlyPaymentConfigSchema)
def get_config(merchant_id: str, db: Session = Depends(get_db)):
    """Stored configuration only; merchants without one get the default tiers at quote time"""
    config = EarlyPaymentConfigRepository(db).get_config(merchant_id)
    if not config:
        raise HTTPException(status_code=404, detail="Early payment configuration not found for this merchant")
    return EarlyPaymentConfigSchema.model_validate(config)


@router.put("/early-payments/config/{merchant_id}", response_model=EarlyPaymentConfigSchema)
def put_config(
    merchant_id: str,
    request_body: EarlyPaymentConfigRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Create or replace a merchant's configuration.

    Returns:
        The saved configuration; 422 with every validation error otherwise
    """
    config = EarlyPaymentConfig(
        merchant_id=merchant_id,
        enabled=request_body.enabled,
        discount_tiers=[DiscountTier(**tier.model_dump()) for tier in request_body.discount_tiers],
        allow_partial_payments=request_body.allow_partial_payments,
        require_merchant_approval=request_body.require_merchant_approval,
        minimum_early_payment_amount=request_body.minimum_early_payment_amount,
        maximum_early_payment_amount=request_body.maximum_early_payment_amount,
        excluded_payment_methods=request_body.excluded_payment_methods,
        require_approval_amount=request_body.require_approval_amount,
    )
    return _save(config, db, get_request_id(request))


def _set_enabled(merchant_id: str, enabled: bool, request: Request, db: Session) -> EarlyPaymentConfigSchema:
    current = EarlyPaymentConfigRepository(db).get_config(merchant_id) or EarlyPaymentConfig.default(merchant_id)
    return _save(dataclasses.replace(current, enabled=enabled), db, get_request_id(request))


@router.post("/early-payments/config/{merchant_id}/enable", response_model=EarlyPaymentConfigSchema)
def enable_early_payment(merchant_id: str, request: Request, db: Session = Depends(get_db)):
    return _set_enabled(merchant_id, True, request, db)


@router.post("/early-payments/config/{merchant_id}/disable", response_model=EarlyPaymentConfigSchema)
def disable_early_payment(merchant_id: str, request: Request, db: Session = Depends(get_db)):
    """Quotes for this merchant's transactions carry no discount while disabled"""
    return _set_enabled(merchant_id, False, request, db)
