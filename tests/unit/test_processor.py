"""Unit tests for the payment processor client"""

import asyncio
import httpx
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from paylater_gateway.domain.exceptions import ProcessorAPIError
from paylater_gateway.domain.models import (
    EarlyPaymentOption,
    EarlyPaymentRecordStatus,
    EarlyPaymentType,
)
from paylater_gateway.infrastructure.clients.processor import ProcessorClient, parse_record

RECORD_JSON = {
    "id": "ep_1",
    "transaction_id": "txn_1",
    "payment_type": "partial",
    "original_amount": "100.00",
    "final_amount": "98.00",
    "savings": "2.00",
    "processed_at": "2024-01-15T10:30:00",
    "status": "completed",
    "payment_method_details": {"brand": "visa", "last4": "4242"},
    "covered_installment_ids": ["pay_2"],
    "ignored": True,
}

OPTION = EarlyPaymentOption(
    transaction_id="txn_1",
    payment_type=EarlyPaymentType.FULL,
    original_amount=Decimal("200.00"),
    discount_amount=Decimal("4.00"),
    final_amount=Decimal("196.00"),
    net_savings=Decimal("4.00"),
    covered_installment_ids=["pay_2", "pay_3"],
)


def _response(status_code: int, json=None, text: str = "") -> httpx.Response:
    request = httpx.Request("POST", "http://processor/early-payments")
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text, request=request)


def test_parse_record():
    """Test the processor payload maps onto an EarlyPaymentRecord"""
    record = parse_record(RECORD_JSON)

    assert record.savings == Decimal("2.00")
    assert record.status == EarlyPaymentRecordStatus.COMPLETED
    assert record.payment_type == EarlyPaymentType.PARTIAL
    assert record.payment_method_details.last4 == "4242"
    assert record.covered_installment_ids == ["pay_2"]


def test_parse_record_normalises_processed_at_to_naive_utc():
    """Test offsets and a trailing Z are converted to naive UTC"""
    zulu = parse_record({**RECORD_JSON, "processed_at": "2024-01-15T10:30:00Z"})
    offset = parse_record({**RECORD_JSON, "processed_at": "2024-01-15T12:30:00+02:00"})

    assert zulu.processed_at == datetime(2024, 1, 15, 10, 30)
    assert offset.processed_at == datetime(2024, 1, 15, 10, 30)
    assert offset.processed_at.tzinfo is None


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_submit_early_payment(mock_post: AsyncMock):
    """Test the submit payload carries the quoted amounts"""
    mock_post.return_value = _response(200, json=RECORD_JSON)

    record = asyncio.run(ProcessorClient(base_url="http://processor").submit_early_payment(OPTION, "pm_1"))

    assert record.id == "ep_1"
    payload = mock_post.call_args.kwargs["json"]
    assert payload["final_amount"] == "196.00"
    assert payload["payment_ids"] == ["pay_2", "pay_3"]
    assert payload["requires_approval"] is False


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_http_error_keeps_processor_detail(mock_post: AsyncMock):
    """Test HTTP errors keep the status code and body"""
    mock_post.return_value = _response(402, text="card_declined")

    with pytest.raises(ProcessorAPIError) as exc_info:
        asyncio.run(ProcessorClient(base_url="http://processor").submit_early_payment(OPTION, "pm_declined"))

    assert exc_info.value.status_code == 402
    assert exc_info.value.detail == "card_declined"


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_timeout_is_wrapped(mock_post: AsyncMock):
    """Test timeouts become ProcessorAPIError"""
    mock_post.side_effect = httpx.TimeoutException("slow")

    with pytest.raises(ProcessorAPIError, match="timeout"):
        asyncio.run(ProcessorClient(base_url="http://processor", timeout=1.0).cancel_early_payment("ep_1", "reason"))


@patch("httpx.AsyncClient.post", new_callable=AsyncMock)
def test_malformed_payload_is_wrapped(mock_post: AsyncMock):
    """Test an incomplete payload becomes ProcessorAPIError"""
    mock_post.return_value = _response(200, json={"id": "ep_1"})

    with pytest.raises(ProcessorAPIError, match="Invalid early payment data"):
        asyncio.run(ProcessorClient(base_url="http://processor").submit_early_payment(OPTION, "pm_1"))
