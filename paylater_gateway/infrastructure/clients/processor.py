"""Payment processor HTTP client for executing and cancelling early payments"""

import httpx
from decimal import Decimal
from typing import Any, Dict
from paylater_gateway.domain.models import (
    EarlyPaymentOption,
    EarlyPaymentRecord,
    EarlyPaymentRecordStatus,
    EarlyPaymentType,
    PaymentMethodDetails,
)
from paylater_gateway.domain.exceptions import ProcessorAPIError
from paylater_gateway.config import settings
from paylater_gateway.utils.date_utils import parse_iso_datetime
from paylater_gateway.infrastructure.observability.metrics import processor_latency_histogram


def parse_record(data: Dict[str, Any]) -> EarlyPaymentRecord:
    """Build an EarlyPaymentRecord from the processor's JSON; extra fields are ignored"""
    method = data.get("payment_method_details")
    return EarlyPaymentRecord(
        id=data["id"],
        transaction_id=data["transaction_id"],
        original_amount=Decimal(str(data["original_amount"])),
        final_amount=Decimal(str(data["final_amount"])),
        savings=Decimal(str(data["savings"])),
        processed_at=parse_iso_datetime(data["processed_at"]),
        status=EarlyPaymentRecordStatus(data["status"]),
        payment_method_details=PaymentMethodDetails(method["brand"], method["last4"]) if method else None,
        payment_type=EarlyPaymentType(data.get("payment_type", "full")),
        covered_installment_ids=list(data.get("covered_installment_ids", [])),
    )


class ProcessorClient:
    """
    Client for the external payment processor.

    Calls are made once; retry and backoff are the processor's concern.
    """

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.processor_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def submit_early_payment(
        self,
        option: EarlyPaymentOption,
        payment_method_id: str,
        requires_approval: bool = False,
    ) -> EarlyPaymentRecord:
        """
        Charge the chosen option and return the resulting record.

        Raises:
            ProcessorAPIError: On timeout, HTTP errors, or invalid response
        """
        payload = {
            "transaction_id": option.transaction_id,
            "payment_type": option.payment_type.value,
            "payment_ids": option.covered_installment_ids,
            "payment_method_id": payment_method_id,
            "original_amount": str(option.original_amount),
            "discount_amount": str(option.discount_amount),
            "final_amount": str(option.final_amount),
            "requires_approval": requires_approval,
        }
        return await self._post("/early-payments", payload)

    async def cancel_early_payment(self, record_id: str, reason: str) -> EarlyPaymentRecord:
        """
        Ask the processor to cancel an early payment; returns the record with its new status.

        Raises:
            ProcessorAPIError: On timeout, HTTP errors, or invalid response
        """
        return await self._post(f"/early-payments/{record_id}/cancel", {"reason": reason})

    async def _post(self, path: str, payload: Dict[str, Any]) -> EarlyPaymentRecord:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with processor_latency_histogram.time():
                    response = await client.post(f"{self.base_url}{path}", json=payload)
                response.raise_for_status()
                return parse_record(response.json())

            except httpx.TimeoutException as e:
                raise ProcessorAPIError(f"Processor timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise ProcessorAPIError(
                    f"Processor error: {e.response.status_code}",
                    status_code=e.response.status_code,
                    detail=e.response.text,
                ) from e
            except httpx.RequestError as e:
                raise ProcessorAPIError(f"Processor unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                raise ProcessorAPIError(f"Invalid early payment data from processor: {e}") from e
