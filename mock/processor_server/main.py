from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List
import uuid

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock Payment Processor", version="1.0.0")
# Records live in memory only; restart to reset
RECORDS: Dict[str, dict] = {}


class SubmitRequest(BaseModel):
    transaction_id: str
    payment_type: str
    payment_ids: List[str] = []
    payment_method_id: str
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    requires_approval: bool = False


class CancelRequest(BaseModel):
    reason: str


@app.get("/health")
def health(): return {"status": "ok"}

@app.post("/early-payments")
def submit(body: SubmitRequest):
    # "pm_declined" simulates a card decline
    if body.payment_method_id == "pm_declined":
        raise HTTPException(status_code=402, detail="card_declined")
    record = {
        "id": f"ep_{uuid.uuid4().hex[:12]}",
        "transaction_id": body.transaction_id,
        "payment_type": body.payment_type,
        "original_amount": str(body.original_amount),
        "final_amount": str(body.final_amount),
        "savings": str(body.discount_amount),
        "processed_at": datetime.now(timezone.utc).replace(tzinfo=None).isoformat(),
        "status": "pending_approval" if body.requires_approval else "completed",
        "payment_method_details": {"brand": "visa", "last4": body.payment_method_id[-4:].rjust(4, "0")},
        "covered_installment_ids": body.payment_ids,
    }
    RECORDS[record["id"]] = record
    return record

@app.post("/early-payments/{record_id}/cancel")
def cancel(record_id: str, body: CancelRequest):
    record = RECORDS.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="early payment not found")
    record["status"] = "refunded"
    return record
