"""
Payment schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class MarkPaid(BaseModel):
    invoice_url: Optional[str] = None
    proof_url: Optional[str] = None


class PaymentFail(BaseModel):
    reason: str


class BatchPayoutCreate(BaseModel):
    """Execute several payments in one go."""
    payment_ids: List[uuid.UUID]
    notes: Optional[str] = None
    batch_name: Optional[str] = None
    idempotency_key: Optional[str] = None


class BatchPayoutResult(BaseModel):
    batch_id: uuid.UUID
    total_amount: Decimal


class PaymentResponse(BaseModel):
    """Payment response."""
    id: uuid.UUID
    task_id: uuid.UUID
    batch_id: Optional[uuid.UUID]
    amount: Decimal
    currency: str
    status: str
    invoice_url: Optional[str]
    proof_url: Optional[str]
    failure_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime]

    class Config:
        from_attributes = True
