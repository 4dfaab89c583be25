"""
Payment models - per-task payments and aggregated batch payouts.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlmodel import SQLModel, Field

from fulfillment.models.types import json_column


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class BatchPayoutStatus(str, Enum):
    PENDING = "pending"
    EXECUTED = "executed"
    FAILED = "failed"


class Payment(SQLModel, table=True):
    """
    Payment for one approved task.
    The amount is copied from the task at approval time and never recomputed.
    """
    __tablename__ = "payment"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", unique=True, index=True)
    batch_id: Optional[uuid.UUID] = Field(default=None, foreign_key="batch_payout.id", index=True)

    amount: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = Field(default="ILS")
    status: str = Field(default=PaymentStatus.PENDING.value, index=True)

    # Proof of payment
    invoice_url: Optional[str] = None
    proof_url: Optional[str] = None
    failure_reason: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    paid_at: Optional[datetime] = None


class BatchPayout(SQLModel, table=True):
    """
    One-shot execution of several payments.
    `payment_ids` is a snapshot taken at creation and is never edited.
    """
    __tablename__ = "batch_payout"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    batch_name: str
    created_by: Optional[uuid.UUID] = None
    idempotency_key: Optional[str] = Field(default=None, unique=True, index=True)

    payment_ids: List[str] = Field(default_factory=list, sa_column=json_column(nullable=False))
    total_amount: Decimal = Field(default=Decimal("0.00"), max_digits=12, decimal_places=2)
    status: str = Field(default=BatchPayoutStatus.PENDING.value, index=True)
    notes: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    executed_at: Optional[datetime] = None
