"""
Task schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class TaskResponse(BaseModel):
    """Task response."""
    id: uuid.UUID
    application_id: uuid.UUID
    campaign_id: uuid.UUID
    creator_id: uuid.UUID
    shipment_request_id: Optional[uuid.UUID]
    title: str
    status: str
    payment_amount: Optional[Decimal]
    requires_product: bool
    due_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CanTransitionResponse(BaseModel):
    allowed: bool
