"""
Application review schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class ApplicationCreate(BaseModel):
    """Creator applies to a campaign."""
    campaign_id: uuid.UUID
    message: Optional[str] = None
    proposed_price: Optional[Decimal] = None
    portfolio_links: List[str] = []
    availability: Optional[str] = None


class ApplicationUpdate(BaseModel):
    """Edit a submitted application. Only the fields sent are changed."""
    message: Optional[str] = None
    proposed_price: Optional[Decimal] = None
    portfolio_links: Optional[List[str]] = None
    availability: Optional[str] = None


class ApplicationApprove(BaseModel):
    """Optional per-creator price overriding the campaign's fixed price."""
    custom_price: Optional[Decimal] = None


class ApplicationReject(BaseModel):
    reason_code: Optional[str] = None
    note: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {"reason_code": "wrong_niche", "note": "Profile focuses on gaming, not beauty."}
        }


class ApprovalResult(BaseModel):
    """Outcome of approving an application."""
    task_id: uuid.UUID
    payment_amount: Optional[Decimal]
    shipment_request_id: Optional[uuid.UUID] = None


class ApplicationResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    creator_id: uuid.UUID
    message: Optional[str]
    proposed_price: Optional[Decimal]
    portfolio_links: List[str]
    availability: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
