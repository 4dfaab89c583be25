"""
Application models - a creator's request to join a campaign, plus the
brand's feedback on rejection.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from fulfillment.models.types import json_column


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class RejectionReason(str, Enum):
    NOT_RELEVANT = "not_relevant"
    LOW_QUALITY_PROFILE = "low_quality_profile"
    INSUFFICIENT_FOLLOWERS = "insufficient_followers"
    WRONG_NICHE = "wrong_niche"
    TIMING_ISSUE = "timing_issue"
    BUDGET_MISMATCH = "budget_mismatch"
    OTHER = "other"


class Application(SQLModel, table=True):
    """
    Application entity.
    Status moves freely between approved and rejected (reversible decision).
    The creator may edit the details while it is still submitted.
    """
    __tablename__ = "application"
    __table_args__ = (UniqueConstraint("campaign_id", "creator_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    campaign_id: uuid.UUID = Field(foreign_key="campaign.id", index=True)
    creator_id: uuid.UUID = Field(index=True)

    message: Optional[str] = None
    proposed_price: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    portfolio_links: List[str] = Field(default_factory=list, sa_column=json_column(nullable=False))
    availability: Optional[str] = None
    status: str = Field(default=ApplicationStatus.SUBMITTED.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ApplicationFeedback(SQLModel, table=True):
    """Reason code and note recorded with a rejection."""
    __tablename__ = "application_feedback"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="application.id", index=True)

    decision: str = Field(default=ApplicationStatus.REJECTED.value)
    reason_code: Optional[str] = None
    note: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
