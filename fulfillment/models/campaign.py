"""
Campaign model - brand-defined marketing initiative creators apply to.
Read-only for the orchestrator apart from the products it carries.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


class Campaign(SQLModel, table=True):
    """
    Campaign entity.
    `fixed_price` is the default task payment when approval gives no custom price.
    """
    __tablename__ = "campaign"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    brand_id: uuid.UUID = Field(index=True)

    # Basic info
    title: str = Field(index=True)
    description: Optional[str] = None

    # Pricing
    fixed_price: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    currency: str = Field(default="ILS")

    # Status
    status: str = Field(default=CampaignStatus.DRAFT.value, index=True)

    # Scheduling
    deadline: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class CampaignProduct(SQLModel, table=True):
    """Physical product a creator must receive before starting work."""
    __tablename__ = "campaign_product"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    campaign_id: uuid.UUID = Field(foreign_key="campaign.id", index=True)

    name: str
    sku: Optional[str] = None
    quantity: int = Field(default=1)
    description: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
