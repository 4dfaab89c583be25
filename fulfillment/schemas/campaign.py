"""
Campaign schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class CampaignProductCreate(BaseModel):
    """Physical product attached to a campaign."""
    name: str
    sku: Optional[str] = None
    quantity: int = 1
    description: Optional[str] = None


class CampaignCreate(BaseModel):
    """Create a new campaign."""
    title: str
    description: Optional[str] = None
    brand_id: Optional[uuid.UUID] = None  # defaults to the acting brand
    fixed_price: Optional[Decimal] = None
    currency: Optional[str] = None
    status: str = "open"
    deadline: Optional[datetime] = None
    products: List[CampaignProductCreate] = []

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Summer skincare UGC",
                "fixed_price": 450,
                "currency": "ILS",
                "products": [{"name": "Sunscreen SPF50", "sku": "SUN-50"}]
            }
        }


class CampaignProductResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    name: str
    sku: Optional[str]
    quantity: int
    description: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignResponse(BaseModel):
    """Campaign response."""
    id: uuid.UUID
    brand_id: uuid.UUID
    title: str
    description: Optional[str]
    fixed_price: Optional[Decimal]
    currency: str
    status: str
    deadline: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
