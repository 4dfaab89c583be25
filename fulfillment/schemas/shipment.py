"""
Shipment schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class AddressCreate(BaseModel):
    """Creator delivery address."""
    full_name: str
    phone: str
    street: str
    house_number: str
    apartment: Optional[str] = None
    city: str
    postal_code: Optional[str] = None
    country: str = "IL"
    notes: Optional[str] = None
    is_default: bool = False


class AddressResponse(AddressCreate):
    id: uuid.UUID
    creator_id: uuid.UUID
    created_at: datetime

    class Config:
        from_attributes = True


class AddressSubmit(BaseModel):
    address_id: uuid.UUID


class ShipmentRequestCreate(BaseModel):
    campaign_id: uuid.UUID
    creator_id: uuid.UUID


class MarkShipped(BaseModel):
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


class ShipmentIssue(BaseModel):
    reason: str
    note: Optional[str] = None


class ShipmentRequestResponse(BaseModel):
    id: uuid.UUID
    campaign_id: uuid.UUID
    creator_id: uuid.UUID
    address_id: Optional[uuid.UUID]
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ShipmentStatusResponse(BaseModel):
    campaign_id: uuid.UUID
    creator_id: uuid.UUID
    status: str
    hint: Optional[str] = None
