"""
Shipment models - physical-product delivery per (campaign, creator) pair.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class ShipmentStatus(str, Enum):
    NOT_REQUESTED = "not_requested"
    WAITING_ADDRESS = "waiting_address"
    ADDRESS_RECEIVED = "address_received"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    ISSUE = "issue"


# `issue` has no way out; recovery is handled outside the sub-workflow.
SHIPMENT_TRANSITIONS = {
    ShipmentStatus.NOT_REQUESTED: {ShipmentStatus.WAITING_ADDRESS, ShipmentStatus.ISSUE},
    ShipmentStatus.WAITING_ADDRESS: {ShipmentStatus.ADDRESS_RECEIVED, ShipmentStatus.ISSUE},
    ShipmentStatus.ADDRESS_RECEIVED: {
        ShipmentStatus.ADDRESS_RECEIVED,
        ShipmentStatus.SHIPPED,
        ShipmentStatus.ISSUE,
    },
    ShipmentStatus.SHIPPED: {ShipmentStatus.DELIVERED, ShipmentStatus.ISSUE},
    ShipmentStatus.DELIVERED: {ShipmentStatus.ISSUE},
    ShipmentStatus.ISSUE: set(),
}

# Shown to a creator whose task is blocked on the shipment
SHIPMENT_HINTS = {
    ShipmentStatus.NOT_REQUESTED: "The brand has not created a shipment request yet.",
    ShipmentStatus.WAITING_ADDRESS: "Submit your shipping address.",
    ShipmentStatus.ADDRESS_RECEIVED: "The brand is preparing the shipment.",
    ShipmentStatus.SHIPPED: "The product is on its way. Confirm delivery once it arrives.",
    ShipmentStatus.ISSUE: "There is a problem with the shipment. Contact the brand.",
}


class ShipmentRequest(SQLModel, table=True):
    """One delivery workflow per (campaign, creator)."""
    __tablename__ = "shipment_request"
    __table_args__ = (UniqueConstraint("campaign_id", "creator_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    campaign_id: uuid.UUID = Field(foreign_key="campaign.id", index=True)
    creator_id: uuid.UUID = Field(index=True)
    address_id: Optional[uuid.UUID] = Field(default=None, foreign_key="shipment_address.id")

    status: str = Field(default=ShipmentStatus.NOT_REQUESTED.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ShipmentAddress(SQLModel, table=True):
    """Creator-owned delivery address."""
    __tablename__ = "shipment_address"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    creator_id: uuid.UUID = Field(index=True)

    full_name: str
    phone: str
    street: str
    house_number: str
    apartment: Optional[str] = None
    city: str
    postal_code: Optional[str] = None
    country: str = Field(default="IL")
    notes: Optional[str] = None
    is_default: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class Shipment(SQLModel, table=True):
    """Carrier details for a shipped request."""
    __tablename__ = "shipment"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    shipment_request_id: uuid.UUID = Field(foreign_key="shipment_request.id", index=True)

    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    issue_reason: Optional[str] = None
    issue_note: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
