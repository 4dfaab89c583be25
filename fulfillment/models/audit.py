"""
Audit log model - append-only trail of every state-changing operation.
"""
import uuid
from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field

from fulfillment.models.types import json_column


class AuditLog(SQLModel, table=True):
    """
    One row per mutating operation.
    Written after the operation's unit of work commits; never updated.
    """
    __tablename__ = "audit_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    actor_id: Optional[uuid.UUID] = Field(default=None, index=True)
    actor_role: Optional[str] = None

    # Action details
    action: str = Field(index=True)  # application_approved, content_uploaded, ...
    entity: str = Field(index=True)  # application, task, shipment_request, payment, ...
    entity_id: Optional[uuid.UUID] = Field(default=None, index=True)

    # Additional metadata
    meta_data: Dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    # Example: {"from": "uploaded", "to": "approved"}

    created_at: datetime = Field(default_factory=datetime.utcnow)


# Action constants for consistency
class Actions:
    # Campaign actions
    CAMPAIGN_CREATED = "campaign_created"
    CAMPAIGN_PRODUCT_ADDED = "campaign_product_added"

    # Application actions
    APPLICATION_SUBMITTED = "application_submitted"
    APPLICATION_UPDATED = "application_updated"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    SHIPMENTS_BACKFILLED = "shipments_backfilled"

    # Shipment actions
    SHIPMENT_REQUESTED = "shipment_requested"
    ADDRESS_CREATED = "address_created"
    ADDRESS_SUBMITTED = "address_submitted"
    SHIPMENT_SHIPPED = "shipment_shipped"
    SHIPMENT_DELIVERED = "shipment_delivered"
    SHIPMENT_ISSUE = "shipment_issue"

    # Task actions
    TASK_STARTED = "task_started"

    # Content actions
    CONTENT_UPLOADED = "content_uploaded"
    REVISION_REQUESTED = "revision_requested"
    CONTENT_APPROVED = "content_approved"

    # Payment actions
    PAYMENT_PAID = "payment_paid"
    PAYMENT_FAILED = "payment_failed"
    BATCH_PAYOUT_EXECUTED = "batch_payout_executed"

    # Dispute actions
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"


class Entities:
    CAMPAIGN = "campaign"
    APPLICATION = "application"
    TASK = "task"
    SHIPMENT_REQUEST = "shipment_request"
    SHIPMENT_ADDRESS = "shipment_address"
    UPLOAD = "upload"
    REVISION_REQUEST = "revision_request"
    PAYMENT = "payment"
    BATCH_PAYOUT = "batch_payout"
    DISPUTE = "dispute"
