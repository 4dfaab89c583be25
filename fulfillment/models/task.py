"""
Task model - the unit of work assigned to a creator once approved.
The transition table is the single source of truth for Task Lifecycle guards.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class TaskStatus(str, Enum):
    SELECTED = "selected"
    IN_PRODUCTION = "in_production"
    UPLOADED = "uploaded"
    NEEDS_EDITS = "needs_edits"
    APPROVED = "approved"
    PAID = "paid"
    DISPUTED = "disputed"


TERMINAL_TASK_STATUSES = frozenset({TaskStatus.PAID})

TASK_TRANSITIONS = {
    TaskStatus.SELECTED: {TaskStatus.IN_PRODUCTION, TaskStatus.DISPUTED},
    TaskStatus.IN_PRODUCTION: {TaskStatus.UPLOADED, TaskStatus.DISPUTED},
    TaskStatus.UPLOADED: {TaskStatus.NEEDS_EDITS, TaskStatus.APPROVED, TaskStatus.DISPUTED},
    TaskStatus.NEEDS_EDITS: {TaskStatus.UPLOADED, TaskStatus.DISPUTED},
    TaskStatus.APPROVED: {TaskStatus.PAID, TaskStatus.DISPUTED},
    TaskStatus.DISPUTED: {TaskStatus.APPROVED, TaskStatus.NEEDS_EDITS},
    TaskStatus.PAID: set(),
}


def is_allowed_transition(current: str, new: str) -> bool:
    try:
        return TaskStatus(new) in TASK_TRANSITIONS[TaskStatus(current)]
    except ValueError:
        return False


class Task(SQLModel, table=True):
    """
    Task entity.
    Created at most once per application; never deleted.
    """
    __tablename__ = "task"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    application_id: uuid.UUID = Field(foreign_key="application.id", unique=True, index=True)
    campaign_id: uuid.UUID = Field(foreign_key="campaign.id", index=True)
    creator_id: uuid.UUID = Field(index=True)
    shipment_request_id: Optional[uuid.UUID] = Field(default=None, foreign_key="shipment_request.id")

    title: str
    status: str = Field(default=TaskStatus.SELECTED.value, index=True)

    # Fixed at creation
    payment_amount: Optional[Decimal] = Field(default=None, max_digits=12, decimal_places=2)
    requires_product: bool = Field(default=False)
    due_at: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Approval(SQLModel, table=True):
    """Brand decision record written alongside the rating on content approval."""
    __tablename__ = "approval"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", index=True)
    decided_by: Optional[uuid.UUID] = None

    decision: str = Field(default="approve")
    note: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
