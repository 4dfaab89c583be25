"""
Dispute model - out-of-band escape from the normal task flow.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class DisputeStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class DisputeResolution(str, Enum):
    APPROVE = "approve"
    NEEDS_EDITS = "needs_edits"


class Dispute(SQLModel, table=True):
    __tablename__ = "dispute"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", index=True)
    raised_by: uuid.UUID

    reason: str
    status: str = Field(default=DisputeStatus.OPEN.value, index=True)
    previous_task_status: Optional[str] = None  # status the task was in when disputed

    # Resolution
    resolution: Optional[str] = None
    resolution_note: Optional[str] = None
    resolved_by: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
