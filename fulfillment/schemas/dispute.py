"""
Dispute schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class DisputeCreate(BaseModel):
    reason: str


class DisputeResolve(BaseModel):
    resolution: str  # approve | needs_edits
    note: Optional[str] = None


class DisputeResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    raised_by: uuid.UUID
    reason: str
    status: str
    previous_task_status: Optional[str]
    resolution: Optional[str]
    resolution_note: Optional[str]
    resolved_by: Optional[uuid.UUID]
    resolved_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
