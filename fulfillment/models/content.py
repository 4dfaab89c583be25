"""
Content review models - uploads, revision requests and ratings.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List

from sqlmodel import SQLModel, Field

from fulfillment.models.types import json_column


class UploadStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RevisionStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class Upload(SQLModel, table=True):
    """
    A content file attached to a task.
    The file itself lives in external storage; only the reference is kept.
    """
    __tablename__ = "upload"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", index=True)
    uploaded_by: Optional[uuid.UUID] = None

    storage_path: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    size_bytes: int = Field(default=0)
    deliverable_type: Optional[str] = None

    status: str = Field(default=UploadStatus.PENDING.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class RevisionRequest(SQLModel, table=True):
    """Brand request for changes on the latest upload round."""
    __tablename__ = "revision_request"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", index=True)
    requested_by: Optional[uuid.UUID] = None

    tags: List[str] = Field(default_factory=list, sa_column=json_column())
    note: str
    status: str = Field(default=RevisionStatus.OPEN.value, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    resolved_at: Optional[datetime] = None


class Rating(SQLModel, table=True):
    """Creator rating, written exactly once per approved task."""
    __tablename__ = "rating"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    task_id: uuid.UUID = Field(foreign_key="task.id", unique=True, index=True)
    rated_by: Optional[uuid.UUID] = None

    quality: int
    timeliness: int
    communication: int
    note: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
