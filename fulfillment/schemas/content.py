"""
Content review schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel


class UploadCreate(BaseModel):
    """
    Reference to a file already placed in storage.
    `size_bytes` and `content_type` are checked against the upload limits.
    """
    storage_path: str
    filename: Optional[str] = None
    content_type: str
    size_bytes: int
    deliverable_type: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "storage_path": "uploads/task-123/reel.mp4",
                "filename": "reel.mp4",
                "content_type": "video/mp4",
                "size_bytes": 18874368,
                "deliverable_type": "reel"
            }
        }


class UploadCreated(BaseModel):
    upload_id: uuid.UUID


class UploadResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    storage_path: str
    filename: Optional[str]
    content_type: Optional[str]
    size_bytes: int
    deliverable_type: Optional[str]
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class RevisionCreate(BaseModel):
    tags: List[str] = []
    note: str = ""


class RevisionResponse(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    tags: List[str]
    note: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True


class RatingInput(BaseModel):
    """Scores in [1, 5]."""
    quality: int
    timeliness: int
    communication: int


class ContentApprove(BaseModel):
    rating: RatingInput
    note: Optional[str] = None


class ContentApproved(BaseModel):
    payment_id: uuid.UUID
