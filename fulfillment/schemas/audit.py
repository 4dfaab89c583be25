"""
Audit log schemas.
"""
import uuid
from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    actor_id: Optional[uuid.UUID]
    actor_role: Optional[str]
    action: str
    entity: str
    entity_id: Optional[uuid.UUID]
    meta_data: Dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True
