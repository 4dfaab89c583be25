"""
API dependencies - shared across all routes.
"""
import uuid
from typing import Optional

from fastapi import Header, HTTPException, status

from fulfillment.core.security import Actor, Role


async def get_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None)
) -> Actor:
    """
    Acting identity from the X-Actor-Id / X-Actor-Role headers.
    Identity is verified upstream (gateway); here it is only parsed.
    """
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id and X-Actor-Role headers are required"
        )
    try:
        return Actor(id=uuid.UUID(x_actor_id), role=Role(x_actor_role))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Malformed actor headers"
        )
