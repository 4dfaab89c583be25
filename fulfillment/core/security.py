"""
Actor identity and role checks.

Identity verification happens upstream; every operation receives the acting
identity explicitly as an `Actor`.
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fulfillment.core.exceptions import ForbiddenError


class Role(str, Enum):
    ADMIN = "admin"
    FINANCE = "finance"
    SUPPORT = "support"
    CONTENT_OPS = "content_ops"
    BRAND_MANAGER = "brand_manager"
    BRAND_USER = "brand_user"
    CREATOR = "creator"


# Role groups used by the services
BRAND_ROLES = frozenset({Role.BRAND_MANAGER, Role.BRAND_USER})
STAFF_ROLES = frozenset({Role.ADMIN, Role.SUPPORT, Role.CONTENT_OPS})
FINANCE_ROLES = frozenset({Role.ADMIN, Role.FINANCE})
REVIEWER_ROLES = BRAND_ROLES | {Role.ADMIN, Role.CONTENT_OPS}
SHIPPING_ROLES = BRAND_ROLES | STAFF_ROLES
CAMPAIGN_ROLES = BRAND_ROLES | {Role.ADMIN}
PAYOUT_ROLES = FINANCE_ROLES | {Role.BRAND_MANAGER}
READER_ROLES = frozenset(Role) - {Role.CREATOR}


@dataclass(frozen=True)
class Actor:
    """The identity performing an operation."""
    id: uuid.UUID
    role: Role


def require_role(actor: Actor, allowed, action: str) -> None:
    """Raise ForbiddenError unless the actor holds one of the allowed roles."""
    if actor.role not in allowed:
        raise ForbiddenError(f"Role '{actor.role.value}' cannot {action}")


def require_owner_or_roles(
    actor: Actor,
    owner_id: Optional[uuid.UUID],
    allowed,
    action: str
) -> None:
    """Allow the owning creator, or any actor holding one of the allowed roles."""
    if actor.role == Role.CREATOR and owner_id is not None and actor.id == owner_id:
        return
    if actor.role in allowed:
        return
    raise ForbiddenError(f"Role '{actor.role.value}' cannot {action}")
