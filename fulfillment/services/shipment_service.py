"""
Shipment service - physical-product delivery sub-workflow.

The sub-workflow never reads Task state. Task Lifecycle and Content Review
only see it through `ShipmentStatusProvider.get_status`.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional, Protocol, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import NotFoundError, ValidationError, PreconditionError, ForbiddenError
from fulfillment.core.security import (
    Actor, Role, SHIPPING_ROLES, STAFF_ROLES, require_role, require_owner_or_roles
)
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.shipment import (
    ShipmentRequest, ShipmentAddress, Shipment, ShipmentStatus,
    SHIPMENT_TRANSITIONS, SHIPMENT_HINTS
)
from fulfillment.repositories.shipment_repo import (
    ShipmentRequestRepository, ShipmentAddressRepository, ShipmentRepository
)
from fulfillment.schemas.shipment import AddressCreate
from fulfillment.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class ShipmentStatusProvider(Protocol):
    """Read-only view of the shipment state of a (campaign, creator) pair."""

    async def get_status(self, campaign_id: uuid.UUID, creator_id: uuid.UUID) -> ShipmentStatus:
        ...


class ShipmentService:
    """Service for shipment requests, addresses and carrier records."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.request_repo = ShipmentRequestRepository(session)
        self.address_repo = ShipmentAddressRepository(session)
        self.shipment_repo = ShipmentRepository(session)
        self.audit = AuditService(session)

    async def get_request(self, request_id: uuid.UUID) -> ShipmentRequest:
        request = await self.request_repo.get(request_id)
        if not request:
            raise NotFoundError("Shipment request", str(request_id))
        return request

    async def get_status(self, campaign_id: uuid.UUID, creator_id: uuid.UUID) -> ShipmentStatus:
        """Current shipment status; `not_requested` when no request exists."""
        request = await self.request_repo.get_for_creator(campaign_id, creator_id)
        if not request:
            return ShipmentStatus.NOT_REQUESTED
        return ShipmentStatus(request.status)

    async def _transition(self, request: ShipmentRequest, new_status: ShipmentStatus) -> str:
        """Guarded status change. Returns the previous status."""
        current = ShipmentStatus(request.status)
        if new_status not in SHIPMENT_TRANSITIONS[current]:
            raise PreconditionError(
                f"Shipment cannot move from '{current.value}' to '{new_status.value}'",
                current_status=current.value,
                hint=SHIPMENT_HINTS.get(current)
            )
        await self.request_repo.update(request, {"status": new_status.value})
        return current.value

    async def ensure_request(
        self, campaign_id: uuid.UUID, creator_id: uuid.UUID
    ) -> Tuple[ShipmentRequest, Optional[str]]:
        """
        Get or create the request for the pair and make sure it waits for an address.

        Runs inside the caller's unit of work. Returns the request and its
        previous status, or None as previous status when nothing changed.
        """
        request = await self.request_repo.get_for_creator(campaign_id, creator_id)
        if not request:
            request = await self.request_repo.create({
                "campaign_id": campaign_id,
                "creator_id": creator_id,
                "status": ShipmentStatus.WAITING_ADDRESS.value,
            })
            return request, ShipmentStatus.NOT_REQUESTED.value
        if request.status == ShipmentStatus.NOT_REQUESTED.value:
            previous = await self._transition(request, ShipmentStatus.WAITING_ADDRESS)
            return request, previous
        return request, None

    async def status_changed(self, actor: Optional[Actor], request: ShipmentRequest, previous: str) -> None:
        await emit(
            Topics.SHIPMENT_STATUS_CHANGED,
            Entities.SHIPMENT_REQUEST,
            request.id,
            actor,
            campaign_id=request.campaign_id,
            creator_id=request.creator_id,
            previous_status=previous,
            status=request.status
        )

    async def create_request(
        self,
        actor: Actor,
        campaign_id: uuid.UUID,
        creator_id: uuid.UUID
    ) -> ShipmentRequest:
        """Idempotent per (campaign, creator)."""
        require_role(actor, SHIPPING_ROLES, "request shipments")

        async with atomic(self.session):
            request, previous = await self.ensure_request(campaign_id, creator_id)

        if previous is not None:
            logger.info(f"Shipment request {request.id} is waiting for an address")
            await self.audit.record(
                actor, Actions.SHIPMENT_REQUESTED, Entities.SHIPMENT_REQUEST, request.id,
                {"campaign_id": campaign_id, "creator_id": creator_id}
            )
            await self.status_changed(actor, request, previous)
        return request

    async def add_address(self, actor: Actor, address_data: AddressCreate) -> ShipmentAddress:
        """Create a delivery address owned by the acting creator."""
        if actor.role != Role.CREATOR:
            raise ForbiddenError("Only creators can add shipping addresses")

        async with atomic(self.session):
            data = address_data.model_dump()
            data["creator_id"] = actor.id
            address = await self.address_repo.create(data)

        await self.audit.record(actor, Actions.ADDRESS_CREATED, Entities.SHIPMENT_ADDRESS, address.id)
        return address

    async def submit_address(
        self,
        actor: Actor,
        request_id: uuid.UUID,
        address_id: uuid.UUID
    ) -> ShipmentRequest:
        """Attach an address to the request; allowed again to change the address."""
        request = await self.get_request(request_id)
        require_owner_or_roles(actor, request.creator_id, STAFF_ROLES, "submit shipping addresses")

        address = await self.address_repo.get(address_id)
        if not address:
            raise NotFoundError("Address", str(address_id))
        if address.creator_id != request.creator_id:
            raise ValidationError("Address belongs to another creator", field="address_id")

        async with atomic(self.session):
            previous = await self._transition(request, ShipmentStatus.ADDRESS_RECEIVED)
            await self.request_repo.update(request, {"address_id": address.id})

        await self.audit.record(
            actor, Actions.ADDRESS_SUBMITTED, Entities.SHIPMENT_REQUEST, request.id,
            {"address_id": address.id}
        )
        await self.status_changed(actor, request, previous)
        return request

    async def mark_shipped(
        self,
        actor: Actor,
        request_id: uuid.UUID,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None
    ) -> ShipmentRequest:
        require_role(actor, SHIPPING_ROLES, "mark shipments as shipped")
        request = await self.get_request(request_id)

        async with atomic(self.session):
            previous = await self._transition(request, ShipmentStatus.SHIPPED)
            await self.shipment_repo.create({
                "shipment_request_id": request.id,
                "tracking_number": tracking_number,
                "carrier": carrier,
                "shipped_at": datetime.utcnow(),
            })

        logger.info(f"Shipment request {request.id} shipped (tracking: {tracking_number})")
        await self.audit.record(
            actor, Actions.SHIPMENT_SHIPPED, Entities.SHIPMENT_REQUEST, request.id,
            {"tracking_number": tracking_number, "carrier": carrier}
        )
        await self.status_changed(actor, request, previous)
        return request

    async def confirm_delivery(self, actor: Actor, request_id: uuid.UUID) -> ShipmentRequest:
        request = await self.get_request(request_id)
        require_owner_or_roles(actor, request.creator_id, STAFF_ROLES, "confirm deliveries")

        async with atomic(self.session):
            previous = await self._transition(request, ShipmentStatus.DELIVERED)
            shipment = await self.shipment_repo.get_latest(request.id)
            if shipment:
                await self.shipment_repo.update(shipment, {"delivered_at": datetime.utcnow()})

        logger.info(f"Shipment request {request.id} delivered")
        await self.audit.record(actor, Actions.SHIPMENT_DELIVERED, Entities.SHIPMENT_REQUEST, request.id)
        await self.status_changed(actor, request, previous)
        return request

    async def flag_issue(
        self,
        actor: Actor,
        request_id: uuid.UUID,
        reason: str,
        note: Optional[str] = None
    ) -> ShipmentRequest:
        """Move the request to `issue` from any state but `issue` itself."""
        request = await self.get_request(request_id)
        require_owner_or_roles(actor, request.creator_id, SHIPPING_ROLES, "report shipment issues")
        if not reason or not reason.strip():
            raise ValidationError("A reason is required", field="reason")

        async with atomic(self.session):
            previous = await self._transition(request, ShipmentStatus.ISSUE)
            shipment = await self.shipment_repo.get_latest(request.id)
            if shipment:
                await self.shipment_repo.update(shipment, {"issue_reason": reason, "issue_note": note})
            else:
                await self.shipment_repo.create({
                    "shipment_request_id": request.id,
                    "issue_reason": reason,
                    "issue_note": note,
                })

        logger.warning(f"Shipment request {request.id} flagged with an issue: {reason}")
        await self.audit.record(
            actor, Actions.SHIPMENT_ISSUE, Entities.SHIPMENT_REQUEST, request.id,
            {"reason": reason, "note": note, "previous_status": previous}
        )
        await self.status_changed(actor, request, previous)
        return request
