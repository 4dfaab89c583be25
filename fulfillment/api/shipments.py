"""
Shipments API routes.
"""
import uuid
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.api.deps import get_actor
from fulfillment.config import settings
from fulfillment.core.security import Actor
from fulfillment.database import get_session
from fulfillment.models.shipment import SHIPMENT_HINTS
from fulfillment.schemas.shipment import (
    AddressCreate, AddressResponse, AddressSubmit, MarkShipped, ShipmentIssue,
    ShipmentRequestCreate, ShipmentRequestResponse, ShipmentStatusResponse
)
from fulfillment.services.shipment_service import ShipmentService

router = APIRouter(prefix=f"{settings.API_PREFIX}/shipments", tags=["shipments"])


@router.post("/", response_model=ShipmentRequestResponse)
async def create_shipment_request(
    request_data: ShipmentRequestCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Create (or return) the shipment request of a creator."""
    shipment_service = ShipmentService(session)
    return await shipment_service.create_request(actor, request_data.campaign_id, request_data.creator_id)


@router.get("/status", response_model=ShipmentStatusResponse)
async def get_shipment_status(
    campaign_id: uuid.UUID,
    creator_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    shipment_status = await shipment_service.get_status(campaign_id, creator_id)
    return ShipmentStatusResponse(
        campaign_id=campaign_id,
        creator_id=creator_id,
        status=shipment_status.value,
        hint=SHIPMENT_HINTS.get(shipment_status)
    )


@router.post("/addresses", response_model=AddressResponse, status_code=201)
async def create_address(
    address_data: AddressCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    """Save a delivery address for the acting creator."""
    shipment_service = ShipmentService(session)
    return await shipment_service.add_address(actor, address_data)


@router.get("/{request_id}", response_model=ShipmentRequestResponse)
async def get_shipment_request(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    return await shipment_service.get_request(request_id)


@router.post("/{request_id}/address", response_model=ShipmentRequestResponse)
async def submit_address(
    request_id: uuid.UUID,
    address: AddressSubmit,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    return await shipment_service.submit_address(actor, request_id, address.address_id)


@router.post("/{request_id}/ship", response_model=ShipmentRequestResponse)
async def mark_shipped(
    request_id: uuid.UUID,
    shipped: MarkShipped,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    return await shipment_service.mark_shipped(
        actor, request_id, shipped.tracking_number, shipped.carrier
    )


@router.post("/{request_id}/deliver", response_model=ShipmentRequestResponse)
async def confirm_delivery(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    return await shipment_service.confirm_delivery(actor, request_id)


@router.post("/{request_id}/issue", response_model=ShipmentRequestResponse)
async def flag_issue(
    request_id: uuid.UUID,
    issue: ShipmentIssue,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session)
):
    shipment_service = ShipmentService(session)
    return await shipment_service.flag_issue(actor, request_id, issue.reason, issue.note)
