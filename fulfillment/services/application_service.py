"""
Application service - application intake and review.

Approval creates the creator's Task (once per application) and, for
campaigns with physical products, the shipment request it waits on.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.config import settings
from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import NotFoundError, ValidationError, PreconditionError, ForbiddenError
from fulfillment.core.security import Actor, Role, REVIEWER_ROLES, CAMPAIGN_ROLES, require_role
from fulfillment.database import atomic
from fulfillment.models.application import Application, ApplicationStatus, RejectionReason
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.campaign import Campaign, CampaignStatus
from fulfillment.models.shipment import ShipmentRequest
from fulfillment.models.task import TERMINAL_TASK_STATUSES
from fulfillment.models.types import money
from fulfillment.repositories.application_repo import (
    ApplicationRepository, ApplicationFeedbackRepository
)
from fulfillment.repositories.campaign_repo import CampaignRepository
from fulfillment.repositories.task_repo import TaskRepository
from fulfillment.schemas.application import ApplicationUpdate, ApprovalResult
from fulfillment.services.audit_service import AuditService
from fulfillment.services.shipment_service import ShipmentService

logger = logging.getLogger(__name__)


class ApplicationService:
    """Service for application review operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.application_repo = ApplicationRepository(session)
        self.feedback_repo = ApplicationFeedbackRepository(session)
        self.campaign_repo = CampaignRepository(session)
        self.task_repo = TaskRepository(session)
        self.shipments = ShipmentService(session)
        self.audit = AuditService(session)

    async def get(self, application_id: uuid.UUID) -> Application:
        application = await self.application_repo.get(application_id)
        if not application:
            raise NotFoundError("Application", str(application_id))
        return application

    async def _get_campaign(self, campaign_id: uuid.UUID) -> Campaign:
        campaign = await self.campaign_repo.get(campaign_id)
        if not campaign:
            raise NotFoundError("Campaign", str(campaign_id))
        return campaign

    async def list_for_campaign(self, campaign_id: uuid.UUID, status: Optional[str] = None) -> List[Application]:
        return await self.application_repo.list({"campaign_id": campaign_id, "status": status})

    async def submit_application(
        self,
        actor: Actor,
        campaign_id: uuid.UUID,
        message: Optional[str] = None,
        proposed_price: Optional[Decimal] = None,
        portfolio_links: Optional[List[str]] = None,
        availability: Optional[str] = None
    ) -> Application:
        """A creator applies to an open campaign, once per campaign."""
        if actor.role != Role.CREATOR:
            raise ForbiddenError("Only creators can apply to campaigns")

        campaign = await self._get_campaign(campaign_id)
        if campaign.status != CampaignStatus.OPEN.value:
            raise PreconditionError("Campaign is not accepting applications", current_status=campaign.status)

        existing = await self.application_repo.get_for_creator(campaign_id, actor.id)
        if existing:
            raise PreconditionError("You already applied to this campaign", current_status=existing.status)

        async with atomic(self.session):
            application = await self.application_repo.create({
                "campaign_id": campaign_id,
                "creator_id": actor.id,
                "message": message,
                "proposed_price": money(proposed_price),
                "portfolio_links": portfolio_links or [],
                "availability": availability,
            })

        await self.audit.record(
            actor, Actions.APPLICATION_SUBMITTED, Entities.APPLICATION, application.id,
            {"campaign_id": campaign_id, "proposed_price": application.proposed_price}
        )
        return application

    async def update_application(
        self,
        actor: Actor,
        application_id: uuid.UUID,
        application_data: ApplicationUpdate
    ) -> Application:
        """The owning creator edits an application still waiting for review."""
        application = await self.get(application_id)
        if application.creator_id != actor.id:
            raise ForbiddenError("Only the applicant can edit this application")
        if application.status != ApplicationStatus.SUBMITTED.value:
            raise PreconditionError(
                "Only submitted applications can be edited",
                current_status=application.status
            )

        update_data = application_data.model_dump(exclude_unset=True)
        if "proposed_price" in update_data:
            update_data["proposed_price"] = money(update_data["proposed_price"])
        if "portfolio_links" in update_data:
            update_data["portfolio_links"] = [
                link.strip() for link in update_data["portfolio_links"] or [] if link and link.strip()
            ]

        async with atomic(self.session):
            await self.application_repo.update(application, update_data)

        await self.audit.record(
            actor, Actions.APPLICATION_UPDATED, Entities.APPLICATION, application.id,
            {"fields": sorted(update_data)}
        )
        return application

    async def approve_application(
        self,
        actor: Actor,
        application_id: uuid.UUID,
        custom_price: Optional[Decimal] = None
    ) -> ApprovalResult:
        """
        Approve an application.

        Re-approving returns the Task created the first time; price and
        product flag stay as they were fixed then, so no price is needed.
        """
        require_role(actor, REVIEWER_ROLES, "approve applications")
        application = await self.get(application_id)
        campaign = await self._get_campaign(application.campaign_id)

        task = await self.task_repo.get_by_application(application.id)
        created = task is None
        final_price = None
        if created:
            final_price = money(custom_price if custom_price is not None else campaign.fixed_price)
            if final_price is None or final_price <= 0:
                raise ValidationError(
                    "A positive price is required (custom price or campaign fixed price)",
                    field="custom_price"
                )

        shipment_change: Optional[Tuple[ShipmentRequest, str]] = None
        async with atomic(self.session):
            await self.application_repo.update(application, {"status": ApplicationStatus.APPROVED.value})

            if created:
                task = await self.task_repo.create({
                    "application_id": application.id,
                    "campaign_id": campaign.id,
                    "creator_id": application.creator_id,
                    "title": campaign.title,
                    "payment_amount": final_price,
                    "requires_product": await self.campaign_repo.has_products(campaign.id),
                    "due_at": campaign.deadline,
                })

            if task.requires_product:
                request, previous = await self.shipments.ensure_request(campaign.id, application.creator_id)
                if previous is not None:
                    shipment_change = (request, previous)
                if task.shipment_request_id != request.id:
                    await self.task_repo.update(task, {"shipment_request_id": request.id})

        logger.info(
            f"Application {application.id} approved -> task {task.id} "
            f"({'created' if created else 'existing'}, amount {task.payment_amount})"
        )
        await self.audit.record(
            actor, Actions.APPLICATION_APPROVED, Entities.APPLICATION, application.id,
            {"task_id": task.id, "payment_amount": task.payment_amount,
             "shipment_request_id": task.shipment_request_id, "task_created": created}
        )
        await emit(
            Topics.APPLICATION_APPROVED, Entities.APPLICATION, application.id, actor,
            task_id=task.id, campaign_id=campaign.id, creator_id=application.creator_id
        )
        if shipment_change:
            await self.shipments.status_changed(actor, *shipment_change)

        return ApprovalResult(
            task_id=task.id,
            payment_amount=task.payment_amount,
            shipment_request_id=task.shipment_request_id
        )

    def _validate_feedback(self, reason_code: Optional[str], note: Optional[str]) -> None:
        try:
            RejectionReason(reason_code)
        except ValueError:
            raise ValidationError(f"Unknown or missing reason code '{reason_code}'", field="reason_code")
        if not note or len(note.strip()) < settings.MIN_FEEDBACK_NOTE_LENGTH:
            raise ValidationError(
                f"Note must be at least {settings.MIN_FEEDBACK_NOTE_LENGTH} characters",
                field="note"
            )

    async def reject_application(
        self,
        actor: Actor,
        application_id: uuid.UUID,
        reason_code: Optional[str] = None,
        note: Optional[str] = None
    ) -> Application:
        """
        Reject an application.

        The first rejection needs a reason code and a note; later decision
        changes may skip them. Feedback is all or nothing: a reason code or a
        note sent alone is refused, even when earlier feedback exists. An
        existing Task is left untouched.
        """
        require_role(actor, REVIEWER_ROLES, "reject applications")
        application = await self.get(application_id)

        has_feedback = await self.feedback_repo.has_feedback(application.id)
        with_feedback = reason_code is not None or note is not None
        if not has_feedback or with_feedback:
            self._validate_feedback(reason_code, note)

        async with atomic(self.session):
            await self.application_repo.update(application, {"status": ApplicationStatus.REJECTED.value})
            if with_feedback:
                await self.feedback_repo.create({
                    "application_id": application.id,
                    "decision": ApplicationStatus.REJECTED.value,
                    "reason_code": reason_code,
                    "note": note.strip(),
                })

        logger.info(f"Application {application.id} rejected ({reason_code or 'no new feedback'})")
        await self.audit.record(
            actor, Actions.APPLICATION_REJECTED, Entities.APPLICATION, application.id,
            {"reason_code": reason_code}
        )
        await emit(
            Topics.APPLICATION_REJECTED, Entities.APPLICATION, application.id, actor,
            campaign_id=application.campaign_id, creator_id=application.creator_id
        )
        return application

    async def backfill(self, campaign_id: uuid.UUID) -> List[Tuple[ShipmentRequest, str]]:
        """
        Create missing shipment requests for approved creators of a campaign
        that just gained a product, and flag their open tasks as product tasks.

        Runs inside the caller's unit of work. Returns the requests whose
        status changed, with their previous status.
        """
        changed = []
        for application in await self.application_repo.get_approved(campaign_id):
            existing = await self.shipments.request_repo.get_for_creator(campaign_id, application.creator_id)
            if existing:
                continue
            request, previous = await self.shipments.ensure_request(campaign_id, application.creator_id)
            changed.append((request, previous))

            for task in await self.task_repo.get_for_creator(campaign_id, application.creator_id):
                if task.status in {status.value for status in TERMINAL_TASK_STATUSES}:
                    continue
                await self.task_repo.update(task, {
                    "requires_product": True,
                    "shipment_request_id": task.shipment_request_id or request.id,
                })
        return changed

    async def backfill_shipments(self, actor: Actor, campaign_id: uuid.UUID) -> int:
        """Retroactive shipment backfill. Returns how many requests were created."""
        require_role(actor, CAMPAIGN_ROLES, "backfill shipments")
        await self._get_campaign(campaign_id)

        async with atomic(self.session):
            changed = await self.backfill(campaign_id)

        await self.backfilled(actor, campaign_id, changed)
        return len(changed)

    async def backfilled(
        self,
        actor: Actor,
        campaign_id: uuid.UUID,
        changed: List[Tuple[ShipmentRequest, str]]
    ) -> None:
        """Post-commit side effects of a backfill."""
        if not changed:
            return
        logger.info(f"Backfilled {len(changed)} shipment requests for campaign {campaign_id}")
        await self.audit.record(
            actor, Actions.SHIPMENTS_BACKFILLED, Entities.CAMPAIGN, campaign_id,
            {"shipment_request_ids": [request.id for request, _ in changed]}
        )
        for request, previous in changed:
            await self.shipments.status_changed(actor, request, previous)
