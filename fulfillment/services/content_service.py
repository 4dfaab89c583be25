"""
Content service - uploads, revision requests and content approval.
"""
import logging
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from fulfillment.config import settings
from fulfillment.core.events import Topics, emit
from fulfillment.core.exceptions import (
    ValidationError, PreconditionError, ConfigurationError
)
from fulfillment.core.security import (
    Actor, Role, REVIEWER_ROLES, require_role, require_owner_or_roles
)
from fulfillment.database import atomic
from fulfillment.models.audit import Actions, Entities
from fulfillment.models.content import Upload, UploadStatus, RevisionRequest
from fulfillment.models.payment import Payment
from fulfillment.models.task import TaskStatus
from fulfillment.repositories.content_repo import (
    UploadRepository, RevisionRequestRepository, RatingRepository
)
from fulfillment.repositories.task_repo import ApprovalRepository
from fulfillment.schemas.content import UploadCreate, RatingInput
from fulfillment.services.audit_service import AuditService
from fulfillment.services.payment_service import PaymentService
from fulfillment.services.shipment_service import ShipmentStatusProvider
from fulfillment.services.task_service import TaskService

logger = logging.getLogger(__name__)

UPLOADABLE_STATUSES = {TaskStatus.IN_PRODUCTION.value, TaskStatus.NEEDS_EDITS.value}


class ContentService:
    """Service for the content review loop."""

    def __init__(
        self,
        session: AsyncSession,
        shipment_status: Optional[ShipmentStatusProvider] = None
    ):
        self.session = session
        self.upload_repo = UploadRepository(session)
        self.revision_repo = RevisionRequestRepository(session)
        self.rating_repo = RatingRepository(session)
        self.approval_repo = ApprovalRepository(session)
        self.tasks = TaskService(session, shipment_status)
        self.payments = PaymentService(session)
        self.audit = AuditService(session)

    def _validate_file(self, upload: UploadCreate) -> None:
        if upload.size_bytes <= 0:
            raise ValidationError("File is empty", field="size_bytes")
        if upload.size_bytes > settings.MAX_UPLOAD_BYTES:
            limit_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
            raise ValidationError(f"File exceeds the {limit_mb}MB limit", field="size_bytes")
        if upload.content_type not in settings.ALLOWED_UPLOAD_TYPES:
            raise ValidationError(
                f"Unsupported file type '{upload.content_type}'",
                field="content_type"
            )

    def _validate_rating(self, rating: RatingInput) -> None:
        for field in ("quality", "timeliness", "communication"):
            score = getattr(rating, field)
            if score is None or not settings.RATING_MIN <= score <= settings.RATING_MAX:
                raise ValidationError(
                    f"Score must be between {settings.RATING_MIN} and {settings.RATING_MAX}",
                    field=field
                )

    async def list_uploads(self, actor: Actor, task_id: uuid.UUID) -> List[Upload]:
        await self.tasks.get_for_actor(actor, task_id)
        return await self.upload_repo.get_for_task(task_id)

    async def upload_content(self, actor: Actor, task_id: uuid.UUID, upload: UploadCreate) -> Upload:
        """Attach a file to the task and send it for review."""
        task = await self.tasks.get(task_id)
        require_owner_or_roles(actor, task.creator_id, {Role.ADMIN}, "upload content")

        if task.status not in UPLOADABLE_STATUSES:
            raise PreconditionError(
                "Content can only be uploaded while the task is in production or needs edits",
                current_status=task.status
            )
        await self.tasks.ensure_product_delivered(task)
        self._validate_file(upload)

        async with atomic(self.session):
            record = await self.upload_repo.create({
                "task_id": task.id,
                "uploaded_by": actor.id,
                "status": UploadStatus.PENDING.value,
                **upload.model_dump(),
            })
            resolved = 0
            if task.status == TaskStatus.NEEDS_EDITS.value:
                resolved = await self.revision_repo.resolve_open(task.id)
            previous = await self.tasks.transition(task, TaskStatus.UPLOADED)

        await self.audit.record(
            actor, Actions.CONTENT_UPLOADED, Entities.UPLOAD, record.id,
            {"task_id": task.id, "content_type": upload.content_type,
             "size_bytes": upload.size_bytes, "resolved_revisions": resolved}
        )
        await emit(
            Topics.CONTENT_UPLOADED, Entities.UPLOAD, record.id, actor,
            task_id=task.id, storage_path=record.storage_path
        )
        await self.tasks.status_changed(actor, task, previous)
        return record

    async def request_revision(
        self,
        actor: Actor,
        task_id: uuid.UUID,
        tags: List[str],
        note: str
    ) -> RevisionRequest:
        """Send the latest upload round back to the creator."""
        require_role(actor, REVIEWER_ROLES, "request revisions")

        tags = [tag.strip() for tag in (tags or []) if tag and tag.strip()]
        if not tags:
            raise ValidationError("At least one tag is required", field="tags")
        if not note or len(note.strip()) < settings.MIN_FEEDBACK_NOTE_LENGTH:
            raise ValidationError(
                f"Note must be at least {settings.MIN_FEEDBACK_NOTE_LENGTH} characters",
                field="note"
            )

        task = await self.tasks.get(task_id)
        if await self.upload_repo.count_for_task(task.id) == 0:
            raise PreconditionError("There is no upload to review", current_status=task.status)
        if task.status != TaskStatus.UPLOADED.value:
            raise PreconditionError(
                "Revisions can only be requested on uploaded content",
                current_status=task.status
            )

        async with atomic(self.session):
            revision = await self.revision_repo.create({
                "task_id": task.id,
                "requested_by": actor.id,
                "tags": tags,
                "note": note.strip(),
            })
            await self.upload_repo.set_pending_status(task.id, UploadStatus.REJECTED)
            previous = await self.tasks.transition(task, TaskStatus.NEEDS_EDITS)

        await self.audit.record(
            actor, Actions.REVISION_REQUESTED, Entities.REVISION_REQUEST, revision.id,
            {"task_id": task.id, "tags": tags}
        )
        await emit(
            Topics.REVISION_REQUESTED, Entities.REVISION_REQUEST, revision.id, actor,
            task_id=task.id, tags=tags
        )
        await self.tasks.status_changed(actor, task, previous)
        return revision

    async def approve_content(
        self,
        actor: Actor,
        task_id: uuid.UUID,
        rating: RatingInput,
        note: Optional[str] = None
    ) -> Payment:
        """
        Approve the uploaded content.

        Rating, approval record, upload statuses, the task move and the
        pending payment are one unit of work.
        """
        require_role(actor, REVIEWER_ROLES, "approve content")
        self._validate_rating(rating)

        task = await self.tasks.get(task_id)
        if await self.upload_repo.count_for_task(task.id) == 0:
            raise ValidationError("There is no upload to approve", field="task_id")
        if not task.payment_amount:
            raise ConfigurationError(f"Task {task.id} has no payment amount")
        if task.status != TaskStatus.UPLOADED.value:
            raise PreconditionError(
                "Only uploaded content can be approved",
                current_status=task.status
            )

        async with atomic(self.session):
            scores = rating.model_dump()
            existing = await self.rating_repo.get_by_field("task_id", task.id)
            if existing:
                # Re-approval after a dispute keeps a single rating
                await self.rating_repo.update(existing, {**scores, "note": note, "rated_by": actor.id})
            else:
                await self.rating_repo.create({**scores, "task_id": task.id, "note": note, "rated_by": actor.id})
            await self.approval_repo.create({
                "task_id": task.id,
                "decided_by": actor.id,
                "decision": "approve",
                "note": note,
            })
            await self.upload_repo.set_pending_status(task.id, UploadStatus.APPROVED)
            previous = await self.tasks.transition(task, TaskStatus.APPROVED)
            payment = await self.payments.create_payment(task)

        logger.info(f"Content for task {task.id} approved, payment {payment.id} pending")
        await self.audit.record(
            actor, Actions.CONTENT_APPROVED, Entities.TASK, task.id,
            {"payment_id": payment.id, "amount": payment.amount, **rating.model_dump()}
        )
        await self.tasks.status_changed(actor, task, previous)
        await self.payments.payment_created(actor, payment)
        return payment
