"""Job Order Service - Job order creation and status workflow"""
from typing import Any, Dict, List, Optional, Union

from pymongo.errors import PyMongoError

from ..domain.models import ActorContext, JobOrder, JobStatusHistoryEntry
from ..domain.enums import (
    AuditAction, AuditEntityType, DenialReason, JobOrderStatus, Role
)
from ..domain.errors import (
    ConflictError, InvalidTransitionError, JobOrderNotFoundError,
    PermissionDeniedError, RoleNotPermittedError, ValidationError
)
from ..engine.audit_recorder import AuditRecorder
from ..engine.workflow_engine import WorkflowEngine, coerce_enum
from ..repositories.job_order_repo import JobOrderRepository
from ..utils.idgen import generate_job_order_id, generate_status_history_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Roles that may open job orders
CREATOR_ROLES = (Role.ADMIN, Role.BRANCH_MANAGER, Role.SERVICE_ADVISOR)


class JobOrderService:
    """Service for job order operations"""

    def __init__(
        self,
        engine: Optional[WorkflowEngine] = None,
        recorder: Optional[AuditRecorder] = None,
        repo: Optional[JobOrderRepository] = None
    ):
        self.engine = engine or WorkflowEngine()
        self.recorder = recorder or AuditRecorder()
        self.repo = repo or JobOrderRepository()

    # =========================================================================
    # Creation & lookup
    # =========================================================================

    def create_job_order(
        self,
        actor: ActorContext,
        customer_id: Optional[str],
        vehicle_plate: Optional[str] = None,
        vehicle_vin: Optional[str] = None,
        odometer: Optional[int] = None,
        notes: Optional[str] = None
    ) -> JobOrder:
        """Open a job order in the workflow's initial status"""
        if actor.role not in CREATOR_ROLES:
            error = PermissionDeniedError(
                "Not authorized to create job orders",
                details={"role": actor.role.value}
            )
            self._audit_create_failure(actor, error.message, error.details)
            raise error

        if not customer_id:
            error = ValidationError("Customer ID is required")
            self._audit_create_failure(actor, error.message, {"customer_id": customer_id})
            raise error

        now = utc_now()
        initial_status = self.engine.definition.initial_status
        job_order = JobOrder(
            id=generate_job_order_id(),
            branch_id=actor.branch_id,
            customer_id=customer_id,
            vehicle_plate=vehicle_plate or None,
            vehicle_vin=vehicle_vin or None,
            odometer=odometer,
            notes=notes or None,
            status=initial_status,
            created_by=actor.user_id,
            created_at=now,
            updated_at=now
        )
        try:
            self.repo.create_job_order(job_order)
        except PyMongoError as e:
            self._audit_create_failure(
                actor,
                f"Failed to store job order: {e}",
                {"customer_id": customer_id},
                job_order=job_order
            )
            raise
        self._write_history(job_order.id, None, initial_status, actor.user_id)

        self.recorder.record_success(
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.JOB_ORDER,
            actor_id=actor.user_id,
            entity_id=job_order.id,
            entity_name=job_order.display_name,
            details={"customer_id": customer_id, "vehicle_plate": job_order.vehicle_plate}
        )
        return job_order

    def get_job_order(self, actor: ActorContext, job_order_id: str) -> JobOrder:
        """Get a job order the actor is allowed to see"""
        job_order = self.repo.get_job_order(job_order_id)
        if not job_order:
            raise JobOrderNotFoundError(
                f"Job order {job_order_id} not found",
                details={"job_order_id": job_order_id}
            )
        self._check_branch_access(actor, job_order)
        return job_order

    def get_status_history(
        self,
        actor: ActorContext,
        job_order_id: str
    ) -> List[JobStatusHistoryEntry]:
        """Status history, oldest first"""
        self.get_job_order(actor, job_order_id)
        return self.repo.get_history(job_order_id)

    def available_transitions(self, actor: ActorContext, job_order_id: str) -> Dict[str, Any]:
        """Statuses the actor may move this job order to"""
        job_order = self.get_job_order(actor, job_order_id)
        return {
            "job_order_id": job_order.id,
            "current_status": job_order.status.value,
            "allowed_transitions": [
                s.value for s in self.engine.allowed_transitions(job_order.status)
            ],
            "available_transitions": [
                s.value for s in self.engine.available_transitions(job_order.status, actor.role)
            ],
        }

    # =========================================================================
    # Status workflow
    # =========================================================================

    def change_status(
        self,
        actor: ActorContext,
        job_order_id: str,
        new_status: Union[JobOrderStatus, str]
    ) -> JobOrder:
        """
        Move a job order to new_status

        Every attempt that reaches the workflow decision is audited as a
        STATUS_CHANGE event, SUCCESS or FAILED. Audit write failures do not
        affect the outcome.

        Raises:
            InvalidArgumentError: Unknown status value
            JobOrderNotFoundError: No such job order
            PermissionDeniedError: Job order belongs to another branch
            InvalidTransitionError: No edge from the current status
            RoleNotPermittedError: Role may not set new_status
            ConflictError: Status changed by someone else meanwhile
            PyMongoError: Storage unavailable; audited as FAILED first
        """
        requested = coerce_enum(JobOrderStatus, new_status, "new_status")
        job_order = self.get_job_order(actor, job_order_id)
        current = job_order.status

        result = self.engine.evaluate(current, requested, actor.role)
        transition = {"old_status": current.value, "new_status": requested.value}

        if not result.allowed:
            if result.reason == DenialReason.UNKNOWN_TRANSITION:
                error = InvalidTransitionError(
                    f"Cannot transition from {current.value} to {requested.value}",
                    details={
                        **transition,
                        "reason": result.reason.value,
                        "allowed_transitions": [
                            s.value for s in self.engine.allowed_transitions(current)
                        ],
                    }
                )
            else:
                error = RoleNotPermittedError(
                    f"Your role ({actor.role.value}) cannot change status to {requested.value}",
                    details={**transition, "reason": result.reason.value, "role": actor.role.value}
                )

            logger.warning(
                f"Status change denied for {job_order.id}: {error.message}",
                extra={
                    "job_order_id": job_order.id,
                    "actor_id": actor.user_id,
                    "from_status": current.value,
                    "to_status": requested.value,
                    "reason": result.reason.value,
                }
            )
            self._audit_status_change(actor, job_order, {**transition, "reason": result.reason.value}, error.message)
            raise error

        try:
            updated = self.repo.update_status(
                job_order.id,
                expected_status=current,
                new_status=result.new_status,
                updated_at=utc_now(),
                approved_by=actor.user_id if result.new_status == JobOrderStatus.APPROVED else None
            )
        except PyMongoError as e:
            self._audit_status_change(actor, job_order, transition, f"Failed to store status change: {e}")
            raise
        if updated is None:
            message = "Job order status changed concurrently; reload and retry"
            self._audit_status_change(actor, job_order, transition, message)
            raise ConflictError(message, details={"job_order_id": job_order.id, **transition})

        self._write_history(job_order.id, current, result.new_status, actor.user_id)
        self._audit_status_change(actor, job_order, transition)

        logger.info(
            f"Status changed from {current.value} to {result.new_status.value}",
            extra={
                "job_order_id": job_order.id,
                "actor_id": actor.user_id,
                "from_status": current.value,
                "to_status": result.new_status.value,
            }
        )
        return updated

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_branch_access(self, actor: ActorContext, job_order: JobOrder) -> None:
        """Non-global roles only reach job orders of their own branch"""
        if actor.is_global:
            return
        if job_order.branch_id != actor.branch_id:
            raise PermissionDeniedError(
                "Access denied to this job order",
                details={"job_order_id": job_order.id}
            )

    def _write_history(
        self,
        job_order_id: str,
        old_status: Optional[JobOrderStatus],
        new_status: JobOrderStatus,
        changed_by: str
    ) -> None:
        entry = JobStatusHistoryEntry(
            id=generate_status_history_id(),
            job_order_id=job_order_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            changed_at=utc_now()
        )
        try:
            self.repo.add_history_entry(entry)
        except PyMongoError as e:
            # The status itself is already stored; history is a secondary record
            logger.error(
                f"Failed to write status history: {e}",
                exc_info=True,
                extra={"job_order_id": job_order_id, "to_status": new_status.value}
            )

    def _audit_create_failure(
        self,
        actor: ActorContext,
        error_message: str,
        details: Dict[str, Any],
        job_order: Optional[JobOrder] = None
    ) -> None:
        self.recorder.record_failure(
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.JOB_ORDER,
            error_message=error_message,
            actor_id=actor.user_id,
            entity_id=job_order.id if job_order else None,
            entity_name=job_order.display_name if job_order else None,
            details=details
        )

    def _audit_status_change(
        self,
        actor: ActorContext,
        job_order: JobOrder,
        details: Dict[str, Any],
        error_message: Optional[str] = None
    ) -> None:
        if error_message is None:
            self.recorder.record_success(
                action=AuditAction.STATUS_CHANGE,
                entity_type=AuditEntityType.JOB_ORDER,
                actor_id=actor.user_id,
                entity_id=job_order.id,
                entity_name=job_order.display_name,
                details=details
            )
        else:
            self.recorder.record_failure(
                action=AuditAction.STATUS_CHANGE,
                entity_type=AuditEntityType.JOB_ORDER,
                error_message=error_message,
                actor_id=actor.user_id,
                entity_id=job_order.id,
                entity_name=job_order.display_name,
                details=details
            )
