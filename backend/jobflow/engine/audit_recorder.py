"""Audit Recorder - Best-effort append-only audit trail with filtered reads"""
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from ..config.settings import settings
from ..domain.enums import AuditAction, AuditEntityType, AuditStatus
from ..domain.errors import AuditStorageError, InvalidArgumentError
from ..domain.models import (
    AuditEvent, AuditRecordResult, AuditQueryFilters, AuditQueryResult,
    AuditStats, Pagination
)
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_event_id
from ..utils.logger import get_logger
from ..utils.time import end_of_day, ensure_utc, start_of_day, utc_now
from .workflow_engine import coerce_enum

logger = get_logger(__name__)


class AuditRecorder:
    """
    Write and read audit events

    Writes are best-effort: a failed insert is logged and reported through
    AuditRecordResult, never raised, so the audited operation is unaffected.
    Reads raise AuditStorageError when the store fails.
    """

    def __init__(
        self,
        repo: Optional[AuditRepository] = None,
        max_page_size: Optional[int] = None
    ):
        self.repo = repo if repo is not None else AuditRepository()
        self.max_page_size = max_page_size or settings.audit_max_page_size

    # =========================================================================
    # Writes
    # =========================================================================

    def record(
        self,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        actor_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status: Union[AuditStatus, str] = AuditStatus.SUCCESS,
        error_message: Optional[str] = None
    ) -> AuditRecordResult:
        """
        Append one audit event

        actor_id may be None (e.g. a failed login before identity is known).
        A FAILED event without error_message is accepted.

        Returns:
            AuditRecordResult; success=False when the write failed

        Raises:
            InvalidArgumentError: If action, entity_type or status is not a
                known value (raised before any I/O)
        """
        action = coerce_enum(AuditAction, action, "action")
        entity_type = coerce_enum(AuditEntityType, entity_type, "entity_type")
        status = coerce_enum(AuditStatus, status, "status")

        try:
            event = AuditEvent(
                id=generate_audit_event_id(),
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                entity_name=entity_name,
                details=details or {},
                status=status,
                error_message=error_message,
                created_at=utc_now()
            )
        except PydanticValidationError as e:
            raise InvalidArgumentError(
                "Invalid audit event fields",
                details={"errors": e.errors(include_url=False)}
            )

        try:
            self.repo.create_event(event)
        except Exception as e:
            logger.error(
                f"Failed to persist audit event: {e}",
                exc_info=True,
                extra={
                    "audit_event_id": event.id,
                    "actor_id": actor_id,
                    "action": action.value,
                    "entity_type": entity_type.value,
                    "status": status.value,
                }
            )
            return AuditRecordResult(success=False, error=str(e))

        logger.info(
            f"Audit event: {action.value} {entity_type.value} {status.value}",
            extra={
                "audit_event_id": event.id,
                "actor_id": actor_id,
                "action": action.value,
                "entity_type": entity_type.value,
                "status": status.value,
            }
        )
        return AuditRecordResult(success=True, event=event)

    def record_success(
        self,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        actor_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditRecordResult:
        """Record a successful action"""
        return self.record(
            action=action,
            entity_type=entity_type,
            actor_id=actor_id,
            entity_id=entity_id,
            entity_name=entity_name,
            details=details,
            status=AuditStatus.SUCCESS
        )

    def record_failure(
        self,
        action: Union[AuditAction, str],
        entity_type: Union[AuditEntityType, str],
        error_message: Optional[str],
        actor_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        entity_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> AuditRecordResult:
        """Record a failed action"""
        return self.record(
            action=action,
            entity_type=entity_type,
            actor_id=actor_id,
            entity_id=entity_id,
            entity_name=entity_name,
            details=details,
            status=AuditStatus.FAILED,
            error_message=error_message
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def query(
        self,
        filters: Optional[AuditQueryFilters] = None,
        pagination: Optional[Pagination] = None
    ) -> AuditQueryResult:
        """
        One page of events matching filters, newest first

        Date-only start_date counts from 00:00:00.000 of that day; end_date
        always counts up to 23:59:59.999 of its day. Both bounds are inclusive
        and computed in UTC.
        """
        filters = filters or AuditQueryFilters()
        pagination = pagination or Pagination(page_size=settings.audit_default_page_size)

        if pagination.page_size > self.max_page_size:
            raise InvalidArgumentError(
                f"page_size must not exceed {self.max_page_size}",
                details={"page_size": pagination.page_size}
            )

        criteria = dict(
            action=filters.action,
            entity_type=filters.entity_type,
            status=filters.status,
            search=filters.search or None,
            from_date=self._lower_bound(filters.start_date),
            to_date=end_of_day(filters.end_date) if filters.end_date else None,
            actor_id=filters.actor_id,
        )

        try:
            total = self.repo.count_events(**criteria)
            events = self.repo.find_events(
                **criteria,
                skip=pagination.skip,
                limit=pagination.page_size
            )
        except PyMongoError as e:
            logger.error(f"Failed to query audit logs: {e}", exc_info=True)
            raise AuditStorageError("Audit log is unavailable", details={"reason": str(e)})

        return AuditQueryResult(
            events=events,
            total_count=total,
            page=pagination.page,
            page_size=pagination.page_size
        )

    def stats(self) -> AuditStats:
        """Totals, failures, per-action counts and success rate over all events"""
        try:
            total = self.repo.count_events()
            failed = self.repo.count_events(status=AuditStatus.FAILED)
            action_counts = self.repo.count_by_action()
        except PyMongoError as e:
            logger.error(f"Failed to compute audit stats: {e}", exc_info=True)
            raise AuditStorageError("Audit log is unavailable", details={"reason": str(e)})

        if total == 0:
            success_rate = 100.0
        else:
            success_rate = round((total - failed) / total * 100, 2)

        return AuditStats(
            total_logs=total,
            failed_logs=failed,
            action_counts=action_counts,
            success_rate=success_rate
        )

    @staticmethod
    def _lower_bound(value) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return ensure_utc(value)
        return start_of_day(value)
