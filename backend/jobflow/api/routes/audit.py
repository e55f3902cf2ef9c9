"""Audit Log API Routes - Admin-only reads over the audit trail"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import require_admin_dep, get_correlation_id_dep, get_audit_recorder
from ...config.settings import settings
from ...domain.enums import AuditAction, AuditEntityType, AuditStatus
from ...domain.models import ActorContext, AuditQueryFilters, Pagination
from ...domain.errors import DomainError
from ...engine.audit_recorder import AuditRecorder
from ...utils.time import parse_iso

router = APIRouter()


def _parse_date(value: Optional[str], name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_iso(value)
    except (ValueError, OverflowError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid {name} format: {e}")


@router.get("")
async def get_audit_logs(
    action: Optional[AuditAction] = None,
    entity_type: Optional[AuditEntityType] = None,
    status: Optional[AuditStatus] = None,
    search: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    actor_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.audit_default_page_size, ge=1, le=settings.audit_max_page_size),
    actor: ActorContext = Depends(require_admin_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    recorder: AuditRecorder = Depends(get_audit_recorder)
):
    """Get audit logs, newest first, with filters and pagination"""
    filters = AuditQueryFilters(
        action=action,
        entity_type=entity_type,
        status=status,
        search=search,
        start_date=_parse_date(start_date, "start_date"),
        end_date=_parse_date(end_date, "end_date"),
        actor_id=actor_id
    )

    try:
        result = recorder.query(filters, Pagination(page=page, page_size=page_size))
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())

    return {
        "logs": [event.model_dump(mode="json", by_alias=True) for event in result.events],
        "total": result.total_count,
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
    }


@router.get("/stats")
async def get_audit_stats(
    actor: ActorContext = Depends(require_admin_dep),
    recorder: AuditRecorder = Depends(get_audit_recorder)
):
    """Totals, failures, per-action counts and success rate"""
    try:
        return recorder.stats().model_dump()
    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
