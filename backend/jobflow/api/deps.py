"""API Dependencies - Common dependencies for routes"""
from functools import lru_cache
from typing import Optional
from fastapi import Depends, Header, HTTPException, status

from ..domain.enums import Role
from ..domain.models import ActorContext
from ..domain.errors import AuthenticationError
from ..engine.audit_recorder import AuditRecorder
from ..engine.workflow_engine import WorkflowEngine
from ..services.job_order_service import JobOrderService
from ..utils.jwt import get_current_user as _jwt_get_current_user  # Internal use only
from ..utils.logger import set_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Get or generate correlation ID for request tracing

    If client provides X-Correlation-Id, use it.
    Otherwise generate a new one.
    """
    correlation_id = x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Dependency to get current user from Authorization header

    Raises:
        HTTPException: 401 if token is invalid or missing
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": {"code": "AUTHENTICATION_ERROR", "message": "Authorization header is missing"}},
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        return _jwt_get_current_user(authorization)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )


async def require_admin_dep(
    actor: ActorContext = Depends(get_current_user_dep)
) -> ActorContext:
    """Dependency that only lets admins through"""
    if actor.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": {"code": "PERMISSION_DENIED", "message": "Insufficient permissions"}}
        )
    return actor


@lru_cache()
def get_workflow_engine() -> WorkflowEngine:
    """Shared engine over the default workflow definition"""
    return WorkflowEngine()


def get_audit_recorder() -> AuditRecorder:
    """Audit recorder backed by the configured collection"""
    return AuditRecorder()


def get_job_order_service(
    engine: WorkflowEngine = Depends(get_workflow_engine),
    recorder: AuditRecorder = Depends(get_audit_recorder)
) -> JobOrderService:
    """Job order service wired to the shared engine and recorder"""
    return JobOrderService(engine=engine, recorder=recorder)
