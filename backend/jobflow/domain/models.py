"""Domain Models - Pydantic schemas for all entities"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .enums import (
    JobOrderStatus, Role, DenialReason, AuditAction, AuditEntityType, AuditStatus
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Identity provider user ID")
    role: Role = Field(..., description="Assigned role")
    branch_id: Optional[str] = Field(None, description="Home branch, None for global roles")
    display_name: str = Field(..., description="User display name")

    @property
    def is_global(self) -> bool:
        """Admins and executives are not bound to a branch"""
        return self.role in (Role.ADMIN, Role.EXECUTIVE)


# ============================================================================
# Workflow
# ============================================================================

class TransitionRequest(BaseModel):
    """A proposed status change (constructed per call, never stored)"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    current_status: JobOrderStatus
    requested_status: JobOrderStatus
    actor_role: Role
    actor_id: Optional[str] = None
    job_order_id: Optional[str] = None


class TransitionResult(BaseModel):
    """Allowed(new_status) or Denied(reason)"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    allowed: bool
    new_status: Optional[JobOrderStatus] = None
    reason: Optional[DenialReason] = None

    @classmethod
    def allow(cls, new_status: JobOrderStatus) -> "TransitionResult":
        return cls(allowed=True, new_status=new_status)

    @classmethod
    def deny(cls, reason: DenialReason) -> "TransitionResult":
        return cls(allowed=False, reason=reason)

    @property
    def message(self) -> str:
        if self.allowed:
            return f"Transition to {self.new_status.value} allowed"
        if self.reason == DenialReason.UNKNOWN_TRANSITION:
            return "Requested status is not reachable from the current status"
        return "Role is not permitted to set the requested status"


# ============================================================================
# Job Orders
# ============================================================================

class JobOrder(BaseModel):
    """Vehicle service ticket tracked through the status workflow"""
    model_config = ConfigDict(extra="ignore")

    id: str
    branch_id: Optional[str] = None
    customer_id: str
    vehicle_plate: Optional[str] = None
    vehicle_vin: Optional[str] = None
    odometer: Optional[int] = None
    notes: Optional[str] = None
    status: JobOrderStatus = JobOrderStatus.DRAFT
    created_by: str
    approved_by: Optional[str] = None
    total_estimated: float = 0
    total_final: float = 0
    created_at: datetime
    updated_at: datetime

    @property
    def display_name(self) -> str:
        return f"Job #{self.id[:8]}"


class JobStatusHistoryEntry(BaseModel):
    """One recorded status change of a job order"""
    model_config = ConfigDict(extra="ignore")

    id: str
    job_order_id: str
    old_status: Optional[JobOrderStatus] = None
    new_status: JobOrderStatus
    changed_by: str
    changed_at: datetime


# ============================================================================
# Audit
# ============================================================================

class AuditEvent(BaseModel):
    """
    Audit event (append-only)

    Stored under the legacy column names, so `actor_id` is persisted and
    serialized as `user_id`.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: str
    actor_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("actor_id", "user_id"),
        serialization_alias="user_id"
    )
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: Optional[str] = None
    entity_name: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    status: AuditStatus = AuditStatus.SUCCESS
    error_message: Optional[str] = None
    created_at: datetime


class AuditRecordResult(BaseModel):
    """Outcome of a best-effort audit write; falsy when the write failed"""
    model_config = ConfigDict(extra="forbid")

    success: bool
    event: Optional[AuditEvent] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


class AuditQueryFilters(BaseModel):
    """Optional audit log filters, ANDed together"""
    model_config = ConfigDict(extra="forbid")

    action: Optional[AuditAction] = None
    entity_type: Optional[AuditEntityType] = None
    status: Optional[AuditStatus] = None
    search: Optional[str] = Field(None, description="Substring of entity_name or error_message")
    start_date: Optional[Union[datetime, date]] = None
    end_date: Optional[Union[datetime, date]] = None
    actor_id: Optional[str] = None


class Pagination(BaseModel):
    """1-indexed page request"""
    model_config = ConfigDict(extra="forbid")

    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size


class AuditQueryResult(BaseModel):
    """One page of audit events plus the pre-pagination total"""
    events: List[AuditEvent] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 10

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size


class AuditStats(BaseModel):
    """Aggregates over the whole audit history"""
    total_logs: int = 0
    failed_logs: int = 0
    action_counts: Dict[str, int] = Field(default_factory=dict)
    success_rate: float = 100.0
