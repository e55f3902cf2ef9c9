"""Job Order API Routes - Creation, lookup and status workflow"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_correlation_id_dep, get_job_order_service
from ...domain.models import ActorContext
from ...domain.errors import DomainError
from ...services.job_order_service import JobOrderService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class CreateJobOrderRequest(BaseModel):
    """Request to open a job order"""
    customer_id: Optional[str] = None
    vehicle_plate: Optional[str] = Field(None, max_length=20)
    vehicle_vin: Optional[str] = Field(None, max_length=17)
    odometer: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class ChangeStatusRequest(BaseModel):
    """Request to move a job order to another status"""
    new_status: str = Field(..., min_length=1)


# ============================================================================
# Routes
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job_order(
    request: CreateJobOrderRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: JobOrderService = Depends(get_job_order_service)
):
    """Create a job order in DRAFT for the caller's branch"""
    try:
        job = service.create_job_order(
            actor=actor,
            customer_id=request.customer_id,
            vehicle_plate=request.vehicle_plate,
            vehicle_vin=request.vehicle_vin,
            odometer=request.odometer,
            notes=request.notes
        )
        return {"job": job.model_dump(mode="json")}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{job_order_id}")
async def get_job_order(
    job_order_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: JobOrderService = Depends(get_job_order_service)
):
    """Get job order details"""
    try:
        job = service.get_job_order(actor, job_order_id)
        return {"job": job.model_dump(mode="json")}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/{job_order_id}/status")
async def change_job_status(
    job_order_id: str,
    request: ChangeStatusRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    service: JobOrderService = Depends(get_job_order_service)
):
    """
    Change job order status

    400 when the status is unknown or unreachable from the current one
    (details list the allowed transitions), 403 when the caller's role may not
    set it or the order belongs to another branch.
    """
    try:
        job = service.change_status(actor, job_order_id, request.new_status)
        return {
            "job": job.model_dump(mode="json"),
            "message": f"Status changed to {job.status.value}"
        }

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{job_order_id}/history")
async def get_job_history(
    job_order_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: JobOrderService = Depends(get_job_order_service)
):
    """Get status history, oldest first"""
    try:
        history = service.get_status_history(actor, job_order_id)
        return {"history": [entry.model_dump(mode="json") for entry in history]}

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{job_order_id}/transitions")
async def get_job_transitions(
    job_order_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: JobOrderService = Depends(get_job_order_service)
):
    """Statuses the caller may move this job order to"""
    try:
        return service.available_transitions(actor, job_order_id)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
