"""API Routes module"""
from fastapi import APIRouter

from .workflow import router as workflow_router
from .jobs import router as jobs_router
from .audit import router as audit_router

# Main API router
api_router = APIRouter()

api_router.include_router(workflow_router, prefix="/workflow", tags=["Workflow"])
api_router.include_router(jobs_router, prefix="/jobs", tags=["Job Orders"])
api_router.include_router(audit_router, prefix="/audit-logs", tags=["Audit Logs"])

__all__ = ["api_router"]
