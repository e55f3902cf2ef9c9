"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .audit_repo import AuditRepository
from .job_order_repo import JobOrderRepository

__all__ = [
    "get_database",
    "get_collection",
    "AuditRepository",
    "JobOrderRepository",
]
