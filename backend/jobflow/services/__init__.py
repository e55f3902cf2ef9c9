"""Service modules - Business logic layer"""
from .job_order_service import JobOrderService

__all__ = [
    "JobOrderService",
]
