"""Job Order Repository - Data access for job orders and their status history"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, ReturnDocument

from .mongo_client import get_collection
from ..config.settings import settings
from ..domain.enums import JobOrderStatus
from ..domain.models import JobOrder, JobStatusHistoryEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)


class JobOrderRepository:
    """Repository for job orders"""

    def __init__(
        self,
        job_orders: Optional[Collection] = None,
        status_history: Optional[Collection] = None
    ):
        self._job_orders: Collection = (
            job_orders if job_orders is not None
            else get_collection(settings.job_orders_collection)
        )
        self._status_history: Collection = (
            status_history if status_history is not None
            else get_collection(settings.job_status_history_collection)
        )

    def create_job_order(self, job_order: JobOrder) -> JobOrder:
        """Insert a new job order"""
        doc = job_order.model_dump()
        doc["status"] = job_order.status.value
        self._job_orders.insert_one(doc)
        logger.info(
            f"Created job order {job_order.id}",
            extra={"job_order_id": job_order.id, "status": job_order.status.value}
        )
        return job_order

    def get_job_order(self, job_order_id: str) -> Optional[JobOrder]:
        """Get job order by ID"""
        doc = self._job_orders.find_one({"id": job_order_id})
        if doc is None:
            return None
        doc.pop("_id", None)
        return JobOrder.model_validate(doc)

    def update_status(
        self,
        job_order_id: str,
        expected_status: JobOrderStatus,
        new_status: JobOrderStatus,
        updated_at: datetime,
        approved_by: Optional[str] = None
    ) -> Optional[JobOrder]:
        """
        Set the status if the order is still in expected_status

        Returns:
            Updated job order, or None when the order is gone or its status
            changed concurrently
        """
        update: Dict[str, Any] = {
            "status": new_status.value,
            "updated_at": updated_at,
        }
        if approved_by is not None:
            update["approved_by"] = approved_by

        doc = self._job_orders.find_one_and_update(
            {"id": job_order_id, "status": expected_status.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if doc is None:
            return None
        doc.pop("_id", None)
        return JobOrder.model_validate(doc)

    def add_history_entry(self, entry: JobStatusHistoryEntry) -> JobStatusHistoryEntry:
        """Append a status history row"""
        doc = entry.model_dump()
        doc["old_status"] = entry.old_status.value if entry.old_status else None
        doc["new_status"] = entry.new_status.value
        self._status_history.insert_one(doc)
        return entry

    def get_history(self, job_order_id: str) -> List[JobStatusHistoryEntry]:
        """Status history for a job order, oldest first"""
        cursor = self._status_history.find(
            {"job_order_id": job_order_id}
        ).sort("changed_at", ASCENDING)

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(JobStatusHistoryEntry.model_validate(doc))
        return entries
