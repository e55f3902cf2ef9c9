"""Audit Repository - Data access for audit events"""
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection
from ..config.settings import settings
from ..domain.enums import AuditAction, AuditEntityType, AuditStatus
from ..domain.models import AuditEvent
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit event operations (append-only)"""

    def __init__(self, collection: Optional[Collection] = None):
        self._audit_logs: Collection = (
            collection if collection is not None else get_collection(settings.audit_collection)
        )

    def create_event(self, event: AuditEvent) -> AuditEvent:
        """Insert one audit event; plain insert, no conflict key"""
        doc = event.model_dump(by_alias=True)
        doc["action"] = event.action.value
        doc["entity_type"] = event.entity_type.value
        doc["status"] = event.status.value

        self._audit_logs.insert_one(doc)
        return event

    def find_events(
        self,
        action: Optional[AuditAction] = None,
        entity_type: Optional[AuditEntityType] = None,
        status: Optional[AuditStatus] = None,
        search: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        actor_id: Optional[str] = None,
        skip: int = 0,
        limit: int = 10
    ) -> List[AuditEvent]:
        """Get audit events matching the filters, newest first"""
        query = self.build_query(action, entity_type, status, search, from_date, to_date, actor_id)
        cursor = (
            self._audit_logs.find(query)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )

        events = []
        for doc in cursor:
            doc.pop("_id", None)
            events.append(AuditEvent.model_validate(doc))
        return events

    def count_events(
        self,
        action: Optional[AuditAction] = None,
        entity_type: Optional[AuditEntityType] = None,
        status: Optional[AuditStatus] = None,
        search: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> int:
        """Count audit events with same filters as find_events"""
        query = self.build_query(action, entity_type, status, search, from_date, to_date, actor_id)
        return self._audit_logs.count_documents(query)

    def count_by_action(self) -> Dict[str, int]:
        """Number of stored events per action over the whole history"""
        pipeline = [{"$group": {"_id": "$action", "count": {"$sum": 1}}}]
        return {
            row["_id"]: row["count"]
            for row in self._audit_logs.aggregate(pipeline)
            if row["_id"] is not None
        }

    @staticmethod
    def build_query(
        action: Optional[AuditAction] = None,
        entity_type: Optional[AuditEntityType] = None,
        status: Optional[AuditStatus] = None,
        search: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        actor_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Build MongoDB query for audit log filtering"""
        query: Dict[str, Any] = {}

        if action:
            query["action"] = action.value
        if entity_type:
            query["entity_type"] = entity_type.value
        if status:
            query["status"] = status.value
        if actor_id:
            query["user_id"] = actor_id

        # Partial, case-insensitive match with escaped special regex chars
        if search:
            escaped = re.escape(search)
            query["$or"] = [
                {"entity_name": {"$regex": escaped, "$options": "i"}},
                {"error_message": {"$regex": escaped, "$options": "i"}}
            ]

        if from_date or to_date:
            query["created_at"] = {}
            if from_date:
                query["created_at"]["$gte"] = from_date
            if to_date:
                query["created_at"]["$lte"] = to_date

        return query
