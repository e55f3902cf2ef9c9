"""
Pytest Configuration and Fixtures

Repositories take their pymongo collections as constructor arguments, so the
tests hand them FakeCollection instances: in-memory stand-ins implementing
the part of the pymongo Collection API the repositories use.
"""

import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from jobflow.domain.enums import (
    AuditAction, AuditEntityType, AuditStatus, JobOrderStatus, Role
)
from jobflow.domain.models import ActorContext, AuditEvent, JobOrder
from jobflow.engine.audit_recorder import AuditRecorder
from jobflow.engine.workflow_engine import WorkflowEngine
from jobflow.repositories.audit_repo import AuditRepository
from jobflow.repositories.job_order_repo import JobOrderRepository
from jobflow.services.job_order_service import JobOrderService
from jobflow.utils.idgen import generate_audit_event_id


# ============================================================================
# Fake pymongo collection
# ============================================================================

def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, cond in query.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        if key == "$and":
            if not all(_matches(doc, sub) for sub in cond):
                return False
            continue

        value = doc.get(key)
        if isinstance(cond, dict) and any(op.startswith("$") for op in cond):
            for op, operand in cond.items():
                if op == "$gte" and (value is None or value < operand):
                    return False
                if op == "$lte" and (value is None or value > operand):
                    return False
                if op == "$regex":
                    flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
                    if value is None or not re.search(operand, value, flags):
                        return False
        elif value != cond:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs = sorted(
            self._docs,
            key=lambda d: d.get(key),
            reverse=direction == DESCENDING
        )
        return self

    def skip(self, n: int) -> "FakeCursor":
        self._docs = self._docs[n:]
        return self

    def limit(self, n: int) -> "FakeCursor":
        if n:
            self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter([copy.deepcopy(d) for d in self._docs])


class FakeCollection:
    """In-memory collection; `fail_on` names methods that raise like a dead server"""

    def __init__(self, fail_on: Iterable[str] = ()):
        self.docs: List[Dict[str, Any]] = []
        self.indexes: List[tuple] = []
        self.fail_on = set(fail_on)

    def _maybe_fail(self, method: str) -> None:
        if method in self.fail_on:
            raise ServerSelectionTimeoutError("No servers available")

    def create_index(self, keys, **kwargs) -> str:
        self.indexes.append((keys, kwargs))
        return "fake_index"

    def insert_one(self, doc: Dict[str, Any]) -> None:
        self._maybe_fail("insert_one")
        self.docs.append(copy.deepcopy(doc))

    def find(self, query: Optional[Dict[str, Any]] = None) -> FakeCursor:
        self._maybe_fail("find")
        return FakeCursor([d for d in self.docs if _matches(d, query or {})])

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._maybe_fail("find_one")
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        return_document: bool = ReturnDocument.BEFORE
    ) -> Optional[Dict[str, Any]]:
        self._maybe_fail("find_one_and_update")
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                doc.update(update.get("$set", {}))
                return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before
        return None

    def count_documents(self, query: Dict[str, Any]) -> int:
        self._maybe_fail("count_documents")
        return sum(1 for d in self.docs if _matches(d, query))

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self._maybe_fail("aggregate")
        (stage,) = pipeline
        field = stage["$group"]["_id"].lstrip("$")
        counts: Dict[Any, int] = {}
        for doc in self.docs:
            counts[doc.get(field)] = counts.get(doc.get(field), 0) + 1
        return [{"_id": key, "count": count} for key, count in counts.items()]


# ============================================================================
# Helpers
# ============================================================================

def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_event(
    created_at: datetime,
    action: AuditAction = AuditAction.UPDATE,
    entity_type: AuditEntityType = AuditEntityType.JOB_ORDER,
    status: AuditStatus = AuditStatus.SUCCESS,
    **fields
) -> AuditEvent:
    return AuditEvent(
        id=generate_audit_event_id(),
        action=action,
        entity_type=entity_type,
        status=status,
        created_at=created_at,
        **fields
    )


def make_actor(role: Role, user_id: str = "user-1", branch_id: Optional[str] = "branch-1") -> ActorContext:
    return ActorContext(
        user_id=user_id,
        role=role,
        branch_id=branch_id,
        display_name=f"{role.value} user"
    )


def make_job_order(
    status: JobOrderStatus = JobOrderStatus.DRAFT,
    job_order_id: str = "JOB-0123456789ab",
    branch_id: str = "branch-1"
) -> JobOrder:
    now = utc(2024, 1, 10, 9, 0)
    return JobOrder(
        id=job_order_id,
        branch_id=branch_id,
        customer_id="cust-1",
        status=status,
        created_by="advisor-1",
        created_at=now,
        updated_at=now
    )


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def audit_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def audit_repo(audit_collection) -> AuditRepository:
    return AuditRepository(collection=audit_collection)


@pytest.fixture
def recorder(audit_repo) -> AuditRecorder:
    return AuditRecorder(repo=audit_repo)


@pytest.fixture
def failing_recorder() -> AuditRecorder:
    return AuditRecorder(repo=AuditRepository(collection=FakeCollection(fail_on={"insert_one"})))


@pytest.fixture
def engine() -> WorkflowEngine:
    return WorkflowEngine()


@pytest.fixture
def job_orders_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def history_collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def job_repo(job_orders_collection, history_collection) -> JobOrderRepository:
    return JobOrderRepository(
        job_orders=job_orders_collection,
        status_history=history_collection
    )


@pytest.fixture
def service(engine, recorder, job_repo) -> JobOrderService:
    return JobOrderService(engine=engine, recorder=recorder, repo=job_repo)
