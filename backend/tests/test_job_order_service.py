"""Tests for job order creation and status changes"""
import pytest
from pymongo.errors import PyMongoError

from jobflow.domain.enums import AuditStatus, JobOrderStatus, Role
from jobflow.domain.errors import (
    ConflictError, InvalidArgumentError, InvalidTransitionError,
    JobOrderNotFoundError, PermissionDeniedError, RoleNotPermittedError,
    ValidationError
)
from jobflow.repositories.job_order_repo import JobOrderRepository
from jobflow.services.job_order_service import JobOrderService

from .conftest import FakeCollection, make_actor, make_job_order

S = JobOrderStatus


@pytest.fixture
def advisor():
    return make_actor(Role.SERVICE_ADVISOR, user_id="advisor-1")


@pytest.fixture
def manager():
    return make_actor(Role.BRANCH_MANAGER, user_id="manager-1")


@pytest.fixture
def mechanic():
    return make_actor(Role.MECHANIC, user_id="mechanic-1")


def _seed(job_repo, status, **kwargs):
    job_order = make_job_order(status=status, **kwargs)
    job_repo.create_job_order(job_order)
    return job_order


class TestCreateJobOrder:
    def test_creates_draft_with_history_and_audit(self, service, advisor, audit_collection, history_collection):
        job = service.create_job_order(advisor, customer_id="cust-9", vehicle_plate="ABC-123")

        assert job.id.startswith("JOB-")
        assert job.status == S.DRAFT
        assert job.branch_id == "branch-1"
        assert job.created_by == "advisor-1"
        assert service.get_job_order(advisor, job.id) == job

        (history,) = history_collection.docs
        assert history["old_status"] is None
        assert history["new_status"] == "DRAFT"

        (audit,) = audit_collection.docs
        assert audit["action"] == "CREATE"
        assert audit["entity_id"] == job.id
        assert audit["entity_name"] == job.display_name

    def test_requires_customer(self, service, advisor, audit_collection, job_orders_collection):
        with pytest.raises(ValidationError) as exc_info:
            service.create_job_order(advisor, customer_id="")

        assert job_orders_collection.docs == []
        (audit,) = audit_collection.docs
        assert audit["action"] == "CREATE"
        assert audit["status"] == "FAILED"
        assert audit["error_message"] == exc_info.value.message

    def test_storage_failure_is_audited(self, engine, recorder, advisor, audit_collection):
        repo = JobOrderRepository(
            job_orders=FakeCollection(fail_on={"insert_one"}),
            status_history=FakeCollection()
        )
        service = JobOrderService(engine=engine, recorder=recorder, repo=repo)

        with pytest.raises(PyMongoError):
            service.create_job_order(advisor, customer_id="cust-1")

        (audit,) = audit_collection.docs
        assert audit["action"] == "CREATE"
        assert audit["status"] == "FAILED"
        assert audit["entity_id"].startswith("JOB-")
        assert audit["error_message"].startswith("Failed to store job order")
        assert repo._status_history.docs == []

    def test_mechanic_cannot_create(self, service, mechanic, audit_collection, job_orders_collection):
        with pytest.raises(PermissionDeniedError):
            service.create_job_order(mechanic, customer_id="cust-1")
        assert job_orders_collection.docs == []
        assert audit_collection.docs[0]["status"] == "FAILED"


class TestGetJobOrder:
    def test_missing_order(self, service, advisor):
        with pytest.raises(JobOrderNotFoundError) as exc_info:
            service.get_job_order(advisor, "JOB-missing")
        assert exc_info.value.http_status == 404

    def test_other_branch_is_hidden(self, service, job_repo):
        _seed(job_repo, S.DRAFT, branch_id="branch-2")
        with pytest.raises(PermissionDeniedError):
            service.get_job_order(make_actor(Role.SERVICE_ADVISOR), "JOB-0123456789ab")

    def test_global_roles_see_every_branch(self, service, job_repo):
        job = _seed(job_repo, S.DRAFT, branch_id="branch-2")
        for role in (Role.ADMIN, Role.EXECUTIVE):
            actor = make_actor(role, branch_id=None)
            assert service.get_job_order(actor, job.id).id == job.id

    def test_available_transitions(self, service, job_repo, mechanic):
        job = _seed(job_repo, S.QUALITY_CHECK)
        data = service.available_transitions(mechanic, job.id)
        assert data["current_status"] == "QUALITY_CHECK"
        assert data["allowed_transitions"] == ["IN_PROGRESS", "BILLED"]
        assert data["available_transitions"] == ["IN_PROGRESS"]


class TestChangeStatus:
    def test_allowed_change_persists_and_audits(self, service, job_repo, advisor, audit_collection):
        job = _seed(job_repo, S.DRAFT)

        updated = service.change_status(advisor, job.id, "ESTIMATED")

        assert updated.status == S.ESTIMATED
        assert updated.updated_at > job.updated_at
        assert job_repo.get_job_order(job.id).status == S.ESTIMATED

        (audit,) = audit_collection.docs
        assert audit["action"] == "STATUS_CHANGE"
        assert audit["status"] == "SUCCESS"
        assert audit["user_id"] == "advisor-1"
        assert audit["details"] == {"old_status": "DRAFT", "new_status": "ESTIMATED"}

    def test_approval_records_approver(self, service, job_repo, manager):
        job = _seed(job_repo, S.ESTIMATED)
        updated = service.change_status(manager, job.id, S.APPROVED)
        assert updated.approved_by == "manager-1"

    def test_history_follows_lifecycle(self, service, job_repo, advisor, manager, mechanic):
        job = _seed(job_repo, S.DRAFT)
        service.change_status(advisor, job.id, S.ESTIMATED)
        service.change_status(manager, job.id, S.APPROVED)
        service.change_status(mechanic, job.id, S.IN_PROGRESS)

        history = service.get_status_history(advisor, job.id)
        assert [(h.old_status, h.new_status) for h in history] == [
            (S.DRAFT, S.ESTIMATED),
            (S.ESTIMATED, S.APPROVED),
            (S.APPROVED, S.IN_PROGRESS),
        ]

    def test_unknown_transition(self, service, job_repo, manager, audit_collection):
        job = _seed(job_repo, S.DRAFT)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.change_status(manager, job.id, S.BILLED)

        error = exc_info.value
        assert error.http_status == 400
        assert error.details["reason"] == "UnknownTransition"
        assert error.details["allowed_transitions"] == ["ESTIMATED"]
        assert job_repo.get_job_order(job.id).status == S.DRAFT

        (audit,) = audit_collection.docs
        assert audit["status"] == "FAILED"
        assert audit["error_message"] == error.message
        assert audit["details"]["reason"] == "UnknownTransition"

    def test_role_not_permitted(self, service, job_repo, mechanic, audit_collection):
        job = _seed(job_repo, S.ESTIMATED)

        with pytest.raises(RoleNotPermittedError) as exc_info:
            service.change_status(mechanic, job.id, S.APPROVED)

        assert exc_info.value.http_status == 403
        assert job_repo.get_job_order(job.id).status == S.ESTIMATED
        assert audit_collection.docs[0]["details"]["reason"] == "RoleNotPermitted"

    def test_unknown_status_value(self, service, job_repo, advisor, audit_collection):
        job = _seed(job_repo, S.DRAFT)
        with pytest.raises(InvalidArgumentError):
            service.change_status(advisor, job.id, "PAID")
        assert audit_collection.docs == []

    def test_missing_order(self, service, advisor):
        with pytest.raises(JobOrderNotFoundError):
            service.change_status(advisor, "JOB-missing", S.ESTIMATED)

    def test_audit_failure_does_not_block_change(self, engine, failing_recorder, job_repo, advisor):
        service = JobOrderService(engine=engine, recorder=failing_recorder, repo=job_repo)
        job = _seed(job_repo, S.DRAFT)

        updated = service.change_status(advisor, job.id, S.ESTIMATED)

        assert updated.status == S.ESTIMATED
        assert job_repo.get_job_order(job.id).status == S.ESTIMATED

    def test_history_failure_does_not_block_change(self, engine, recorder, advisor):
        repo = JobOrderRepository(
            job_orders=FakeCollection(),
            status_history=FakeCollection(fail_on={"insert_one"})
        )
        service = JobOrderService(engine=engine, recorder=recorder, repo=repo)
        job = _seed(repo, S.DRAFT)

        assert service.change_status(advisor, job.id, S.ESTIMATED).status == S.ESTIMATED

    def test_concurrent_change_is_conflict(self, engine, recorder, job_repo, advisor, audit_collection):
        job = _seed(job_repo, S.DRAFT)

        class RacingRepository(JobOrderRepository):
            def update_status(self, *args, **kwargs):
                return None

        racing = RacingRepository(
            job_orders=job_repo._job_orders,
            status_history=job_repo._status_history
        )
        service = JobOrderService(engine=engine, recorder=recorder, repo=racing)

        with pytest.raises(ConflictError) as exc_info:
            service.change_status(advisor, job.id, S.ESTIMATED)

        assert exc_info.value.http_status == 409
        assert audit_collection.docs[0]["status"] == AuditStatus.FAILED.value

    def test_stale_expected_status_is_not_overwritten(self, job_repo):
        job = _seed(job_repo, S.ESTIMATED)
        result = job_repo.update_status(
            job.id,
            expected_status=S.DRAFT,
            new_status=S.ESTIMATED,
            updated_at=job.updated_at
        )
        assert result is None
        assert job_repo.get_job_order(job.id).status == S.ESTIMATED

    def test_storage_failure_is_audited(self, engine, recorder, advisor, audit_collection):
        repo = JobOrderRepository(
            job_orders=FakeCollection(fail_on={"find_one_and_update"}),
            status_history=FakeCollection()
        )
        service = JobOrderService(engine=engine, recorder=recorder, repo=repo)
        job = _seed(repo, S.DRAFT)

        with pytest.raises(PyMongoError):
            service.change_status(advisor, job.id, S.ESTIMATED)

        (audit,) = audit_collection.docs
        assert audit["action"] == "STATUS_CHANGE"
        assert audit["status"] == "FAILED"
        assert audit["entity_id"] == job.id
        assert audit["details"] == {"old_status": "DRAFT", "new_status": "ESTIMATED"}
        assert audit["error_message"].startswith("Failed to store status change")
        assert repo._status_history.docs == []
