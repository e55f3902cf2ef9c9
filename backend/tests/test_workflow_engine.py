"""Tests for the job order status state machine"""
import pytest

from jobflow.domain.enums import DenialReason, JobOrderStatus, Role
from jobflow.domain.errors import InvalidArgumentError
from jobflow.domain.models import TransitionRequest
from jobflow.engine.workflow_definition import DEFAULT_WORKFLOW

S = JobOrderStatus

TRANSITIONS = {
    S.DRAFT: {S.ESTIMATED},
    S.ESTIMATED: {S.APPROVED, S.DRAFT},
    S.APPROVED: {S.IN_PROGRESS},
    S.IN_PROGRESS: {S.QUALITY_CHECK},
    S.QUALITY_CHECK: {S.BILLED, S.IN_PROGRESS},
    S.BILLED: {S.RELEASED},
    S.RELEASED: set(),
}

PERMISSIONS = {
    Role.ADMIN: set(JobOrderStatus),
    Role.BRANCH_MANAGER: {S.APPROVED, S.QUALITY_CHECK, S.BILLED, S.RELEASED},
    Role.SERVICE_ADVISOR: {S.DRAFT, S.ESTIMATED},
    Role.MECHANIC: {S.IN_PROGRESS, S.QUALITY_CHECK},
    Role.INVENTORY_OFFICER: {S.BILLED},
    Role.EXECUTIVE: set(),
}


class TestEvaluate:
    def test_advisor_estimates_draft(self, engine):
        result = engine.evaluate(S.DRAFT, S.ESTIMATED, Role.SERVICE_ADVISOR)
        assert result.allowed
        assert result.new_status == S.ESTIMATED
        assert result.reason is None

    def test_role_without_permission_is_denied(self, engine):
        result = engine.evaluate(S.DRAFT, S.ESTIMATED, Role.MECHANIC)
        assert not result.allowed
        assert result.reason == DenialReason.ROLE_NOT_PERMITTED
        assert result.new_status is None

    def test_unknown_edge_reported_before_role(self, engine):
        # Branch manager may set BILLED, but DRAFT has no edge to it
        result = engine.evaluate(S.DRAFT, S.BILLED, Role.BRANCH_MANAGER)
        assert result.reason == DenialReason.UNKNOWN_TRANSITION

    def test_admin_cannot_skip_states(self, engine):
        result = engine.evaluate(S.DRAFT, S.RELEASED, Role.ADMIN)
        assert not result.allowed
        assert result.reason == DenialReason.UNKNOWN_TRANSITION

    def test_released_is_terminal(self, engine):
        for target in JobOrderStatus:
            for role in Role:
                result = engine.evaluate(S.RELEASED, target, role)
                assert result.reason == DenialReason.UNKNOWN_TRANSITION
        assert engine.is_terminal(S.RELEASED)

    def test_self_transition_is_unknown(self, engine):
        result = engine.evaluate(S.IN_PROGRESS, S.IN_PROGRESS, Role.ADMIN)
        assert result.reason == DenialReason.UNKNOWN_TRANSITION

    def test_backward_edges(self, engine):
        assert engine.evaluate(S.ESTIMATED, S.DRAFT, Role.SERVICE_ADVISOR).allowed
        assert engine.evaluate(S.QUALITY_CHECK, S.IN_PROGRESS, Role.MECHANIC).allowed

    def test_executive_is_read_only(self, engine):
        for source in JobOrderStatus:
            for target in JobOrderStatus:
                assert not engine.evaluate(source, target, Role.EXECUTIVE).allowed

    def test_accepts_raw_values(self, engine):
        result = engine.evaluate("ESTIMATED", "APPROVED", "branch_manager")
        assert result.allowed
        assert result.new_status == S.APPROVED

    def test_is_deterministic(self, engine):
        first = engine.evaluate(S.QUALITY_CHECK, S.BILLED, Role.INVENTORY_OFFICER)
        second = engine.evaluate(S.QUALITY_CHECK, S.BILLED, Role.INVENTORY_OFFICER)
        assert first == second

    def test_matches_tables_for_every_triple(self, engine):
        for source in JobOrderStatus:
            for target in JobOrderStatus:
                for role in Role:
                    result = engine.evaluate(source, target, role)
                    if target not in TRANSITIONS[source]:
                        assert result.reason == DenialReason.UNKNOWN_TRANSITION
                    elif target not in PERMISSIONS[role]:
                        assert result.reason == DenialReason.ROLE_NOT_PERMITTED
                    else:
                        assert result.allowed and result.new_status == target

    def test_evaluate_request(self, engine):
        request = TransitionRequest(
            current_status=S.BILLED,
            requested_status=S.RELEASED,
            actor_role=Role.BRANCH_MANAGER,
            actor_id="manager-1",
        )
        assert engine.evaluate_request(request).allowed


class TestInvalidArguments:
    @pytest.mark.parametrize("current, requested, role, argument", [
        ("PAID", "ESTIMATED", "admin", "current_status"),
        ("DRAFT", "draft", "admin", "requested_status"),
        ("DRAFT", "ESTIMATED", "janitor", "actor_role"),
        (None, "ESTIMATED", "admin", "current_status"),
    ])
    def test_unknown_values_raise(self, engine, current, requested, role, argument):
        with pytest.raises(InvalidArgumentError) as exc_info:
            engine.evaluate(current, requested, role)
        assert exc_info.value.details["argument"] == argument
        assert exc_info.value.http_status == 400


class TestQueries:
    def test_allowed_transitions_in_lifecycle_order(self, engine):
        assert engine.allowed_transitions(S.ESTIMATED) == [S.DRAFT, S.APPROVED]
        assert engine.allowed_transitions(S.RELEASED) == []

    def test_permitted_statuses(self, engine):
        assert engine.permitted_statuses(Role.MECHANIC) == [S.IN_PROGRESS, S.QUALITY_CHECK]
        assert engine.permitted_statuses(Role.EXECUTIVE) == []

    def test_available_transitions_intersects_tables(self, engine):
        assert engine.available_transitions(S.QUALITY_CHECK, Role.MECHANIC) == [S.IN_PROGRESS]
        assert engine.available_transitions(S.QUALITY_CHECK, Role.BRANCH_MANAGER) == [S.BILLED]
        assert engine.available_transitions(S.QUALITY_CHECK, Role.ADMIN) == [S.IN_PROGRESS, S.BILLED]

    def test_only_released_is_terminal(self):
        assert DEFAULT_WORKFLOW.terminal_statuses() == [S.RELEASED]
