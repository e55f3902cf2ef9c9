"""Workflow Engine - Decide job order status transitions"""
from enum import Enum
from typing import List, Type, TypeVar, Union

from ..domain.enums import JobOrderStatus, Role, DenialReason
from ..domain.errors import InvalidArgumentError
from ..domain.models import TransitionRequest, TransitionResult
from ..utils.logger import get_logger
from .workflow_definition import DEFAULT_WORKFLOW, WorkflowDefinition, ordered

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

StatusLike = Union[JobOrderStatus, str]
RoleLike = Union[Role, str]


def coerce_enum(enum_cls: Type[E], value: object, argument: str) -> E:
    """
    Convert a member or raw value into enum_cls

    Raises:
        InvalidArgumentError: If value is not a member of enum_cls
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise InvalidArgumentError(
            f"Unrecognized {argument}: {value!r}",
            details={
                "argument": argument,
                "value": repr(value),
                "allowed": [member.value for member in enum_cls]
            }
        )


class WorkflowEngine:
    """
    Job order status state machine

    Given current status C, requested status R and role P:
    1. If R is not reachable from C in the transition table -> Denied(UnknownTransition)
    2. If P may not set R -> Denied(RoleNotPermitted)
    3. Otherwise -> Allowed(R)

    The table check runs first, so a move the table forbids is always reported
    as UnknownTransition even for roles allowed to set R. No role bypasses the
    table. The engine holds no mutable state.
    """

    def __init__(self, definition: WorkflowDefinition = DEFAULT_WORKFLOW):
        self.definition = definition

    def evaluate(
        self,
        current_status: StatusLike,
        requested_status: StatusLike,
        actor_role: RoleLike
    ) -> TransitionResult:
        """
        Decide whether actor_role may move a job order from current_status
        to requested_status

        Returns:
            TransitionResult (Allowed or Denied); denials are never raised

        Raises:
            InvalidArgumentError: If any argument is not a known enum value
        """
        current = coerce_enum(JobOrderStatus, current_status, "current_status")
        requested = coerce_enum(JobOrderStatus, requested_status, "requested_status")
        role = coerce_enum(Role, actor_role, "actor_role")

        if requested not in self.definition.transitions.get(current, frozenset()):
            result = TransitionResult.deny(DenialReason.UNKNOWN_TRANSITION)
        elif requested not in self.definition.role_permissions.get(role, frozenset()):
            result = TransitionResult.deny(DenialReason.ROLE_NOT_PERMITTED)
        else:
            result = TransitionResult.allow(requested)

        logger.debug(
            f"Evaluated transition {current.value} -> {requested.value} for {role.value}: "
            f"{result.message}",
            extra={"from_status": current.value, "to_status": requested.value}
        )
        return result

    def evaluate_request(self, request: TransitionRequest) -> TransitionResult:
        """Evaluate a TransitionRequest"""
        return self.evaluate(
            request.current_status,
            request.requested_status,
            request.actor_role
        )

    def allowed_transitions(self, status: StatusLike) -> List[JobOrderStatus]:
        """Statuses reachable from status in one step"""
        current = coerce_enum(JobOrderStatus, status, "status")
        return ordered(self.definition.transitions.get(current, ()))

    def permitted_statuses(self, role: RoleLike) -> List[JobOrderStatus]:
        """Statuses role may set a job order to"""
        actor_role = coerce_enum(Role, role, "role")
        return ordered(self.definition.role_permissions.get(actor_role, ()))

    def available_transitions(self, status: StatusLike, role: RoleLike) -> List[JobOrderStatus]:
        """Statuses role may actually move a job order in status to"""
        permitted = set(self.permitted_statuses(role))
        return [s for s in self.allowed_transitions(status) if s in permitted]

    def is_terminal(self, status: StatusLike) -> bool:
        """True when status has no outgoing edges"""
        return not self.allowed_transitions(status)
