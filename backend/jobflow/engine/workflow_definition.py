"""Workflow Definition - Immutable job order transition and role tables"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping

from ..domain.enums import JobOrderStatus, Role
from ..domain.errors import ValidationError


S = JobOrderStatus


def _freeze(table: Dict) -> Mapping:
    return MappingProxyType({key: frozenset(values) for key, values in table.items()})


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Static job order state machine

    - transitions: source status -> statuses reachable in one step
    - role_permissions: role -> statuses that role may set (any source)
    - initial_status: status of newly created job orders

    Built once and shared; nothing mutates it after construction.
    """

    transitions: Mapping[JobOrderStatus, FrozenSet[JobOrderStatus]]
    role_permissions: Mapping[Role, FrozenSet[JobOrderStatus]]
    initial_status: JobOrderStatus = S.DRAFT
    name: str = field(default="job_order_lifecycle")

    @classmethod
    def build(
        cls,
        transitions: Mapping[JobOrderStatus, Iterable[JobOrderStatus]],
        role_permissions: Mapping[Role, Iterable[JobOrderStatus]],
        initial_status: JobOrderStatus = S.DRAFT,
        name: str = "job_order_lifecycle",
    ) -> "WorkflowDefinition":
        """Freeze plain tables into a validated definition"""
        definition = cls(
            transitions=_freeze(dict(transitions)),
            role_permissions=_freeze(dict(role_permissions)),
            initial_status=initial_status,
            name=name,
        )
        definition.validate()
        return definition

    def validate(self) -> None:
        """
        Check the tables are closed over the enumerations

        Raises:
            ValidationError: If a status or role has no row, or a row names
                something outside JobOrderStatus
        """
        errors: List[str] = []

        missing_states = [s.value for s in JobOrderStatus if s not in self.transitions]
        if missing_states:
            errors.append(f"statuses without a transition row: {', '.join(missing_states)}")

        missing_roles = [r.value for r in Role if r not in self.role_permissions]
        if missing_roles:
            errors.append(f"roles without a permission row: {', '.join(missing_roles)}")

        for source, targets in self.transitions.items():
            for target in targets:
                if not isinstance(target, JobOrderStatus):
                    errors.append(f"{source}: unknown target {target!r}")

        for role, targets in self.role_permissions.items():
            for target in targets:
                if not isinstance(target, JobOrderStatus):
                    errors.append(f"{role}: unknown permitted status {target!r}")

        if errors:
            raise ValidationError(
                f"Invalid workflow definition '{self.name}'",
                details={"errors": errors}
            )

    def terminal_statuses(self) -> List[JobOrderStatus]:
        """Statuses with no outgoing edges"""
        return [s for s in JobOrderStatus if not self.transitions.get(s)]

    def to_dict(self) -> Dict[str, object]:
        """Serializable view, ordered by lifecycle"""
        return {
            "name": self.name,
            "initial_status": self.initial_status.value,
            "transitions": {
                source.value: ordered_values(self.transitions.get(source, ()))
                for source in JobOrderStatus
            },
            "role_permissions": {
                role.value: ordered_values(self.role_permissions.get(role, ()))
                for role in Role
            },
            "terminal_statuses": [s.value for s in self.terminal_statuses()],
        }


def ordered(statuses: Iterable[JobOrderStatus]) -> List[JobOrderStatus]:
    """Sort statuses into lifecycle order"""
    members = set(statuses)
    return [s for s in JobOrderStatus if s in members]


def ordered_values(statuses: Iterable[JobOrderStatus]) -> List[str]:
    return [s.value for s in ordered(statuses)]


DEFAULT_WORKFLOW = WorkflowDefinition.build(
    transitions={
        S.DRAFT: {S.ESTIMATED},
        S.ESTIMATED: {S.APPROVED, S.DRAFT},  # back to DRAFT for revisions
        S.APPROVED: {S.IN_PROGRESS},
        S.IN_PROGRESS: {S.QUALITY_CHECK},
        S.QUALITY_CHECK: {S.BILLED, S.IN_PROGRESS},  # back if issues found
        S.BILLED: {S.RELEASED},
        S.RELEASED: set(),
    },
    role_permissions={
        Role.ADMIN: set(JobOrderStatus),
        Role.BRANCH_MANAGER: {S.APPROVED, S.QUALITY_CHECK, S.BILLED, S.RELEASED},
        Role.SERVICE_ADVISOR: {S.DRAFT, S.ESTIMATED},
        Role.MECHANIC: {S.IN_PROGRESS, S.QUALITY_CHECK},
        Role.INVENTORY_OFFICER: {S.BILLED},
        Role.EXECUTIVE: set(),
    },
)
