"""Script to validate and print the job order workflow definition"""
import sys
from collections import deque
from typing import List, Tuple

sys.path.insert(0, ".")

from jobflow.domain.enums import JobOrderStatus, Role
from jobflow.domain.errors import ValidationError
from jobflow.engine.workflow_definition import DEFAULT_WORKFLOW, WorkflowDefinition
from jobflow.engine.workflow_engine import WorkflowEngine


def reachable_statuses(definition: WorkflowDefinition) -> List[JobOrderStatus]:
    """Statuses reachable from the initial status (breadth-first)"""
    seen = {definition.initial_status}
    queue = deque([definition.initial_status])
    while queue:
        status = queue.popleft()
        for target in definition.transitions.get(status, ()):
            if target not in seen:
                seen.add(target)
                queue.append(target)
    return [s for s in JobOrderStatus if s in seen]


def analyze_workflow(definition: WorkflowDefinition) -> Tuple[List[str], List[str]]:
    """
    Structural checks on a workflow definition

    Returns:
        (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    try:
        definition.validate()
    except ValidationError as e:
        errors.extend(e.details.get("errors", [e.message]))
        return errors, warnings

    if not definition.terminal_statuses():
        errors.append("No terminal status defined")

    reachable = set(reachable_statuses(definition))
    for status in JobOrderStatus:
        if status not in reachable:
            warnings.append(f"{status.value} is unreachable from {definition.initial_status.value}")

    # Edges only admin can take
    for source, targets in definition.transitions.items():
        for target in targets:
            setters = [
                role for role, permitted in definition.role_permissions.items()
                if target in permitted and role != Role.ADMIN
            ]
            if not setters:
                warnings.append(f"{source.value} -> {target.value} can only be taken by admin")

    return errors, warnings


def print_workflow(definition: WorkflowDefinition) -> None:
    engine = WorkflowEngine(definition)

    print("=" * 60)
    print(f"WORKFLOW: {definition.name}")
    print("=" * 60)
    print(f"Initial status: {definition.initial_status.value}")
    print(f"Terminal statuses: {', '.join(s.value for s in definition.terminal_statuses())}")

    print("\nTRANSITIONS:")
    for status in JobOrderStatus:
        targets = engine.allowed_transitions(status)
        print(f"   {status.value:<14} -> {', '.join(t.value for t in targets) or '(none)'}")

    print("\nROLE PERMISSIONS:")
    for role in Role:
        permitted = engine.permitted_statuses(role)
        print(f"   {role.value:<18} {', '.join(s.value for s in permitted) or '(read-only)'}")

    print("\nAVAILABLE MOVES PER ROLE:")
    for role in Role:
        moves = [
            f"{status.value}->{target.value}"
            for status in JobOrderStatus
            for target in engine.available_transitions(status, role)
        ]
        print(f"   {role.value:<18} {', '.join(moves) or '(none)'}")


def main() -> int:
    print_workflow(DEFAULT_WORKFLOW)

    errors, warnings = analyze_workflow(DEFAULT_WORKFLOW)

    print("\n" + "=" * 60)
    print("VALIDATION RESULTS")
    print("=" * 60)
    for warning in warnings:
        print(f"WARNING: {warning}")
    for error in errors:
        print(f"ERROR: {error}")
    if not errors:
        print("Workflow definition is valid")
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
