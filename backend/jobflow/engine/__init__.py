"""Workflow Engine - Job order state machine and audit trail"""
from .workflow_definition import WorkflowDefinition, DEFAULT_WORKFLOW
from .workflow_engine import WorkflowEngine
from .audit_recorder import AuditRecorder

__all__ = [
    "WorkflowDefinition",
    "DEFAULT_WORKFLOW",
    "WorkflowEngine",
    "AuditRecorder",
]
