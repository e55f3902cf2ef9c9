"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class JobOrderStatus(str, Enum):
    """Job order lifecycle states, declared in lifecycle order"""
    DRAFT = "DRAFT"
    ESTIMATED = "ESTIMATED"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    QUALITY_CHECK = "QUALITY_CHECK"
    BILLED = "BILLED"
    RELEASED = "RELEASED"


class Role(str, Enum):
    """Access-level category of an actor"""
    ADMIN = "admin"
    BRANCH_MANAGER = "branch_manager"
    SERVICE_ADVISOR = "service_advisor"
    MECHANIC = "mechanic"
    INVENTORY_OFFICER = "inventory_officer"
    EXECUTIVE = "executive"  # Read-only


class DenialReason(str, Enum):
    """Why the workflow refused a transition"""
    UNKNOWN_TRANSITION = "UnknownTransition"  # No edge from current to requested
    ROLE_NOT_PERMITTED = "RoleNotPermitted"  # Edge exists, role may not set target


class AuditAction(str, Enum):
    """Audited action types"""
    LOGIN = "LOGIN"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    IMPORT = "IMPORT"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    # Job order actions
    STATUS_CHANGE = "STATUS_CHANGE"
    # Written by the mechanic assignment, estimate and parts endpoints of the
    # workshop app; accepted here so those stored events stay queryable
    ASSIGN_MECHANIC = "ASSIGN_MECHANIC"
    UNASSIGN_MECHANIC = "UNASSIGN_MECHANIC"
    ADD_ESTIMATE = "ADD_ESTIMATE"
    LOG_PARTS = "LOG_PARTS"


class AuditEntityType(str, Enum):
    """Kinds of entity an audit event can refer to"""
    AUTHENTICATION = "AUTHENTICATION"
    USER = "USER"
    BRANCH = "BRANCH"
    JOB_ORDER = "JOB_ORDER"
    INVENTORY = "INVENTORY"
    CUSTOMER = "CUSTOMER"
    REPORT = "REPORT"
    SYSTEM_CONFIG = "SYSTEM_CONFIG"


class AuditStatus(str, Enum):
    """Outcome of an audited action"""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
