"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"


class RoleNotPermittedError(PermissionDeniedError):
    """Role may not move a job order into the requested status"""
    error_code = "ROLE_NOT_PERMITTED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidArgumentError(ValidationError):
    """Value outside a closed enumeration (contract violation, not a decision)"""
    error_code = "INVALID_ARGUMENT"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class JobOrderNotFoundError(NotFoundError):
    """Job order not found"""
    error_code = "JOB_ORDER_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class InvalidTransitionError(ConflictError):
    """No edge from the current status to the requested one"""
    error_code = "INVALID_TRANSITION"
    http_status = 400


# Storage Errors
class StorageError(DomainError):
    """Backing store unavailable or rejected the operation"""
    error_code = "STORAGE_ERROR"
    http_status = 503


class AuditStorageError(StorageError):
    """Audit log could not be read"""
    error_code = "AUDIT_STORAGE_ERROR"
