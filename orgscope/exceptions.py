"""Custom exception hierarchy for orgscope."""

from enum import Enum
from typing import Optional, Dict, Any, Iterable


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Not found
    USER_NOT_FOUND = "USER_NOT_FOUND"
    STRUCTURE_NOT_FOUND = "STRUCTURE_NOT_FOUND"
    PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
    PERMISSION_NOT_FOUND = "PERMISSION_NOT_FOUND"

    # Conflicts
    DUPLICATE_NAME = "DUPLICATE_NAME"
    PATH_CONFLICT = "PATH_CONFLICT"
    ALREADY_GRANTED = "ALREADY_GRANTED"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"

    # Hierarchy rules
    MAX_DEPTH_EXCEEDED = "MAX_DEPTH_EXCEEDED"

    # Scope
    STRUCTURE_NOT_ACCESSIBLE = "STRUCTURE_NOT_ACCESSIBLE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Rate limiting
    RATE_LIMITED = "RATE_LIMITED"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class OrgScopeError(Exception):
    """
    Base exception for all orgscope errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


# -- Validation -------------------------------------------------------------

class ValidationError(OrgScopeError):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


# -- Not found --------------------------------------------------------------

class UserNotFoundError(OrgScopeError):
    """User not found in database."""

    def __init__(self, user_id: str):
        super().__init__(
            f"No user found with ID: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id}
        )


class StructureNotFoundError(OrgScopeError):
    """One or more organisational structures do not exist."""

    def __init__(self, structure_id: str, missing_ids: Optional[Iterable[str]] = None):
        missing = list(missing_ids) if missing_ids is not None else [structure_id]
        if len(missing) > 1:
            message = f"No organisational structures found with IDs: {', '.join(missing)}"
        else:
            message = f"No organisational structure found with ID: {structure_id}"
        super().__init__(
            message,
            ErrorCode.STRUCTURE_NOT_FOUND,
            status_code=404,
            details={"structure_id": structure_id, "missing_ids": missing}
        )


class ParentNotFoundError(OrgScopeError):
    """Parent structure referenced by a create request does not exist."""

    def __init__(self, parent_id: str):
        super().__init__(
            f"No organisational structure found with ID: {parent_id}",
            ErrorCode.PARENT_NOT_FOUND,
            status_code=404,
            details={"parent_id": parent_id}
        )


class PermissionNotFoundError(OrgScopeError):
    """No grant matches both the permission id and the owning user."""

    def __init__(self, permission_id: str, user_id: str):
        super().__init__(
            f"No permission found with ID: {permission_id} for user: {user_id}",
            ErrorCode.PERMISSION_NOT_FOUND,
            status_code=404,
            details={"permission_id": permission_id, "user_id": user_id}
        )


# -- Conflicts --------------------------------------------------------------

class DuplicateNameError(OrgScopeError):
    """A sibling structure with the same name already exists."""

    def __init__(self, name: str, parent_name: Optional[str] = None):
        context = f"under {parent_name}" if parent_name else "at root level"
        super().__init__(
            f'A structure named "{name}" already exists {context}',
            ErrorCode.DUPLICATE_NAME,
            status_code=409,
            details={"name": name, "parent": parent_name}
        )


class PathConflictError(OrgScopeError):
    """The derived materialised path is already taken."""

    def __init__(self, path: str):
        super().__init__(
            f'Path "{path}" already exists. Please use a different name.',
            ErrorCode.PATH_CONFLICT,
            status_code=409,
            details={"path": path}
        )


class AlreadyGrantedError(OrgScopeError):
    """The user already holds a grant on this structure."""

    def __init__(self, user_name: str, structure_name: str, user_id: str, structure_id: str):
        super().__init__(
            f"User {user_name} already has access to {structure_name}",
            ErrorCode.ALREADY_GRANTED,
            status_code=409,
            details={"user_id": user_id, "structure_id": structure_id}
        )


class EmailAlreadyExistsError(OrgScopeError):
    """Another user is registered with this email address."""

    def __init__(self, email: str):
        super().__init__(
            f"A user with email {email} already exists",
            ErrorCode.EMAIL_ALREADY_EXISTS,
            status_code=409,
            details={"email": email}
        )


# -- Hierarchy rules --------------------------------------------------------

class MaxDepthExceededError(OrgScopeError):
    """Creating the structure would nest it deeper than allowed."""

    def __init__(self, level: int, max_depth: int):
        super().__init__(
            f"Cannot create structures deeper than {max_depth} levels",
            ErrorCode.MAX_DEPTH_EXCEEDED,
            status_code=400,
            details={"level": level, "max_depth": max_depth}
        )


# -- Scope ------------------------------------------------------------------

class StructureNotAccessibleError(OrgScopeError):
    """Structure is outside the caller's accessible scope.

    Deliberately carries no details: the response must not reveal whether
    the structure exists.
    """

    def __init__(self):
        super().__init__(
            "Structure is not accessible",
            ErrorCode.STRUCTURE_NOT_ACCESSIBLE,
            status_code=403,
        )
