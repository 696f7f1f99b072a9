"""
Domain errors raised by kernel services.

The API layer maps these to HTTP responses; repositories never raise them for
storage failures, which propagate as SQLAlchemy errors.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for business rule violations."""

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """A field failed validation."""

    code = "VALIDATION_FAILED"

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}", {"field": field})
        self.field = field


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class ConflictError(DomainError):
    code = "CONFLICT"


class RoleNotFoundError(NotFoundError):
    code = "ROLE_NOT_FOUND"

    def __init__(self, role_id: Any):
        super().__init__("role not found", {"role_id": str(role_id)})


class PermissionNotFoundError(NotFoundError):
    code = "PERMISSION_NOT_FOUND"

    def __init__(self, permission: Any):
        super().__init__(
            f"permission {permission} does not exist",
            {"permission": str(permission)},
        )


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: Any):
        super().__init__("user not found", {"user_id": str(user_id)})


class RoleAlreadyExistsError(ConflictError):
    code = "ROLE_ALREADY_EXISTS"

    def __init__(self, name: str):
        super().__init__("role with this name already exists", {"name": name})


class RoleInUseError(ConflictError):
    code = "ROLE_IN_USE"

    def __init__(self, role_id: Any, user_count: int):
        super().__init__(
            "cannot delete role: it is assigned to users",
            {"role_id": str(role_id), "user_count": user_count},
        )


class UserAlreadyHasRoleError(ConflictError):
    code = "USER_ALREADY_HAS_ROLE"

    def __init__(self, user_id: Any, role_id: Any):
        super().__init__(
            "user already has this role",
            {"user_id": str(user_id), "role_id": str(role_id)},
        )


class UserDoesNotHaveRoleError(NotFoundError):
    code = "USER_DOES_NOT_HAVE_ROLE"

    def __init__(self, user_id: Any, role_id: Any):
        super().__init__(
            "user does not have this role",
            {"user_id": str(user_id), "role_id": str(role_id)},
        )
