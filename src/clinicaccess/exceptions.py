"""Unified exception hierarchy for clinic access control.

All errors raised by this package inherit from ClinicAccessError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for mapping codes back to exception types

Propagation rules:
    - Read failures (grants, roles, profiles) are raised by the store layer and
      degraded to a deny-everything state by the identity resolver and the
      access context provider.
    - Write failures (grant upsert, role creation, role assignment) always
      propagate to the caller so optimistic UI state can be rolled back.

Usage:
    from clinicaccess.exceptions import (
        ClinicAccessError,
        GrantWriteError,
        SlugCollisionError,
    )
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "ClinicAccessError",
    "ConfigurationError",
    "ValidationError",
    "UnknownModuleError",
    "RoleValidationError",
    "StoreError",
    "SessionFetchError",
    "ProfileFetchError",
    "ProfileWriteError",
    "GrantFetchError",
    "GrantWriteError",
    "RoleFetchError",
    "RoleWriteError",
    "SlugCollisionError",
    "RoleInUseError",
    "PermissionDeniedError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
]


# ---- Exception Hierarchy ----------------------------------------------------


class ClinicAccessError(Exception):
    """Base exception for the access-control package.

    Attributes:
        code: Stable error code string (e.g. "PERMISSION_DENIED").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(ClinicAccessError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class ValidationError(ClinicAccessError):
    """Caller supplied an argument outside the accepted domain."""

    code: str = "VALIDATION_ERROR"


class UnknownModuleError(ValidationError):
    """Module name is not part of the application catalog."""

    code: str = "UNKNOWN_MODULE"


class RoleValidationError(ValidationError):
    """Role name or slug is not usable."""

    code: str = "ROLE_VALIDATION_ERROR"


class StoreError(ClinicAccessError):
    """Backend data store failure."""

    code: str = "STORE_ERROR"


class SessionFetchError(StoreError):
    """The auth backend could not report the current session."""

    code: str = "SESSION_FETCH_ERROR"


class ProfileFetchError(StoreError):
    """Profile of an authenticated principal could not be loaded."""

    code: str = "PROFILE_FETCH_ERROR"


class ProfileWriteError(StoreError):
    """A team member could not be invited."""

    code: str = "PROFILE_WRITE_ERROR"


class GrantFetchError(StoreError):
    """Permission grants for a tenant could not be loaded."""

    code: str = "GRANT_FETCH_ERROR"


class GrantWriteError(StoreError):
    """A permission grant could not be written."""

    code: str = "GRANT_WRITE_ERROR"


class RoleFetchError(StoreError):
    """Custom roles for a tenant could not be loaded."""

    code: str = "ROLE_FETCH_ERROR"


class RoleWriteError(StoreError):
    """A role could not be created, deleted or assigned."""

    code: str = "ROLE_WRITE_ERROR"


class SlugCollisionError(RoleWriteError):
    """A role with the same slug already exists in the tenant."""

    code: str = "SLUG_COLLISION"


class RoleInUseError(RoleWriteError):
    """Role deletion rejected because grants still reference the role."""

    code: str = "ROLE_IN_USE"


class PermissionDeniedError(ClinicAccessError):
    """The acting principal is not allowed to perform the operation."""

    code: str = "PERMISSION_DENIED"


# ---- Error Registry ---------------------------------------------------------

_E = TypeVar("_E", bound=type[ClinicAccessError])


class ErrorRegistry:
    """Registry for mapping stable error codes to exception types."""

    def __init__(self) -> None:
        self._errors: dict[str, type[ClinicAccessError]] = {}

    def register(self, code: str, error_cls: type[ClinicAccessError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[ClinicAccessError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[ClinicAccessError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("BILLING_LOCKED")
        class BillingLockedError(ClinicAccessError):
            code = "BILLING_LOCKED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", ClinicAccessError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("VALIDATION_ERROR", ValidationError)
error_registry.register("UNKNOWN_MODULE", UnknownModuleError)
error_registry.register("ROLE_VALIDATION_ERROR", RoleValidationError)
error_registry.register("STORE_ERROR", StoreError)
error_registry.register("SESSION_FETCH_ERROR", SessionFetchError)
error_registry.register("PROFILE_FETCH_ERROR", ProfileFetchError)
error_registry.register("PROFILE_WRITE_ERROR", ProfileWriteError)
error_registry.register("GRANT_FETCH_ERROR", GrantFetchError)
error_registry.register("GRANT_WRITE_ERROR", GrantWriteError)
error_registry.register("ROLE_FETCH_ERROR", RoleFetchError)
error_registry.register("ROLE_WRITE_ERROR", RoleWriteError)
error_registry.register("SLUG_COLLISION", SlugCollisionError)
error_registry.register("ROLE_IN_USE", RoleInUseError)
error_registry.register("PERMISSION_DENIED", PermissionDeniedError)
