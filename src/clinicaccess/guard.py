"""Data-layer enforcement of access decisions.

The access context provider answers ``can()`` for rendering. The helpers
here apply the same decisions in front of mutations, so a hidden button
and a blocked service call can never disagree.

Provides:
- ``check_access``: standalone check returning a denial reason.
- ``require_access``: raise PermissionDeniedError on denial.
- ``requires``: decorator for async service methods.
- ``ensure_can_administer``: gate for grant and role administration.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from .exceptions import PermissionDeniedError
from .permissions.constants import Action, SystemRole, is_privileged
from .permissions.models import Principal

logger = logging.getLogger(__name__)

_R = TypeVar("_R")


class AccessChecker(Protocol):
    """Anything exposing the consumer contract's synchronous ``can()``."""

    def can(self, module: str, action: Action | str) -> bool: ...


def check_access(checker: AccessChecker, module: str, action: Action | str) -> str | None:
    """Check a module/action against the current decisions.

    Returns:
        None if allowed, or a human-readable denial reason.
    """
    parsed = Action.parse(action)
    if parsed is None:
        return f"unknown action: {action}"
    if not checker.can(module, parsed):
        return f"missing permission: {module}:{parsed.value}"
    return None


def require_access(checker: AccessChecker, module: str, action: Action | str) -> None:
    """Raise if the current principal may not perform ``action`` on ``module``.

    Raises:
        PermissionDeniedError: With ``module`` and ``action`` in ``details``.
    """
    reason = check_access(checker, module, action)
    if reason is not None:
        logger.warning("Access denied: %s", reason)
        raise PermissionDeniedError(reason, module=module, action=str(getattr(action, "value", action)))


def requires(
    module: str, action: Action | str
) -> Callable[[Callable[..., Awaitable[_R]]], Callable[..., Awaitable[_R]]]:
    """Decorator gating an async method on ``self.access``.

    Usage::

        class PatientService:
            def __init__(self, access: AccessContextProvider) -> None:
                self.access = access

            @requires(Module.PATIENTS, Action.DELETE)
            async def delete_patient(self, patient_id: str) -> None:
                ...
    """

    def decorator(method: Callable[..., Awaitable[_R]]) -> Callable[..., Awaitable[_R]]:
        @functools.wraps(method)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> _R:
            require_access(self.access, module, action)
            return await method(self, *args, **kwargs)

        return wrapper

    return decorator


def ensure_can_administer(actor: Principal | None, tenant_id: str) -> None:
    """Allow grant and role administration only to admin-tier principals.

    ``admin`` may administer its own tenant; ``superadmin`` may administer
    any tenant.

    Raises:
        PermissionDeniedError: If ``actor`` is missing, not admin-tier, or
            belongs to another tenant.
    """
    if actor is None or not is_privileged(actor.role):
        raise PermissionDeniedError(
            "Only administrators can change roles and permissions",
            tenant_id=tenant_id,
            user_id=getattr(actor, "user_id", None),
        )
    if actor.role != SystemRole.SUPERADMIN and actor.tenant_id != tenant_id:
        raise PermissionDeniedError(
            f"tenant access denied: {tenant_id}",
            tenant_id=tenant_id,
            user_id=actor.user_id,
        )


__all__ = [
    "AccessChecker",
    "check_access",
    "ensure_can_administer",
    "require_access",
    "requires",
]
