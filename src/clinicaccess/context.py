"""Access context provider: the per-session cache of access decisions.

State machine::

    UNINITIALIZED ──set_principal──▶ LOADING ──fetch ok──▶ LOADED
          ▲                            │  ▲                 │  ▲
          │                   fetch err│  │identity change  │  │fetch ok
          │                            ▼  │                 ▼  │
       teardown                      FAILED ◀──fetch err── REFRESHING
                                                 (refresh_permissions)

- LOADING and FAILED fail closed: ``can()`` is False for everything.
- REFRESHING keeps answering from the previous grant set until the new one
  commits, so a soft refresh never flashes "Access Denied".
- A change of (tenant, role) is a hard reset: old grants are dropped at once.
- Admin-tier principals go straight to LOADED without a fetch.
- A fetch result is committed only if the principal's (tenant, role) still
  matches the one it was issued for; anything else is discarded.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .exceptions import ClinicAccessError
from .permissions.constants import Action, is_privileged
from .permissions.engine import decide, module_permissions
from .permissions.models import GrantSet, ModulePermission, PermissionGrant, Principal
from .store import PermissionStoreAccessor

logger = logging.getLogger(__name__)

AccessListener = Callable[["AccessContextProvider"], None]


class AccessState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    LOADED = "loaded"
    REFRESHING = "refreshing"
    FAILED = "failed"


# States in which the current grant set is trusted for decisions
_DECIDABLE = frozenset({AccessState.LOADED, AccessState.REFRESHING})


class AccessContextProvider:
    """Process-wide (per active session) view of the principal's grants.

    Consumers call ``can()`` synchronously to decide render/enable state and
    ``await refresh_permissions()`` after mutating grants.

    Args:
        accessor: Grant store accessor, injectable so tests can substitute a fake.

    Example::

        provider = AccessContextProvider(PermissionStoreAccessor(store))
        await provider.set_principal(nurse)
        provider.can("patients", "view")   # False until a grant exists
        await provider.refresh_permissions()
    """

    def __init__(self, accessor: PermissionStoreAccessor) -> None:
        self._accessor = accessor
        self._state = AccessState.UNINITIALIZED
        self._principal: Principal | None = None
        self._grants = GrantSet()
        self._error: ClinicAccessError | None = None
        self._listeners: list[AccessListener] = []

    # ── Consumer contract ───────────────────────────────

    def can(self, module: str, action: Action | str) -> bool:
        """Return the decision for ``module``/``action``. Never raises, never awaits."""
        if self._state not in _DECIDABLE:
            return False
        return decide(self._principal, module, action, self._grants)

    def module_permissions(self, module: str) -> ModulePermission:
        """All four capabilities on ``module`` (denied while not decidable)."""
        if self._state not in _DECIDABLE:
            return ModulePermission.denied(module)
        return module_permissions(self._principal, module, self._grants)

    @property
    def loading(self) -> bool:
        """True while a fetch is in flight (hard load or soft refresh)."""
        return self._state in (AccessState.LOADING, AccessState.REFRESHING)

    @property
    def refreshing(self) -> bool:
        """True during a soft refresh, when decisions come from the previous grant set."""
        return self._state is AccessState.REFRESHING

    async def refresh_permissions(self) -> None:
        """Reload grants for the current principal.

        From LOADED this is a soft refresh; from FAILED or LOADING it is a
        fresh load. A fetch failure moves to FAILED and is not raised.
        """
        if self._principal is None:
            return
        await self._load(hard=self._state not in _DECIDABLE)

    # ── State ───────────────────────────────────────────

    @property
    def state(self) -> AccessState:
        return self._state

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def error(self) -> ClinicAccessError | None:
        """The last fetch error; distinguishes FAILED from LOADED-with-no-grants."""
        return self._error

    @property
    def permissions(self) -> list[PermissionGrant]:
        return list(self._grants) if self._state in _DECIDABLE else []

    def subscribe(self, listener: AccessListener) -> Callable[[], None]:
        """Register ``listener``, called after every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Lifecycle ───────────────────────────────────────

    async def set_principal(self, principal: Principal | None) -> None:
        """Adopt a newly resolved principal.

        None tears the provider down. The same (tenant, role) keeps the
        loaded grants; a different one triggers a hard reset.
        """
        if principal is None:
            self.teardown()
            return

        previous = self._principal
        self._principal = principal
        if (
            previous is not None
            and previous.identity_key == principal.identity_key
            and self._state in _DECIDABLE
        ):
            self._notify()
            return

        await self._load(hard=True)

    def teardown(self) -> None:
        """Reset to UNINITIALIZED (sign-out)."""
        self._principal = None
        self._grants = GrantSet()
        self._error = None
        self._state = AccessState.UNINITIALIZED
        self._notify()

    # ── Loading ─────────────────────────────────────────

    async def _load(self, *, hard: bool) -> None:
        principal = self._principal
        if principal is None:
            return
        key = principal.identity_key
        extra = {"tenant_id": principal.tenant_id, "user_id": principal.user_id}

        if is_privileged(principal.role):
            self._commit(GrantSet(principal.tenant_id))
            return

        if not principal.is_complete:
            logger.debug("Principal has no tenant or role, denying everything", extra=extra)
            self._commit(GrantSet(principal.tenant_id))
            return

        if hard:
            self._grants = GrantSet()
            self._state = AccessState.LOADING
        else:
            self._state = AccessState.REFRESHING
        self._notify()

        try:
            grant_set = await self._accessor.get_grant_set(principal.tenant_id)
        except ClinicAccessError as e:
            if self._is_stale(key):
                logger.debug("Discarding failed grant fetch for stale identity %s", key, extra=extra)
                return
            logger.error("Failed to load permissions: %s", e.message, extra=extra)
            self._grants = GrantSet()
            self._error = e
            self._state = AccessState.FAILED
            self._notify()
            return

        if self._is_stale(key):
            logger.debug("Discarding grant fetch for stale identity %s", key, extra=extra)
            return
        self._commit(grant_set)

    def _is_stale(self, key: tuple[str | None, str | None]) -> bool:
        return self._principal is None or self._principal.identity_key != key

    def _commit(self, grants: GrantSet) -> None:
        self._grants = grants
        self._error = None
        self._state = AccessState.LOADED
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Access listener %r failed", listener)


__all__ = ["AccessContextProvider", "AccessListener", "AccessState"]
