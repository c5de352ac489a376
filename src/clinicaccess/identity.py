"""Identity resolution: who is acting now, and for which tenant.

IdentityResolver combines the auth backend's session with the user's
profile row. Consumers only ever see a complete principal (session and
profile both loaded); while the profile is in flight the resolver reports
``IdentityState.LOADING`` instead of a partial principal. When the auth
backend itself cannot be reached the resolver settles in
``IdentityState.FAILED``, which grants nothing.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .exceptions import SessionFetchError
from .permissions.models import Principal, Session
from .stores.interfaces import ProfileStore, SessionSource

logger = logging.getLogger(__name__)

PrincipalListener = Callable[[Optional[Principal]], Awaitable[None]]


class IdentityState(str, Enum):
    UNRESOLVED = "unresolved"  # never resolved yet
    LOADING = "loading"  # session and/or profile fetch in flight
    ANONYMOUS = "anonymous"  # no session
    RESOLVED = "resolved"  # principal available (possibly without tenant/role)
    FAILED = "failed"  # auth backend unreachable; treated as signed out


class IdentityResolver:
    """Resolves the current principal and republishes changes.

    Args:
        sessions: Auth backend.
        profiles: Profile rows (tenant affiliation, role).

    Usage::

        resolver = IdentityResolver(sessions, profiles)
        resolver.subscribe(on_principal)
        await resolver.start()      # resolves once, then follows sign-in/out
        ...
        resolver.stop()
    """

    def __init__(self, sessions: SessionSource, profiles: ProfileStore) -> None:
        self._sessions = sessions
        self._profiles = profiles
        self._state = IdentityState.UNRESOLVED
        self._session: Session | None = None
        self._principal: Principal | None = None
        self._listeners: list[PrincipalListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._epoch = 0
        self._error: SessionFetchError | None = None

    # ── Read-only state ─────────────────────────────────

    @property
    def state(self) -> IdentityState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state in (IdentityState.UNRESOLVED, IdentityState.LOADING)

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def principal(self) -> Principal | None:
        """The resolved principal; None while loading or when anonymous."""
        return self._principal if self._state is IdentityState.RESOLVED else None

    @property
    def error(self) -> SessionFetchError | None:
        """The last session lookup error; set only in FAILED."""
        return self._error

    # ── Lifecycle ───────────────────────────────────────

    async def start(self) -> Principal | None:
        """Subscribe to session changes and resolve the current principal."""
        if self._unsubscribe is None:
            self._unsubscribe = self._sessions.subscribe(self._on_session_change)
        return await self.resolve_current_principal()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def subscribe(self, listener: PrincipalListener) -> Callable[[], None]:
        """Register ``listener`` for committed principal changes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Resolution ──────────────────────────────────────

    async def resolve_current_principal(self) -> Principal | None:
        """Read the active session and load the matching profile.

        An unreachable auth backend is logged and leaves the resolver in
        ``IdentityState.FAILED`` with no principal; it is never raised.

        Returns:
            The principal, or None when there is no session.
        """
        epoch = self._begin()
        try:
            session = await self._sessions.get_current_session()
        except Exception as e:
            logger.error("Session lookup failed: %s", e)
            error = SessionFetchError(f"Failed to read session: {e}")
            error.__cause__ = e
            return await self._resolve(epoch, None, error=error)
        return await self._resolve(epoch, session)

    async def refresh_profile(self) -> Principal | None:
        """Re-fetch the profile of the current session (e.g. after a role change)."""
        if self._session is None:
            return None
        epoch = self._begin()
        return await self._resolve(epoch, self._session)

    async def _on_session_change(self, session: Session | None) -> None:
        epoch = self._begin()
        await self._resolve(epoch, session)

    def _begin(self) -> int:
        self._epoch += 1
        self._state = IdentityState.LOADING
        return self._epoch

    async def _resolve(
        self,
        epoch: int,
        session: Session | None,
        *,
        error: SessionFetchError | None = None,
    ) -> Principal | None:
        if session is None:
            principal = None
        else:
            principal = await self._load_principal(session)

        if epoch != self._epoch:
            # A newer resolution started while this one was in flight
            logger.debug("Discarding stale identity resolution (epoch %d < %d)", epoch, self._epoch)
            return self.principal

        previous = self._principal
        self._session = session
        self._principal = principal
        self._error = error
        if error is not None:
            self._state = IdentityState.FAILED
        elif session is not None:
            self._state = IdentityState.RESOLVED
        else:
            self._state = IdentityState.ANONYMOUS

        if principal != previous or principal is None:
            await self._publish(principal)
        return principal

    async def _publish(self, principal: Principal | None) -> None:
        for listener in list(self._listeners):
            try:
                await listener(principal)
            except Exception:
                logger.exception("Principal listener %r failed", listener)

    async def _load_principal(self, session: Session) -> Principal:
        """Fetch the profile; failures yield a principal without tenant or role."""
        try:
            profile = await self._profiles.get_profile(session.user_id)
        except Exception as e:
            logger.error("Profile fetch error for user '%s': %s", session.user_id, e, extra={"user_id": session.user_id})
            return Principal(user_id=session.user_id, email=session.email)

        if profile is None:
            logger.warning("No profile found for user '%s'", session.user_id, extra={"user_id": session.user_id})
            return Principal(user_id=session.user_id, email=session.email)

        principal = profile.to_principal()
        logger.debug(
            "Profile loaded: role=%s",
            principal.role,
            extra={"user_id": principal.user_id, "tenant_id": principal.tenant_id},
        )
        return principal


__all__ = ["IdentityResolver", "IdentityState", "PrincipalListener"]
