"""
Session lifecycle manager.

Single source of truth for who is acting, with which role, in which tenant.
Identity-provider notifications are reconciled into an immutable
``SessionSnapshot`` that is replaced wholesale on every transition.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

import structlog

from staffgate.core.auth import Role, UnknownRoleError
from staffgate.core.config import Settings, get_settings
from staffgate.domain.models import Profile, Session, SessionSnapshot
from staffgate.domain.services.gate import role_check
from staffgate.libs.identity_client import (
    AuthEvent,
    IdentityProviderProtocol,
    ProviderResult,
    Unsubscribe,
)
from staffgate.libs.profile_client import ProfileLookupError, ProfileLookupProtocol
from staffgate.libs.storage import CachedClaims, ClaimsCache, StorageArea, purge_prefixed
from staffgate.workers.queue import DeferredWorkQueue, WorkQueueClosedError

logger = structlog.get_logger(__name__)

Navigator = Callable[[str], None]


class SessionManager:
    """Owns the session snapshot; built once at the composition root."""

    def __init__(
        self,
        *,
        identity: IdentityProviderProtocol,
        profiles: ProfileLookupProtocol,
        session_storage: StorageArea,
        local_storage: StorageArea,
        navigate: Navigator,
        settings: Settings | None = None,
        work_queue: DeferredWorkQueue | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.identity = identity
        self.profiles = profiles
        self.session_storage = session_storage
        self.local_storage = local_storage
        self.navigate = navigate
        self.work_queue = work_queue or DeferredWorkQueue()
        self.claims_cache = ClaimsCache(local_storage, key=self.settings.claims_cache_key)
        self._snapshot = SessionSnapshot()
        self._unsubscribe: Unsubscribe | None = None

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def cached_claims(self) -> CachedClaims | None:
        """Claims persisted by a previous run; a display hint, never authoritative."""
        return self.claims_cache.load()

    async def start(self) -> None:
        """Subscribe to identity events, then reconcile the current session."""
        self.work_queue.start()
        # Subscription must precede the initial query so no event is lost.
        self._unsubscribe = self.identity.subscribe_to_auth_events(self.on_identity_event)

        try:
            session = await self.identity.get_current_session()
        except Exception:
            logger.exception("initial_session_query_failed")
            session = None

        self._set_session(session)
        if session is not None:
            self._schedule_profile_refresh()
        logger.info(
            "session_manager_started",
            state=self._snapshot.state.value,
            user_id=session.identity.id if session else None,
        )

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.work_queue.stop()

    def on_identity_event(self, event: AuthEvent, session: Session | None) -> None:
        logger.info(
            "auth_state_changed",
            auth_event=event.value,
            email=session.identity.email if session else None,
        )
        self._set_session(session)

        if event is AuthEvent.SIGNED_IN and session is not None:
            self._schedule_profile_refresh()

        if event is AuthEvent.SIGNED_OUT:
            self.cleanup_auth_state()

    async def refresh_profile(self) -> None:
        """Fetch the current identity's profile; failures keep prior state."""
        identity = self._snapshot.identity
        if identity is None:
            logger.info("profile_refresh_skipped", reason="no_identity")
            return

        try:
            profile = await self.profiles.get_my_profile()
        except ProfileLookupError as exc:
            logger.error(
                "profile_refresh_failed",
                user_id=identity.id,
                error=str(exc),
                status_code=exc.status_code,
            )
            return
        except Exception:
            logger.exception("profile_refresh_unexpected_error", user_id=identity.id)
            return

        if profile is None:
            logger.info("profile_not_provisioned", user_id=identity.id)
        self.set_profile(profile)

    def set_profile(self, profile: Profile | None) -> None:
        self._snapshot = self._snapshot.with_profile(profile)
        if self.claims_cache.reconcile(profile):
            logger.debug("claims_cache_updated", has_profile=profile is not None)

    def check_role(self, allowed_roles: Iterable[Role | str]) -> bool:
        """Role membership for the current snapshot; unknown role names grant nothing."""
        known: set[Role] = set()
        for value in allowed_roles:
            try:
                known.add(Role.parse(value))
            except UnknownRoleError:
                logger.warning("unknown_role_ignored", role=str(value))
        return role_check(self._snapshot, known)

    async def sign_in(self, email: str, password: str) -> ProviderResult:
        """Exchange credentials; the provider's SIGNED_IN event updates the snapshot."""
        try:
            result = await self.identity.sign_in_with_password(email=email, password=password)
        except Exception as exc:
            logger.warning("sign_in_failed", email=email, error=str(exc))
            return ProviderResult(error=str(exc))

        if not result.ok:
            logger.info("sign_in_rejected", email=email, status_code=result.status_code)
        return result

    async def sign_out(self) -> None:
        """Clear local state, revoke globally (best effort), go to sign-in."""
        try:
            self.cleanup_auth_state()
            try:
                result = await self.identity.sign_out(scope="global")
            except Exception as exc:
                logger.warning("global_signout_failed", error=str(exc))
            else:
                if not result.ok:
                    logger.warning(
                        "global_signout_failed",
                        error=result.error,
                        status_code=result.status_code,
                    )
        finally:
            self.navigate(self.settings.sign_in_path)

    def cleanup_auth_state(self) -> None:
        """Remove auth-namespaced keys from both storage areas and reset state."""
        prefixes = self.settings.auth_storage_prefixes
        removed = purge_prefixed(self.local_storage, prefixes)
        removed += purge_prefixed(self.session_storage, prefixes)
        self.claims_cache.clear()
        self._snapshot = SessionSnapshot(is_loading=False)
        if removed:
            logger.debug("auth_storage_purged", keys=removed)

    async def request_password_reset(self, email: str) -> ProviderResult:
        redirect_to = self.settings.password_reset_redirect_url
        try:
            result = await self.identity.request_password_reset(email, redirect_to)
        except Exception as exc:
            logger.warning("password_reset_failed", email=email, error=str(exc))
            return ProviderResult(error=str(exc))

        if result.ok:
            logger.info("password_reset_requested", email=email)
        else:
            logger.warning("password_reset_failed", email=email, error=result.error)
        return result

    def _set_session(self, session: Session | None) -> None:
        snapshot = self._snapshot.with_session(session)
        profile = snapshot.profile
        if session is None or (profile is not None and profile.user_id != session.identity.id):
            snapshot = snapshot.with_profile(None)
        self._snapshot = snapshot

    def _schedule_profile_refresh(self) -> None:
        try:
            self.work_queue.post(self.refresh_profile, label="refresh_profile")
        except WorkQueueClosedError:
            logger.warning("profile_refresh_not_scheduled", reason="work_queue_closed")
