from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from staffgate.core.auth import Role
from staffgate.domain.models import Identity, Profile, Session
from staffgate.libs.identity_client import (
    AuthEvent,
    AuthEventHandler,
    ProviderResult,
    Unsubscribe,
)


def make_session(user_id: str = "user-1", email: str = "user@example.com") -> Session:
    return Session(access_token=f"token-{user_id}", identity=Identity(id=user_id, email=email))


def make_profile(
    user_id: str = "user-1",
    *,
    role: Role = Role.RECRUITER,
    tenant_id: str = "tenant-1",
    is_staff: bool = False,
) -> Profile:
    return Profile(
        id=f"profile-{user_id}",
        user_id=user_id,
        tenant_id=tenant_id,
        role=role,
        is_staff=is_staff,
        first_name="Amina",
        last_name="Benali",
    )


class FakeIdentityProvider:
    """In-process identity provider recording the order of calls."""

    def __init__(
        self,
        session: Session | None = None,
        *,
        sign_out_result: ProviderResult | Exception | None = None,
        reset_result: ProviderResult | Exception | None = None,
        password: str = "correct-horse",
        sign_in_user_id: str = "user-1",
    ) -> None:
        self.session = session
        self.password = password
        self.sign_in_user_id = sign_in_user_id
        self.sign_out_result = sign_out_result or ProviderResult()
        self.reset_result = reset_result or ProviderResult()
        self.handlers: list[AuthEventHandler] = []
        self.calls: list[str] = []
        self.sign_out_scopes: list[str] = []
        self.reset_requests: list[tuple[str, str]] = []
        self.on_get_current_session: Callable[[], None] | None = None

    def subscribe_to_auth_events(self, handler: AuthEventHandler) -> Unsubscribe:
        self.calls.append("subscribe")
        self.handlers.append(handler)

        def unsubscribe() -> None:
            self.calls.append("unsubscribe")
            self.handlers.remove(handler)

        return unsubscribe

    async def get_current_session(self) -> Session | None:
        self.calls.append("get_current_session")
        if self.on_get_current_session is not None:
            self.on_get_current_session()
        return self.session

    async def sign_in_with_password(self, *, email: str, password: str) -> ProviderResult:
        self.calls.append("sign_in")
        if password != self.password:
            return ProviderResult(error="Invalid login credentials", status_code=400)
        self.session = Session(
            access_token=f"token-{email}", identity=Identity(id=self.sign_in_user_id, email=email)
        )
        self.emit(AuthEvent.SIGNED_IN, self.session)
        return ProviderResult(status_code=200)

    async def sign_out(self, scope: str = "global") -> ProviderResult:
        self.calls.append("sign_out")
        self.sign_out_scopes.append(scope)
        if isinstance(self.sign_out_result, Exception):
            raise self.sign_out_result
        return self.sign_out_result

    async def request_password_reset(self, email: str, redirect_to: str) -> ProviderResult:
        self.reset_requests.append((email, redirect_to))
        if isinstance(self.reset_result, Exception):
            raise self.reset_result
        return self.reset_result

    def emit(self, event: AuthEvent, session: Session | None) -> None:
        for handler in list(self.handlers):
            handler(event, session)


class FakeProfileLookup:
    """Returns queued results in order; the last one repeats."""

    def __init__(self, *results: Profile | None | Exception) -> None:
        self.results: list[Any] = list(results) or [None]
        self.calls = 0

    async def get_my_profile(self) -> Profile | None:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class GatedProfileLookup:
    """Each call blocks until the test releases it with a chosen result."""

    def __init__(self) -> None:
        self.pending: list[asyncio.Future[Profile | None]] = []

    async def get_my_profile(self) -> Profile | None:
        future: asyncio.Future[Profile | None] = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future


class RecordingNavigator:
    def __init__(self) -> None:
        self.visits: list[str] = []

    def __call__(self, path: str) -> None:
        self.visits.append(path)
