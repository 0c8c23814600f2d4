"""
Identity provider client.

Defines the narrow identity-provider protocol the session lifecycle consumes
and an async adapter for a Supabase (GoTrue) compatible auth API.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal, Protocol

import httpx
import jwt
import structlog

from staffgate.core.config import get_settings, project_ref
from staffgate.domain.models import Identity, Session
from staffgate.libs.storage import InMemoryStorage, StorageArea

logger = structlog.get_logger(__name__)

SignOutScope = Literal["global", "local", "others"]


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


AuthEventHandler = Callable[[AuthEvent, Session | None], None]
Unsubscribe = Callable[[], None]


class IdentityProviderError(Exception):
    """Raised for identity provider failures that cannot be expressed as a result."""


@dataclass(slots=True, frozen=True)
class ProviderResult:
    """Outcome of a fire-once identity provider call."""

    error: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IdentityProviderProtocol(Protocol):
    """Protocol for the identity provider (allows fakes in tests)."""

    def subscribe_to_auth_events(self, handler: AuthEventHandler) -> Unsubscribe:
        ...

    async def get_current_session(self) -> Session | None:
        ...

    async def sign_in_with_password(self, *, email: str, password: str) -> ProviderResult:
        ...

    async def sign_out(self, scope: SignOutScope = "global") -> ProviderResult:
        ...

    async def request_password_reset(self, email: str, redirect_to: str) -> ProviderResult:
        ...


def session_from_payload(payload: Mapping[str, Any]) -> Session:
    """Build a ``Session`` from a GoTrue token response or persisted copy."""
    try:
        user = payload["user"]
        access_token = payload["access_token"]
        identity = Identity(id=str(user["id"]), email=user.get("email") or "")
    except (KeyError, TypeError) as exc:
        raise IdentityProviderError("Malformed session payload") from exc

    expires_at: datetime | None = None
    if payload.get("expires_at"):
        expires_at = datetime.fromtimestamp(int(payload["expires_at"]), UTC)
    else:
        expires_at = _token_expiry(access_token)

    return Session(
        access_token=access_token,
        identity=identity,
        refresh_token=payload.get("refresh_token"),
        expires_at=expires_at,
    )


def session_to_payload(session: Session) -> dict[str, Any]:
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": int(session.expires_at.timestamp()) if session.expires_at else None,
        "user": {"id": session.identity.id, "email": session.identity.email},
    }


def _token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim without verifying the signature."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return datetime.fromtimestamp(int(exp), UTC) if exp else None


class SupabaseIdentityClient:
    """Async GoTrue client that keeps the current session in a storage area."""

    def __init__(
        self,
        base_url: str | None = None,
        anon_key: str | None = None,
        storage: StorageArea | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self.storage = storage if storage is not None else InMemoryStorage()
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.http_timeout_seconds
        )
        self.transport = transport
        self.storage_key = f"sb-{project_ref(self.base_url)}-auth-token"
        self._handlers: list[AuthEventHandler] = []
        # Kept apart from storage so a global revoke still has the token after cleanup.
        self._current: Session | None = None

        if not self.anon_key:
            logger.warning("supabase_anon_key_missing", msg="SUPABASE_ANON_KEY not configured")

    def subscribe_to_auth_events(self, handler: AuthEventHandler) -> Unsubscribe:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def get_current_session(self) -> Session | None:
        raw = self.storage.get(self.storage_key)
        if raw is None:
            return None
        try:
            session = session_from_payload(json.loads(raw))
        except (ValueError, IdentityProviderError):
            logger.warning("stored_session_corrupt", key=self.storage_key)
            self.storage.remove(self.storage_key)
            return None

        if session.expires_at is not None and session.expires_at <= datetime.now(UTC):
            logger.info("stored_session_expired", user_id=session.identity.id)
            self.storage.remove(self.storage_key)
            return None
        self._current = session
        return session

    async def sign_in_with_password(self, *, email: str, password: str) -> ProviderResult:
        """Exchange credentials for a session and notify subscribers."""
        try:
            response = await self._request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except httpx.HTTPError as exc:
            logger.warning("sign_in_transport_error", email=email, error=str(exc))
            return ProviderResult(error=str(exc))

        if response.status_code != 200:
            return ProviderResult(error=_error_message(response), status_code=response.status_code)

        try:
            session = session_from_payload(response.json())
        except (ValueError, IdentityProviderError) as exc:
            return ProviderResult(error=str(exc), status_code=response.status_code)

        self._current = session
        self.storage.set(self.storage_key, json.dumps(session_to_payload(session)))
        self._emit(AuthEvent.SIGNED_IN, session)
        return ProviderResult(status_code=response.status_code)

    async def sign_out(self, scope: SignOutScope = "global") -> ProviderResult:
        """Revoke the session remotely, then drop it locally whatever the outcome."""
        session = self._current or await self.get_current_session()
        result = ProviderResult()

        if session is not None:
            try:
                response = await self._request(
                    "POST",
                    "/auth/v1/logout",
                    params={"scope": scope},
                    token=session.access_token,
                )
            except httpx.HTTPError as exc:
                result = ProviderResult(error=str(exc))
            else:
                if response.status_code not in (200, 204):
                    result = ProviderResult(
                        error=_error_message(response), status_code=response.status_code
                    )

        self._current = None
        self.storage.remove(self.storage_key)
        self._emit(AuthEvent.SIGNED_OUT, None)
        return result

    async def request_password_reset(self, email: str, redirect_to: str) -> ProviderResult:
        try:
            response = await self._request(
                "POST",
                "/auth/v1/recover",
                params={"redirect_to": redirect_to},
                json={"email": email},
            )
        except httpx.HTTPError as exc:
            return ProviderResult(error=str(exc))

        if response.status_code != 200:
            return ProviderResult(error=_error_message(response), status_code=response.status_code)
        return ProviderResult(status_code=response.status_code)

    def _emit(self, event: AuthEvent, session: Session | None) -> None:
        for handler in list(self._handlers):
            try:
                handler(event, session)
            except Exception:
                logger.exception("auth_event_handler_failed", auth_event=event.value)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> httpx.Response:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json,
                headers=headers,
            )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"Identity provider error {response.status_code}: {response.text}"
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            if data.get(key):
                return str(data[key])
    return f"Identity provider error {response.status_code}"
