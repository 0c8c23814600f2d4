"""
Profile lookup client.

Fetches the caller's provisioned profile through the data store's ``get_me``
RPC. An empty result means "not provisioned yet" and is not an error.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

import httpx
import structlog

from staffgate.core.auth import UnknownRoleError
from staffgate.core.config import get_settings
from staffgate.domain.models import Profile, Session

logger = structlog.get_logger(__name__)


class ProfileLookupError(Exception):
    """Raised when the profile could not be fetched or decoded."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProfileLookupProtocol(Protocol):
    """Protocol for the "get my profile" call (allows mocking)."""

    async def get_my_profile(self) -> Profile | None:
        """Return the caller's profile, ``None`` when not provisioned."""
        ...


class SupabaseProfileClient:
    """Calls ``POST /rest/v1/rpc/get_me`` with the current session's token."""

    def __init__(
        self,
        session_provider: Callable[[], Awaitable[Session | None]],
        base_url: str | None = None,
        anon_key: str | None = None,
        timeout_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.session_provider = session_provider
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.anon_key = anon_key if anon_key is not None else settings.supabase_anon_key
        self.timeout = (
            timeout_seconds if timeout_seconds is not None else settings.http_timeout_seconds
        )
        self.transport = transport

    async def get_my_profile(self) -> Profile | None:
        session = await self.session_provider()
        if session is None:
            raise ProfileLookupError("No active session")

        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {session.access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/rest/v1/rpc/get_me",
                    headers=headers,
                    json={},
                )
        except httpx.HTTPError as exc:
            raise ProfileLookupError(f"get_me request failed: {exc}") from exc

        if response.status_code != 200:
            raise ProfileLookupError(
                f"get_me error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            rows = response.json()
        except ValueError as exc:
            raise ProfileLookupError(
                "get_me response was not valid JSON", status_code=response.status_code
            ) from exc

        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            return None

        try:
            return Profile.from_row(rows[0])
        except (KeyError, TypeError, UnknownRoleError) as exc:
            raise ProfileLookupError(
                f"get_me returned an unusable profile row: {exc}",
                status_code=response.status_code,
            ) from exc
