from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from staffgate.core.auth import Role

DateInput = datetime | date | str


@dataclass(slots=True, frozen=True)
class Identity:
    """Principal returned by the identity provider."""

    id: str
    email: str = ""


@dataclass(slots=True, frozen=True)
class Session:
    """Credential bound to an identity; expiry is managed by the provider."""

    access_token: str
    identity: Identity
    refresh_token: str | None = None
    expires_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class Profile:
    """Provisioned application record for an identity."""

    id: str
    user_id: str
    tenant_id: str
    role: Role
    is_staff: bool = False
    status: str = "active"
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    department: str | None = None
    tenant_name: str | None = None
    tenant_slug: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or (self.email or "")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Profile:
        """Build a profile from a ``get_me`` row. Raises ``KeyError``/``UnknownRoleError``."""
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            tenant_id=str(row["tenant_id"]),
            role=Role.parse(row["role"]),
            is_staff=bool(row.get("is_staff") or False),
            status=row.get("status") or "active",
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            phone=row.get("phone"),
            department=row.get("department"),
            tenant_name=row.get("tenant_name"),
            tenant_slug=row.get("tenant_slug"),
            email=row.get("email"),
        )


class SessionState(str, Enum):
    INITIALIZING = "initializing"
    ANONYMOUS = "anonymous"
    UNPROVISIONED = "unprovisioned"
    ACTIVE = "active"


@dataclass(slots=True, frozen=True)
class SessionSnapshot:
    """Immutable view of the session lifecycle state.

    ``role``, ``tenant_id`` and ``is_staff`` are only ever produced by
    ``with_profile`` so they cannot drift from ``profile``.
    """

    identity: Identity | None = None
    session: Session | None = None
    profile: Profile | None = None
    role: Role | None = None
    tenant_id: str | None = None
    is_staff: bool = False
    is_loading: bool = True

    @property
    def state(self) -> SessionState:
        if self.is_loading:
            return SessionState.INITIALIZING
        if self.identity is None:
            return SessionState.ANONYMOUS
        if self.profile is None:
            return SessionState.UNPROVISIONED
        return SessionState.ACTIVE

    def with_session(self, session: Session | None) -> SessionSnapshot:
        return SessionSnapshot(
            identity=session.identity if session else None,
            session=session,
            profile=self.profile,
            role=self.role,
            tenant_id=self.tenant_id,
            is_staff=self.is_staff,
            is_loading=False,
        )

    def with_profile(self, profile: Profile | None) -> SessionSnapshot:
        return SessionSnapshot(
            identity=self.identity,
            session=self.session,
            profile=profile,
            role=profile.role if profile else None,
            tenant_id=profile.tenant_id if profile else None,
            is_staff=profile.is_staff if profile else False,
            is_loading=False,
        )


@dataclass(slots=True, frozen=True)
class TalentCertificate:
    """A recorded certification; logically expires once ``expires_at`` passes."""

    course_code: str
    issued_at: DateInput
    issuer: str
    expires_at: DateInput | None = None


@dataclass(slots=True, frozen=True)
class CoverageResult:
    """Outcome of comparing held certificates with a required set."""

    coverage_percent: float
    expires_soon: bool
    expiring_soon_count: int
    recent_trusted_issuer_count: int
    missing_codes: tuple[str, ...] = field(default_factory=tuple)
    valid_codes: tuple[str, ...] = field(default_factory=tuple)
