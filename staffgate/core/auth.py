from __future__ import annotations

from collections.abc import Iterable
from enum import Enum


class UnknownRoleError(ValueError):
    """Raised when a value is not one of the platform roles."""


class Role(str, Enum):
    CLIENT_ADMIN = "client_admin"
    APPROVER = "approver"
    OPS = "ops"
    RECRUITER = "recruiter"
    FINANCE = "finance"
    TALENT = "talent"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise UnknownRoleError(f"Unsupported role: {value}") from exc


ALL_ROLES: frozenset[Role] = frozenset(Role)

# Organisation-side roles; talent accounts use the public quote form instead.
CLIENT_ROLES: frozenset[Role] = ALL_ROLES - {Role.TALENT}


def parse_roles(values: Iterable[str | Role]) -> frozenset[Role]:
    """Validate and convert role names into a set of ``Role`` members."""
    return frozenset(Role.parse(value) for value in values)


class GatePolicy(str, Enum):
    """Which checks the route gate enforces.

    ``authenticated_only``: identity required, roles ignored.
    ``role_checked``: roles enforced, a profile is not required.
    ``role_and_profile``: profile required and roles enforced; staff bypass the
    role check but not the profile requirement.
    """

    AUTHENTICATED_ONLY = "authenticated_only"
    ROLE_CHECKED = "role_checked"
    ROLE_AND_PROFILE = "role_and_profile"

    @property
    def requires_profile(self) -> bool:
        return self is GatePolicy.ROLE_AND_PROFILE

    @property
    def checks_roles(self) -> bool:
        return self is not GatePolicy.AUTHENTICATED_ONLY
