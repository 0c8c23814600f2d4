"""
Route/content gate.

Turns a session snapshot and a route's allow-list into a render, loading or
redirect decision. Redirects are returned, never applied to session state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote, urlsplit

from staffgate.core.auth import GatePolicy, Role, parse_roles
from staffgate.domain.models import SessionSnapshot


DEFAULT_GATE_POLICY = GatePolicy.ROLE_AND_PROFILE


class GateOutcome(str, Enum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


class RedirectReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING_PROVISIONING = "pending_provisioning"
    UNAUTHORIZED = "unauthorized"


@dataclass(slots=True, frozen=True)
class GateDestinations:
    sign_in: str = "/login"
    pending: str = "/pending-approval"
    unauthorized: str = "/unauthorized"


@dataclass(slots=True, frozen=True)
class RouteRule:
    """Per-route gate configuration: allowed roles (may be empty) and fallback target."""

    allowed_roles: frozenset[Role] = field(default_factory=frozenset)
    fallback_path: str | None = None

    @classmethod
    def of(cls, *roles: Role | str, fallback_path: str | None = None) -> RouteRule:
        return cls(allowed_roles=parse_roles(roles), fallback_path=fallback_path)


@dataclass(slots=True, frozen=True)
class GateDecision:
    outcome: GateOutcome
    location: str | None = None
    reason: RedirectReason | None = None

    @classmethod
    def redirect(cls, location: str, reason: RedirectReason) -> GateDecision:
        return cls(outcome=GateOutcome.REDIRECT, location=location, reason=reason)


LOADING = GateDecision(outcome=GateOutcome.LOADING)
RENDER = GateDecision(outcome=GateOutcome.RENDER)


def sign_in_target(sign_in_path: str, requested_path: str) -> str:
    """Sign-in URL carrying the originally requested path and query."""
    return f"{sign_in_path}?next={quote(requested_path, safe='')}"


def next_target(next_param: str | None, default: str = "/") -> str:
    """Restore a preserved target, accepting only same-site relative paths."""
    if not next_param or not next_param.startswith("/") or next_param.startswith("//"):
        return default
    parts = urlsplit(next_param)
    if parts.scheme or parts.netloc or "\\" in next_param:
        return default
    return next_param


def role_check(snapshot: SessionSnapshot, allowed_roles: Iterable[Role]) -> bool:
    """Staff bypass role checks; a missing role never passes."""
    if snapshot.is_staff:
        return True
    if snapshot.role is None:
        return False
    return snapshot.role in set(allowed_roles)


def decide_access(
    snapshot: SessionSnapshot,
    rule: RouteRule,
    requested_path: str,
    *,
    policy: GatePolicy = DEFAULT_GATE_POLICY,
    destinations: GateDestinations | None = None,
    check_role: Callable[[Iterable[Role]], bool] | None = None,
) -> GateDecision:
    """Decide whether a visit renders, waits, or is redirected. First match wins."""
    destinations = destinations or GateDestinations()

    if snapshot.is_loading:
        return LOADING

    if snapshot.identity is None:
        if rule.fallback_path and rule.fallback_path != destinations.sign_in:
            location = rule.fallback_path
        else:
            location = sign_in_target(destinations.sign_in, requested_path)
        return GateDecision.redirect(location, RedirectReason.UNAUTHENTICATED)

    if policy.requires_profile and snapshot.profile is None:
        return GateDecision.redirect(destinations.pending, RedirectReason.PENDING_PROVISIONING)

    if policy.checks_roles and rule.allowed_roles:
        allowed = check_role(rule.allowed_roles) if check_role else role_check(
            snapshot, rule.allowed_roles
        )
        if not allowed:
            return GateDecision.redirect(destinations.unauthorized, RedirectReason.UNAUTHORIZED)

    return RENDER
