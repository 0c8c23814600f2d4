"""
Compliance coverage engine.

Scores a talent's certificates against the certification codes a job or
mission requires. Every function here is pure: the reference instant is passed
in (defaults to the current UTC time) and nothing is read from session state.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, time, timedelta

from staffgate.domain.models import CoverageResult, DateInput, TalentCertificate

TRUSTED_ISSUER = "RMTC"
EXPIRY_WARNING_WINDOW = timedelta(days=60)
TRUSTED_ISSUER_RECENCY = timedelta(days=2 * 365)

FULL_COVERAGE_BONUS = 30
NO_EXPIRY_RISK_BONUS = 10
TRUSTED_ISSUER_BONUS = 10
# The trusted issuer bonus saturates after the first recent certificate.
TRUSTED_ISSUER_BONUS_CAP = 10
MAX_COMPLIANCE_SCORE = FULL_COVERAGE_BONUS + NO_EXPIRY_RISK_BONUS + TRUSTED_ISSUER_BONUS_CAP

# Baseline used by the recruiting pipeline when re-scoring an application.
DEFAULT_REQUIRED_CODES: tuple[str, ...] = ("H2S", "BOSIET", "FIRST_AID")
DEFAULT_BASE_SCORE = 50


class ComplianceError(Exception):
    """Base exception for compliance scoring errors."""


class CertificateDateError(ComplianceError):
    """Raised when a certificate carries a missing or unparseable date."""

    def __init__(self, course_code: str, field_name: str, value: object) -> None:
        super().__init__(f"Certificate {course_code!r} has invalid {field_name}: {value!r}")
        self.course_code = course_code
        self.field_name = field_name
        self.value = value


def normalize_code(code: str) -> str:
    """Canonical, case-insensitive form of a course code."""
    return code.strip().upper()


def parse_instant(
    value: DateInput, *, course_code: str = "", field_name: str = "date"
) -> datetime:
    """Convert a certificate date into an aware UTC ``datetime``.

    Naive values are taken as UTC. Bare dates mean midnight UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise CertificateDateError(course_code, field_name, value) from exc
    else:
        raise CertificateDateError(course_code, field_name, value)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _dedupe_codes(codes: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for code in codes:
        seen.setdefault(normalize_code(code), None)
    return list(seen)


def _select_valid(
    certificates: Sequence[TalentCertificate], now: datetime
) -> tuple[TalentCertificate, datetime, datetime | None] | None:
    """Most recently issued unexpired certificate; ties keep input order."""
    best: tuple[TalentCertificate, datetime, datetime | None] | None = None
    for cert in certificates:
        code = cert.course_code
        issued = parse_instant(cert.issued_at, course_code=code, field_name="issued_at")
        expires = (
            parse_instant(cert.expires_at, course_code=code, field_name="expires_at")
            if cert.expires_at is not None
            else None
        )
        if expires is not None and expires <= now:
            continue
        if best is None or issued > best[1]:
            best = (cert, issued, expires)
    return best


def compute_coverage(
    certificates: Iterable[TalentCertificate],
    required_codes: Iterable[str],
    *,
    now: datetime | None = None,
    trusted_issuer: str = TRUSTED_ISSUER,
) -> CoverageResult:
    """Compare certificates with a required certification set.

    Raises:
        CertificateDateError: a relevant certificate has an unusable date.
    """
    required = _dedupe_codes(required_codes)
    if not required:
        return CoverageResult(
            coverage_percent=100.0,
            expires_soon=False,
            expiring_soon_count=0,
            recent_trusted_issuer_count=0,
        )

    now = parse_instant(now) if now is not None else datetime.now(UTC)
    expiry_horizon = now + EXPIRY_WARNING_WINDOW
    recency_floor = now - TRUSTED_ISSUER_RECENCY

    by_code: dict[str, list[TalentCertificate]] = defaultdict(list)
    for cert in certificates:
        by_code[normalize_code(cert.course_code)].append(cert)

    valid_codes: list[str] = []
    missing_codes: list[str] = []
    expiring_soon_count = 0
    recent_trusted_issuer_count = 0

    for code in required:
        selected = _select_valid(by_code.get(code, []), now)
        if selected is None:
            missing_codes.append(code)
            continue

        cert, issued, expires = selected
        valid_codes.append(code)
        if expires is not None and expires <= expiry_horizon:
            expiring_soon_count += 1
        if cert.issuer == trusted_issuer and issued >= recency_floor:
            recent_trusted_issuer_count += 1

    return CoverageResult(
        coverage_percent=len(valid_codes) / len(required) * 100,
        expires_soon=expiring_soon_count > 0,
        expiring_soon_count=expiring_soon_count,
        recent_trusted_issuer_count=recent_trusted_issuer_count,
        missing_codes=tuple(missing_codes),
        valid_codes=tuple(valid_codes),
    )


def calculate_compliance_score(coverage: CoverageResult) -> int:
    """Compliance contribution to an application score, between 0 and 50."""
    score = 0
    if coverage.coverage_percent == 100:
        score += FULL_COVERAGE_BONUS
    if not coverage.expires_soon:
        score += NO_EXPIRY_RISK_BONUS
    trusted_bonus = coverage.recent_trusted_issuer_count * TRUSTED_ISSUER_BONUS
    score += min(trusted_bonus, TRUSTED_ISSUER_BONUS_CAP)
    return score


def update_application_score(base_score: int | float, coverage: CoverageResult) -> int | float:
    """Add the compliance score to a base score. The base is not clamped."""
    return base_score + calculate_compliance_score(coverage)


def score_application(
    certificates: Iterable[TalentCertificate],
    required_codes: Iterable[str] = DEFAULT_REQUIRED_CODES,
    *,
    base_score: int | float = DEFAULT_BASE_SCORE,
    now: datetime | None = None,
    trusted_issuer: str = TRUSTED_ISSUER,
) -> tuple[int | float, CoverageResult]:
    """Compute coverage and the resulting application score in one step."""
    coverage = compute_coverage(
        certificates, required_codes, now=now, trusted_issuer=trusted_issuer
    )
    return update_application_score(base_score, coverage), coverage
