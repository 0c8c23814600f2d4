"""Integration tests for recruiting compliance endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import status

from staffgate.core.auth import Role
from tests.utils import make_profile, make_session


def iso(delta: timedelta) -> str:
    return (datetime.now(UTC) + delta).isoformat()


@pytest.fixture
def recruiter_client(client_for):
    return client_for(make_session(), make_profile(role=Role.RECRUITER))


class TestCoverageEndpoint:
    """Tests for POST /recruiting/coverage."""

    def test_partial_coverage(self, recruiter_client) -> None:
        """Missing and valid codes are reported separately."""
        payload = {
            "certificates": [
                {"course_code": "h2s", "issued_at": iso(timedelta(days=-30)), "issuer": "RMTC"},
                {
                    "course_code": "BOSIET",
                    "issued_at": iso(timedelta(days=-900)),
                    "expires_at": iso(timedelta(days=-1)),
                    "issuer": "OPITO",
                },
            ],
            "required_codes": ["H2S", "BOSIET"],
        }

        response = recruiter_client.post("/recruiting/coverage", json=payload)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["coverage_percent"] == 50
        assert data["valid_codes"] == ["H2S"]
        assert data["missing_codes"] == ["BOSIET"]
        assert data["recent_trusted_issuer_count"] == 1
        assert data["expires_soon"] is False

    def test_empty_requirement(self, recruiter_client) -> None:
        """No required codes means full coverage."""
        response = recruiter_client.post("/recruiting/coverage", json={})

        assert response.json()["coverage_percent"] == 100

    def test_unparseable_date_is_rejected(self, recruiter_client) -> None:
        """Bad certificate dates surface as 422 naming the certificate."""
        payload = {
            "certificates": [{"course_code": "H2S", "issued_at": "yesterday", "issuer": "RMTC"}],
            "required_codes": ["H2S"],
        }

        response = recruiter_client.post("/recruiting/coverage", json=payload)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "H2S" in response.json()["detail"]


class TestScoreEndpoint:
    """Tests for POST /recruiting/score."""

    def test_full_marks_on_default_requirement(self, recruiter_client) -> None:
        """Covering the default codes with a recent trusted issuer adds 50."""
        certificates = [
            {"course_code": code, "issued_at": iso(timedelta(days=-20)), "issuer": "RMTC"}
            for code in ("H2S", "BOSIET", "FIRST_AID")
        ]

        response = recruiter_client.post(
            "/recruiting/score", json={"certificates": certificates, "base_score": 42}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["compliance_score"] == 50
        assert data["score"] == 92
        assert data["coverage"]["coverage_percent"] == 100

    def test_expiring_certificate_costs_points(self, recruiter_client) -> None:
        """A certificate expiring within 60 days removes the expiry bonus."""
        payload = {
            "certificates": [
                {
                    "course_code": "H2S",
                    "issued_at": iso(timedelta(days=-300)),
                    "expires_at": iso(timedelta(days=10)),
                    "issuer": "EXTERNAL",
                }
            ],
            "required_codes": ["H2S"],
            "base_score": 0,
        }

        data = recruiter_client.post("/recruiting/score", json=payload).json()

        assert data["coverage"]["expires_soon"] is True
        assert data["compliance_score"] == 30
        assert data["score"] == 30

    def test_score_requires_recruiting_role(self, client_for) -> None:
        """Finance accounts are redirected away from scoring."""
        client = client_for(make_session(), make_profile(role=Role.FINANCE))

        response = client.post("/recruiting/score", json={}, follow_redirects=False)

        assert response.status_code == status.HTTP_303_SEE_OTHER
        assert response.headers["location"] == "/unauthorized"
