"""Gate behaviour over HTTP: redirects, pending provisioning, staff bypass, loading."""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

from fastapi import FastAPI
from fastapi.testclient import TestClient

from staffgate.api.deps import get_session_manager
from staffgate.api.routes import pages, recruiting
from staffgate.core.auth import GatePolicy, Role
from staffgate.domain.services.session_manager import SessionManager
from staffgate.libs.storage import InMemoryStorage
from tests.utils import (
    FakeIdentityProvider,
    FakeProfileLookup,
    RecordingNavigator,
    make_profile,
    make_session,
)

COVERAGE = {"certificates": [], "required_codes": []}


def test_anonymous_visit_redirects_to_sign_in_preserving_target(client_for) -> None:
    client = client_for()

    response = client.get("/missions?tab=open&page=2", follow_redirects=False)

    assert response.status_code == 303
    location = urlsplit(response.headers["location"])
    assert location.path == "/login"
    next_value = parse_qs(location.query)["next"][0]
    assert next_value == "/missions?tab=open&page=2"

    login = client.get("/login", params={"next": next_value})
    assert login.json() == {"page": "login", "next": "/missions?tab=open&page=2"}


def test_unprovisioned_identity_goes_to_pending(client_for) -> None:
    client = client_for(make_session(), None)

    response = client.get("/passport", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/pending-approval"


def test_pending_page_is_public(client_for) -> None:
    client = client_for(make_session(), None)

    response = client.get("/passport")

    assert response.status_code == 200
    assert response.json()["page"] == "pending-approval"


def test_wrong_role_is_sent_to_unauthorized(client_for) -> None:
    client = client_for(make_session(), make_profile(role=Role.TALENT))

    response = client.post("/recruiting/coverage", json=COVERAGE, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/unauthorized"


def test_allowed_role_renders(client_for) -> None:
    client = client_for(make_session(), make_profile(role=Role.RECRUITER))

    response = client.get("/missions")

    assert response.status_code == 200
    assert response.json()["state"] == "active"
    assert response.json()["role"] == "recruiter"


def test_staff_talent_passes_recruiter_routes(client_for) -> None:
    client = client_for(make_session(), make_profile(role=Role.TALENT, is_staff=True))

    response = client.post("/recruiting/coverage", json=COVERAGE, follow_redirects=False)

    assert response.status_code == 200


def test_authenticated_only_policy_skips_profile_check(client_for) -> None:
    client = client_for(make_session(), None, gate_policy=GatePolicy.AUTHENTICATED_ONLY)

    response = client.post("/recruiting/coverage", json=COVERAGE, follow_redirects=False)

    assert response.status_code == 200


def test_configured_destinations_are_used(client_for) -> None:
    client = client_for(make_session(), None, pending_path="/awaiting-activation")

    response = client.get("/missions", follow_redirects=False)

    assert response.headers["location"] == "/awaiting-activation"


def test_loading_session_asks_to_retry(settings) -> None:
    manager = SessionManager(
        identity=FakeIdentityProvider(),
        profiles=FakeProfileLookup(),
        session_storage=InMemoryStorage(),
        local_storage=InMemoryStorage(),
        navigate=RecordingNavigator(),
        settings=settings,
    )
    app = FastAPI()
    app.include_router(pages.router)
    app.include_router(recruiting.router)
    app.dependency_overrides[get_session_manager] = lambda: manager

    response = TestClient(app).get("/missions", follow_redirects=False)

    assert response.status_code == 503
    assert response.headers["retry-after"] == "1"


def test_anonymous_quote_request_goes_to_public_form(client_for) -> None:
    client = client_for()

    response = client.get("/rfq", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/get-quote"
    assert client.get("/get-quote").json()["page"] == "get-quote"


def test_talent_cannot_open_quote_request(client_for) -> None:
    client = client_for(make_session(), make_profile(role=Role.TALENT))

    response = client.get("/rfq", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/unauthorized"


def test_client_admin_opens_quote_request(client_for) -> None:
    client = client_for(make_session(), make_profile(role=Role.CLIENT_ADMIN))

    response = client.get("/rfq")

    assert response.status_code == 200
    assert response.json()["role"] == "client_admin"
