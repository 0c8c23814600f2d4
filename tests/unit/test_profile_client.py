from __future__ import annotations

import httpx
import pytest

from staffgate.core.auth import Role
from staffgate.libs.profile_client import ProfileLookupError, SupabaseProfileClient
from tests.utils import make_session

ROW = {
    "id": "profile-1",
    "user_id": "user-1",
    "tenant_id": "tenant-1",
    "role": "ops",
    "is_staff": True,
    "first_name": "Amina",
    "last_name": "Benali",
    "tenant_name": "Gulf Drilling",
}


def make_client(handler, session=None) -> SupabaseProfileClient:
    current = session if session is not None else make_session()

    async def session_provider():
        return current

    return SupabaseProfileClient(
        session_provider,
        base_url="https://abcd1234.supabase.co",
        anon_key="anon-key",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )


async def test_returns_profile_from_rpc() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[ROW])

    profile = await make_client(handler).get_my_profile()

    assert profile is not None
    assert profile.role is Role.OPS
    assert profile.is_staff is True
    assert profile.display_name == "Amina Benali"
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/rest/v1/rpc/get_me"
    assert requests[0].headers["authorization"] == "Bearer token-user-1"
    assert requests[0].headers["apikey"] == "anon-key"


async def test_single_object_response() -> None:
    profile = await make_client(lambda request: httpx.Response(200, json=ROW)).get_my_profile()

    assert profile is not None
    assert profile.user_id == "user-1"


async def test_empty_result_means_unprovisioned() -> None:
    assert await make_client(lambda request: httpx.Response(200, json=[])).get_my_profile() is None


async def test_http_error_is_raised() -> None:
    client = make_client(lambda request: httpx.Response(401, text="JWT expired"))

    with pytest.raises(ProfileLookupError) as exc_info:
        await client.get_my_profile()

    assert exc_info.value.status_code == 401


async def test_transport_error_is_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProfileLookupError):
        await make_client(handler).get_my_profile()


async def test_invalid_json_is_raised() -> None:
    client = make_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(ProfileLookupError):
        await client.get_my_profile()


async def test_unknown_role_is_raised() -> None:
    client = make_client(lambda request: httpx.Response(200, json=[{**ROW, "role": "wizard"}]))

    with pytest.raises(ProfileLookupError):
        await client.get_my_profile()


async def test_no_session_is_raised() -> None:
    async def no_session():
        return None

    client = SupabaseProfileClient(
        no_session,
        base_url="https://abcd1234.supabase.co",
        anon_key="anon-key",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[ROW])),
    )

    with pytest.raises(ProfileLookupError):
        await client.get_my_profile()
