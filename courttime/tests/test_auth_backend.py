"""
Tests for the client-side auth backends.
"""

import json

import httpx
import pytest

from courttime.client.auth_backend import HttpAuthBackend, MockAuthBackend, get_auth_backend


def _backend(handler):
    return HttpAuthBackend(base_url="http://courttime.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_login_posts_credentials():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "user": {"id": 5}, "accessToken": "abc"})

    result = await _backend(handler).login("pat@example.com", "pw")

    assert result == {"success": True, "user": {"id": 5}, "accessToken": "abc"}
    assert seen["method"] == "POST"
    assert seen["url"] == "http://courttime.test/api/auth/login"
    assert seen["body"] == {"email": "pat@example.com", "password": "pw"}


@pytest.mark.asyncio
async def test_http_register_sends_full_name_and_extras():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"success": True, "user": {"id": 6}})

    result = await _backend(handler).register(
        "new@example.com", "pw", "New Resident", streetAddress="12 Oak Ln", selectedFacilities=["sunrise-valley"]
    )

    assert result["success"] is True
    assert seen["body"] == {
        "email": "new@example.com",
        "password": "pw",
        "fullName": "New Resident",
        "streetAddress": "12 Oak Ln",
        "selectedFacilities": ["sunrise-valley"],
    }


@pytest.mark.asyncio
async def test_http_error_response_carries_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"success": False, "error": "Invalid email or password"})

    result = await _backend(handler).login("pat@example.com", "wrong")

    assert result == {"success": False, "error": "Invalid email or password", "status": 401}


@pytest.mark.asyncio
async def test_http_detail_and_non_json_errors():
    def forbidden(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"detail": "Not authenticated"})

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    assert (await _backend(forbidden).get_me(5))["error"] == "Not authenticated"
    assert await _backend(broken).get_me(5) == {"success": False, "error": "Request failed", "status": 502}


@pytest.mark.asyncio
async def test_http_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await _backend(handler).get_me(5)

    assert result == {"success": False, "error": "Network error"}


@pytest.mark.asyncio
async def test_mock_backend_login_and_register():
    backend = MockAuthBackend()

    registered = await backend.register("Res@Example.com", "pw", "Rae Resident")
    duplicate = await backend.register("res@example.com", "pw", "Rae Again")
    login = await backend.login("res@example.com", "anything")
    stranger = await backend.login("walk-in@example.com", "anything")

    assert registered["success"] is True
    assert duplicate == {"success": False, "error": "User with this email already exists"}
    assert login["user"]["id"] == registered["user"]["id"]
    assert login["accessToken"] == f"dev-token-{registered['user']['id']}"
    assert stranger["success"] is True
    assert stranger["user"]["id"] != registered["user"]["id"]


@pytest.mark.asyncio
async def test_mock_backend_get_me():
    backend = MockAuthBackend()
    user = (await backend.register("res@example.com", "pw", "Rae Resident"))["user"]

    assert (await backend.get_me(user["id"]))["user"]["fullName"] == "Rae Resident"
    assert await backend.get_me(999) == {"success": False, "error": "User not found"}
    assert (await backend.login("", "pw"))["success"] is False


def test_get_auth_backend(monkeypatch):
    monkeypatch.setenv("COURTTIME_AUTH_BACKEND", "mock")
    assert isinstance(get_auth_backend(), MockAuthBackend)
    assert isinstance(get_auth_backend("HTTP"), HttpAuthBackend)
    with pytest.raises(ValueError, match="Unknown auth backend"):
        get_auth_backend("ldap")
