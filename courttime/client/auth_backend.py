"""
Client-side authentication backends.

Callers (CLIs, scripts, other services) depend on ``AuthBackend`` and get a
concrete backend from ``get_auth_backend()``: the HTTP backend talks to the
CourtTime API, the mock backend returns synthetic users for local
development without a database.
"""

import itertools
import logging
import os
from typing import Any, Dict, Optional, Protocol

import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
REQUEST_TIMEOUT_SECONDS = 10.0


class AuthBackend(Protocol):
    """Login, registration, and session refresh against some user store."""

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Return ``{"success": True, "user": ..., "accessToken": ...}`` or a failure dict."""
        ...

    async def register(
        self, email: str, password: str, full_name: str, **extra: Any
    ) -> Dict[str, Any]:
        """Return ``{"success": True, "user": ...}`` or a failure dict."""
        ...

    async def get_me(self, user_id: int) -> Dict[str, Any]:
        """Return the user with memberships, or a failure dict."""
        ...


class HttpAuthBackend:
    """AuthBackend over the CourtTime REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.getenv("COURTTIME_API_URL", DEFAULT_API_URL)).rstrip("/")
        self.transport = transport

    async def _request(self, method: str, path: str, json: Optional[Dict] = None) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                transport=self.transport,
                timeout=REQUEST_TIMEOUT_SECONDS,
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"Auth request {method} {path} failed: {e}")
            return {"success": False, "error": "Network error"}

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            return {
                "success": False,
                "error": data.get("error") or data.get("detail") or "Request failed",
                "status": response.status_code,
            }
        return data

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/auth/login", {"email": email, "password": password})

    async def register(
        self, email: str, password: str, full_name: str, **extra: Any
    ) -> Dict[str, Any]:
        payload = {"email": email, "password": password, "fullName": full_name}
        payload.update(extra)
        return await self._request("POST", "/api/auth/register", payload)

    async def get_me(self, user_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/api/auth/me/{user_id}")


class MockAuthBackend:
    """
    In-memory AuthBackend for development. Any credentials log in; users
    registered through it are remembered for the life of the instance.
    """

    def __init__(self):
        self._users: Dict[int, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def _make_user(self, email: str, full_name: str, user_type: str = "player") -> Dict[str, Any]:
        user_id = next(self._ids)
        user = {
            "id": user_id,
            "email": email.strip().lower(),
            "fullName": full_name,
            "userType": user_type,
            "memberFacilities": [],
            "memberships": [],
        }
        self._users[user_id] = user
        return user

    def _find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        email = email.strip().lower()
        return next((u for u in self._users.values() if u["email"] == email), None)

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        if not email or not password:
            return {"success": False, "error": "Email and password are required"}
        user = self._find_by_email(email) or self._make_user(email, "Development User")
        return {"success": True, "user": user, "accessToken": f"dev-token-{user['id']}"}

    async def register(
        self, email: str, password: str, full_name: str, **extra: Any
    ) -> Dict[str, Any]:
        if not email or not password or not full_name:
            return {"success": False, "error": "Email, password, and full name are required"}
        if self._find_by_email(email):
            return {"success": False, "error": "User with this email already exists"}
        user = self._make_user(email, full_name, extra.get("userType", "player"))
        return {"success": True, "user": user, "message": "User registered successfully"}

    async def get_me(self, user_id: int) -> Dict[str, Any]:
        user = self._users.get(user_id)
        if user is None:
            return {"success": False, "error": "User not found"}
        return {"success": True, "user": user}


def get_auth_backend(kind: Optional[str] = None) -> AuthBackend:
    """
    Select a backend by name, defaulting to ``COURTTIME_AUTH_BACKEND``.

    Raises:
        ValueError: For an unknown backend name
    """
    kind = (kind or os.getenv("COURTTIME_AUTH_BACKEND", "http")).strip().lower()
    if kind == "http":
        return HttpAuthBackend()
    if kind == "mock":
        logger.info("Using mock auth backend")
        return MockAuthBackend()
    raise ValueError(f"Unknown auth backend: {kind}")
