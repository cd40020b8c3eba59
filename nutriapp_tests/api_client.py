"""Thin async wrappers over the NutriApp HTTP API.

Every helper issues exactly one request and returns an ``ApiResponse``; non-2xx
statuses are data, not exceptions, because the suites assert on error paths
(400/401/403/404/409) as often as on success. Transport failures
(``httpx.HTTPError``) still propagate.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx

from nutriapp_tests.config import settings
from nutriapp_tests.errors import HarnessError
from nutriapp_tests.fixtures import DishFixture, TestIdentity, generate_user_fixture

logger = logging.getLogger(__name__)

SESSION_COOKIE_RE = re.compile(r"(?:^|[;,\s])session=([^;,\s]+)")

DishId = Union[int, str]


def extract_session_cookie(set_cookie_headers: List[str]) -> Optional[str]:
    """Return ``session=<value>`` from Set-Cookie headers, or None when absent."""
    for header in set_cookie_headers:
        match = SESSION_COOKIE_RE.search(header)
        if match:
            return f"session={match.group(1)}"
    return None


@dataclass
class ApiResponse:
    """Status, body and headers of one API call, with canonical accessors."""

    status: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)
    session_cookie: Optional[str] = None
    method: str = ""
    url: str = ""

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "ApiResponse":
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        return cls(
            status=response.status_code,
            body=body,
            headers=dict(response.headers),
            session_cookie=extract_session_cookie(response.headers.get_list("set-cookie")),
            method=response.request.method,
            url=str(response.request.url),
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def dishes(self) -> List[Dict[str, Any]]:
        """Dish list whether the API answered ``[...]`` or ``{"dishes": [...]}``."""
        if isinstance(self.body, list):
            return self.body
        if isinstance(self.body, dict) and isinstance(self.body.get("dishes"), list):
            return self.body["dishes"]
        return []

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        if isinstance(self.body, dict):
            return self.body.get("user")
        return None

    @property
    def dish(self) -> Optional[Dict[str, Any]]:
        if isinstance(self.body, dict):
            return self.body.get("dish")
        return None

    @property
    def error(self) -> str:
        if isinstance(self.body, dict):
            return str(self.body.get("error") or "")
        return ""

    def __str__(self) -> str:
        return f"{self.method} {self.url} -> {self.status} {self.body!r}"


@dataclass
class HealthStatus:
    status: Union[int, str]
    healthy: bool
    error: Optional[str] = None


class NutriAppApiClient:
    """Async client for the auth and dish endpoints.

    Example:
        async with NutriAppApiClient() as api:
            result = await api.login("user@nutriapp.com", "secret")
            dishes = await api.list_dishes(result.session_cookie)
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._client: Optional[httpx.AsyncClient] = None
        self.last_response: Optional[ApiResponse] = None

    async def __aenter__(self) -> "NutriAppApiClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                follow_redirects=False,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send through the open client, or a one-shot client when not connected.

        The one-shot path lets a process-wide instance be shared by tests that
        each run on their own event loop.
        """
        if self._client is not None:
            response = await self._client.request(method, path, **kwargs)
            # Credentials travel explicitly; never let the jar replay them.
            self._client.cookies.clear()
            return response
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, follow_redirects=False
        ) as client:
            return await client.request(method, path, **kwargs)

    async def _request(
        self,
        method: str,
        path: str,
        session_cookie: Optional[str] = None,
        json: Any = None,
    ) -> ApiResponse:
        headers = {"Cookie": session_cookie} if session_cookie else {}
        response = await self._send(method, path, json=json, headers=headers)
        result = ApiResponse.from_httpx(response)
        self.last_response = result
        logger.debug("%s %s -> %s", method, path, result.status)
        return result

    # ---- auth -----------------------------------------------------------------------
    async def register(self, user: Union[TestIdentity, Mapping[str, Any]]) -> ApiResponse:
        payload = user.to_payload() if isinstance(user, TestIdentity) else dict(user)
        return await self._request("POST", "/api/register", json=payload)

    async def login(self, email: str, password: str) -> ApiResponse:
        """Log in; ``session_cookie`` is None when the response set no session."""
        return await self._request(
            "POST", "/api/login", json={"email": email, "password": password}
        )

    # ---- dishes ---------------------------------------------------------------------
    async def list_dishes(self, session_cookie: Optional[str]) -> ApiResponse:
        return await self._request("GET", "/api/dishes", session_cookie)

    async def create_dish(
        self,
        dish: Union[DishFixture, Mapping[str, Any]],
        session_cookie: Optional[str],
    ) -> ApiResponse:
        payload = dish.to_payload() if isinstance(dish, DishFixture) else dict(dish)
        return await self._request("POST", "/api/dishes", session_cookie, json=payload)

    async def get_dish(self, dish_id: DishId, session_cookie: Optional[str]) -> ApiResponse:
        return await self._request("GET", f"/api/dishes/{dish_id}", session_cookie)

    async def update_dish(
        self,
        dish_id: DishId,
        changes: Mapping[str, Any],
        session_cookie: Optional[str],
    ) -> ApiResponse:
        return await self._request("PUT", f"/api/dishes/{dish_id}", session_cookie, json=dict(changes))

    async def delete_dish(self, dish_id: DishId, session_cookie: Optional[str]) -> ApiResponse:
        return await self._request("DELETE", f"/api/dishes/{dish_id}", session_cookie)

    # ---- misc -----------------------------------------------------------------------
    async def get(self, path: str, session_cookie: Optional[str] = None) -> ApiResponse:
        return await self._request("GET", path, session_cookie)

    async def verify_api_health(self) -> HealthStatus:
        """Probe /api/health. A 404 counts as healthy (the endpoint is optional)."""
        try:
            response = await self._send("GET", "/api/health", timeout=5.0)
        except httpx.TimeoutException:
            return HealthStatus(status="timeout", healthy=False)
        except httpx.HTTPError as exc:
            return HealthStatus(status="error", healthy=False, error=str(exc))
        return HealthStatus(
            status=response.status_code,
            healthy=response.status_code in (200, 404),
        )

    async def cleanup_test_dishes(self, session_cookie: str) -> List[DishId]:
        """Delete every dish with "Test" in its name; returns the deleted ids."""
        listing = await self.list_dishes(session_cookie)
        if listing.status != 200:
            logger.warning("Could not list dishes for cleanup: %s", listing)
            return []

        deleted: List[DishId] = []
        for dish in listing.dishes:
            if "Test" in (dish.get("name") or ""):
                result = await self.delete_dish(dish["id"], session_cookie)
                if result.ok:
                    deleted.append(dish["id"])
        logger.info("Cleanup removed %d test dishes", len(deleted))
        return deleted

    async def create_test_user(self, prefix: str = "api") -> "ApiTestUser":
        """Register a brand-new user and log it in (one user per test case).

        Raises:
            HarnessError: Registration or login did not succeed
        """
        identity = generate_user_fixture(prefix=prefix)
        registration = await self.register(identity)
        if not registration.ok:
            raise HarnessError(f"Registration of {identity.email} failed: {registration}")
        login = await self.login(identity.email, identity.password)
        if login.status != 200 or not login.session_cookie:
            raise HarnessError(f"Login of {identity.email} failed: {login}")
        return ApiTestUser(identity=identity, user=login.user or {}, session_cookie=login.session_cookie)


@dataclass
class ApiTestUser:
    """A per-test user with its live session credential."""

    identity: TestIdentity
    user: Dict[str, Any]
    session_cookie: str
