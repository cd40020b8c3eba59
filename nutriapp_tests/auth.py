"""Login fallback chain for the session user, as an explicit state machine.

    ATTEMPT_API_LOGIN --ok--> AUTHENTICATED
    ATTEMPT_API_LOGIN --fail--> REPROVISION --> RETRY_API_LOGIN --ok--> AUTHENTICATED
    RETRY_API_LOGIN --fail--> UI_LOGIN_FALLBACK --> AUTHENTICATED | FAILED

At most one reprovision per orchestrator (one orchestrator per process); once
it is spent a failed API login goes straight to the UI fallback. The UI
fallback runs once per ``authenticate()`` call and a failure there is final.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional

import anyio
import httpx

from nutriapp_tests.api_client import ApiResponse, NutriAppApiClient
from nutriapp_tests.config import settings
from nutriapp_tests.errors import AuthenticationError
from nutriapp_tests.fixtures import TestIdentity
from nutriapp_tests.session_user import SessionUserManager

if TYPE_CHECKING:
    from nutriapp_tests.browser import Browser

logger = logging.getLogger(__name__)

UiLogin = Callable[[TestIdentity], Awaitable[bool]]


class AuthState(enum.Enum):
    ATTEMPT_API_LOGIN = "attempt-api-login"
    REPROVISION = "reprovision"
    RETRY_API_LOGIN = "retry-api-login"
    UI_LOGIN_FALLBACK = "ui-login-fallback"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


_LOG_LEVELS = {
    AuthState.REPROVISION: logging.WARNING,
    AuthState.UI_LOGIN_FALLBACK: logging.WARNING,
    AuthState.FAILED: logging.ERROR,
}


@dataclass(frozen=True)
class AuthTransition:
    source: AuthState
    target: AuthState
    cause: str


@dataclass
class AuthResult:
    state: AuthState
    method: Optional[str] = None  # 'api' or 'ui'
    session_cookie: Optional[str] = None
    transitions: List[AuthTransition] = field(default_factory=list)

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED


class _Run:
    """Bookkeeping for one pass through the state machine."""

    def __init__(self) -> None:
        self.state = AuthState.ATTEMPT_API_LOGIN
        self.transitions: List[AuthTransition] = []

    def move(self, target: AuthState, cause: str) -> None:
        transition = AuthTransition(self.state, target, cause)
        self.transitions.append(transition)
        logger.log(
            _LOG_LEVELS.get(target, logging.INFO),
            "auth %s -> %s: %s",
            transition.source.value,
            target.value,
            cause,
        )
        self.state = target


def _login_succeeded(response: Optional[ApiResponse]) -> bool:
    return response is not None and response.status == 200 and response.session_cookie is not None


def _describe(response: Optional[ApiResponse], error: Optional[Exception]) -> str:
    if error is not None:
        return f"request error: {error}"
    if response is None:
        return "no response"
    if response.status == 200:
        return "status 200 without a session cookie"
    return f"status {response.status} {response.error or ''}".rstrip()


class AuthOrchestrator:
    """Authenticate the session user: API first, UI as last resort."""

    def __init__(
        self,
        api: NutriAppApiClient,
        users: SessionUserManager,
        ui_login: Optional[UiLogin] = None,
        reprovision_delay: Optional[float] = None,
        max_reprovisions: int = 1,
    ) -> None:
        self._api = api
        self._users = users
        self._ui_login = ui_login
        self._delay = settings.reprovision_delay if reprovision_delay is None else reprovision_delay
        self._max_reprovisions = max_reprovisions
        self.reprovisions_used = 0

    async def _api_login(self, identity: TestIdentity):
        try:
            return await self._api.login(identity.email, identity.password), None
        except httpx.HTTPError as exc:
            return None, exc

    async def authenticate(self, ui_login: Optional[UiLogin] = None) -> AuthResult:
        """Walk the fallback chain.

        Args:
            ui_login: Overrides the UI fallback given at construction

        Raises:
            AuthenticationError: The chain ended in FAILED
        """
        identity = self._users.get_or_create_identity()
        run = _Run()

        response, error = await self._api_login(identity)
        if _login_succeeded(response):
            run.move(AuthState.AUTHENTICATED, "API login succeeded")
            return AuthResult(AuthState.AUTHENTICATED, "api", response.session_cookie, run.transitions)
        cause = _describe(response, error)

        if self.reprovisions_used < self._max_reprovisions:
            self.reprovisions_used += 1
            run.move(AuthState.REPROVISION, f"API login failed ({cause})")
            registration = await self._users.reprovision()
            await anyio.sleep(self._delay)
            if registration is None:
                run.move(AuthState.RETRY_API_LOGIN, "re-registration skipped for pre-registered account")
            else:
                run.move(AuthState.RETRY_API_LOGIN, f"re-registration returned {registration.status}")

            response, error = await self._api_login(identity)
            if _login_succeeded(response):
                run.move(AuthState.AUTHENTICATED, "API login succeeded after reprovision")
                return AuthResult(AuthState.AUTHENTICATED, "api", response.session_cookie, run.transitions)
            cause = _describe(response, error)
            run.move(AuthState.UI_LOGIN_FALLBACK, f"API login retry failed ({cause})")
        else:
            run.move(
                AuthState.UI_LOGIN_FALLBACK,
                f"API login failed ({cause}); reprovision budget spent",
            )

        fallback = ui_login or self._ui_login
        if fallback is None:
            run.move(AuthState.FAILED, "no UI login available")
            raise AuthenticationError(f"Could not authenticate {identity.email}", run.transitions)

        try:
            logged_in = await fallback(identity)
        except Exception as exc:
            run.move(AuthState.FAILED, f"UI login raised {type(exc).__name__}: {exc}")
            raise AuthenticationError(
                f"UI login for {identity.email} failed", run.transitions
            ) from exc

        if not logged_in:
            run.move(AuthState.FAILED, "UI login did not reach the dishes page")
            raise AuthenticationError(f"UI login for {identity.email} failed", run.transitions)

        run.move(AuthState.AUTHENTICATED, "UI login succeeded")
        return AuthResult(AuthState.AUTHENTICATED, "ui", None, run.transitions)

    async def login_browser(self, browser: "Browser") -> AuthResult:
        """Authenticate and leave ``browser`` on /dishes as the session user."""
        from nutriapp_tests import workflows

        async def ui_login(identity: TestIdentity) -> bool:
            return await workflows.ui_login(browser, identity.email, identity.password)

        result = await self.authenticate(ui_login=ui_login)
        if result.method == "api":
            await browser.add_session_cookie(result.session_cookie, settings.base_url)
            await workflows.go_to_dishes(browser)
        return result
