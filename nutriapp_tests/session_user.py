"""Session test user: generated once per process, registered exactly once.

Each pytest process (one per CI shard) owns one ``SessionUserManager``; the
conftest creates it in a session-scoped fixture and hands the resulting
immutable ``SessionContext`` to the tests. The manager is not thread-safe:
provisioning must finish before any test runs.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from nutriapp_tests.api_client import ApiResponse, NutriAppApiClient
from nutriapp_tests.config import settings
from nutriapp_tests.errors import ProvisioningError
from nutriapp_tests.fixtures import TestIdentity, generate_user_fixture

logger = logging.getLogger(__name__)


class ProvisioningState(enum.Enum):
    NEEDS_CREATION = "needs-creation"
    CREATING = "creating"
    READY = "ready"


@dataclass(frozen=True)
class SessionContext:
    """What a test needs to act as the session user."""

    identity: TestIdentity
    base_url: str
    run_id: Optional[str] = None


def fixed_identity(email: str, password: str) -> TestIdentity:
    """Identity for a pre-existing account supplied through the environment."""
    return TestIdentity(
        first_name="Session",
        last_name="User",
        email=email,
        nationality="Mexican",
        phone="0000000000",
        password=password,
    )


class SessionUserManager:
    """Owns the run's single ``TestIdentity`` and its provisioning state."""

    def __init__(
        self,
        api: NutriAppApiClient,
        identity: Optional[TestIdentity] = None,
        preregistered: bool = False,
    ) -> None:
        """
        Args:
            api: Connected API client used for registration and verification
            identity: Use this identity instead of generating one
            preregistered: The identity already exists server-side; skip registration
        """
        self._api = api
        self._identity = identity
        self._preregistered = preregistered
        self._state: Optional[ProvisioningState] = (
            ProvisioningState.NEEDS_CREATION if identity is not None else None
        )
        self._context: Optional[SessionContext] = None

    @classmethod
    def from_settings(cls, api: NutriAppApiClient) -> "SessionUserManager":
        if settings.fixed_user_email and settings.fixed_user_password:
            logger.info("Using fixed session user %s", settings.fixed_user_email)
            return cls(
                api,
                identity=fixed_identity(settings.fixed_user_email, settings.fixed_user_password),
                preregistered=True,
            )
        return cls(api)

    @property
    def state(self) -> Optional[ProvisioningState]:
        """None until an identity has been requested."""
        return self._state

    def get_or_create_identity(self) -> TestIdentity:
        if self._identity is None:
            self._identity = generate_user_fixture(prefix="session")
            self._state = ProvisioningState.NEEDS_CREATION
            logger.info("Generated session user %s", self._identity.email)
        return self._identity

    async def ensure_provisioned(self) -> SessionContext:
        """Register (once) and verify the session user.

        Raises:
            ProvisioningError: Registration or the verifying login failed, or
                provisioning is already in progress
        """
        identity = self.get_or_create_identity()

        if self._state is ProvisioningState.READY and self._context is not None:
            return self._context
        if self._state is ProvisioningState.CREATING:
            raise ProvisioningError(f"Provisioning of {identity.email} is already in progress")

        self._state = ProvisioningState.CREATING
        try:
            if not self._preregistered:
                registration = await self._api.register(identity)
                if registration.status == 409:
                    logger.info("Session user %s already registered", identity.email)
                elif not registration.ok:
                    raise ProvisioningError(
                        f"Registration of {identity.email} failed: {registration}"
                    )

            login = await self._api.login(identity.email, identity.password)
            if login.status != 200 or not login.session_cookie:
                raise ProvisioningError(
                    f"Verification login for {identity.email} failed: {login}"
                )
        except ProvisioningError:
            self._state = ProvisioningState.NEEDS_CREATION
            raise
        except Exception as exc:
            self._state = ProvisioningState.NEEDS_CREATION
            raise ProvisioningError(
                f"Could not reach {self._api.base_url} while provisioning {identity.email}: {exc}"
            ) from exc

        self._state = ProvisioningState.READY
        self._context = SessionContext(
            identity=identity,
            base_url=self._api.base_url,
            run_id=settings.run_id,
        )
        logger.info("Session user %s ready", identity.email)
        return self._context

    async def reprovision(self) -> Optional[ApiResponse]:
        """Register the same identity again (409 means it still exists).

        Pre-registered accounts are never registered; None is returned and the
        caller's retry login decides. Provisioning state is left untouched.
        """
        identity = self.get_or_create_identity()
        if self._preregistered:
            logger.warning("Session user %s is pre-registered; not re-registering", identity.email)
            return None
        logger.warning("Re-registering session user %s", identity.email)
        return await self._api.register(identity)
