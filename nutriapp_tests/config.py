"""Shared configuration for the NutriApp test suites.

Settings come from environment variables, layered over a per-environment
profile (local / ci / staging):

- NUTRIAPP_ENV selects the profile explicitly; otherwise ``ci`` when CI is set.
- NUTRIAPP_BASE_URL (or the legacy CYPRESS_baseUrl) overrides the base URL.
- GITHUB_RUN_ID tags generated users so parallel CI shards never collide.
"""
from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterator, Literal, Optional
from urllib.parse import urljoin

EnvironmentName = Literal["local", "ci", "staging"]

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class EnvironmentProfile:
    """Timeouts (milliseconds), retries and capture settings for one environment."""

    name: str
    base_url: str
    default_command_timeout: int
    request_timeout: int
    response_timeout: int
    page_load_timeout: int
    video: bool
    screenshot_on_failure: bool
    retries: int
    viewport_width: int = 1280
    viewport_height: int = 720

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout / 1000


PROFILES: Dict[str, EnvironmentProfile] = {
    "ci": EnvironmentProfile(
        name="ci",
        base_url="http://localhost:3000",
        default_command_timeout=15000,
        request_timeout=20000,
        response_timeout=20000,
        page_load_timeout=30000,
        video=True,
        screenshot_on_failure=True,
        retries=2,
    ),
    "local": EnvironmentProfile(
        name="local",
        base_url="http://localhost:3000",
        default_command_timeout=10000,
        request_timeout=15000,
        response_timeout=15000,
        page_load_timeout=60000,
        video=False,
        screenshot_on_failure=True,
        retries=0,
    ),
    "staging": EnvironmentProfile(
        name="staging",
        base_url="https://staging.happytesting.com",
        default_command_timeout=20000,
        request_timeout=30000,
        response_timeout=30000,
        page_load_timeout=45000,
        video=True,
        screenshot_on_failure=True,
        retries=3,
    ),
}


def is_ci() -> bool:
    return _env_flag("CI") or _env_flag("GITHUB_ACTIONS")


def get_environment_name() -> EnvironmentName:
    """Resolve the active profile name.

    Raises:
        ValueError: If NUTRIAPP_ENV names an unknown profile
    """
    explicit = os.getenv("NUTRIAPP_ENV", "").strip().lower()
    if explicit:
        if explicit not in PROFILES:
            raise ValueError(
                f"Invalid NUTRIAPP_ENV: {explicit!r}. Must be one of {sorted(PROFILES)}"
            )
        return explicit  # type: ignore[return-value]
    return "ci" if is_ci() else "local"


def get_profile(name: Optional[str] = None) -> EnvironmentProfile:
    return PROFILES[name or get_environment_name()]


def get_run_id() -> Optional[str]:
    """CI run identifier embedded in generated identities (None outside CI)."""
    if not is_ci():
        return None
    return os.getenv("GITHUB_RUN_ID") or "unknown"


class NutriAppTestConfig:
    """Configuration resolved from the environment at import time."""

    def __init__(self) -> None:
        self._profile = get_profile()

        base_url = (
            os.getenv("NUTRIAPP_BASE_URL")
            or os.getenv("CYPRESS_baseUrl")
            or self._profile.base_url
        )
        self._base_url: str = base_url.rstrip("/")
        self._base_url_explicit = bool(
            os.getenv("NUTRIAPP_BASE_URL") or os.getenv("CYPRESS_baseUrl")
        )

        self.node_env: str = os.getenv("NODE_ENV", "test")
        self.ci: bool = is_ci()
        self.github_actions: bool = _env_flag("GITHUB_ACTIONS")
        self.run_id: Optional[str] = get_run_id()
        self.playwright_headless: bool = _env_flag("PLAYWRIGHT_HEADLESS", default=True)
        self.artifacts_dir: Path = Path(os.getenv("NUTRIAPP_ARTIFACTS_DIR", "test-artifacts"))
        self.reprovision_delay: float = float(os.getenv("NUTRIAPP_REPROVISION_DELAY", "1.0"))

        # A fixed, pre-existing account replaces the per-run generated user.
        self.fixed_user_email: Optional[str] = os.getenv("NUTRIAPP_USER_EMAIL") or None
        self.fixed_user_password: Optional[str] = os.getenv("NUTRIAPP_USER_PASSWORD") or None

        print(
            f"[CONFIG] profile={self._profile.name} base_url={self._base_url} "
            f"ci={self.ci} run_id={self.run_id or '-'}"
        )

    # ---- profile helpers --------------------------------------------------------
    @property
    def profile(self) -> EnvironmentProfile:
        return self._profile

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def base_url_explicit(self) -> bool:
        """True when the target was chosen through the environment."""
        return self._base_url_explicit

    @property
    def request_timeout(self) -> float:
        """HTTP timeout in seconds for API helpers."""
        return self._profile.request_timeout_seconds

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self._profile.viewport_width, "height": self._profile.viewport_height}

    @property
    def retries(self) -> int:
        return self._profile.retries

    # ---- overrides ---------------------------------------------------------------
    @contextmanager
    def use_base_url(self, base_url: str) -> Iterator[str]:
        """Temporarily point the suites at another target (e.g. the mock API)."""
        previous = self._base_url
        self._base_url = base_url.rstrip("/")
        try:
            yield self._base_url
        finally:
            self._base_url = previous

    @contextmanager
    def use_profile(self, name: str) -> Iterator[EnvironmentProfile]:
        previous = self._profile
        self._profile = replace(PROFILES[name])
        try:
            yield self._profile
        finally:
            self._profile = previous

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        return urljoin(self.base_url + "/", path.lstrip("/"))


# Singleton instance - initialized on first import
settings = NutriAppTestConfig()
