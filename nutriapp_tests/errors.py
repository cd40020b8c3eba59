"""Exceptions raised by the harness itself (never for expected HTTP failures)."""
from __future__ import annotations


class HarnessError(Exception):
    """Base class for failures of the test harness."""


class ProvisioningError(HarnessError):
    """The session test user could not be registered or verified.

    Most suites depend on this user, so the run is aborted when it is raised
    during setup.
    """


class AuthenticationError(HarnessError):
    """Every step of the login fallback chain failed."""

    def __init__(self, message: str, transitions=None) -> None:
        super().__init__(message)
        self.transitions = list(transitions or [])
