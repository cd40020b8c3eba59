"""Filter for uncaught exceptions raised inside the application under test.

Known-benign browser noise is logged and ignored; anything else fails the test.
"""
from __future__ import annotations

import logging
from typing import List, Sequence

from playwright.async_api import Error as PlaywrightError, Page

logger = logging.getLogger(__name__)

IGNORABLE_ERRORS: Sequence[str] = (
    "ResizeObserver loop limit exceeded",
    "Non-Error promise rejection captured",
    "Loading chunk",
    "Loading CSS chunk",
)


def is_ignorable(message: str, allow_list: Sequence[str] = IGNORABLE_ERRORS) -> bool:
    return any(fragment in message for fragment in allow_list)


class PageErrorMonitor:
    """Collects ``pageerror`` events from a Playwright page."""

    def __init__(self, allow_list: Sequence[str] = IGNORABLE_ERRORS) -> None:
        self.allow_list = tuple(allow_list)
        self.errors: List[str] = []
        self.ignored: List[str] = []

    def attach(self, page: Page) -> "PageErrorMonitor":
        page.on("pageerror", self._on_page_error)
        return self

    def _on_page_error(self, error: PlaywrightError) -> None:
        self.record(getattr(error, "message", None) or str(error))

    def record(self, message: str) -> None:
        if is_ignorable(message, self.allow_list):
            logger.warning("Ignoring known page error: %s", message)
            self.ignored.append(message)
        else:
            logger.error("Uncaught page error: %s", message)
            self.errors.append(message)

    def assert_clean(self) -> None:
        assert not self.errors, f"Uncaught exceptions in the application: {self.errors}"
