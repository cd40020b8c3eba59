"""Page wrapper used by the NutriApp UI workflows.

Selectors are ``data-testid`` CSS selectors (see ``selectors.py``); relative
paths are resolved against the configured base URL. Playwright failures are
re-raised as ``ToolError`` so a failing step names the action and selector.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import anyio
from playwright.async_api import Dialog, Locator, Page, TimeoutError as PlaywrightTimeout

from nutriapp_tests.config import settings

READ_TIMEOUT_MS = 5000


@dataclass
class ToolError(Exception):
    """A browser step failed."""

    name: str
    payload: Dict[str, Any]
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


class Browser:
    """One Playwright page plus the last URL and HTTP status it saw."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self.current_url: str | None = None
        self.last_status: int | None = None

    @property
    def page(self) -> Page:
        return self._page

    def refresh_state(self) -> str:
        self.current_url = self._page.url
        return self.current_url

    def _locate(self, selector: str, nth: Optional[int] = None) -> Locator:
        locator = self._page.locator(selector)
        if nth is None:
            return locator.first
        return locator.last if nth == -1 else locator.nth(nth)

    # ---- navigation -----------------------------------------------------------------
    async def reset(self) -> None:
        """Park the page on about:blank."""
        await self._page.goto("about:blank")
        self.refresh_state()

    async def goto(self, path: str, wait_until: str = "domcontentloaded") -> Optional[int]:
        """Open ``path`` (relative to the base URL) or an absolute URL.

        Error pages do not raise; their status is returned and kept in
        ``last_status``.
        """
        url = path if urlparse(path).scheme else settings.url(path)
        try:
            response = await self._page.goto(url, wait_until=wait_until)
        except PlaywrightTimeout as exc:
            raise ToolError(name="goto", payload={"url": url}, message=str(exc))
        self.last_status = response.status if response else None
        self.refresh_state()
        return self.last_status

    # ---- input ----------------------------------------------------------------------
    async def fill(self, selector: str, value: str, nth: Optional[int] = None) -> None:
        """Type into an input; ``nth`` picks one of several matches (-1 = last)."""
        try:
            await self._locate(selector, nth).fill(value)
        except Exception as exc:
            raise ToolError(name="fill", payload={"selector": selector, "nth": nth}, message=str(exc))

    async def click(self, selector: str) -> None:
        try:
            await self._locate(selector).click()
        except Exception as exc:
            raise ToolError(name="click", payload={"selector": selector}, message=str(exc))
        self.refresh_state()

    async def check(self, selector: str) -> None:
        try:
            await self._locate(selector).check()
        except Exception as exc:
            raise ToolError(name="check", payload={"selector": selector}, message=str(exc))

    # ---- reading --------------------------------------------------------------------
    async def text(self, selector: str) -> str:
        try:
            return await self._locate(selector).text_content(timeout=READ_TIMEOUT_MS) or ""
        except Exception as exc:
            raise ToolError(name="text", payload={"selector": selector}, message=str(exc))

    async def input_value(self, selector: str) -> str:
        try:
            return await self._locate(selector).input_value(timeout=READ_TIMEOUT_MS)
        except Exception as exc:
            raise ToolError(name="input_value", payload={"selector": selector}, message=str(exc))

    async def count(self, selector: str) -> int:
        return await self._page.locator(selector).count()

    async def is_visible(self, selector: str, timeout: float = READ_TIMEOUT_MS / 1000) -> bool:
        """True once ``selector`` is visible, False if it stays hidden for ``timeout`` seconds."""
        try:
            await self._locate(selector).wait_for(state="visible", timeout=timeout * 1000)
        except PlaywrightTimeout:
            return False
        return True

    async def wait_for_visible(self, selector: str, timeout: float | None = None) -> None:
        """Block until ``selector`` is visible (seconds; default is the profile's command timeout)."""
        timeout_ms = timeout * 1000 if timeout is not None else settings.profile.default_command_timeout
        try:
            await self._locate(selector).wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeout as exc:
            raise ToolError(name="wait_for_visible", payload={"selector": selector}, message=str(exc))

    async def wait_for_text(self, selector: str, expected: str, timeout: float = 5.0, interval: float = 0.25) -> str:
        """Poll ``selector`` until its text contains ``expected``."""
        deadline = anyio.current_time() + timeout
        content = ""
        while True:
            try:
                content = await self.text(selector)
            except ToolError:
                content = ""
            if expected in content:
                return content
            if anyio.current_time() > deadline:
                raise AssertionError(
                    f"'{expected}' never appeared in {selector} within {timeout}s (last text: {content!r})"
                )
            await anyio.sleep(interval)

    async def expect_substring(self, selector: str, expected: str) -> str:
        content = await self.text(selector)
        assert expected in content, f"{selector}: expected '{expected}' in '{content}'"
        return content

    # ---- session and context ---------------------------------------------------------
    async def add_session_cookie(self, session_cookie: str, url: str) -> None:
        """Install a ``session=<value>`` credential into the page's context."""
        name, _, value = session_cookie.partition("=")
        await self._page.context.add_cookies([{"name": name, "value": value, "url": url}])

    async def clear_state(self) -> None:
        """Drop cookies plus local and session storage."""
        await self._page.context.clear_cookies()
        if self._page.url.startswith("http"):
            await self._page.evaluate("() => { localStorage.clear(); sessionStorage.clear(); }")

    def accept_dialogs(self) -> None:
        """Auto-accept ``confirm()``/``alert()`` dialogs (e.g. delete confirmations)."""

        async def handle_dialog(dialog: Dialog) -> None:
            await dialog.accept()

        self._page.on("dialog", handle_dialog)

    async def screenshot(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=str(path), full_page=True)
        return path

    async def set_viewport(self, width: int | None = None, height: int | None = None) -> None:
        """Resize the page; omitted sides fall back to the profile viewport."""
        size = {
            "width": width or settings.viewport["width"],
            "height": height or settings.viewport["height"],
        }
        await self._page.set_viewport_size(size)
