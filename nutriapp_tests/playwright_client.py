"""
In-process Playwright launcher for the NutriApp UI suites.

One client owns one browser, one context and one page. The context carries
the active profile's viewport, command and page-load timeouts, the target base
URL and, when the profile records video, a per-test video directory.

Usage:
    async with PlaywrightClient(video_dir=Path("test-artifacts/videos/t1")) as client:
        browser = Browser(client.page)
        await browser.goto("/login")
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from nutriapp_tests.config import settings

logger = logging.getLogger(__name__)

# Chromium flags for containerised CI runners.
CI_LAUNCH_ARGS: List[str] = [
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]


class PlaywrightClient:
    """Browser, context and page for one test."""

    def __init__(
        self,
        browser_type: str = "chromium",
        headless: Optional[bool] = None,
        timeout: Optional[int] = None,
        viewport: Optional[Dict[str, int]] = None,
        base_url: Optional[str] = None,
        video_dir: Optional[Path] = None,
    ):
        """
        Args:
            browser_type: chromium, firefox or webkit
            headless: None reads PLAYWRIGHT_HEADLESS (default true)
            timeout: Command timeout in ms (None = active profile)
            viewport: Context viewport (None = active profile)
            base_url: Target for relative navigation (None = configured target)
            video_dir: Record the page's video here
        """
        self.browser_type = browser_type
        self.headless = settings.playwright_headless if headless is None else headless
        self.timeout = timeout if timeout is not None else settings.profile.default_command_timeout
        self.viewport = viewport or settings.viewport
        self.base_url = base_url or settings.base_url
        self.video_dir = video_dir

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def launch_args(self) -> List[str]:
        if self.browser_type == "chromium" and (settings.ci or os.getenv("PLAYWRIGHT_CI_ARGS")):
            return list(CI_LAUNCH_ARGS)
        return []

    def context_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"viewport": self.viewport, "base_url": self.base_url}
        if self.video_dir is not None:
            self.video_dir.mkdir(parents=True, exist_ok=True)
            options["record_video_dir"] = str(self.video_dir)
            options["record_video_size"] = self.viewport
        return options

    async def connect(self) -> None:
        """Start Playwright and open the context and page."""
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_type, None)
        if launcher is None:
            await self.close()
            raise ValueError(f"Unknown browser type: {self.browser_type}")

        logger.info(
            "Launching %s (headless=%s, target=%s, video=%s)",
            self.browser_type,
            self.headless,
            self.base_url,
            self.video_dir is not None,
        )
        self._browser = await launcher.launch(headless=self.headless, args=self.launch_args())
        self._context = await self._browser.new_context(**self.context_options())
        self._context.set_default_timeout(self.timeout)
        self._context.set_default_navigation_timeout(settings.profile.page_load_timeout)
        self._page = await self._context.new_page()

    async def close(self) -> None:
        """Tear down page, context (flushing videos), browser and driver."""
        for resource in (self._page, self._context, self._browser):
            if resource is not None:
                await resource.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._playwright = self._browser = self._context = self._page = None

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("PlaywrightClient is not connected")
        return self._context

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("PlaywrightClient is not connected")
        return self._page
