import logging
import re
import sys
from pathlib import Path

import anyio
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nutriapp_tests.api_client import NutriAppApiClient
from nutriapp_tests.auth import AuthOrchestrator
from nutriapp_tests.browser import Browser
from nutriapp_tests.config import settings
from nutriapp_tests.conftest_mock_api import MockNutriAppServer
from nutriapp_tests.errors import ProvisioningError
from nutriapp_tests.page_errors import PageErrorMonitor
from nutriapp_tests.playwright_client import PlaywrightClient
from nutriapp_tests.session_user import SessionUserManager

logger = logging.getLogger(__name__)

SPEC_DIR = Path(__file__).resolve().parent / "tests"
UI_SKIP_REASON = "UI suites need a live NutriApp; set NUTRIAPP_BASE_URL (or CYPRESS_baseUrl)"


# ============================================================================
# Collection: runner-level retries and target-dependent skips
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "ui: browser tests; need a live NutriApp (NUTRIAPP_BASE_URL)")


def pytest_collection_modifyitems(config, items):
    """Add reruns for flaky specs and skip browser specs without a live target."""
    retries = settings.retries
    for item in items:
        if item.get_closest_marker("ui") and not settings.base_url_explicit:
            item.add_marker(pytest.mark.skip(reason=UI_SKIP_REASON))
        elif retries and SPEC_DIR in item.path.resolve().parents and not item.get_closest_marker("flaky"):
            item.add_marker(pytest.mark.flaky(reruns=retries))


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Keep each phase's report on the item and attach the last API exchange on failure."""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)

    if report.when == "call" and report.failed and "api" in item.fixturenames:
        client = item.funcargs.get("api")
        last = getattr(client, "last_response", None)
        if last is not None:
            report.sections.append(("Last API exchange", str(last)))


def _artifact_name(nodeid: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", nodeid)[-120:]


# ============================================================================
# Target and session user (one per process / CI shard)
# ============================================================================

@pytest.fixture(scope="session")
def target_base_url():
    """Base URL under test; the mock API stands in when none is configured."""
    if settings.base_url_explicit:
        yield settings.base_url
        return

    server = MockNutriAppServer()
    server.start()
    logger.info("No NUTRIAPP_BASE_URL set; running API suites against mock at %s", server.url)
    try:
        with settings.use_base_url(server.url):
            yield server.url
    finally:
        server.stop()


@pytest.fixture(scope="session")
def session_api(target_base_url):
    """Process-wide API client (one-shot connections, safe across event loops)."""
    return NutriAppApiClient(base_url=target_base_url)


@pytest.fixture(scope="session")
def session_user_manager(session_api):
    return SessionUserManager.from_settings(session_api)


@pytest.fixture(scope="session")
def session_context(session_user_manager):
    """Provision the session user before any test runs; abort the run on failure."""
    try:
        return anyio.run(session_user_manager.ensure_provisioned)
    except ProvisioningError as exc:
        pytest.exit(f"Session test user could not be provisioned: {exc}", returncode=3)


@pytest.fixture(scope="session")
def auth_orchestrator(session_api, session_user_manager, session_context):
    return AuthOrchestrator(session_api, session_user_manager)


@pytest.fixture()
def identity(session_context):
    return session_context.identity


# ============================================================================
# Per-test API fixtures
# ============================================================================

@pytest_asyncio.fixture()
async def api(target_base_url):
    """Connected API client for one test."""
    async with NutriAppApiClient(base_url=target_base_url) as client:
        yield client


@pytest_asyncio.fixture()
async def session_cookie(auth_orchestrator):
    """Fresh API session for the session user."""
    result = await auth_orchestrator.authenticate()
    return result.session_cookie


@pytest_asyncio.fixture()
async def api_test_user(api):
    """A brand-new registered and logged-in user for this test only."""
    return await api.create_test_user()


# ============================================================================
# Browser fixtures
# ============================================================================

@pytest_asyncio.fixture()
async def playwright_client(target_base_url, request):
    """Launch Playwright; videos go to the artifacts dir when the profile records them."""
    video_dir = None
    if settings.profile.video:
        video_dir = settings.artifacts_dir / "videos" / _artifact_name(request.node.nodeid)
    async with PlaywrightClient(base_url=target_base_url, video_dir=video_dir) as client:
        yield client


@pytest_asyncio.fixture()
async def browser(playwright_client, api, request):
    """Browser wrapper with uncaught page errors filtered and checked after the test."""
    browser = Browser(playwright_client.page)
    browser.accept_dialogs()
    monitor = PageErrorMonitor().attach(playwright_client.page)

    if settings.ci:
        response = await api.get("/")
        if response.status != 200:
            logger.warning("CI: application returned status %s before %s", response.status, request.node.name)

    await browser.reset()
    yield browser

    report = getattr(request.node, "rep_call", None)
    if report is not None and report.failed and settings.profile.screenshot_on_failure:
        path = settings.artifacts_dir / "screenshots" / f"{_artifact_name(request.node.nodeid)}.png"
        await browser.screenshot(path)
        logger.info("Saved failure screenshot to %s", path)

    if settings.ci:
        await browser.clear_state()

    monitor.assert_clean()


@pytest_asyncio.fixture()
async def logged_in_browser(browser, auth_orchestrator):
    """Browser sitting on /dishes as the session user."""
    await auth_orchestrator.login_browser(browser)
    return browser
