"""Reusable UI workflows for the NutriApp suites."""
from __future__ import annotations

import logging
from typing import Literal

import anyio
from playwright.async_api import TimeoutError as PlaywrightTimeout

from nutriapp_tests.browser import Browser, ToolError
from nutriapp_tests.config import settings
from nutriapp_tests.fixtures import DishFixture, TestIdentity
from nutriapp_tests.selectors import Dishes, Login, Nav, NewDish, Register

logger = logging.getLogger(__name__)

DishAction = Literal["view", "edit", "delete"]

_ACTION_SELECTORS = {
    "view": Dishes.VIEW_LINK,
    "edit": Dishes.EDIT_LINK,
    "delete": Dishes.DELETE_BUTTON,
}


def _default_timeout() -> float:
    return settings.profile.default_command_timeout / 1000


async def wait_for_selector(
    browser: Browser,
    selector: str,
    timeout: float | None = None,
) -> None:
    try:
        await browser.wait_for_visible(selector, timeout=timeout)
    except ToolError as exc:
        raise AssertionError(f"Timed out waiting for selector '{selector}'") from exc


async def wait_for_url_contains(
    browser: Browser,
    fragment: str,
    timeout: float | None = None,
    interval: float = 0.2,
) -> str:
    timeout = timeout if timeout is not None else _default_timeout()
    deadline = anyio.current_time() + timeout
    while anyio.current_time() <= deadline:
        url = browser.page.url
        if fragment in url:
            browser.refresh_state()
            return url
        await anyio.sleep(interval)
    raise AssertionError(f"Timed out waiting for URL containing '{fragment}'; last url='{browser.page.url}'")


async def wait_for_text_visible(browser: Browser, text: str, timeout: float | None = None) -> None:
    """Wait until ``text`` is rendered and visible anywhere on the page."""
    timeout = timeout if timeout is not None else _default_timeout()
    try:
        await browser.page.get_by_text(text).first.wait_for(state="visible", timeout=timeout * 1000)
    except PlaywrightTimeout as exc:
        raise AssertionError(f"Timed out waiting for text '{text}' on {browser.page.url}") from exc


async def wait_for_text_absent(
    browser: Browser,
    text: str,
    timeout: float | None = None,
    interval: float = 0.25,
) -> None:
    timeout = timeout if timeout is not None else _default_timeout()
    deadline = anyio.current_time() + timeout
    while anyio.current_time() <= deadline:
        if await browser.page.get_by_text(text).count() == 0:
            return
        await anyio.sleep(interval)
    raise AssertionError(f"Text '{text}' still present on {browser.page.url}")


# ---- navigation -----------------------------------------------------------------------
async def go_to_dishes(browser: Browser) -> None:
    await browser.goto("/dishes")
    await wait_for_selector(browser, Dishes.CONTAINER)


async def logout(browser: Browser) -> None:
    await wait_for_selector(browser, Nav.LOGOUT)
    await browser.click(Nav.LOGOUT)
    await wait_for_url_contains(browser, "/login")


# ---- auth -----------------------------------------------------------------------------
async def submit_login_form(browser: Browser, email: str, password: str) -> None:
    await wait_for_selector(browser, Login.EMAIL)
    await browser.fill(Login.EMAIL, email)
    await browser.fill(Login.PASSWORD, password)
    await browser.click(Login.SUBMIT)


async def ui_login(browser: Browser, email: str, password: str) -> bool:
    """Log in through the form. Returns True once the dishes page is reached."""
    await browser.goto("/login")
    await submit_login_form(browser, email, password)
    try:
        await wait_for_url_contains(browser, "/dishes")
    except AssertionError:
        logger.warning("UI login for %s stayed on %s", email, browser.page.url)
        return False
    return True


async def ui_register(browser: Browser, identity: TestIdentity) -> None:
    """Fill and submit the registration form; a successful signup lands on /login."""
    await browser.goto("/register")
    await wait_for_selector(browser, Register.FIRST_NAME)
    await browser.fill(Register.FIRST_NAME, identity.first_name)
    await browser.fill(Register.LAST_NAME, identity.last_name)
    await browser.fill(Register.EMAIL, identity.email)
    await browser.fill(Register.NATIONALITY, identity.nationality)
    await browser.fill(Register.PHONE, identity.phone)
    await browser.fill(Register.PASSWORD, identity.password)
    await browser.click(Register.SUBMIT)
    await wait_for_url_contains(browser, "/login")


# ---- dishes ---------------------------------------------------------------------------
async def fill_and_submit_dish_form(browser: Browser, dish: DishFixture) -> DishFixture:
    """Create ``dish`` through the form and wait until it shows up in the list.

    Optional fields (calories, image URL) are only typed when present so the
    form's defaults get exercised too.
    """
    await browser.goto("/dishes/new")
    await wait_for_selector(browser, NewDish.NAME)
    await browser.fill(NewDish.NAME, dish.name)
    await browser.fill(NewDish.DESCRIPTION, dish.description)

    if dish.quick_prep:
        await browser.check(NewDish.QUICK_PREP)
    else:
        await browser.fill(NewDish.PREP_TIME, str(dish.prep_time if dish.prep_time is not None else 10))
        await browser.fill(NewDish.COOK_TIME, str(dish.cook_time if dish.cook_time is not None else 15))

    if dish.calories:
        await browser.fill(NewDish.CALORIES, str(dish.calories))

    if dish.image_url and dish.image_url.strip():
        await browser.fill(NewDish.IMAGE_URL, dish.image_url)

    for index, step in enumerate(dish.steps):
        if index == 0:
            await browser.fill(NewDish.STEP, step, nth=0)
        else:
            await browser.click(NewDish.ADD_STEP)
            await browser.fill(NewDish.STEP, step, nth=-1)

    await browser.click(NewDish.SUBMIT)
    await wait_for_url_contains(browser, "/dishes")
    await wait_for_text_visible(browser, dish.name, timeout=10.0)
    logger.info("Created dish %r through the UI", dish.name)
    return dish


async def open_dish_action(browser: Browser, dish_name: str, action: DishAction) -> None:
    """Click view/edit/delete on the card that shows ``dish_name``."""
    card = browser.page.locator(Dishes.CARD).filter(has_text=dish_name).first
    try:
        await card.locator(_ACTION_SELECTORS[action]).click()
    except PlaywrightTimeout as exc:
        raise ToolError(
            name="open_dish_action",
            payload={"dish": dish_name, "action": action},
            message=str(exc),
        )
    browser.refresh_state()
