"""Stable ``data-testid`` selectors used across the UI suites."""
from __future__ import annotations


def testid(name: str) -> str:
    return f'[data-testid="{name}"]'


class Home:
    CONTAINER = testid("home-container")
    TITLE = testid("home-title")
    SUBTITLE = testid("home-subtitle")
    CTA = f'a{testid("home-cta")}'


class Login:
    CONTAINER = testid("login-container")
    FORM = testid("login-form")
    TITLE = testid("login-title")
    SUBTITLE = testid("login-subtitle")
    EMAIL = testid("login-email-input")
    PASSWORD = testid("login-password-input")
    SUBMIT = testid("login-submit")
    ERROR = testid("login-error")
    REGISTER_LINK = testid("login-register-link")


class Register:
    CONTAINER = testid("register-container")
    TITLE = testid("register-title")
    SUBTITLE = testid("register-subtitle")
    FIRST_NAME = testid("register-firstname")
    LAST_NAME = testid("register-lastname")
    EMAIL = testid("register-email")
    NATIONALITY = testid("register-nationality")
    PHONE = testid("register-phone")
    PASSWORD = testid("register-password")
    SUBMIT = testid("register-submit")
    LOGIN_LINK = testid("register-login-link")


class Nav:
    HOME = testid("nav-home")
    DISHES = testid("nav-dishes")
    LOGIN = testid("nav-login")
    LOGOUT = testid("nav-logout-button")


class Dishes:
    CONTAINER = testid("dishes-container")
    HEADER = testid("dishes-header")
    TITLE = testid("dishes-title")
    ADD_BUTTON = testid("dishes-add-button")
    CARD = testid("dish-card")
    VIEW_LINK = testid("dish-view-link")
    EDIT_LINK = testid("dish-edit-link")
    DELETE_BUTTON = testid("dish-delete-button")


class NewDish:
    CONTAINER = testid("new-dish-container")
    TITLE = testid("new-dish-title")
    NAME = testid("new-dish-name-input")
    DESCRIPTION = testid("new-dish-description-input")
    PREP_TIME = testid("new-dish-preptime-input")
    COOK_TIME = testid("new-dish-cooktime-input")
    CALORIES = testid("new-dish-calories-input")
    IMAGE_URL = testid("new-dish-image-url-input")
    QUICK_PREP = testid("new-dish-quickprep-checkbox")
    STEP = testid("new-dish-step-input")
    ADD_STEP = testid("new-dish-add-step-button")
    SUBMIT = testid("new-dish-submit-button")


class ViewDish:
    CONTAINER = testid("view-dish-container")
    NAME = testid("view-dish-name")
    DESCRIPTION = testid("view-dish-description")
    STEPS_SECTION = testid("view-dish-steps-section")
    STEP_TEXT = testid("view-dish-step-text")


class EditDish:
    CONTAINER = testid("edit-dish-container")
    FORM = testid("edit-dish-form")
    NAME = testid("edit-dish-name")
    DESCRIPTION = testid("edit-dish-description")
    SUBMIT = testid("edit-dish-submit")


BREADCRUMB_LINKS = '[data-testid*="breadcrumb"] a'
MOBILE_MENU = '[data-testid*="mobile-menu"]'
