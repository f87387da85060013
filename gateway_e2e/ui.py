"""Browser-level helpers for frontend tests served through the gateway.

Pages are expected to come from a context created with `base_url` set to
the frontend URL, so relative paths such as "/login" resolve against it.
"""
from __future__ import annotations

import re
from typing import Optional, Pattern

from playwright.async_api import Page, expect

from gateway_e2e.test_users import TEST_USERS

EMAIL_PLACEHOLDER = re.compile("email", re.IGNORECASE)
PASSWORD_PLACEHOLDER = re.compile("password", re.IGNORECASE)
SIGN_IN_BUTTON = re.compile("sign in|log in", re.IGNORECASE)
SIGN_OUT_BUTTON = re.compile("logout|sign out", re.IGNORECASE)
ERROR_BOUNDARY_TEXT = "Something went wrong"
LOAD_FAILED = re.compile("failed to load", re.IGNORECASE)


async def login_as(page: Page, email: str, password: str) -> None:
    """Log in through the login form and wait for the home page."""
    await page.goto("/login")
    await page.get_by_placeholder(EMAIL_PLACEHOLDER).fill(email)
    await page.get_by_placeholder(PASSWORD_PLACEHOLDER).fill(password)
    await page.get_by_role("button", name=SIGN_IN_BUTTON).click()
    await page.wait_for_url("/")


async def login(page: Page) -> None:
    """Log in as the seeded admin."""
    admin = TEST_USERS["admin"]
    await login_as(page, admin.email, admin.password)


async def logout(page: Page) -> None:
    await page.get_by_role("button", name=SIGN_OUT_BUTTON).click()
    await page.wait_for_url("/login")


async def verify_no_error_boundary(page: Page) -> None:
    """The React error fallback must not be rendered."""
    await expect(page.get_by_text(ERROR_BOUNDARY_TEXT)).not_to_be_visible()


async def verify_main_content(page: Page) -> None:
    await expect(page.locator('main, [role="main"]').first).to_be_visible()


async def verify_page_with_heading(page: Page, heading: Pattern[str]) -> None:
    """Either the expected heading or an explicit load-failure state is shown."""
    await verify_no_error_boundary(page)
    page_heading = page.get_by_role("heading", name=heading)
    error_state = page.get_by_text(LOAD_FAILED)
    await expect(page_heading.or_(error_state).first).to_be_visible()


async def verify_authenticated(page: Page) -> None:
    await expect(page).not_to_have_url(re.compile(r"/login"))


async def verify_page_loaded(page: Page, url_pattern: Optional[Pattern[str]] = None) -> None:
    await verify_no_error_boundary(page)
    if url_pattern is not None:
        await expect(page).to_have_url(url_pattern)
    await verify_main_content(page)
