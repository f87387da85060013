import re

import pytest

from gateway_e2e.api_utils import expect_success_response
from gateway_e2e.ui import login, verify_authenticated, verify_page_with_heading

pytestmark = pytest.mark.asyncio

NAVIGATION_PATH = "/api/navigation"
SETTINGS_LINK = re.compile("settings", re.IGNORECASE)
DASHBOARD_LINK = re.compile("dashboard", re.IGNORECASE)


async def test_navigation_items(api_request):
    data = expect_success_response(await api_request.get(NAVIGATION_PATH))

    assert isinstance(data["items"], list)
    for item in data["items"]:
        assert isinstance(item["name"], str)
        assert isinstance(item["icon"], str)
        assert item["href"].startswith("/")
    names = [item["name"] for item in data["items"]]
    assert "Dashboard" in names
    assert "Settings" in names


@pytest.mark.ui
async def test_sidebar_navigates_to_settings(frontend_page):
    await login(frontend_page)
    await verify_authenticated(frontend_page)

    await frontend_page.get_by_role("link", name=SETTINGS_LINK).click()
    await frontend_page.wait_for_url(re.compile(r"/settings"))

    await verify_page_with_heading(frontend_page, SETTINGS_LINK)


@pytest.mark.ui
async def test_sidebar_returns_to_dashboard(frontend_page):
    await login(frontend_page)
    await frontend_page.get_by_role("link", name=SETTINGS_LINK).click()

    await frontend_page.get_by_role("link", name=DASHBOARD_LINK).click()

    await verify_page_with_heading(frontend_page, DASHBOARD_LINK)
