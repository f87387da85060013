"""Live suite: runs against a deployed gateway.

Run explicitly with `pytest gateway_e2e/tests`. Configuration is resolved at
import so a missing API_BASE_URL / COLIMA_VM_URL aborts the run before any
test is collected.
"""

import pytest
import pytest_asyncio
from playwright.async_api import async_playwright

from gateway_e2e.config import load_test_config

LIVE_CONFIG = load_test_config()


def pytest_collection_modifyitems(items):
    for item in items:
        item.add_marker(pytest.mark.e2e)


@pytest.fixture(scope="session")
def test_config():
    return LIVE_CONFIG


@pytest_asyncio.fixture
async def frontend_page(test_config):
    """Chromium page whose relative URLs resolve against the frontend."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=True)
        context = await browser.new_context(base_url=test_config.frontend_url)
        try:
            yield await context.new_page()
        finally:
            await context.close()
            await browser.close()
