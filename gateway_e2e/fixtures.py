"""pytest plugin exposing the gateway E2E fixtures.

Enable it from a conftest with:

    pytest_plugins = ["gateway_e2e.fixtures"]

Fixtures:
    test_config            resolved environment (session scope)
    api_base_url           gateway base URL
    api_request            unauthenticated httpx.AsyncClient
    authenticated_request  factory: `await authenticated_request("admin")`
    test_user_manager      TestUserManager, cleaned up after the test
    test_user              one authenticated ephemeral user
    seed_catalog           SeedCatalog (session scope)

Tests that take a `seed_login_case` or `seed_role_case` argument are
parametrized with one case per seed user or per distinct role.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
import pytest
import pytest_asyncio

from gateway_e2e.cases import build_login_cases, build_role_cases
from gateway_e2e.config import GatewayTestConfig, load_test_config
from gateway_e2e.request_context import AuthenticatedRequestFactory
from gateway_e2e.retry import DEFAULT_AUTH_RETRY, RetryPolicy
from gateway_e2e.seed import SeedCatalog, load_seed_catalog, resolve_seed_path
from gateway_e2e.user_management import EphemeralTestUser, TestUserManager

logger = logging.getLogger(__name__)

_SEED_CATALOG_KEY = pytest.StashKey[SeedCatalog]()


def pytest_addoption(parser):
    group = parser.getgroup("gateway-e2e")
    group.addoption(
        "--seed-data",
        action="store",
        default=None,
        help="Gateway seed.json used to generate per-user and per-role tests "
             "(default: $SEED_DATA_PATH or the repository seed file)",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: test talks to a live API gateway")
    config.addinivalue_line("markers", "ui: test drives a browser against the frontend")


def get_seed_catalog(config) -> SeedCatalog:
    """Load the seed catalog once per run; a failure propagates to the caller."""
    catalog = config.stash.get(_SEED_CATALOG_KEY, None)
    if catalog is None:
        catalog = load_seed_catalog(resolve_seed_path(config.getoption("--seed-data")))
        config.stash[_SEED_CATALOG_KEY] = catalog
    return catalog


def pytest_generate_tests(metafunc):
    wants_login = "seed_login_case" in metafunc.fixturenames
    wants_role = "seed_role_case" in metafunc.fixturenames
    if not (wants_login or wants_role):
        return

    # Raising here fails collection of the requesting module only
    catalog = get_seed_catalog(metafunc.config)

    if wants_login:
        cases = build_login_cases(catalog)
        metafunc.parametrize("seed_login_case", cases, ids=[c.name for c in cases])
    if wants_role:
        cases = build_role_cases(catalog)
        metafunc.parametrize("seed_role_case", cases, ids=[c.name for c in cases])


@pytest.fixture(scope="session")
def test_config() -> GatewayTestConfig:
    return load_test_config()


@pytest.fixture(scope="session")
def api_base_url(test_config: GatewayTestConfig) -> str:
    return test_config.api_base_url


@pytest.fixture(scope="session")
def seed_catalog(request) -> SeedCatalog:
    return get_seed_catalog(request.config)


@pytest.fixture
def gateway_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for every fixture-created client; None means real network."""
    return None


@pytest.fixture
def user_retry_policy() -> RetryPolicy:
    """Login retry schedule for freshly provisioned users."""
    return DEFAULT_AUTH_RETRY


@pytest_asyncio.fixture
async def api_request(test_config, gateway_transport):
    """Unauthenticated client bound to the gateway."""
    async with httpx.AsyncClient(
        base_url=test_config.api_base_url,
        transport=gateway_transport,
        timeout=test_config.request_timeout,
    ) as client:
        yield client


@pytest_asyncio.fixture
async def authenticated_request(test_config, gateway_transport):
    """Factory for authenticated clients; every client is closed after the test.

    Usage:
        async def test_admin_only(authenticated_request):
            admin = await authenticated_request("admin")
            response = await admin.get("/api/v1/protected")
    """
    factory = AuthenticatedRequestFactory(
        test_config.api_base_url,
        transport=gateway_transport,
        timeout=test_config.request_timeout,
    )
    try:
        yield factory
    finally:
        await factory.dispose_all()


@pytest_asyncio.fixture
async def test_user_manager(api_request, user_retry_policy):
    """Manager for tests needing several isolated users."""
    manager = TestUserManager(api_request, retry_policy=user_retry_policy)
    try:
        yield manager
    finally:
        results = await manager.cleanup()
        failed = [r for r in results if not r.ok]
        if failed:
            logger.warning("%d test user(s) could not be removed: %s",
                           len(failed), ", ".join(r.user.id for r in failed))


@pytest_asyncio.fixture
async def test_user(test_user_manager) -> EphemeralTestUser:
    """One authenticated ephemeral user, deleted after the test."""
    return await test_user_manager.create()
