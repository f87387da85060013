"""Offline fixtures: the plugin fixtures are pointed at an in-process mock gateway."""
from __future__ import annotations

import json

import pytest

from gateway_e2e.config import GatewayTestConfig, load_test_config
from gateway_e2e.mock_gateway import MockGatewayServer, MockGatewayState
from gateway_e2e.retry import RetryPolicy

# Same attempt bound as production, without the waiting
FAST_RETRY = RetryPolicy(max_attempts=5, delay=0)

SEED_DATA = {
    "users": [
        {"id": "1", "email": "admin@ugjb.com", "password": "Admin@123!", "name": "Admin User",
         "roles": ["admin", "user"]},
        {"id": "2", "email": "user@ugjb.com", "password": "User@123!", "name": "Regular User",
         "roles": ["user"]},
        {"id": "3", "email": "manager@ugjb.com", "password": "Manager@123!", "name": "Manager",
         "roles": ["manager", "user"]},
        {"id": "4", "email": "second-admin@ugjb.com", "password": "Admin2@123!", "name": "Second Admin",
         "roles": ["admin"]},
    ]
}


@pytest.fixture(scope="session")
def mock_gateway():
    """Mock gateway shared by the whole offline run."""
    with MockGatewayServer() as server:
        yield server


@pytest.fixture
def gateway_state(mock_gateway) -> MockGatewayState:
    """Mock gateway state, reset to the default accounts for this test."""
    mock_gateway.state.reset()
    return mock_gateway.state


@pytest.fixture(scope="session")
def test_config(mock_gateway) -> GatewayTestConfig:
    return load_test_config({"API_BASE_URL": mock_gateway.url, "E2E_REQUEST_TIMEOUT": "5"})


@pytest.fixture
def user_retry_policy() -> RetryPolicy:
    return FAST_RETRY


@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(SEED_DATA), encoding="utf-8")
    return path
