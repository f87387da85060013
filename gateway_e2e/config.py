"""Environment-driven configuration for the gateway E2E suite.

The gateway under test is located through environment variables:

- API_BASE_URL: full base URL of the API gateway (preferred)
- COLIMA_VM_URL: host URL of the VM running the stack; the gateway port is appended
- BASE_URL: base URL for non-API requests (defaults to the API base URL)
- FRONTEND_URL: base URL for browser tests (defaults to BASE_URL)
- TEST_TOKEN: static bearer token for development endpoints
- SEED_DATA_PATH: seed users JSON file (resolved by `gateway_e2e.seed`)
- E2E_REQUEST_TIMEOUT: HTTP timeout in seconds for fixture-created clients

Loading is fail-fast: a run without API_BASE_URL or COLIMA_VM_URL aborts
before any test executes instead of silently targeting localhost.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional
from urllib.parse import urljoin

from gateway_e2e.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

GATEWAY_PORT = 8080
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_TEST_TOKEN = "test-token"


@dataclass(frozen=True)
class GatewayTestConfig:
    """Resolved locations and knobs for one test run."""

    api_base_url: str
    base_url: str
    frontend_url: str
    colima_vm_url: Optional[str]
    test_token: str = DEFAULT_TEST_TOKEN
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def has_colima_vm_url(self) -> bool:
        return bool(self.colima_vm_url)

    def url(self, path: str) -> str:
        """Return an absolute gateway URL for the provided path."""
        return urljoin(self.api_base_url.rstrip("/") + "/", path.lstrip("/"))


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigurationError(f"E2E_REQUEST_TIMEOUT must be a number of seconds, got {raw!r}") from None
    if timeout <= 0:
        raise ConfigurationError(f"E2E_REQUEST_TIMEOUT must be positive, got {raw!r}")
    return timeout


def load_test_config(environ: Optional[Mapping[str, str]] = None) -> GatewayTestConfig:
    """Build the run configuration from the environment.

    Args:
        environ: Mapping to read instead of `os.environ`

    Returns:
        GatewayTestConfig with every URL resolved

    Raises:
        ConfigurationError: If neither API_BASE_URL nor COLIMA_VM_URL is set,
            or if E2E_REQUEST_TIMEOUT is not a positive number
    """
    env = os.environ if environ is None else environ

    colima_vm_url = env.get("COLIMA_VM_URL") or None
    api_base_url = env.get("API_BASE_URL") or None

    if not colima_vm_url and not api_base_url:
        raise ConfigurationError(
            "COLIMA_VM_URL or API_BASE_URL environment variable must be set.\n"
            "Example: export COLIMA_VM_URL=http://192.168.64.2\n"
            "Or: export API_BASE_URL=http://localhost:8080"
        )

    resolved_api = api_base_url or f"{colima_vm_url.rstrip('/')}:{GATEWAY_PORT}"
    base_url = env.get("BASE_URL") or resolved_api

    config = GatewayTestConfig(
        api_base_url=resolved_api,
        base_url=base_url,
        frontend_url=env.get("FRONTEND_URL") or base_url,
        colima_vm_url=colima_vm_url,
        test_token=env.get("TEST_TOKEN") or DEFAULT_TEST_TOKEN,
        request_timeout=_parse_timeout(env.get("E2E_REQUEST_TIMEOUT")),
    )
    logger.info("Gateway under test: %s (base_url=%s)", config.api_base_url, config.base_url)
    return config


def get_auth_headers(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Authorization header carrying the static development token."""
    env = os.environ if environ is None else environ
    return {"Authorization": f"Bearer {env.get('TEST_TOKEN') or DEFAULT_TEST_TOKEN}"}
