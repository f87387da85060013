"""Helpers for tests of the gateway error-logger middleware.

The middleware records failed requests asynchronously, so tests clear the
log store first and then poll until the expected entry shows up.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

import anyio
import httpx

from gateway_e2e.retry import DEFAULT_POLL_POLICY, RetryPolicy

logger = logging.getLogger(__name__)

ERROR_LOGS_PATH = "/api/v1/admin/error-logs"

LogEntry = Dict[str, Any]


async def clear_error_logs(client: httpx.AsyncClient, endpoint: str = ERROR_LOGS_PATH) -> None:
    """Delete all stored error logs; 404 (nothing to clear) is accepted."""
    response = await client.delete(endpoint)
    assert response.status_code in (200, 204, 404), \
        f"Clearing error logs failed: {response.status_code} {response.text}"


async def fetch_error_logs(client: httpx.AsyncClient, endpoint: str = ERROR_LOGS_PATH) -> List[LogEntry] | None:
    """Return the stored logs, or None when the store is not readable yet."""
    try:
        response = await client.get(endpoint)
    except httpx.TransportError as e:
        logger.debug("Error log endpoint unreachable: %s", e)
        return None
    if not response.is_success:
        return None
    try:
        logs = response.json()
    except ValueError:
        return None
    if not isinstance(logs, list):
        return None
    return logs


async def wait_for_log_entry(
    client: httpx.AsyncClient,
    predicate: Callable[[LogEntry], bool],
    endpoint: str = ERROR_LOGS_PATH,
    policy: RetryPolicy = DEFAULT_POLL_POLICY,
) -> List[LogEntry]:
    """Poll the error log store until at least one entry matches.

    Transient failures (non-2xx, non-list or undecodable bodies, connection
    errors) count as "not yet". Returns the matching entries, or an empty
    list once the policy is exhausted; asserting on that is up to the caller.
    """
    for attempt in range(1, policy.max_attempts + 1):
        logs = await fetch_error_logs(client, endpoint)
        if logs:
            matched = [entry for entry in logs if isinstance(entry, dict) and predicate(entry)]
            if matched:
                return matched
        if attempt < policy.max_attempts:
            await anyio.sleep(policy.delay_after(attempt))

    logger.info("No matching error log entry after %d polls of %s", policy.max_attempts, endpoint)
    return []
