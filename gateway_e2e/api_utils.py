"""Reusable request and assertion helpers for API tests.

Example:
    token = await authenticate(client, email, password)
    response = await post_with_auth(client, "/api/endpoint", token, {"data": "value"})
    body = expect_valid_api_response(response)
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from gateway_e2e.auth import bearer

NOT_FOUND_MESSAGE = "API endpoint not found"


async def get_with_auth(client: httpx.AsyncClient, endpoint: str, token: str) -> httpx.Response:
    return await client.get(endpoint, headers=bearer(token))


async def post_with_auth(
    client: httpx.AsyncClient,
    endpoint: str,
    token: str,
    data: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    return await client.post(endpoint, headers=bearer(token), json=data)


async def put_with_auth(
    client: httpx.AsyncClient,
    endpoint: str,
    token: str,
    data: Optional[Dict[str, Any]] = None,
) -> httpx.Response:
    return await client.put(endpoint, headers=bearer(token), json=data)


async def delete_with_auth(client: httpx.AsyncClient, endpoint: str, token: str) -> httpx.Response:
    return await client.delete(endpoint, headers=bearer(token))


def expect_json_content_type(response: httpx.Response) -> None:
    content_type = response.headers.get("content-type", "")
    assert "application/json" in content_type, \
        f"Expected JSON response from {response.request.url}, got content-type {content_type!r}"


def expect_valid_api_response(response: httpx.Response) -> Any:
    """Assert the response is JSON and not the gateway's unknown-route error; return the body."""
    expect_json_content_type(response)
    body = response.json()
    if isinstance(body, dict):
        error = body.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        assert message != NOT_FOUND_MESSAGE, \
            f"Gateway does not route {response.request.url}: {body}"
    return body


def expect_success_response(response: httpx.Response) -> Any:
    assert response.is_success, \
        f"Expected 2xx from {response.request.url}, got {response.status_code}: {response.text}"
    return expect_valid_api_response(response)


def expect_error_response(response: httpx.Response, expected_status: int) -> Any:
    assert response.status_code == expected_status, \
        f"Expected {expected_status} from {response.request.url}, got {response.status_code}: {response.text}"
    return expect_valid_api_response(response)


def expect_unauthorized(response: httpx.Response) -> Any:
    return expect_error_response(response, 401)


def expect_bad_request(response: httpx.Response) -> Any:
    return expect_error_response(response, 400)


def expect_forbidden(response: httpx.Response) -> Any:
    return expect_error_response(response, 403)


def expect_not_found(response: httpx.Response) -> Any:
    return expect_error_response(response, 404)


async def expect_healthy(client: httpx.AsyncClient, health_endpoint: str = "/health") -> Any:
    """GET a health endpoint and assert a 200 JSON answer."""
    response = await client.get(health_endpoint)
    assert response.status_code == 200, \
        f"{health_endpoint} returned {response.status_code}: {response.text}"
    return expect_valid_api_response(response)
