"""Bearer-token authentication against the gateway login endpoint.

`authenticate` performs one login; `TokenCache` memoizes the token for each
named credential so a test that asks for the same user twice only logs in
once. Tokens are never persisted: expiry is the gateway's concern and a test
run is short-lived.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import anyio
import httpx

from gateway_e2e.exceptions import AuthenticationError, MissingTokenError
from gateway_e2e.test_users import TEST_USERS, NamedCredential, get_credential

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/v1/auth/login"
ME_PATH = "/api/v1/auth/me"


def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _post_login(
    client: httpx.AsyncClient,
    email: str,
    password: str,
    login_path: str = LOGIN_PATH,
) -> Tuple[httpx.Response, Any]:
    response = await client.post(login_path, json={"email": email, "password": password})
    if not response.is_success:
        raise AuthenticationError(email, response.status_code, response.text)
    try:
        return response, response.json()
    except ValueError:
        raise AuthenticationError(
            email, response.status_code, response.text,
            message=f"Login for {email} returned a non-JSON body",
        ) from None


async def login(
    client: httpx.AsyncClient,
    email: str,
    password: str,
    login_path: str = LOGIN_PATH,
) -> Dict[str, Any]:
    """POST credentials to the login endpoint and return the JSON body.

    Raises:
        AuthenticationError: On any non-2xx status, carrying the status code
            and response text
    """
    _, data = await _post_login(client, email, password, login_path)
    return data


async def authenticate(
    client: httpx.AsyncClient,
    email: str,
    password: str,
    login_path: str = LOGIN_PATH,
) -> str:
    """Exchange email/password for a bearer token.

    Raises:
        AuthenticationError: Login was rejected
        MissingTokenError: Login succeeded without a `token` field
    """
    response, data = await _post_login(client, email, password, login_path)
    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise MissingTokenError(email, response.status_code, str(data))
    return token


async def fetch_current_user(client: httpx.AsyncClient, token: str) -> Dict[str, Any]:
    """Return the `/auth/me` profile for a token; raises on non-2xx."""
    response = await client.get(ME_PATH, headers=bearer(token))
    response.raise_for_status()
    return response.json()


class TokenCache:
    """Per-fixture token memo keyed by named credential.

    Each miss opens a short-lived client against `base_url`, logs in and
    closes it again. Concurrent misses for the same key share one login.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Mapping[str, NamedCredential] = TEST_USERS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        login_path: str = LOGIN_PATH,
    ):
        self.base_url = base_url
        self.credentials = credentials
        self.login_path = login_path
        self._transport = transport
        self._timeout = timeout
        self._tokens: Dict[str, str] = {}
        self._locks: Dict[str, anyio.Lock] = {}
        self.login_count = 0

    def __contains__(self, key: str) -> bool:
        return key in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def _new_client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {"base_url": self.base_url, "transport": self._transport}
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        return httpx.AsyncClient(**kwargs)

    async def get_token(self, key: str) -> str:
        """Return the cached token for `key`, logging in on first use.

        Raises:
            UnknownUserKeyError: `key` is not a registered credential
            AuthenticationError: The login call failed
        """
        credential = get_credential(key, self.credentials)

        cached = self._tokens.get(key)
        if cached:
            return cached

        lock = self._locks.setdefault(key, anyio.Lock())
        async with lock:
            cached = self._tokens.get(key)
            if cached:
                return cached

            async with self._new_client() as client:
                self.login_count += 1
                token = await authenticate(client, credential.email, credential.password, self.login_path)

            self._tokens[key] = token
            logger.debug("Cached token for %s (%s)", key, credential.email)
            return token
