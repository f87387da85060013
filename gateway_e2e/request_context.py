"""
Authenticated request contexts for API tests.

Hands out one fresh `httpx.AsyncClient` per call, each bound to the gateway
base URL with a bearer token for the requested named user. Tokens are cached
per factory; clients are not, so two calls for the same user return two
independent clients.

Usage:
    async with AuthenticatedRequestFactory(config.api_base_url) as factory:
        admin = await factory("admin")
        user = await factory("user")

        await admin.get("/api/v1/protected")
        await user.get("/api/v1/protected")
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from gateway_e2e.auth import TokenCache, bearer
from gateway_e2e.test_users import TEST_USERS, NamedCredential

logger = logging.getLogger(__name__)


class AuthenticatedRequestFactory:
    """Creates and tracks authenticated clients for one test."""

    def __init__(
        self,
        base_url: str,
        credentials: Mapping[str, NamedCredential] = TEST_USERS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        """
        Initialize the factory.

        Args:
            base_url: Gateway base URL every client is bound to
            credentials: Named credential table to resolve user keys against
            transport: Optional httpx transport shared by all created clients;
                it must survive `aclose()` from each client (MockTransport,
                ASGITransport)
            timeout: Request timeout in seconds (httpx default if None)
            token_cache: Existing cache to share; a private one is created otherwise
        """
        self.base_url = base_url
        self.credentials = credentials
        self._transport = transport
        self._timeout = timeout
        self.token_cache = token_cache or TokenCache(
            base_url, credentials=credentials, transport=transport, timeout=timeout
        )
        self.contexts: List[httpx.AsyncClient] = []

    async def __aenter__(self) -> "AuthenticatedRequestFactory":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose_all()

    async def __call__(self, user_key: str) -> httpx.AsyncClient:
        return await self.get_authenticated_context(user_key)

    async def get_authenticated_context(self, user_key: str) -> httpx.AsyncClient:
        """
        Return a new client authenticated as `user_key`.

        Raises:
            UnknownUserKeyError: `user_key` is not in the credential table
            AuthenticationError: The gateway rejected the credential
        """
        token = await self.token_cache.get_token(user_key)

        kwargs: Dict[str, Any] = {
            "base_url": self.base_url,
            "headers": bearer(token),
            "transport": self._transport,
        }
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout
        context = httpx.AsyncClient(**kwargs)

        self.contexts.append(context)
        logger.debug("Created authenticated context #%d for %s", len(self.contexts), user_key)
        return context

    async def dispose_all(self) -> None:
        """Close every created client in creation order; failures are logged."""
        contexts, self.contexts = self.contexts, []
        for context in contexts:
            try:
                await context.aclose()
            except Exception as e:
                logger.warning(f"Error closing request context for {context.base_url}: {e}")

    @property
    def context_count(self) -> int:
        return len(self.contexts)
