"""Ephemeral test users provisioned through the directory-backed admin API.

Each test that needs an isolated account creates one here and deletes it at
teardown. Identifiers embed a millisecond timestamp plus a random suffix so
parallel workers never collide, and deletion treats 404 as success so cleanup
can be repeated safely.

Usage:
    manager = TestUserManager(client)
    viewer = await manager.create(prefix="viewer")
    editor = await manager.create(prefix="editor", roles=["editor"])
    ...
    await manager.cleanup()
"""
from __future__ import annotations

import enum
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from gateway_e2e.auth import authenticate, bearer
from gateway_e2e.exceptions import AuthenticationError, ProvisioningError
from gateway_e2e.retry import DEFAULT_AUTH_RETRY, RetryPolicy, retry
from gateway_e2e.test_users import TEST_USERS, NamedCredential

logger = logging.getLogger(__name__)

LDAP_USERS_PATH = "/api/v1/ldap/users"
TEST_EMAIL_DOMAIN = "test.ugjb.com"
DEFAULT_PREFIX = "test"
DEFAULT_ROLES: Tuple[str, ...] = ("user",)

_BASE36 = string.digits + string.ascii_lowercase


class UserState(enum.Enum):
    CREATED = "created"
    AUTHENTICATED = "authenticated"
    DELETED = "deleted"


@dataclass
class EphemeralTestUser:
    """Account created for the duration of one test."""

    id: str
    email: str
    password: str
    roles: Tuple[str, ...] = DEFAULT_ROLES
    auth_token: Optional[str] = None
    dn: Optional[str] = None
    state: UserState = UserState.CREATED

    def __repr__(self) -> str:
        return f"EphemeralTestUser(id={self.id!r}, state={self.state.value})"


@dataclass
class CleanupResult:
    user: EphemeralTestUser
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _random_base36(length: int = 6) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_identity(prefix: str = DEFAULT_PREFIX) -> Tuple[str, str, str]:
    """Return a fresh `(uid, email, password)` triple.

    uid is `{prefix}-{epoch_millis}-{random_base36}`; the email is the uid at
    the test domain and the password is derived from the same timestamp.
    """
    millis = int(time.time() * 1000)
    uid = f"{prefix}-{millis}-{_random_base36()}"
    return uid, f"{uid}@{TEST_EMAIL_DOMAIN}", f"Test{millis}!"


async def _admin_token(client: httpx.AsyncClient, admin: NamedCredential) -> str:
    return await authenticate(client, admin.email, admin.password)


async def create_test_user(
    client: httpx.AsyncClient,
    prefix: str = DEFAULT_PREFIX,
    roles: Optional[Sequence[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    admin: NamedCredential = TEST_USERS["admin"],
) -> EphemeralTestUser:
    """Provision a uniquely named account as `admin`.

    Args:
        client: Client bound to the gateway base URL
        prefix: Leading part of the uid and email
        roles: Directory groups for the account (default: user)
        metadata: Extra attributes stored with the account

    Raises:
        AuthenticationError: The admin credential was rejected
        ProvisioningError: The provisioning endpoint returned non-2xx
    """
    uid, email, password = generate_identity(prefix)
    groups = tuple(roles) if roles is not None else DEFAULT_ROLES

    token = await _admin_token(client, admin)
    payload: Dict[str, Any] = {
        "uid": uid,
        "email": email,
        "password": password,
        "cn": uid,
        "sn": prefix,
        "givenName": "Test",
        "displayName": f"Test User {uid}",
        "groups": list(groups),
    }
    if metadata:
        payload["metadata"] = dict(metadata)

    response = await client.post(LDAP_USERS_PATH, json=payload, headers=bearer(token))
    if not response.is_success:
        raise ProvisioningError(f"create test user {uid}", response.status_code, response.text)

    body: Dict[str, Any] = {}
    try:
        decoded = response.json()
    except ValueError:
        decoded = None
    if isinstance(decoded, dict):
        body = decoded

    user = EphemeralTestUser(
        id=body.get("uid") or uid,
        email=body.get("email") or email,
        password=password,
        roles=groups,
        dn=body.get("dn"),
    )
    logger.debug("Created test user %s", user.id)
    return user


async def delete_test_user(
    client: httpx.AsyncClient,
    user_id: str,
    admin: NamedCredential = TEST_USERS["admin"],
) -> None:
    """Delete an account; a 404 means it is already gone and is not an error.

    Raises:
        ProvisioningError: Any other non-2xx status
    """
    token = await _admin_token(client, admin)
    response = await client.delete(f"{LDAP_USERS_PATH}/{user_id}", headers=bearer(token))
    if response.status_code == 404:
        logger.debug("Test user %s already deleted", user_id)
        return
    if not response.is_success:
        raise ProvisioningError(f"delete test user {user_id}", response.status_code, response.text)
    logger.debug("Deleted test user %s", user_id)


async def authenticate_test_user(
    client: httpx.AsyncClient,
    user: EphemeralTestUser,
    retry_policy: RetryPolicy = DEFAULT_AUTH_RETRY,
) -> str:
    """Log in as a fresh user, retrying while the directory propagates it.

    Raises:
        RetryExhaustedError: Every attempt was rejected
    """
    token = await retry(
        lambda: authenticate(client, user.email, user.password),
        policy=retry_policy,
        retry_on=(AuthenticationError,),
        operation=f"authenticate {user.email}",
    )
    user.auth_token = token
    user.state = UserState.AUTHENTICATED
    return token


async def create_authenticated_test_user(
    client: httpx.AsyncClient,
    prefix: str = DEFAULT_PREFIX,
    roles: Optional[Sequence[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    admin: NamedCredential = TEST_USERS["admin"],
    retry_policy: RetryPolicy = DEFAULT_AUTH_RETRY,
) -> EphemeralTestUser:
    """`create_test_user` followed by a retried login.

    If the login fails for any reason (retries exhausted, transport error)
    the user is deleted again before the error propagates, so no orphan is
    left behind.
    """
    user = await create_test_user(client, prefix=prefix, roles=roles, metadata=metadata, admin=admin)
    try:
        await authenticate_test_user(client, user, retry_policy)
    except Exception:
        try:
            await delete_test_user(client, user.id, admin=admin)
            user.state = UserState.DELETED
        except Exception as exc:
            logger.warning("Could not remove unauthenticated test user %s: %s", user.id, exc)
        raise
    return user


class TestUserManager:
    """Creates ephemeral users and owns their deletion.

    Users are tracked before their first login so even an account that never
    authenticates is cleaned up.
    """

    __test__ = False

    def __init__(
        self,
        client: httpx.AsyncClient,
        retry_policy: RetryPolicy = DEFAULT_AUTH_RETRY,
        admin: NamedCredential = TEST_USERS["admin"],
    ):
        self.client = client
        self.retry_policy = retry_policy
        self.admin = admin
        self._users: List[EphemeralTestUser] = []

    async def create(
        self,
        prefix: str = DEFAULT_PREFIX,
        roles: Optional[Sequence[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> EphemeralTestUser:
        """Create, track and authenticate a user; returns it with `auth_token` set."""
        user = await create_test_user(
            self.client, prefix=prefix, roles=roles, metadata=metadata, admin=self.admin
        )
        self._users.append(user)
        await authenticate_test_user(self.client, user, self.retry_policy)
        return user

    def get_created_users(self) -> Tuple[EphemeralTestUser, ...]:
        return tuple(self._users)

    async def delete(self, user: EphemeralTestUser) -> None:
        """Delete one user now; deleting an already deleted user is a no-op."""
        if user.state is UserState.DELETED:
            return
        await delete_test_user(self.client, user.id, admin=self.admin)
        user.state = UserState.DELETED

    async def cleanup(self) -> List[CleanupResult]:
        """Delete every tracked user, in creation order.

        Failures are logged and reported in the returned results rather than
        raised, and the tracked list is emptied regardless of outcome.
        """
        users, self._users = self._users, []
        results: List[CleanupResult] = []
        for user in users:
            try:
                await self.delete(user)
                results.append(CleanupResult(user))
            except Exception as exc:
                logger.warning("Failed to clean up test user %s: %s", user.id, exc)
                results.append(CleanupResult(user, exc))

        failed = sum(1 for r in results if not r.ok)
        if failed:
            logger.warning("Test user cleanup: %d of %d deletions failed", failed, len(results))
        return results
