"""Seed data catalog for role- and user-driven test generation.

The gateway is provisioned from a JSON seed file listing real accounts:

    {"users": [{"id": "...", "email": "...", "password": "...",
                "name": "...", "roles": ["admin", ...]}]}

The catalog is built once per run and is immutable; tests receive it through
the `seed_catalog` fixture instead of reading module-level globals.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from gateway_e2e.exceptions import SeedLoadError

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_SEED_PATH = (
    REPO_ROOT / "services" / "system-integration" / "microservices" / "api-gateway" / "db" / "seed.json"
)

_REQUIRED_FIELDS = ("id", "email", "password", "name", "roles")


@dataclass(frozen=True)
class SeedUser:
    id: str
    email: str
    password: str
    name: str
    roles: Tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeedUser":
        missing = [name for name in _REQUIRED_FIELDS if name not in data]
        if missing:
            raise SeedLoadError(f"Seed user {data.get('email', '<unknown>')} missing fields: {', '.join(missing)}")
        roles = data["roles"]
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise SeedLoadError(f"Seed user {data['email']} has invalid roles: {roles!r}")
        return cls(
            id=str(data["id"]),
            email=data["email"],
            password=data["password"],
            name=data["name"],
            roles=tuple(roles),
        )

    def __repr__(self) -> str:
        return f"SeedUser(email={self.email!r}, roles={list(self.roles)!r})"


@dataclass(frozen=True)
class SeedCatalog:
    """Seed users plus the values derived from them."""

    users: Tuple[SeedUser, ...]
    roles: Tuple[str, ...]
    user_by_role: Mapping[str, SeedUser]

    @classmethod
    def from_users(cls, users: Tuple[SeedUser, ...]) -> "SeedCatalog":
        if not users:
            raise SeedLoadError("Seed data contains no users")

        roles: Dict[str, SeedUser] = {}
        for user in users:
            for role in user.roles:
                # First user holding a role represents it
                roles.setdefault(role, user)

        return cls(
            users=tuple(users),
            roles=tuple(roles),
            user_by_role=MappingProxyType(roles),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "SeedCatalog":
        if not isinstance(data, dict) or not isinstance(data.get("users"), list):
            raise SeedLoadError("Seed data must be an object with a 'users' array")
        users = []
        for entry in data["users"]:
            if not isinstance(entry, dict):
                raise SeedLoadError(f"Seed user entries must be objects, got {entry!r}")
            users.append(SeedUser.from_dict(entry))
        return cls.from_users(tuple(users))

    @property
    def first_user(self) -> SeedUser:
        return self.users[0]

    @property
    def last_user(self) -> SeedUser:
        return self.users[-1]

    def users_with_role(self, role: str) -> Tuple[SeedUser, ...]:
        return tuple(u for u in self.users if role in u.roles)


def resolve_seed_path(explicit: Optional[Union[str, Path]] = None) -> Path:
    """Seed file location: explicit argument > SEED_DATA_PATH > repository default."""
    if explicit:
        return Path(explicit)
    env_path = os.getenv("SEED_DATA_PATH")
    if env_path:
        return Path(env_path)
    return DEFAULT_SEED_PATH


def load_seed_catalog(path: Optional[Union[str, Path]] = None) -> SeedCatalog:
    """Read the seed file and build the catalog.

    Args:
        path: Seed JSON file, see `resolve_seed_path` for the default

    Returns:
        SeedCatalog with at least one user

    Raises:
        SeedLoadError: If the file is missing or unreadable, is not valid
            UTF-8 JSON, or does not match the expected shape. Tests must never run against zero users.
    """
    seed_file = resolve_seed_path(path)

    if not seed_file.exists():
        raise SeedLoadError(
            f"Seed data file not found: {seed_file}\n"
            f"Set SEED_DATA_PATH to the gateway seed.json"
        )

    try:
        with open(seed_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SeedLoadError(f"Seed data file {seed_file} is not valid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise SeedLoadError(f"Seed data file {seed_file} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise SeedLoadError(f"Seed data file {seed_file} could not be read: {e}") from e

    catalog = SeedCatalog.from_dict(data)
    logger.info("Loaded %d seed users with %d roles from %s", len(catalog.users), len(catalog.roles), seed_file)
    return catalog
