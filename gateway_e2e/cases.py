"""Pure builders turning a seed catalog into parametrized test cases.

The builders know nothing about pytest; `gateway_e2e.fixtures` maps each
record onto one generated test via `pytest_generate_tests`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from gateway_e2e.seed import SeedCatalog


@dataclass(frozen=True)
class LoginCase:
    name: str
    user_email: str
    user_password: str
    expected_roles: Tuple[str, ...]


@dataclass(frozen=True)
class RoleCase:
    name: str
    role: str
    user_email: str
    user_password: str
    expected_roles: Tuple[str, ...]


def build_login_cases(catalog: SeedCatalog) -> List[LoginCase]:
    """One case per seed user, in seed order."""
    return [
        LoginCase(
            name=f"login-{user.email}",
            user_email=user.email,
            user_password=user.password,
            expected_roles=user.roles,
        )
        for user in catalog.users
    ]


def build_role_cases(catalog: SeedCatalog) -> List[RoleCase]:
    """One case per distinct role, using the role's representative user."""
    cases = []
    for role in catalog.roles:
        user = catalog.user_by_role[role]
        cases.append(RoleCase(
            name=f"role-{role}-{user.email}",
            role=role,
            user_email=user.email,
            user_password=user.password,
            expected_roles=user.roles,
        ))
    return cases
