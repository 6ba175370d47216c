"""
Resolved access policies.

A policy is the outcome of resolving the security annotations of one
operation. ``None`` stands for "no constraint": no enforcement is installed
for the operation at all.
"""
from dataclasses import dataclass
from typing import Tuple


class ResolvedPolicy:
    """Base class of the resolved policy variants."""

    name = ''

    @property
    def roles(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Deny(ResolvedPolicy):
    name = 'deny'


@dataclass(frozen=True)
class AllowAll(ResolvedPolicy):
    name = 'allow_all'


@dataclass(frozen=True)
class RequireAuthenticated(ResolvedPolicy):
    name = 'require_authenticated'


@dataclass(frozen=True)
class RequireRoles(ResolvedPolicy):
    name = 'require_roles'

    required_roles: Tuple[str, ...] = ()

    @property
    def roles(self) -> Tuple[str, ...]:
        return self.required_roles


# Stateless variants are shared across every operation bound to them
DENY = Deny()
ALLOW_ALL = AllowAll()
REQUIRE_AUTHENTICATED = RequireAuthenticated()


def describe(policy) -> str:
    """Human readable form used in logs and reports."""
    if policy is None:
        return 'none'
    if isinstance(policy, RequireRoles):
        return f"{policy.name}({', '.join(policy.roles)})"
    return policy.name
