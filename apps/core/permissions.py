"""
DRF permission classes enforcing resolved endpoint policies.

This module provides:
- DenyAllFilter, AllowAllFilter, AuthenticatedFilter, RolesAllowedFilter:
  one enforcement filter per resolved policy, bound at registration time
- filter_for_policy: builds the filter for a resolved policy
- EndpointPolicyPermission: DRF permission class that looks up the filter
  bound to the operation being dispatched and runs it
"""
import enum
import logging
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from apps.core.logging import SecurityLogger
from apps.rbac.descriptors import group_name, operation_name
from apps.rbac.policies import (
    ALLOW_ALL, DENY, REQUIRE_AUTHENTICATED, AllowAll, Deny, RequireAuthenticated, RequireRoles, describe,
)

logger = logging.getLogger(__name__)


class Decision(enum.Enum):
    ALLOW = 'allow'
    DENY = 'deny'


class EnforcementFilter(BasePermission):
    """
    Base class of the per-policy enforcement filters.

    A filter is bound to exactly one resolved policy for its whole lifetime
    and holds no per-request state, so one instance serves concurrent
    requests. Subclasses implement ``check``.
    """

    policy = None
    message = 'You do not have permission to perform this action.'
    code = 'permission_denied'

    def __init__(self, identity_provider=None):
        self.identity_provider = identity_provider

    def check(self, request) -> Decision:
        raise NotImplementedError

    def has_permission(self, request, view):
        decision = self.check(request)
        if decision is Decision.DENY:
            SecurityLogger.log_access_denied(
                request,
                policy=describe(self.policy),
                reason=self.code,
                view=group_name(type(view)),
                operation=operation_name(view, request),
            )
            return False
        return True

    def is_authenticated(self, request) -> bool:
        """Ask the identity provider; any failure counts as not authenticated."""
        try:
            return bool(self.identity_provider.is_authenticated(request))
        except Exception:
            SecurityLogger.log_identity_lookup_failed(request, 'is_authenticated')
            return False

    def has_role(self, request, role) -> bool:
        try:
            return bool(self.identity_provider.has_role(request, role))
        except Exception:
            SecurityLogger.log_identity_lookup_failed(request, 'has_role')
            return False

    def __repr__(self):
        return f"<{self.__class__.__name__} {describe(self.policy)}>"


class DenyAllFilter(EnforcementFilter):
    """Rejects every request before looking at the caller."""

    policy = DENY
    message = 'Access to this endpoint is denied.'
    code = 'access_denied'

    def check(self, request) -> Decision:
        return Decision.DENY

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            # No credentials lift a deny; answer 403 rather than DRF's 401 challenge
            raise PermissionDenied(self.message, code=self.code)
        return True


class AllowAllFilter(EnforcementFilter):
    """Admits every request; no identity lookup is performed."""

    policy = ALLOW_ALL

    def check(self, request) -> Decision:
        return Decision.ALLOW


class AuthenticatedFilter(EnforcementFilter):
    """Admits authenticated callers."""

    policy = REQUIRE_AUTHENTICATED
    message = 'Authentication credentials were not provided.'
    code = 'not_authenticated'

    def check(self, request) -> Decision:
        return Decision.ALLOW if self.is_authenticated(request) else Decision.DENY


class RolesAllowedFilter(EnforcementFilter):
    """
    Admits authenticated callers holding at least one of the roles.

    Roles are matched exactly. With an empty role set nobody is admitted.
    """

    message = 'You do not hold a role required for this endpoint.'
    code = 'role_required'

    def __init__(self, roles, identity_provider=None):
        super().__init__(identity_provider)
        self.roles = tuple(roles)
        self.policy = RequireRoles(self.roles)

    def check(self, request) -> Decision:
        if not self.roles:
            return Decision.DENY
        if not self.is_authenticated(request):
            return Decision.DENY
        if any(self.has_role(request, role) for role in self.roles):
            return Decision.ALLOW
        return Decision.DENY


DENY_ALL_FILTER = DenyAllFilter()
ALLOW_ALL_FILTER = AllowAllFilter()


def filter_for_policy(policy, identity_provider):
    """
    Build the enforcement filter for a resolved policy.

    Returns None for the "no constraint" policy: nothing is installed.
    """
    if policy is None:
        return None
    if isinstance(policy, Deny):
        return DENY_ALL_FILTER
    if isinstance(policy, AllowAll):
        return ALLOW_ALL_FILTER
    if isinstance(policy, RequireAuthenticated):
        return AuthenticatedFilter(identity_provider)
    if isinstance(policy, RequireRoles):
        return RolesAllowedFilter(policy.roles, identity_provider)
    raise TypeError(f"Unsupported policy: {policy!r}")


class EndpointPolicyPermission(BasePermission):
    """
    DRF permission class that enforces the policy resolved for the handler
    a request is dispatched to.

    Install it through REST_FRAMEWORK['DEFAULT_PERMISSION_CLASSES'] or list
    it in a view's permission_classes. The policies themselves are declared
    with the decorators in apps.rbac.annotations.

    Usage in views:
        @authenticated
        class OrderView(APIView):
            permission_classes = [EndpointPolicyPermission]

            @roles_allowed('admin')
            def delete(self, request):
                pass
    """

    def __init__(self, registry=None):
        self.registry = registry

    def get_registry(self):
        if self.registry is None:
            from apps.rbac.registry import policy_registry
            return policy_registry
        return self.registry

    def has_permission(self, request, view):
        enforcement = self.get_registry().filter_for(type(view), operation_name(view, request))

        # No constraint configured for this operation
        if enforcement is None:
            return True

        # Surface the filter's reason in the DRF error response
        self.message = enforcement.message
        self.code = enforcement.code
        return enforcement.has_permission(request, view)
