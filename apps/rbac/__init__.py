"""
RBAC (Role-Based Access Control) for API endpoints.

Access policies are declared per endpoint with decorators instead of a
central access-control list:
- @deny_all, @permit_all, @authenticated, @roles_allowed(*roles) on DRF view
  classes or handlers
- handler-level declarations override class-level ones
- optional default-deny for undeclared handlers of views that use RBAC
- enforcement through EndpointPolicyPermission (apps.core.permissions)
"""
from apps.rbac.annotations import authenticated, deny_all, permit_all, roles_allowed

__all__ = ['authenticated', 'deny_all', 'permit_all', 'roles_allowed']
