"""
Identity collaborators used by the enforcement filters.

An identity provider answers two questions about the caller of a request:
is it authenticated, and does it hold a given role. Authentication itself is
done upstream (Django's AuthenticationMiddleware / DRF authentication
classes); providers only read its outcome.
"""
from functools import lru_cache

from django.utils.module_loading import import_string

from apps.rbac.conf import rbac_setting
from apps.rbac.exceptions import IdentityProviderNotConfigured


class IdentityProvider:
    """Interface of the identity collaborator."""

    def is_authenticated(self, request) -> bool:
        raise NotImplementedError

    def has_role(self, request, role: str) -> bool:
        raise NotImplementedError


class DjangoGroupsIdentityProvider(IdentityProvider):
    """
    Authentication from ``request.user``, roles from the user's Django groups.

    Group names are fetched once per request and compared exactly.
    """

    cache_attr = '_rbac_group_names'

    def is_authenticated(self, request) -> bool:
        user = getattr(request, 'user', None)
        return bool(user is not None and user.is_authenticated)

    def has_role(self, request, role: str) -> bool:
        if not self.is_authenticated(request):
            return False
        return role in self._group_names(request)

    def _group_names(self, request):
        names = getattr(request, self.cache_attr, None)
        if names is None:
            names = frozenset(request.user.groups.values_list('name', flat=True))
            setattr(request, self.cache_attr, names)
        return names


class RequestRolesIdentityProvider(DjangoGroupsIdentityProvider):
    """
    Roles from a ``roles`` attribute placed on the request by upstream
    middleware (e.g. claims of a verified token).
    """

    roles_attr = 'roles'

    def has_role(self, request, role: str) -> bool:
        if not self.is_authenticated(request):
            return False
        roles = getattr(request, self.roles_attr, None) or ()
        return role in set(roles)


@lru_cache(maxsize=None)
def get_identity_provider() -> IdentityProvider:
    """Instantiate the provider named by ``RBAC['IDENTITY_PROVIDER']``."""
    path = rbac_setting('IDENTITY_PROVIDER')
    try:
        provider_class = import_string(path)
    except ImportError as e:
        raise IdentityProviderNotConfigured(
            f"RBAC['IDENTITY_PROVIDER'] could not be imported: {path} ({e})"
        ) from e
    return provider_class()
