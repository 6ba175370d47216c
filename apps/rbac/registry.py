"""
Registration of DRF views with their endpoint policies.

Every operation is resolved once, when its view class is registered; the
enforcement filter bound to the resolved policy is cached and reused for
every request. Registration normally happens at startup through the system
checks (apps.rbac.checks), which walk the whole URLconf. A view class first
seen at request time is registered then, with the same result.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.urls import URLPattern, URLResolver, get_resolver
from rest_framework.views import APIView

from apps.core.logging import SecurityLogger
from apps.core.permissions import filter_for_policy
from apps.rbac.discovery import ViewMetadataDiscovery, group_name
from apps.rbac.exceptions import AmbiguousAnnotation
from apps.rbac.identity import get_identity_provider
from apps.rbac.policies import ResolvedPolicy
from apps.rbac.resolver import PolicyResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredOperation:
    """One routed operation and the policy resolved for it."""

    view_cls: type
    route: str
    operation: str
    policy: Optional[ResolvedPolicy]

    @property
    def view_name(self) -> str:
        return group_name(self.view_cls)


def drf_view_class(callback):
    """Return the APIView subclass behind a URL callback, or None."""
    view_cls = getattr(callback, 'cls', None) or getattr(callback, 'view_class', None)
    if isinstance(view_cls, type) and issubclass(view_cls, APIView):
        return view_cls
    return None


def iter_url_views(patterns, prefix=''):
    """
    Yield ``(route, view_cls, actions)`` for every DRF view under ``patterns``.

    ``actions`` is the ViewSet method-to-action map bound to the route, or
    None for plain API views.
    """
    for pattern in patterns:
        route = prefix + str(pattern.pattern)
        if isinstance(pattern, URLResolver):
            yield from iter_url_views(pattern.url_patterns, route)
        elif isinstance(pattern, URLPattern):
            view_cls = drf_view_class(pattern.callback)
            if view_cls is not None:
                yield route, view_cls, getattr(pattern.callback, 'actions', None)


class PolicyRegistry:
    """
    Cache of resolved policies and their bound enforcement filters, keyed by
    view class and operation name.

    The configuration, discovery and identity provider are looked up lazily
    so that a module-level registry can be created before settings load.
    """

    def __init__(self, config=None, discovery=None, identity_provider=None):
        self._config = config
        self._discovery = discovery
        self._identity_provider = identity_provider
        self._policies = {}
        self._filters = {}
        self._lock = threading.Lock()

    def get_resolver(self) -> PolicyResolver:
        return PolicyResolver(discovery=self._discovery or ViewMetadataDiscovery(), config=self._config)

    def get_identity_provider(self):
        return self._identity_provider or get_identity_provider()

    def register_view(self, view_cls) -> dict:
        """
        Resolve and bind every invocable operation of ``view_cls``.

        Returns:
            dict mapping operation name to its resolved policy (None = no constraint)

        Raises:
            AmbiguousAnnotation: nothing is registered for the view class
        """
        with self._lock:
            if view_cls in self._policies:
                return dict(self._policies[view_cls])

            try:
                policies = self.get_resolver().resolve_view(view_cls)
            except AmbiguousAnnotation as e:
                SecurityLogger.log_ambiguous_annotation(e.placement, e.annotations)
                raise

            self._bind(view_cls, policies)

        logger.info(
            f"Registered endpoint policies for {group_name(view_cls)}",
            extra={
                'view': group_name(view_cls),
                'operations': sorted(policies),
            }
        )
        return dict(policies)

    def filter_for(self, view_cls, operation_name):
        """
        Return the enforcement filter bound to an operation, or None when no
        constraint applies.
        """
        key = (view_cls, operation_name)
        try:
            return self._filters[key]
        except KeyError:
            pass

        self.register_view(view_cls)

        if not self.is_cacheable(view_cls, operation_name):
            # Unknown HTTP method: resolved per request, DRF answers 405 once admitted
            return self._build_filter(self.get_resolver().resolve_operation(view_cls, operation_name))

        with self._lock:
            if key not in self._filters:
                # Routed by a custom action map or method outside the invocable set
                policy = self.get_resolver().resolve_operation(view_cls, operation_name)
                self._bind(view_cls, {operation_name: policy})
            return self._filters[key]

    def policy_for(self, view_cls, operation_name) -> Optional[ResolvedPolicy]:
        self.filter_for(view_cls, operation_name)
        try:
            return self._policies[view_cls][operation_name]
        except KeyError:
            return self.get_resolver().resolve_operation(view_cls, operation_name)

    def is_cacheable(self, view_cls, operation_name) -> bool:
        """
        Only names the view class itself defines are cached: its HTTP method
        names and its handlers. Request-supplied method names are not.
        """
        if operation_name in view_cls.http_method_names:
            return True
        return callable(getattr(view_cls, operation_name, None))

    def register_urlpatterns(self, patterns) -> list:
        """
        Register every DRF view reachable from ``patterns``.

        Returns:
            list of RegisteredOperation, one per routed operation
        """
        registered = []
        for route, view_cls, actions in iter_url_views(patterns):
            policies = self.register_view(view_cls)
            if actions:
                # A ViewSet route only reaches the actions bound to it
                operations = dict.fromkeys(actions.values())
                policies = {name: self.policy_for(view_cls, name) for name in operations}
            for operation, policy in policies.items():
                registered.append(RegisteredOperation(view_cls, route, operation, policy))
        return registered

    def register_urlconf(self, urlconf=None) -> list:
        """Register every DRF view of the URLconf (ROOT_URLCONF by default)."""
        return self.register_urlpatterns(get_resolver(urlconf).url_patterns)

    def reset(self):
        """Drop every resolved policy; used when the RBAC settings change."""
        with self._lock:
            self._policies.clear()
            self._filters.clear()

    def _build_filter(self, policy):
        if policy is None:
            return None
        return filter_for_policy(policy, self.get_identity_provider())

    def _bind(self, view_cls, policies):
        for operation, policy in policies.items():
            self._filters[(view_cls, operation)] = self._build_filter(policy)
        self._policies.setdefault(view_cls, {}).update(policies)


policy_registry = PolicyRegistry()
