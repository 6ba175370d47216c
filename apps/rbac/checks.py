"""
Django system checks for endpoint security.

Registering the URLconf here makes every endpoint policy resolve at startup:
``runserver``, ``migrate`` and ``manage.py check`` refuse to continue while
any routed view carries ambiguous security annotations.
"""
from django.core import checks
from django.core.exceptions import ImproperlyConfigured
from django.urls import get_resolver

from apps.core.permissions import EndpointPolicyPermission
from apps.rbac.annotations import declared_annotations
from apps.rbac.conf import rbac_setting
from apps.rbac.discovery import ViewMetadataDiscovery, group_name
from apps.rbac.exceptions import AmbiguousAnnotation
from apps.rbac.identity import get_identity_provider
from apps.rbac.registry import iter_url_views, policy_registry


def _has_security_annotations(view_cls, discovery):
    if discovery.group_annotations(view_cls):
        return True
    return any(
        declared_annotations(getattr(view_cls, name))
        for name in discovery.invocable_operation_names(view_cls)
    )


def _enforces_policies(view_cls):
    return any(
        isinstance(permission, type) and issubclass(permission, EndpointPolicyPermission)
        for permission in getattr(view_cls, 'permission_classes', ())
    )


@checks.register(checks.Tags.security)
def check_identity_provider(app_configs, **kwargs):
    try:
        get_identity_provider()
    except ImproperlyConfigured as e:
        return [
            checks.Error(
                str(e),
                hint="Point RBAC['IDENTITY_PROVIDER'] at an IdentityProvider subclass.",
                obj=rbac_setting('IDENTITY_PROVIDER'),
                id='rbac.E002',
            )
        ]
    return []


@checks.register(checks.Tags.security, checks.Tags.urls)
def check_endpoint_policies(app_configs, **kwargs):
    """
    Resolve the policy of every routed DRF operation.

    rbac.E001: ambiguous security annotations on a view or handler
    rbac.W001: annotations declared on a view that does not enforce them
    """
    errors = []
    discovery = ViewMetadataDiscovery()
    seen = set()

    for route, view_cls, _actions in iter_url_views(get_resolver().url_patterns):
        if view_cls in seen:
            continue
        seen.add(view_cls)

        try:
            policy_registry.register_view(view_cls)
        except AmbiguousAnnotation as e:
            errors.append(
                checks.Error(
                    str(e),
                    hint='Keep at most one of @deny_all, @permit_all, @roles_allowed, '
                         '@authenticated on each view class and on each handler.',
                    obj=view_cls,
                    id='rbac.E001',
                )
            )
            continue

        if _has_security_annotations(view_cls, discovery) and not _enforces_policies(view_cls):
            errors.append(
                checks.Warning(
                    f"{group_name(view_cls)} (route '{route}') declares security annotations "
                    f"but EndpointPolicyPermission is not in its permission_classes.",
                    hint='Add apps.core.permissions.EndpointPolicyPermission to permission_classes '
                         'or remove the override of DEFAULT_PERMISSION_CLASSES.',
                    obj=view_cls,
                    id='rbac.W001',
                )
            )

    return errors
