"""
RBAC signals.

Resolved policies are computed once and cached. When the ``RBAC`` setting
is overridden (``override_settings`` / the pytest-django ``settings``
fixture) the cached configuration, identity provider and policies are
dropped so that the next registration sees the new values.
"""
from django.core.signals import setting_changed
from django.dispatch import receiver


@receiver(setting_changed)
def reload_rbac_settings(sender, setting, **kwargs):
    if setting != 'RBAC':
        return

    # Import here to avoid circular imports
    from apps.rbac.conf import get_global_config
    from apps.rbac.identity import get_identity_provider
    from apps.rbac.registry import policy_registry

    get_global_config.cache_clear()
    get_identity_provider.cache_clear()
    policy_registry.reset()
