"""
RBAC app configuration.
"""
import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class RbacConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.rbac'
    verbose_name = 'RBAC (Endpoint Access Policies)'

    def ready(self):
        """Register signals and system checks, and load the resolver configuration."""
        import apps.rbac.signals  # noqa
        import apps.rbac.checks  # noqa
        from apps.rbac.conf import get_global_config

        get_global_config()
