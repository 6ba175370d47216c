"""
RBAC settings.

All settings live in a single ``RBAC`` dict in the Django settings module:

    RBAC = {
        'DENY_NON_ANNOTATED_BY_DEFAULT': False,
        'DENY_NON_ANNOTATED_MARKER': BASE_DIR / 'DENY-NONANNOTATED-ENDPOINTS',
        'IDENTITY_PROVIDER': 'apps.rbac.identity.DjangoGroupsIdentityProvider',
    }

Values are read once and cached; the cache is dropped when the ``RBAC``
setting is overridden (see apps.rbac.signals).
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULTS = {
    'DENY_NON_ANNOTATED_BY_DEFAULT': False,
    'DENY_NON_ANNOTATED_MARKER': None,
    'IDENTITY_PROVIDER': 'apps.rbac.identity.DjangoGroupsIdentityProvider',
}


@dataclass(frozen=True)
class GlobalConfig:
    """Process-wide resolver configuration, read-only after startup."""

    deny_non_annotated_by_default: bool = False


def rbac_setting(name):
    """Return one key of the ``RBAC`` settings dict, falling back to DEFAULTS."""
    user_settings = getattr(settings, 'RBAC', None) or {}
    return user_settings.get(name, DEFAULTS[name])


def marker_present(marker) -> bool:
    """The default-deny marker counts as set when the file exists."""
    if not marker:
        return False
    return Path(marker).exists()


@lru_cache(maxsize=None)
def get_global_config() -> GlobalConfig:
    """
    Load the GlobalConfig once.

    Default-deny is on when either the ``DENY_NON_ANNOTATED_BY_DEFAULT`` flag
    is true or the marker file is present.
    """
    flag = bool(rbac_setting('DENY_NON_ANNOTATED_BY_DEFAULT'))
    marker = rbac_setting('DENY_NON_ANNOTATED_MARKER')
    from_marker = marker_present(marker)

    config = GlobalConfig(deny_non_annotated_by_default=flag or from_marker)

    logger.info(
        f"RBAC default-deny for non-annotated endpoints: "
        f"{'enabled' if config.deny_non_annotated_by_default else 'disabled'}",
        extra={
            'deny_flag': flag,
            'deny_marker': str(marker) if marker else None,
            'deny_marker_present': from_marker,
        }
    )
    return config
