"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    django.setup()


@pytest.fixture(autouse=True)
def fresh_policy_registry():
    """Start every test with no resolved policies and a freshly loaded config."""
    from apps.rbac.conf import get_global_config
    from apps.rbac.identity import get_identity_provider
    from apps.rbac.registry import policy_registry

    get_global_config.cache_clear()
    get_identity_provider.cache_clear()
    policy_registry.reset()
    yield
    policy_registry.reset()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def rbac_settings(settings):
    """
    Override the RBAC settings dict for one test.

    Usage:
        def test_something(rbac_settings):
            rbac_settings(DENY_NON_ANNOTATED_BY_DEFAULT=True)
    """
    def apply(**overrides):
        settings.RBAC = {**settings.RBAC, **overrides}
        return settings.RBAC
    return apply


@pytest.fixture
def user(db):
    """Create an authenticated user without any role."""
    from django.contrib.auth.models import User
    return User.objects.create_user(username='member', email='member@example.com', password='testpass123')


@pytest.fixture
def make_user(db):
    """Create a user holding the given roles (Django groups)."""
    from django.contrib.auth.models import Group, User

    def create(username, *roles):
        created = User.objects.create_user(username=username, email=f'{username}@example.com', password='testpass123')
        for role in roles:
            group, _ = Group.objects.get_or_create(name=role)
            created.groups.add(group)
        return created
    return create
