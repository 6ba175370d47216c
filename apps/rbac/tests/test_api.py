"""
End-to-end tests of endpoint policy enforcement through the API.
"""
import pytest

pytestmark = [pytest.mark.django_db, pytest.mark.urls('apps.rbac.tests.urls')]


@pytest.fixture
def deny_by_default(rbac_settings):
    rbac_settings(DENY_NON_ANNOTATED_BY_DEFAULT=True)


@pytest.fixture
def allow_by_default(rbac_settings, tmp_path):
    rbac_settings(DENY_NON_ANNOTATED_BY_DEFAULT=False, DENY_NON_ANNOTATED_MARKER=str(tmp_path / 'absent'))


@pytest.fixture
def client_as(api_client, make_user):
    """Authenticate the API client as a new user holding ``roles``."""
    def login(username, *roles):
        api_client.force_authenticate(user=make_user(username, *roles))
        return api_client
    return login


class TestMethodLevelRoles:
    """OrderViewSet: only ``list`` declares @roles_allowed('admin')."""

    def test_anonymous_caller_must_authenticate(self, api_client, deny_by_default):
        response = api_client.get('/orders/')

        assert response.status_code == 401
        assert response.data['code'] == 'not_authenticated'
        assert 'WWW-Authenticate' in response

    def test_caller_without_role_is_forbidden(self, client_as, deny_by_default):
        response = client_as('member').get('/orders/')

        assert response.status_code == 403
        assert response.data['code'] == 'role_required'

    def test_caller_with_role_is_allowed(self, client_as, deny_by_default):
        response = client_as('admin-user', 'admin').get('/orders/')

        assert response.status_code == 200
        assert response.data == [{'id': 1}]

    def test_undeclared_sibling_denied_with_default_deny(self, client_as, deny_by_default):
        client = client_as('admin-user', 'admin')

        assert client.post('/orders/', {}, format='json').status_code == 403
        response = client.get('/orders/7/')
        assert response.status_code == 403
        assert response.data['code'] == 'access_denied'

    def test_undeclared_sibling_open_without_default_deny(self, api_client, allow_by_default):
        assert api_client.post('/orders/', {}, format='json').status_code == 201
        assert api_client.get('/orders/7/').data == {'id': '7'}


class TestClassLevelAnnotation:
    """AccountView: @authenticated on the class, @permit_all on ``get``."""

    def test_permit_all_handler_is_public(self, api_client, deny_by_default):
        response = api_client.get('/account/')

        assert response.status_code == 200
        assert response.data == {'public': True}

    def test_other_handlers_need_authentication(self, api_client, deny_by_default):
        assert api_client.post('/account/', {}, format='json').status_code == 401
        assert api_client.delete('/account/').status_code == 401

    def test_authenticated_caller_without_roles(self, client_as, deny_by_default):
        client = client_as('member')

        assert client.post('/account/', {}, format='json').status_code == 201
        assert client.delete('/account/').status_code == 204

    def test_head_follows_get(self, api_client, deny_by_default):
        assert api_client.head('/account/').status_code == 200

    def test_options_follows_class_annotation(self, api_client, client_as, deny_by_default):
        assert api_client.options('/account/').status_code == 401
        assert client_as('member').options('/account/').status_code == 200


class TestDenyAllClass:
    """ArchiveView: @deny_all on the class, ``post`` opened to auditors and admins."""

    def test_undeclared_handler_is_denied_to_everyone(self, client_as, allow_by_default):
        response = client_as('root', 'admin', 'auditor').get('/archive/')

        assert response.status_code == 403
        assert response.data['code'] == 'access_denied'

    def test_anonymous_caller_is_not_asked_to_authenticate(self, api_client, allow_by_default):
        response = api_client.get('/archive/')

        assert response.status_code == 403
        assert response.data['code'] == 'access_denied'
        assert 'WWW-Authenticate' not in response

    def test_head_cannot_bypass_denied_get(self, client_as, allow_by_default):
        assert client_as('root', 'admin').head('/archive/').status_code == 403

    def test_handler_override(self, client_as, allow_by_default):
        assert client_as('auditor-user', 'auditor').post('/archive/', {}, format='json').status_code == 200

    def test_handler_override_requires_role(self, client_as, allow_by_default):
        assert client_as('member').post('/archive/', {}, format='json').status_code == 403


class TestEmptyRoles:

    def test_roles_allowed_without_roles_admits_nobody(self, client_as, allow_by_default):
        response = client_as('root', 'admin', 'security-admin').get('/nobody/')

        assert response.status_code == 403
        assert response.data['code'] == 'role_required'


class TestUnannotatedView:
    """PublicView declares nothing, so default-deny does not reach it."""

    def test_open_with_default_deny(self, api_client, deny_by_default):
        assert api_client.get('/public/').status_code == 200
        assert api_client.post('/public/', {}, format='json').status_code == 200

    def test_marker_file_enables_default_deny(self, api_client, rbac_settings, tmp_path):
        marker = tmp_path / 'DENY-NONANNOTATED-ENDPOINTS'
        marker.touch()
        rbac_settings(DENY_NON_ANNOTATED_BY_DEFAULT=False, DENY_NON_ANNOTATED_MARKER=str(marker))

        assert api_client.get('/public/').status_code == 200
        assert api_client.post('/orders/', {}, format='json').status_code == 403


class TestExtraActions:
    """ReportViewSet: ``export`` action with an undeclared DELETE mapping."""

    def test_action_role(self, client_as, deny_by_default):
        response = client_as('cfo', 'finance').get('/reports/export/')

        assert response.status_code == 200
        assert response.data == {'format': 'csv'}

    def test_action_role_required(self, client_as, deny_by_default):
        assert client_as('member').get('/reports/export/').status_code == 403

    def test_mapped_handler_denied_with_default_deny(self, client_as, deny_by_default):
        assert client_as('cfo', 'finance').delete('/reports/export/').status_code == 403

    def test_mapped_handler_open_without_default_deny(self, api_client, allow_by_default):
        assert api_client.delete('/reports/export/').status_code == 204

    def test_list_requires_authentication(self, api_client, client_as, deny_by_default):
        assert api_client.get('/reports/').status_code == 401
        assert client_as('member').get('/reports/').status_code == 200


class TestEndpointPolicyReport:
    """GET /v1/rbac/endpoint-policies/"""

    url = '/v1/rbac/endpoint-policies/'

    def test_requires_security_admin(self, client_as, deny_by_default):
        response = client_as('member').get(self.url)

        assert response.status_code == 403

    def test_lists_resolved_policies(self, client_as, deny_by_default):
        response = client_as('sec', 'security-admin').get(self.url)

        assert response.status_code == 200
        rows = {(row['route'], row['operation']): row for row in response.data}

        assert rows[('^orders/$', 'list')]['policy'] == 'require_roles'
        assert rows[('^orders/$', 'list')]['roles'] == ['admin']
        assert rows[('^orders/$', 'create')]['policy'] == 'deny'
        assert rows[('account/', 'get')]['policy'] == 'allow_all'
        assert rows[('public/', 'get')]['policy'] == 'none'
        assert rows[('public/', 'get')]['roles'] == []
        assert rows[('v1/rbac/endpoint-policies/', 'get')]['roles'] == ['security-admin']
        assert rows[('account/', 'post')]['view'] == 'apps.rbac.tests.views.AccountView'


class TestRequestContext:

    def test_health_check_is_public(self, api_client, deny_by_default):
        response = api_client.get('/v1/health/')

        assert response.status_code == 200
        assert response.data['status'] == 'healthy'
        assert response.data['rbac_default_deny'] is True

    def test_request_id_is_echoed(self, api_client, deny_by_default):
        response = api_client.get('/v1/health/', HTTP_X_REQUEST_ID='trace-42')

        assert response['X-Request-ID'] == 'trace-42'

    def test_error_body_carries_request_id(self, client_as, deny_by_default):
        response = client_as('member').get('/orders/', HTTP_X_REQUEST_ID='trace-43')

        assert response.data['request_id'] == 'trace-43'


@pytest.mark.urls('apps.rbac.tests.urls_invalid')
class TestMisconfiguredEndpoint:

    def test_ambiguous_view_is_never_served(self, client_as, allow_by_default):
        response = client_as('root', 'x').get('/ambiguous-handler/')

        assert response.status_code == 500
        assert response.data['code'] == 'SECURITY_MISCONFIGURED'

    def test_sound_view_in_same_urlconf_is_served(self, api_client, allow_by_default):
        assert api_client.get('/public/').status_code == 200


class TestNonStandardMethods:
    """Request-supplied method names are enforced but never cached."""

    def test_made_up_methods_do_not_grow_policy_cache(self, api_client, deny_by_default):
        from apps.rbac.registry import policy_registry

        api_client.get('/public/')
        cached = len(policy_registry._filters)

        for i in range(20):
            assert api_client.generic(f'X{i}', '/public/').status_code == 405

        assert len(policy_registry._filters) == cached

    def test_made_up_method_on_closed_view_is_denied(self, api_client, deny_by_default):
        response = api_client.generic('PURGE', '/archive/')

        assert response.status_code == 403
        assert response.data['code'] == 'access_denied'
