"""
RBAC REST API views.

Implements endpoints for:
- Endpoint policy report (resolved policy of every routed operation)
"""
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.rbac.annotations import roles_allowed
from apps.rbac.registry import policy_registry
from apps.rbac.serializers import EndpointPolicySerializer

SECURITY_ADMIN_ROLE = 'security-admin'


@roles_allowed(SECURITY_ADMIN_ROLE)
class EndpointPolicyListView(APIView):
    """
    List the access policy resolved for every routed API operation.

    GET /v1/rbac/endpoint-policies/

    Requires the ``security-admin`` role.
    """

    @extend_schema(
        tags=['RBAC - Endpoint Policies'],
        summary='List endpoint policies',
        description='''
Resolved access policy of every operation exposed by the API.

`policy` is one of `deny`, `allow_all`, `require_authenticated`,
`require_roles` or `none` (no constraint installed); `roles` lists the
accepted roles for `require_roles`.
        ''',
        responses={200: EndpointPolicySerializer(many=True)},
    )
    def get(self, request):
        """Resolve (or reuse) the policies of the whole URLconf."""
        registered = policy_registry.register_urlconf()
        serializer = EndpointPolicySerializer(registered, many=True)
        return Response(serializer.data)
