"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Endpoint policy report rows (one per routed operation)
"""
from rest_framework import serializers


class EndpointPolicySerializer(serializers.Serializer):
    """Serializer for a RegisteredOperation."""

    view = serializers.CharField(source='view_name')
    route = serializers.CharField()
    operation = serializers.CharField()
    policy = serializers.SerializerMethodField()
    roles = serializers.SerializerMethodField()

    def get_policy(self, obj):
        return obj.policy.name if obj.policy is not None else 'none'

    def get_roles(self, obj):
        return list(obj.policy.roles) if obj.policy is not None else []
