"""
RBAC API URLs.

Provides endpoints for:
- Endpoint policy report
"""
from django.urls import path
from apps.rbac.views import EndpointPolicyListView

app_name = 'rbac'

urlpatterns = [
    path('rbac/endpoint-policies/', EndpointPolicyListView.as_view(), name='endpoint-policy-list'),
]
