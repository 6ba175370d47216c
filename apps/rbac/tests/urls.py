"""
URLconf used by the RBAC API tests.
"""
from django.urls import include, path
from rest_framework.routers import SimpleRouter

from apps.rbac.tests import views

router = SimpleRouter()
router.register('orders', views.OrderViewSet, basename='order')
router.register('reports', views.ReportViewSet, basename='report')

urlpatterns = [
    path('account/', views.AccountView.as_view(), name='account'),
    path('public/', views.PublicView.as_view(), name='public'),
    path('archive/', views.ArchiveView.as_view(), name='archive'),
    path('nobody/', views.NobodyView.as_view(), name='nobody'),
    path('v1/', include('apps.core.urls')),
    path('v1/', include('apps.rbac.urls')),
    path('', include(router.urls)),
]
