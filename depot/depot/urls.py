"""
URL configuration for the depot project.

API endpoints live under /api/; the package lifecycle app is mounted at
/api/parcels/ and JWT token endpoints at /api/auth/token/.
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Depot Parcels API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'parcels': {
                'packages': '/api/parcels/packages/',
                'overdue_packages': '/api/parcels/packages/overdue/',
                'shipments': '/api/parcels/shipments/',
                'rules': '/api/parcels/rules/',
            },
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/parcels/', include('parcels.urls')),
]
