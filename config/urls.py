"""
URL configuration for the Inventory Spaces service.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy', 'service': 'inventory-spaces-api'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/', include('spaces.urls')),
    path('api/', include('inventory.urls')),
    path('api/', include('core.urls')),
    path('api/dashboard/', include('insights.urls')),
]
