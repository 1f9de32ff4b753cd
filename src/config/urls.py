"""
URL configuration.

Structure:
- /api/tickets/, /api/settings/ - tickets and policy
- /api/inventory/items/ - spare parts stock
- /health/ - liveness probe
"""

from django.http import JsonResponse
from django.urls import path, include


def health(request):
    return JsonResponse({'status': 'ok'})


urlpatterns = [
    path('api/', include('src.adapters.django_app.tickets.urls')),
    path('api/inventory/', include('src.adapters.django_app.inventory.urls')),
    path('health/', health, name='health'),
]
