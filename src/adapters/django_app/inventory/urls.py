"""
URL patterns of the Inventory context (mounted under /api/inventory/).
"""

from django.urls import path

from . import api_views

app_name = 'inventory'

urlpatterns = [
    path('items/', api_views.ItemAPIListView.as_view(), name='api_items'),
    path('items/<str:pk>/', api_views.ItemAPIDetailView.as_view(), name='api_item_detail'),
    path('items/<str:pk>/movements/', api_views.ItemAPIMovementsView.as_view(), name='api_item_movements'),
    path('items/<str:pk>/dispatch/', api_views.ItemAPIDispatchView.as_view(), name='api_item_dispatch'),
    path('items/<str:pk>/return/', api_views.ItemAPIReturnView.as_view(), name='api_item_return'),
]
