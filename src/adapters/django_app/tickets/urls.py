"""
URL patterns of the Tickets context.

API JSON:
- /api/tickets/...  ticket lifecycle
- /api/settings/... ticket policy
"""

from django.urls import path

from . import api_views

app_name = 'tickets'

urlpatterns = [
    # =========================================================================
    # Tickets
    # =========================================================================

    path('tickets/', api_views.TicketAPIListView.as_view(), name='api_list'),
    path('tickets/<str:pk>/', api_views.TicketAPIDetailView.as_view(), name='api_detail'),
    path('tickets/<str:pk>/assign/', api_views.TicketAPIAssignView.as_view(), name='api_assign'),
    path('tickets/<str:pk>/assignments/', api_views.TicketAPIAssignmentsView.as_view(), name='api_assignments'),
    path('tickets/<str:pk>/approve/', api_views.TicketAPIApproveView.as_view(), name='api_approve'),
    path(
        'tickets/<str:pk>/close-by-customer/',
        api_views.TicketAPICloseByCustomerView.as_view(),
        name='api_close_by_customer',
    ),
    path('tickets/<str:pk>/comments/', api_views.TicketAPICommentsView.as_view(), name='api_comments'),
    path('tickets/<str:pk>/attachments/', api_views.TicketAPIAttachmentsView.as_view(), name='api_attachments'),
    path(
        'tickets/<str:pk>/attachments/<str:attachment_id>/',
        api_views.TicketAPIAttachmentDetailView.as_view(),
        name='api_attachment_detail',
    ),

    # =========================================================================
    # Settings
    # =========================================================================

    path('settings/', api_views.SettingsAPIView.as_view(), name='api_settings'),
    path('settings/reset/', api_views.SettingsAPIResetView.as_view(), name='api_settings_reset'),
    path(
        'settings/auto-approval/',
        api_views.SettingsAPIAutoApprovalView.as_view(),
        name='api_settings_auto_approval',
    ),
    path('settings/due-dates/', api_views.SettingsAPIDueDatesView.as_view(), name='api_settings_due_dates'),
]
