"""
Django app configuration for Tickets.
"""

from django.apps import AppConfig


class TicketsConfig(AppConfig):
    """Tickets, ticket settings and the domain event store."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.tickets'
    label = 'tickets'
    verbose_name = 'Ticket Management'
