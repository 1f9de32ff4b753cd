from django.apps import AppConfig


class ActivityConfig(AppConfig):
    """Notifications and audit trail."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.activity'
    label = 'activity'
    verbose_name = 'Activity'
