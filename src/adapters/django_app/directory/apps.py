from django.apps import AppConfig


class DirectoryConfig(AppConfig):
    """Staff members and customers read by the core."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.directory'
    label = 'directory'
    verbose_name = 'Directory'
