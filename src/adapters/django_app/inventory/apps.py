from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Spare parts stock ledger and installation requests."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.inventory'
    label = 'inventory'
    verbose_name = 'Inventory'
