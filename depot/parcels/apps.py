from django.apps import AppConfig


class ParcelsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'parcels'
    verbose_name = 'Package Lifecycle & Delivery'

    def ready(self):
        from .adapters.notification_adapter import connect_notification_handlers
        connect_notification_handlers()
