from django.apps import AppConfig


class ClientdeskConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'clientdesk'
    verbose_name = 'Client desk'

    def ready(self):
        from . import signals  # noqa: F401
