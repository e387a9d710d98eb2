from django.apps import AppConfig


class DemandesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'demandes'
    verbose_name = 'Demandes de transport'

    def ready(self):
        from . import handlers  # noqa: F401
