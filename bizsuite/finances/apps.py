from django.apps import AppConfig


class FinancesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'bizsuite.finances'
    label = 'finances'

    def ready(self):
        """Import signals when app is ready"""
        import bizsuite.finances.signals  # noqa: F401
