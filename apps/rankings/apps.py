from django.apps import AppConfig


class RankingsConfig(AppConfig):
    """
    App configuration for the 'rankings' app.
    Read-only views over players and matches; owns no tables.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.rankings"
    verbose_name = "Rankings"
