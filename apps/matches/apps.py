from django.apps import AppConfig


class MatchesConfig(AppConfig):
    """
    App configuration for the 'matches' app.
    Owns the ingestion pipeline: extraction, confirmation, duplicate detection
    and the atomic match commit.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.matches"
    verbose_name = "Matches"
