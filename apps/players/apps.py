from django.apps import AppConfig


class PlayersConfig(AppConfig):
    """
    App configuration for the 'players' app.
    Players are the people who upload matches; they own the aggregate stat block.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.players"
    verbose_name = "Players"
