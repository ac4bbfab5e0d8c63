from django.apps import AppConfig


class AchievementsConfig(AppConfig):
    """
    App configuration for the 'achievements' app.
    Badges, milestones and the hall of fame/shame: everything derived from a
    committed match after the fact.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.achievements"
    verbose_name = "Achievements"
