from django.apps import AppConfig


class HealthCardsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'health_cards'
