from django.apps import AppConfig


class StockActionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.stock_actions"
    verbose_name = "Stock actions"
