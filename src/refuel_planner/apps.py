from django.apps import AppConfig


class RefuelPlannerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "refuel_planner"
