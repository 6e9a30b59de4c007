from django.apps import AppConfig


class ResultConfig(AppConfig):
    default_auto_field = "django.db.models.AutoField"
    name = "apps.result"
    verbose_name = "Results"
