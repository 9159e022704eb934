from django.apps import AppConfig


class ClinicConfig(AppConfig):
    name = "clinic"
    verbose_name = "Patients API"
    default_auto_field = "django.db.models.AutoField"
