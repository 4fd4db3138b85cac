from django.apps import AppConfig


class PayguardConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.payguard'
    verbose_name = 'PayGuard - Payments'
