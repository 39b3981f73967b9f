"""Django app configuration for django-service-agreements."""

from django.apps import AppConfig


class DjangoServiceAgreementsConfig(AppConfig):
    """App configuration for django-service-agreements."""

    name = 'django_service_agreements'
    verbose_name = 'Service Agreements'
    default_auto_field = 'django.db.models.BigAutoField'
