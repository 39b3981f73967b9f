"""Django Service Agreements configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    SERVICE_AGREEMENTS_RENEWAL_WARNING_DAYS = 45
    SERVICE_AGREEMENTS_INVOICE_WARNING_DAYS = 7
"""

from django.conf import settings


DEFAULTS = {
    # Renewal shown as "coming soon" this many days ahead
    "RENEWAL_WARNING_DAYS": 30,
    # Next invoice shown as "coming soon" this many days ahead
    "INVOICE_WARNING_DAYS": 14,
}


def get_setting(name: str, default=None):
    """Get a setting with SERVICE_AGREEMENTS_ prefix."""
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"SERVICE_AGREEMENTS_{name}", default)
