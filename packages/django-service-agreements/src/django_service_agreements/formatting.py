"""Display formatting for agreement prices and dates.

Reads currency and date settings from AgreementDisplaySettings. Pass a
settings instance to avoid a query per call when formatting lists.
"""

from decimal import ROUND_HALF_UP, Decimal

from django.utils import dateformat

from .choices import BillingCycle
from .recurrence import as_date

# Django date format strings offered in the settings screen
DATE_FORMATS = ("d.m.Y", "d/m/Y", "m/d/Y", "Y-m-d")
DEFAULT_DATE_FORMAT = "d.m.Y"


def _display_settings(display_settings):
    if display_settings is not None:
        return display_settings
    from .models import AgreementDisplaySettings
    return AgreementDisplaySettings.get_instance()


def format_amount(amount, decimal_separator: str = ",", thousands_separator: str = " ") -> str:
    """Two decimals, half-up rounding, custom separators."""
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    grouped = f"{quantized:,.2f}"
    return grouped.translate(str.maketrans({",": thousands_separator, ".": decimal_separator}))


def format_price(amount, display_settings=None) -> str:
    """
    Format a price with the configured currency symbol.

    Example (defaults): format_price(Decimal("1234.5")) -> "1 234,50 NOK"
    """
    display = _display_settings(display_settings)
    formatted = format_amount(
        amount,
        decimal_separator=display.get_with_fallback("decimal_separator"),
        thousands_separator=display.get_with_fallback("thousands_separator"),
    )
    symbol = display.get_with_fallback("currency_symbol")
    if display.get_with_fallback("currency_position") == "before":
        return f"{symbol} {formatted}"
    return f"{formatted} {symbol}"


def format_price_per_cycle(amount, billing_cycle, display_settings=None) -> str:
    """Price with its cycle, e.g. "500,00 NOK / Monthly"."""
    label = BillingCycle(billing_cycle).label
    return f"{format_price(amount, display_settings)} / {label}"


def format_date(value, display_settings=None) -> str:
    """Format a date per the configured date format; "N/A" for None."""
    if value is None:
        return "N/A"
    display = _display_settings(display_settings)
    date_format = display.get_with_fallback("date_format")
    if date_format not in DATE_FORMATS:
        date_format = DEFAULT_DATE_FORMAT
    return dateformat.format(as_date(value), date_format)
