"""
Value helpers for minutes, hours and money.

All arithmetic on rates and amounts is done in ``Decimal``.  Rates stay
exact; only amounts reported to people are quantized, always to two
decimal places with ROUND_HALF_UP.
"""

from decimal import ROUND_HALF_UP, Decimal

from hours_kernel.exceptions import InvalidMinutesError

TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")
MINUTES_PER_HOUR = Decimal("60")
HUNDRED = Decimal("100")


def quantize_amount(value: Decimal) -> Decimal:
    """Round a monetary amount to cents."""
    return Decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def quantize_percentage(value: Decimal, places: Decimal = TWO_PLACES) -> Decimal:
    return Decimal(value).quantize(places, rounding=ROUND_HALF_UP)


def minutes_to_hours(minutes: int) -> Decimal:
    return Decimal(minutes) / MINUTES_PER_HOUR


def cost_of_minutes(rate: Decimal, minutes: int) -> Decimal:
    """Hourly rate times minutes / 60, unrounded."""
    return Decimal(rate) * Decimal(minutes) / MINUTES_PER_HOUR


def ratio_percentage(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, zero when whole is zero."""
    if whole == 0:
        return Decimal("0")
    return Decimal(part) / Decimal(whole) * HUNDRED


def require_minutes(value: object, field: str, allow_zero: bool = False) -> int:
    """
    Validate a whole number of minutes.

    Raises:
        InvalidMinutesError: not an int, negative, or zero when not allowed.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidMinutesError(field, value)
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidMinutesError(field, value)
    return value


def require_text(value: object) -> str | None:
    """Stripped text, or None when missing or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None
