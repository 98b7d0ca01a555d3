"""
Display Formatting

en-US money/number formatting and hour labels shared by the pipelines.
"""

from decimal import Decimal, ROUND_HALF_UP


def format_currency(amount: float, decimals: int = 2) -> str:
    """
    USD in en-US style, rounding half away from zero.

    >>> format_currency(1234.5)
    '$1,234.50'
    >>> format_currency(1234.5, decimals=0)
    '$1,235'
    """
    quantum = Decimal(1).scaleb(-decimals)
    value = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_number(value: float) -> str:
    """Grouped number, at most three fraction digits ('1,234', '12.5')."""
    rounded = Decimal(str(value)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return f"{int(rounded):,}"
    text = f"{rounded:,.3f}".rstrip("0")
    return text


def format_hour(hour: int) -> str:
    if hour == 0:
        return "12AM"
    if hour == 12:
        return "12PM"
    if hour < 12:
        return f"{hour}AM"
    return f"{hour - 12}PM"


def time_of_day(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"
