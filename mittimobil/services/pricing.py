from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from mittimobil.errors import InvalidInterval, ValidationError

ONE_HOUR = timedelta(hours=1)
ONE_DAY = timedelta(days=1)
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    hours: int
    days: int
    unit: str
    rate: Decimal
    total: Decimal


def ceil_units(span, unit):
    whole, remainder = divmod(span, unit)
    return whole + 1 if remainder else whole


def _as_rate(value, label):
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid {label}.") from exc


def quote(start, end, price_per_hour, price_per_day=None):
    """Charge for renting from ``start`` to ``end``.

    A daily rate, when present, always wins: the whole interval is billed in
    started days, so 25 hours is two days rather than one day and one hour.
    Without a daily rate the interval is billed in started hours.
    """
    if start is None or end is None or end <= start:
        raise InvalidInterval()

    span = end - start
    hours = ceil_units(span, ONE_HOUR)
    days = ceil_units(span, ONE_DAY)

    hourly = _as_rate(price_per_hour, "price per hour")
    if hourly <= 0:
        raise ValidationError("Price per hour must be a positive number.")
    daily = _as_rate(price_per_day, "price per day") if price_per_day is not None else None

    if days > 0 and daily:
        unit, rate, units = "day", daily, days
    else:
        unit, rate, units = "hour", hourly, hours

    return PriceQuote(
        hours=hours,
        days=days,
        unit=unit,
        rate=rate.quantize(CENTS),
        total=(rate * units).quantize(CENTS),
    )
