"""Value coercion shared by the engine: decimals, money rounding, HH:MM times."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Union

Number = Union[Decimal, int, float, str]

ZERO = Decimal("0")


def to_decimal(value: Any, default: Optional[Decimal] = ZERO) -> Optional[Decimal]:
    """Coerce API/form values (``"50.00"``, 3, 3.33, None) to Decimal.

    Floats go through ``str`` so 3.33 stays 3.33. Blank, missing and
    non-finite values return *default*.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    text = str(value).strip()
    if not text:
        return default
    try:
        result = Decimal(text)
    except InvalidOperation:
        return default
    return result if result.is_finite() else default


def round_half_up(value: Decimal, quantum: Decimal) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def to_json_number(value: Optional[Decimal]) -> Optional[Union[int, float]]:
    """Render a Decimal for a JSON body: integral values as int, else float."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Normalize a time to ``HH:MM`` (24h). Blank means "no time" and gives None.

    Accepts ``8:5``, ``08:00:00`` and ISO datetimes (``2025-03-01T07:30:00``).
    Raises ValueError for anything that is not a valid clock time.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if "T" in text:
        text = text.split("T")[-1]
    parts = text.split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM")
    try:
        hours = int(parts[0])
        minutes = int(parts[1][:2])
    except ValueError as exc:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM") from exc
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time {value!r}; hours 0-23, minutes 0-59")
    return f"{hours:02d}:{minutes:02d}"


def add_minutes(hhmm: str, minutes: int) -> str:
    """Add minutes to an ``HH:MM`` time, wrapping past midnight."""
    normalized = normalize_time(hhmm)
    if normalized is None:
        raise ValueError("Cannot add minutes to an empty time")
    h, m = (int(p) for p in normalized.split(":"))
    total = (h * 60 + m + int(minutes)) % (24 * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def normalize_date(value: Any) -> str:
    """Date part of an API date (``2025-03-01T00:00:00.000000Z`` → ``2025-03-01``)."""
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        value = value.isoformat()
    return str(value).strip().split("T")[0]


def format_quantity(value: Decimal) -> str:
    """Plain text for messages: ``Decimal("10.00")`` → ``10``, ``1.50`` → ``1.5``."""
    text = format(value.normalize(), "f")
    return "0" if text in ("-0", "") else text
