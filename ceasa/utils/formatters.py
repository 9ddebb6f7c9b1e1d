"""
Formatting helpers for API payloads and user-facing messages.
"""
from decimal import Decimal
from datetime import date, datetime
from typing import Union, Optional


def decimal_str(value: Optional[Decimal], places: str = '0.01') -> Optional[str]:
    """Render a Decimal for JSON without losing precision."""
    if value is None:
        return None
    return str(Decimal(str(value)).quantize(Decimal(places)))


def iso(value: Union[date, datetime, None]) -> Optional[str]:
    """ISO-8601 rendering for dates and datetimes (None passes through)."""
    if value is None:
        return None
    return value.isoformat()


def enum_value(value) -> Optional[str]:
    """Return the raw value of an Enum member (or the value itself)."""
    if value is None:
        return None
    return value.value if hasattr(value, 'value') else str(value)
