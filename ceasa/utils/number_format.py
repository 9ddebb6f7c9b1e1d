"""Number and payload parsing utilities (Brazilian formats accepted)."""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from ceasa.exceptions import ValidationError

BR_NUMBER_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")


def parse_br_number(value: str) -> Decimal:
    """
    Parse a number string in Brazilian format (e.g., 1.234,56 or 1.234) to Decimal.

    Plain dotted decimals ("12.50") are accepted as a fallback so JSON clients
    that send strings keep working; a single dot without a comma is always
    read as the decimal point ("1.234" -> 1.234).

    Raises:
        ValueError: if the value is invalid or empty.
    """
    if value is None:
        raise ValueError('Formato inválido. Use 1.234,56')

    cleaned = value.strip()
    if not cleaned:
        raise ValueError('Formato inválido. Use 1.234,56')

    if BR_NUMBER_PATTERN.match(cleaned) and (',' in cleaned or cleaned.count('.') != 1):
        normalized = cleaned.replace('.', '').replace(',', '.')
    else:
        normalized = cleaned

    try:
        return Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError('Formato inválido. Use 1.234,56')


def to_decimal(value, field: str, default=None, allow_negative: bool = False) -> Decimal:
    """
    Coerce a payload value (number or string) to Decimal.

    Raises:
        ValidationError: missing/invalid value, or negative when not allowed.
    """
    if value is None or value == '':
        if default is None:
            raise ValidationError(f'O campo "{field}" é obrigatório')
        return Decimal(str(default))

    if isinstance(value, bool):
        raise ValidationError(f'Valor inválido para "{field}"')

    try:
        if isinstance(value, str):
            number = parse_br_number(value)
        else:
            number = Decimal(str(value))
    except (ValueError, InvalidOperation):
        raise ValidationError(f'Valor inválido para "{field}"')

    if not number.is_finite():
        raise ValidationError(f'Valor inválido para "{field}"')

    if not allow_negative and number < 0:
        raise ValidationError(f'O campo "{field}" não pode ser negativo')

    return number


def to_money(value, field: str, default=None, allow_negative: bool = False) -> Decimal:
    """Like to_decimal, quantized to cents."""
    return to_decimal(value, field, default, allow_negative).quantize(Decimal('0.01'))


def to_int(value, field: str, default=None, allow_negative: bool = False) -> int:
    """Coerce a payload value to int, rejecting fractional numbers."""
    number = to_decimal(value, field, default, allow_negative)
    if number != number.to_integral_value():
        raise ValidationError(f'O campo "{field}" deve ser um número inteiro')
    return int(number)


def to_id(value, field: str, required: bool = True):
    """Coerce an identifier from the payload (int ids)."""
    if value is None or value == '':
        if required:
            raise ValidationError(f'O campo "{field}" é obrigatório')
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Identificador inválido para "{field}"')


def parse_datetime(value, field: str, default=None, end_of_day: bool = False):
    """
    Parse an ISO-8601 date/datetime from the payload.

    A date without a time starts at midnight, or at the last instant of
    that day when `end_of_day` is set (inclusive upper bounds).
    """
    if value is None or value == '':
        return default
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.max.time() if end_of_day else datetime.min.time())
    try:
        cleaned = str(value).strip()
        if cleaned.endswith('Z'):
            cleaned = cleaned[:-1] + '+00:00'
        if len(cleaned) == 10:
            return parse_datetime(date.fromisoformat(cleaned), field, end_of_day=end_of_day)
        return datetime.fromisoformat(cleaned)
    except ValueError:
        raise ValidationError(f'Data inválida para "{field}". Use o formato ISO-8601')
