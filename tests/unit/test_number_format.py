"""
Unit tests for payload number/date parsing.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from ceasa.exceptions import ValidationError
from ceasa.utils.number_format import (
    parse_br_number, to_decimal, to_money, to_int, to_id, parse_datetime
)


class TestParseBrNumber:

    @pytest.mark.parametrize('raw, expected', [
        ('1.234,56', Decimal('1234.56')),
        ('1.234.567,8', Decimal('1234567.8')),
        ('12,5', Decimal('12.5')),
        ('1.234', Decimal('1.234')),
        ('12.50', Decimal('12.50')),
        ('-3,10', Decimal('-3.10')),
        ('42', Decimal('42')),
    ])
    def test_valid(self, raw, expected):
        assert parse_br_number(raw) == expected

    @pytest.mark.parametrize('raw', ['', '   ', 'abc', None])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            parse_br_number(raw)


class TestToDecimal:

    def test_accepts_numbers_and_strings(self):
        assert to_decimal(10, 'quantity') == Decimal('10')
        assert to_decimal(2.5, 'quantity') == Decimal('2.5')
        assert to_decimal('1.234,5', 'quantity') == Decimal('1234.5')

    def test_required(self):
        with pytest.raises(ValidationError) as exc:
            to_decimal(None, 'quantity')
        assert 'quantity' in exc.value.message

    def test_default(self):
        assert to_decimal(None, 'discount_amount', default=0) == Decimal('0')

    def test_negative_rejected_unless_allowed(self):
        with pytest.raises(ValidationError):
            to_decimal(-1, 'quantity')
        assert to_decimal(-1, 'quantity', allow_negative=True) == Decimal('-1')

    def test_bool_and_nan_rejected(self):
        with pytest.raises(ValidationError):
            to_decimal(True, 'quantity')
        with pytest.raises(ValidationError):
            to_decimal('NaN', 'quantity')


def test_to_money_quantizes():
    assert to_money('10,006', 'unit_price') == Decimal('10.01')
    assert to_money(5, 'unit_price') == Decimal('5.00')
    assert str(to_money(5, 'unit_price')) == '5.00'


def test_to_int_rejects_fractions():
    assert to_int('3', 'quantity') == 3
    with pytest.raises(ValidationError):
        to_int(2.5, 'quantity')


def test_to_id():
    assert to_id('7', 'store_id') == 7
    assert to_id(None, 'store_id', required=False) is None
    with pytest.raises(ValidationError):
        to_id(None, 'store_id')
    with pytest.raises(ValidationError):
        to_id('abc', 'store_id')


class TestParseDatetime:

    def test_iso_with_z(self):
        value = parse_datetime('2024-03-01T10:30:00Z', 'purchase_date')
        assert value.year == 2024 and value.hour == 10
        assert value.utcoffset().total_seconds() == 0

    def test_date_only(self):
        assert parse_datetime('2024-03-01', 'purchase_date') == datetime(2024, 3, 1)

    def test_date_only_end_of_day(self):
        assert parse_datetime('2024-03-01', 'end', end_of_day=True) == datetime(2024, 3, 1, 23, 59, 59, 999999)
        assert parse_datetime(date(2024, 3, 1), 'end', end_of_day=True) == datetime(2024, 3, 1, 23, 59, 59, 999999)

    def test_end_of_day_keeps_explicit_time(self):
        assert parse_datetime('2024-03-01T08:00:00', 'end', end_of_day=True) == datetime(2024, 3, 1, 8)

    def test_empty_returns_default(self):
        assert parse_datetime(None, 'purchase_date') is None
        assert parse_datetime('', 'purchase_date', default='x') == 'x'

    def test_invalid(self):
        with pytest.raises(ValidationError):
            parse_datetime('01/03/2024', 'purchase_date')
