"""
Tests for the fixed-point Amount codec and the loose amount parser
"""
from decimal import Decimal

import pytest

from errors import FormatError
from encoding.amounts import (
    Amount,
    AmountShape,
    attos_to_decimal,
    classify_amount,
    decimal_to_attos,
    loose_amount_to_attos,
)
from encoding.bcs import MAX_U128

ONE = 10 ** 18


class TestDecimalToAttos:
    @pytest.mark.parametrize("text,expected", [
        ("1", ONE),
        ("1.5", 1_500_000_000_000_000_000),
        ("0.000000000000000001", 1),
        (".5", ONE // 2),
        ("  42  ", 42 * ONE),
        ("1_000", 1000 * ONE),
        ("+3", 3 * ONE),
        ("", 0),
        ("007.10", 7_100_000_000_000_000_000),
    ])
    def test_parses(self, text, expected):
        assert decimal_to_attos(text) == expected

    @pytest.mark.parametrize("text", [
        "-1",
        "0.0000000000000000001",
        "1.2.3",
        "abc",
        "1e5",
        "340282366920938463464",
    ])
    def test_rejects(self, text):
        with pytest.raises(FormatError):
            decimal_to_attos(text)

    def test_custom_decimals(self):
        assert decimal_to_attos("1.5", decimals=9) == 1_500_000_000
        with pytest.raises(FormatError):
            decimal_to_attos("0.0000000001", decimals=9)


class TestAttosToDecimal:
    @pytest.mark.parametrize("value,expected", [
        (0, "0"),
        (ONE, "1"),
        (1, "0.000000000000000001"),
        (1_500_000_000_000_000_000, "1.5"),
        (10 ** 14, "0.0001"),
    ])
    def test_formats(self, value, expected):
        assert attos_to_decimal(value) == expected

    def test_round_trip_is_numerically_equal(self):
        for text in ("0", "1", "1.50", "123456789.123456789012345678", "0.000000000000000001", "800000000"):
            assert Decimal(attos_to_decimal(decimal_to_attos(text))) == Decimal(text)

    def test_rejects_negative(self):
        with pytest.raises(FormatError):
            attos_to_decimal(-1)


class TestAmount:
    def test_parse_and_str(self):
        amount = Amount.parse("2.50")
        assert amount.attos == 2_500_000_000_000_000_000
        assert str(amount) == "2.5"
        assert amount.to_bcs() == amount.attos.to_bytes(16, "little")

    def test_bounds(self):
        with pytest.raises(FormatError):
            Amount(-1)
        with pytest.raises(FormatError):
            Amount(MAX_U128 + 1)


class TestLooseAmount:
    def test_shapes(self):
        assert classify_amount({"attos": "5"}).shape is AmountShape.ATTOS_FIELD
        assert classify_amount({"tokens": "5"}).shape is AmountShape.TOKENS_FIELD
        assert classify_amount({"value": 5}).shape is AmountShape.VALUE_FIELD
        assert classify_amount("5").shape is AmountShape.TEXT
        assert classify_amount(5).shape is AmountShape.NUMBER
        assert classify_amount({"other": 1}).shape is AmountShape.UNKNOWN
        assert classify_amount(None).shape is AmountShape.UNKNOWN
        assert classify_amount(True).shape is AmountShape.UNKNOWN
        assert classify_amount([1]).shape is AmountShape.UNKNOWN

    def test_attos_field_is_taken_verbatim(self):
        assert loose_amount_to_attos({"attos": "123"}) == 123
        assert loose_amount_to_attos({"attos": 7}) == 7

    def test_human_decimals(self):
        assert loose_amount_to_attos("1.5") == 1_500_000_000_000_000_000
        assert loose_amount_to_attos({"tokens": "2"}) == 2 * ONE
        assert loose_amount_to_attos({"value": "0.25"}) == ONE // 4
        assert loose_amount_to_attos(3) == 3 * ONE
        assert loose_amount_to_attos("7.") == 7 * ONE

    def test_long_integers_are_already_scaled(self):
        # 19 digits, no decimal point
        assert loose_amount_to_attos("1000000000000000000") == 10 ** 18
        # 18 digits is still read as whole tokens
        assert loose_amount_to_attos("100000000000000000") == 10 ** 17 * ONE

    def test_extra_fraction_digits_are_truncated(self):
        assert loose_amount_to_attos("0.0000000000000000019") == 1

    @pytest.mark.parametrize("value", [None, "", "-1", "abc", {"other": "1"}, float("nan"), float("inf"), True, "1e21"])
    def test_unparseable_is_none(self, value):
        assert loose_amount_to_attos(value) is None
