"""Tests for the shared address, date and decimal helpers."""

from decimal import Decimal

import pytest

from treasury_valuation.common.utils import (
    addresses_equal,
    normalize_address,
    safe_divide,
    to_decimal,
    to_iso_date,
    values_equal,
)


class TestAddresses:
    def test_normalised_to_lowercase(self):
        assert normalize_address(" 0x64aa3364F17a4D01c6f1751Fd97C2BD3D7e7f1D5 ") == (
            "0x64aa3364f17a4d01c6f1751fd97c2bd3d7e7f1d5"
        )

    @pytest.mark.parametrize("value", ["64aa3364", "0xZZ", 42])
    def test_invalid_addresses(self, value):
        with pytest.raises(ValueError):
            normalize_address(value)

    def test_equality_ignores_checksum_case(self):
        assert addresses_equal("0xABCDEF", "0xabcdef")


class TestDates:
    def test_block_timestamp_to_date(self):
        assert to_iso_date(1_651_000_000) == "2022-04-26"


class TestDecimals:
    def test_scaling(self):
        assert to_decimal(1_500_000, 6) == Decimal("1.5")
        assert to_decimal(12, 0) == Decimal(12)

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(1, -1)

    def test_large_values_keep_precision(self):
        raw = 123_456_789_012_345_678_901_234_567_890_123
        assert to_decimal(raw, 18) == Decimal("123456789012345.678901234567890123")

    def test_division_by_zero(self):
        assert safe_divide(Decimal(5), Decimal(0)) == Decimal(0)
        assert safe_divide(Decimal(5), Decimal(2)) == Decimal("2.5")

    def test_tolerance_is_inclusive(self):
        assert values_equal(Decimal(1), Decimal(1), Decimal(0))
        assert values_equal(Decimal(1), Decimal(2), Decimal(1))
        assert not values_equal(Decimal(1), Decimal(3), Decimal(1))
