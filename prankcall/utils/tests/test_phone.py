"""Tests for Dutch phone number helpers."""

import pytest

from prankcall.utils.phone import (
    clean_phone_number,
    format_dutch_number,
    validate_phone_number,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("06 12 34 56 78", "+31612345678"),
        ("0031612345678", "+31612345678"),
        ("+31612345678", "+31612345678"),
        ("020-1234567", "+31201234567"),
        ("4412345678", "4412345678"),
    ],
)
def test_format_dutch_number(raw, expected):
    assert format_dutch_number(raw) == expected


def test_format_is_idempotent():
    once = format_dutch_number("06-12345678")
    assert format_dutch_number(once) == once


def test_clean_handles_empty_input():
    assert clean_phone_number(None) == ""
    assert clean_phone_number("") == ""
    assert format_dutch_number(None) == ""


def test_validate_mobile_number():
    result = validate_phone_number("06 12 34 56 78")

    assert result.is_valid is True
    assert result.is_mobile is True
    assert result.is_landline is False
    assert result.formatted == "+31612345678"


def test_validate_landline_number():
    result = validate_phone_number("020 123 4567")

    assert result.is_valid is True
    assert result.is_mobile is False
    assert result.is_landline is True
    assert result.formatted == "+31201234567"


@pytest.mark.parametrize("raw", ["0612345", "+44 7700 900123", "", "hello", None])
def test_validate_rejects_invalid_numbers(raw):
    result = validate_phone_number(raw)

    assert result.is_valid is False
    assert result.is_mobile is False
    assert result.is_landline is False


def test_invalid_number_is_still_formatted():
    assert validate_phone_number("06 123").formatted == "+316123"


def test_validate_landline_with_international_prefix():
    result = validate_phone_number("0031 20 123 4567")

    assert result.is_valid is True
    assert result.is_landline is True
    assert result.formatted == "+31201234567"


def test_pattern_match_outside_numbering_plan_is_landline():
    # 012 is not an assigned area code, the national pattern still accepts it
    result = validate_phone_number("0123456789")

    assert result.is_valid is True
    assert result.is_mobile is False
    assert result.is_landline is True
    assert result.formatted == "+31123456789"


def test_format_uses_e164_for_international_numbers():
    assert format_dutch_number("+32 2 123 45 67") == "+3221234567"
