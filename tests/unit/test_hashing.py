"""Tests for deterministic hashing (rules_kernel/utils/hashing.py)."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from rules_kernel.domain.rules import OverrideType
from rules_kernel.utils.hashing import canonicalize_json, stable_string_hash


class TestStableStringHash:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("", 0),
            ("a", 97),
            ("abc", 96354),
            ("hello", 99162322),
            ("polygenelubricants", -2147483648),
        ],
    )
    def test_known_values(self, value, expected):
        assert stable_string_hash(value) == expected

    def test_collisions_match_polynomial_definition(self):
        assert stable_string_hash("Aa") == stable_string_hash("BB") == 2112

    def test_result_is_signed_32_bit(self):
        h = stable_string_hash("0b5f8a8e-7c3e-4a8e-9d61-1f0f7d9c2b10" * 4)
        assert -(2**31) <= h < 2**31

    def test_non_bmp_characters_hash_as_surrogate_pairs(self):
        # U+1F600 is the surrogate pair D83D DE00
        expected = (31 * 0xD83D + 0xDE00) & 0xFFFFFFFF
        if expected >= 2**31:
            expected -= 2**32
        assert stable_string_hash("\U0001F600") == expected


class TestCanonicalizeJson:
    def test_sorted_and_compact(self):
        assert canonicalize_json({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_domain_types(self):
        data = {
            "percent": Decimal("3.000"),
            "date": date(2024, 6, 15),
            "at": datetime(2024, 6, 15, 9, 0, tzinfo=timezone.utc),
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "type": OverrideType.DISABLE,
        }
        assert canonicalize_json(data) == (
            '{"at":"2024-06-15T09:00:00+00:00","date":"2024-06-15",'
            '"id":"12345678-1234-5678-1234-567812345678","percent":"3","type":"DISABLE"}'
        )

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            canonicalize_json({"x": object()})
