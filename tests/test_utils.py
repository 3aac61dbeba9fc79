"""Tests for shared utility functions."""

import string

from dispatch.utils import normalize_phone, short_id


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("0412 345 678") == "0412345678"

    def test_strips_dashes(self):
        assert normalize_phone("0412-345-678") == "0412345678"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+61 412 345 678") == "+61412345678"

    def test_mixed_separators(self):
        assert normalize_phone("+61 (412) 345-678") == "+61412345678"

    def test_placeholder_has_no_digits(self):
        assert normalize_phone("N/A") == ""


class TestShortId:
    def test_default_length_is_nine(self):
        assert len(short_id()) == 9

    def test_custom_length(self):
        assert len(short_id(5)) == 5

    def test_base36_alphabet(self):
        allowed = set(string.ascii_lowercase + string.digits)
        assert set(short_id(200)) <= allowed

    def test_ids_differ(self):
        assert len({short_id() for _ in range(50)}) == 50
