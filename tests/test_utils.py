"""
Helper function tests
"""

import re
from datetime import datetime, timedelta

import pytest

from fannu.utils import (
    format_date,
    format_datetime,
    format_etb,
    format_phone_number,
    format_relative_time,
    generate_confirmation_id,
    generate_reference_code,
    is_ethiopian_phone,
    parse_phone_to_e164,
    slugify,
)


class TestPhoneNumbers:
    """Ethiopian phone handling"""

    @pytest.mark.parametrize("raw", ["0911223344", "911223344", "251911223344", "+251 911 223 344", "0911-22-33-44"])
    def test_parse_to_e164(self, raw):
        assert parse_phone_to_e164(raw) == "+251911223344"

    def test_valid(self):
        assert is_ethiopian_phone("+251911223344")

    @pytest.mark.parametrize("phone", ["+25191122334", "+2519112233445", "0911223344", "+254711223344", "", None])
    def test_invalid(self, phone):
        assert not is_ethiopian_phone(phone)

    def test_display_format(self):
        assert format_phone_number("+251911223344") == "0911223344"
        assert format_phone_number("+15551234567") == "+15551234567"


class TestIdentifiers:
    """Generated codes"""

    def test_reference_code_alphabet(self):
        """No 0, O, 1 or I in booking references"""
        for _ in range(50):
            code = generate_reference_code()
            assert re.fullmatch(r"BK-[A-Z2-9]{4}", code)
            assert not set(code[3:]) & set("01IO")

    def test_confirmation_id(self):
        assert re.fullmatch(r"VIP-[A-Z0-9]{6}", generate_confirmation_id())


class TestFormatting:
    """Display helpers"""

    def test_slugify(self):
        assert slugify("Live at Ghion Hotel!") == "live-at-ghion-hotel"
        assert slugify("  --Teddy  Afro--  ") == "teddy-afro"
        assert len(slugify("x" * 80)) == 50

    def test_format_etb(self):
        assert format_etb(150000) == "ETB 1,500"
        assert format_etb(0) == "ETB 0"
        assert format_etb(None) == "ETB 0"

    def test_format_dates(self):
        value = datetime(2025, 3, 7, 14, 5)

        assert format_date(value) == "Mar 7, 2025"
        assert format_datetime(value) == "Mar 7, 2025, 2:05 PM"
        assert format_datetime(datetime(2025, 3, 7, 0, 30)) == "Mar 7, 2025, 12:30 AM"
        assert format_date(None) == ""

    def test_relative_time(self):
        now = datetime(2025, 3, 7, 12, 0)

        assert format_relative_time(now - timedelta(seconds=30), now) == "just now"
        assert format_relative_time(now - timedelta(minutes=5), now) == "5m ago"
        assert format_relative_time(now - timedelta(hours=3), now) == "3h ago"
        assert format_relative_time(now - timedelta(days=2), now) == "2d ago"
        assert format_relative_time(now - timedelta(days=10), now) == "Feb 25, 2025"
