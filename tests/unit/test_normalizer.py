"""Tests for normalizer functions."""

from datetime import datetime, timedelta, timezone

import pytest

from community_scraper.core.normalizer import (
    combine_date_time,
    extract_email,
    extract_phone,
    normalize_date,
    normalize_whitespace,
    parse_url_date,
    to_utc,
    truncate,
)

NOW = datetime(2025, 7, 10, 12, 0, tzinfo=timezone.utc)


class TestNormalizeDate:
    """Tests for normalize_date function."""

    def test_published_prefix(self):
        result = normalize_date("Published Jul 04, 2025 • 4 minute read", NOW)

        assert result.form == "published"
        assert not result.degraded
        assert result.value == datetime(2025, 7, 4, tzinfo=timezone.utc)

    def test_month_day_year(self):
        result = normalize_date("July 5, 2025", NOW)

        assert result.form == "month_day_year"
        assert result.value == datetime(2025, 7, 5, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text,delta", [
        ("5 days ago", timedelta(days=5)),
        ("2 hours ago", timedelta(hours=2)),
        ("1 week ago", timedelta(weeks=1)),
        ("30 minutes ago", timedelta(minutes=30)),
    ])
    def test_relative(self, text, delta):
        result = normalize_date(text, NOW)

        assert result.form == "relative"
        assert result.value == NOW - delta

    def test_us_numeric_is_month_first(self):
        result = normalize_date("07/04/2025", NOW)

        assert result.form == "us_numeric"
        assert result.value == datetime(2025, 7, 4, tzinfo=timezone.utc)

    def test_iso_date(self):
        result = normalize_date("2025-07-04", NOW)

        assert result.form == "iso"
        assert result.value == datetime(2025, 7, 4, tzinfo=timezone.utc)

    def test_iso_with_offset_converted_to_utc(self):
        result = normalize_date("2025-07-04T10:00:00-06:00", NOW)

        assert result.value == datetime(2025, 7, 4, 16, 0, tzinfo=timezone.utc)
        assert result.value.tzinfo == timezone.utc

    def test_unparseable_is_degraded(self):
        result = normalize_date("sometime soon-ish", NOW)

        assert result.degraded
        assert result.form == "fallback"
        assert result.value == NOW

    def test_empty_is_degraded(self):
        result = normalize_date(None, NOW)

        assert result.degraded
        assert result.value == NOW


class TestParseUrlDate:
    """Tests for dates embedded in article URLs."""

    def test_dashed(self):
        assert parse_url_date("https://example.com/news/2025-07-04/story") == datetime(2025, 7, 4, tzinfo=timezone.utc)

    def test_slashed(self):
        assert parse_url_date("https://example.com/2025/07/04/story") == datetime(2025, 7, 4, tzinfo=timezone.utc)

    def test_missing(self):
        assert parse_url_date("https://example.com/news/story-12345") is None

    def test_invalid_calendar_date(self):
        assert parse_url_date("https://example.com/2025-13-45/story") is None


class TestCombineDateTime:
    """Tests for combine_date_time function."""

    BASE = datetime(2025, 7, 26, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text,hour,minute", [
        ("3:00 PM", 15, 0),
        ("10:30 AM", 10, 30),
        ("12:00 PM", 12, 0),
        ("12:15 AM", 0, 15),
        ("15:30", 15, 30),
    ])
    def test_times(self, text, hour, minute):
        combined = combine_date_time(self.BASE, text)

        assert (combined.hour, combined.minute) == (hour, minute)
        assert combined.date() == self.BASE.date()

    def test_no_time(self):
        assert combine_date_time(self.BASE, "All Day") == self.BASE
        assert combine_date_time(self.BASE, None) == self.BASE


class TestTextHelpers:
    """Tests for text cleanup and contact extraction."""

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  a \n\t b  ") == "a b"
        assert normalize_whitespace(None) == ""

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        cut = truncate("x" * 300, 250)
        assert cut.endswith("...")
        assert len(cut) <= 253

    def test_extract_email(self):
        assert extract_email("Contact events@wetaskiwin.ca for info") == "events@wetaskiwin.ca"
        assert extract_email("no email here") is None

    def test_extract_phone(self):
        assert extract_phone("Call (780) 361-2222 today") == "780-361-2222"
        assert extract_phone("Call 780.352.1234") == "780-352-1234"
        assert extract_phone("no phone") is None

    def test_to_utc_naive(self):
        assert to_utc(datetime(2025, 1, 1)).tzinfo == timezone.utc
