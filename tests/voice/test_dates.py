"""
Tests for date and time-of-day extraction.

Reference date throughout is Tue, Feb 17 2026.
"""

import pytest

from studio_voice.voice.dates import (
    ambiguous_weekday,
    extract_duration_minutes,
    last_and_next,
    looks_like_time,
    parse_time_of_day,
    resolve_date,
    unparseable_date,
)


REF = "2026-02-17"


class TestResolveDate:

    @pytest.mark.parametrize("text,expected", [
        ("yesterday", "2026-02-16"),
        ("today", REF),
        ("tonight", REF),
        ("tomorrow", "2026-02-18"),
        ("ayer", "2026-02-16"),
        ("mañana", "2026-02-18"),
        ("明天", "2026-02-18"),
        ("next friday", "2026-02-20"),
        ("next tuesday", "2026-02-24"),
        ("last friday", "2026-02-13"),
        ("last tuesday", "2026-02-10"),
        ("this friday", "2026-02-20"),
        ("this tuesday", REF),
        ("el próximo viernes", "2026-02-20"),
        ("下周五", "2026-02-20"),
        ("上周五", "2026-02-13"),
    ])
    def test_relative_words(self, text, expected):
        assert resolve_date(text, REF) == expected

    @pytest.mark.parametrize("text,expected", [
        ("friday", "2026-02-13"),
        ("on Tuesday", REF),
        ("mon", "2026-02-16"),
        ("星期一", "2026-02-16"),
    ])
    def test_bare_weekday_is_on_or_before(self, text, expected):
        assert resolve_date(text, REF) == expected

    @pytest.mark.parametrize("text,expected", [
        ("Feb 20", "2026-02-20"),
        ("february 3rd", "2026-02-03"),
        ("Friday, February 20", "2026-02-20"),
        ("20 de febrero", "2026-02-20"),
        ("2026-03-01", "2026-03-01"),
        ("2/20", "2026-02-20"),
        ("2/20/25", "2025-02-20"),
        ("the 5th", "2026-02-05"),
    ])
    def test_explicit_dates(self, text, expected):
        assert resolve_date(text, REF) == expected

    def test_month_far_ahead_rolls_back_a_year(self):
        assert resolve_date("December 20", REF) == "2025-12-20"
        assert resolve_date("August 1", REF) == "2026-08-01"

    def test_invalid_calendar_date(self):
        assert resolve_date("Feb 30", REF) is None

    def test_no_date(self):
        assert resolve_date("Leo came", REF) is None
        assert resolve_date("", REF) is None


class TestUnparseableDate:

    @pytest.mark.parametrize("text,expected", [
        ("Mark Ava attended on 2/30", "2/30"),
        ("Ava came on the 45th", "the 45th"),
        ("Move Leo Chen from 2026-13-01 to tomorrow", "2026-13-01"),
        ("Ava came on Feb 30", "Feb 30"),
        ("Mover a Leo al 31 de febrero", "31 de febrero"),
    ])
    def test_reports_first_bad_token(self, text, expected):
        assert unparseable_date(text, REF) == expected

    @pytest.mark.parametrize("text", [
        "Ava came on Feb 20",
        "Mia attended on the 17th",
        "Move Leo from 2/20/25 to 2026-03-01",
        "Leo came today",
        "",
    ])
    def test_valid_or_missing_dates(self, text):
        assert unparseable_date(text, REF) is None


class TestAmbiguousWeekday:

    def test_bare_weekday(self):
        assert ambiguous_weekday("Friday") == "friday"
        assert ambiguous_weekday("sunday") == "sunday"

    @pytest.mark.parametrize("phrase", [
        "next friday", "last friday", "this friday", "friday feb 20",
        "friday 2/20", "tomorrow", "the 20th", "",
    ])
    def test_qualified_weekday_is_not_ambiguous(self, phrase):
        assert ambiguous_weekday(phrase) is None

    def test_last_and_next_skip_the_reference_day(self):
        assert last_and_next("friday", REF) == ("2026-02-13", "2026-02-20")
        assert last_and_next("tuesday", REF) == ("2026-02-10", "2026-02-24")
        assert last_and_next("someday", REF) is None


class TestTimeOfDay:

    @pytest.mark.parametrize("text,expected", [
        ("at 5pm", "5:00 PM"),
        ("at 5:30 pm", "5:30 PM"),
        ("12 am", "12:00 AM"),
        ("17:00", "5:00 PM"),
        ("at 9:15", "9:15 AM"),
        ("at 6", "6:00 AM"),
        ("tonight at 7", "7:00 PM"),
        ("in the afternoon at 3", "3:00 PM"),
        ("a las 4", "4:00 AM"),
    ])
    def test_parse(self, text, expected):
        assert parse_time_of_day(text) == expected

    @pytest.mark.parametrize("text", ["25pm", "3:99", "24:00"])
    def test_invalid_times(self, text):
        assert parse_time_of_day(text) is None
        assert looks_like_time(text)

    def test_dates_are_not_times(self):
        assert parse_time_of_day("to 2/20") is None
        assert not looks_like_time("Leo came today")


class TestDuration:

    def test_extract(self):
        assert extract_duration_minutes("to 90 minutes") == 90
        assert extract_duration_minutes("from 60 minutes to 30 minutes") == 30
        assert extract_duration_minutes("for 45 minutes today") == 45
        assert extract_duration_minutes("at 5 pm") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
