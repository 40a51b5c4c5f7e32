"""
Tests for the command parser.
"""

from decimal import Decimal

import pytest

from studio_voice.models.intent import (
    AttendanceMark,
    Help,
    IntentPayload,
    LessonReschedule,
    LessonUpdate,
    Unknown,
    UpdateKind,
)
from studio_voice.voice.parser import (
    BAD_AMOUNT_HINT,
    BAD_DATE_HINT,
    BAD_TIME_HINT,
    EMPTY_HINT,
    NO_STUDENT_HINT,
    UNMAPPED_HINT,
    detect_language,
    extract_money,
    extract_name_fragments,
    parse,
)


REF = "2026-02-17"


class TestAttendance:

    def test_named_students_came_today(self):
        payload = parse("Chloe and Leo came today", REF)

        assert isinstance(payload, AttendanceMark)
        assert payload.scope == "named"
        assert payload.present
        assert payload.name_fragments == ["Chloe", "Leo"]
        assert payload.date_key == REF
        assert payload.confidence >= 0.75

    def test_no_date_means_selected_date(self):
        payload = parse("Mark Ava attended", REF)

        assert payload.name_fragments == ["Ava"]
        assert payload.date_key is None

    def test_had_class(self):
        payload = parse("Leo had his class today", REF)

        assert isinstance(payload, AttendanceMark)
        assert payload.name_fragments == ["Leo"]
        assert payload.present

    def test_ordinal_day(self):
        payload = parse("Mia and Olivia attended class on the 17th", REF)

        assert isinstance(payload, AttendanceMark)
        assert payload.name_fragments == ["Mia", "Olivia"]
        assert payload.date_key == REF

    def test_absent(self):
        payload = parse("Emma was absent yesterday", REF)

        assert not payload.present
        assert payload.name_fragments == ["Emma"]
        assert payload.date_key == "2026-02-16"

    def test_all_students(self):
        payload = parse("All students attended today", REF)

        assert payload.scope == "all"
        assert payload.present
        assert payload.name_fragments == []

    def test_nobody_came_is_low_confidence(self):
        payload = parse("Nobody came today", REF)

        assert payload.scope == "all"
        assert not payload.present
        assert payload.confidence < 0.75

    def test_names_without_a_verb_are_low_confidence(self):
        payload = parse("Ava and Emma today", REF)

        assert payload.name_fragments == ["Ava", "Emma"]
        assert payload.confidence < 0.75

    def test_many_names_lower_confidence(self):
        payload = parse("Ava, Emma, Sarah, Leo and Chloe came", REF)

        assert len(payload.name_fragments) == 5
        assert payload.confidence < 0.75

    def test_spanish(self):
        payload = parse("Hoy vinieron Sarah y Tiffany", REF)

        assert payload.language == "es"
        assert payload.name_fragments == ["Sarah", "Tiffany"]
        assert payload.date_key == REF
        assert payload.present

    def test_chinese_everyone(self):
        payload = parse("今天所有学生都来了", REF)

        assert payload.language == "zh"
        assert payload.scope == "all"
        assert payload.present
        assert payload.date_key == REF

    def test_chinese_absent(self):
        payload = parse("Emma今天没来", REF)

        assert payload.name_fragments == ["Emma"]
        assert not payload.present


class TestReschedule:

    def test_move_to_tomorrow(self):
        payload = parse("Move Leo Chen's lesson to tomorrow", REF)

        assert isinstance(payload, LessonReschedule)
        assert payload.student_name_fragment == "Leo Chen"
        assert payload.to_date_key == "2026-02-18"
        assert payload.from_date_key is None

    def test_month_day_move_with_time_and_duration(self):
        payload = parse(
            "Move Leo's lesson from Friday Feb 18 to Sunday Feb 20 at 5pm for 1 hour",
            "2025-02-19",
        )

        assert payload.student_name_fragment == "Leo"
        assert payload.from_date_key == "2025-02-18"
        assert payload.to_date_key == "2025-02-20"
        assert payload.to_time == "5:00 PM"
        assert payload.duration_minutes == 60
        assert payload.date_ambiguities == []
        assert payload.confidence >= 0.75

    def test_change_to_a_date_is_a_move(self):
        payload = parse("Change Sofia's lesson to Friday, February 20 at 2 PM for one hour", REF)

        assert isinstance(payload, LessonReschedule)
        assert payload.student_name_fragment == "Sofia"
        assert payload.to_date_key == "2026-02-20"
        assert payload.to_time == "2:00 PM"
        assert payload.duration_minutes == 60

    def test_bare_weekdays_are_ambiguous(self):
        payload = parse("Move Leo from Friday to Sunday at 5pm", REF)

        assert payload.from_date_key is None
        assert payload.to_date_key is None
        assert payload.to_time == "5:00 PM"
        roles = [(a.role, a.token, a.last_date_key, a.next_date_key) for a in payload.date_ambiguities]
        assert roles == [
            ("from", "friday", "2026-02-13", "2026-02-20"),
            ("to", "sunday", "2026-02-15", "2026-02-22"),
        ]

    def test_qualified_weekday_is_not_ambiguous(self):
        payload = parse("Reschedule Leo to next Friday", REF)

        assert payload.to_date_key == "2026-02-20"
        assert payload.date_ambiguities == []

    def test_spanish_move(self):
        payload = parse("Mover a Leo al viernes 20 de febrero", REF)

        assert payload.language == "es"
        assert payload.student_name_fragment == "Leo"
        assert payload.to_date_key == "2026-02-20"

    def test_move_without_target_is_partial(self):
        payload = parse("Move Leo", REF)

        assert isinstance(payload, LessonReschedule)
        assert payload.confidence < 0.75

    @pytest.mark.parametrize("transcript", ["Move Leo to 25pm", "Change Leo to 3:99"])
    def test_unparseable_time(self, transcript):
        payload = parse(transcript, REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == BAD_TIME_HINT

    @pytest.mark.parametrize("transcript", [
        "Mark Ava attended on 2/30",
        "Ava came on the 45th",
        "Move Leo Chen from 2026-13-01 to tomorrow",
        "Mover a Leo al 31 de febrero",
    ])
    def test_unparseable_date_is_not_dropped(self, transcript):
        payload = parse(transcript, REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == BAD_DATE_HINT


class TestLessonUpdate:

    def test_duration_an_hour_and_a_half(self):
        payload = parse("Change Ava's lesson to an hour and a half", REF)

        assert isinstance(payload, LessonUpdate)
        assert payload.update == UpdateKind.DURATION
        assert payload.duration_minutes == 90
        assert payload.name_fragments == ["Ava"]

    def test_duration_two_hours(self):
        payload = parse("Change Emma's lesson to two hours", REF)

        assert payload.duration_minutes == 120

    def test_from_duration_to_duration(self):
        payload = parse("Change Chloe's lesson from 1 hour to 30 minutes", REF)

        assert payload.update == UpdateKind.DURATION
        assert payload.duration_minutes == 30
        assert payload.name_fragments == ["Chloe"]

    def test_duration_wins_over_time(self):
        payload = parse("Change Sofia's lesson to 30 minutes and 1 o'clock", REF)

        assert payload.update == UpdateKind.DURATION
        assert payload.duration_minutes == 30
        assert payload.name_fragments == ["Sofia"]

    def test_start_time(self):
        payload = parse("Leo Garcia's class now at 6 PM", REF)

        assert payload.update == UpdateKind.TIME
        assert payload.time_of_day == "6:00 PM"
        assert payload.name_fragments == ["Leo Garcia"]

    def test_start_time_misheard_name(self):
        payload = parse("Change Sophia's lesson to 1 PM", REF)

        assert payload.update == UpdateKind.TIME
        assert payload.time_of_day == "1:00 PM"
        assert payload.name_fragments == ["Sophia"]

    def test_lesson_amount(self):
        payload = parse("Leo Chen's class is now $100", REF)

        assert payload.update == UpdateKind.AMOUNT
        assert payload.money == Decimal("100")
        assert payload.name_fragments == ["Leo Chen"]
        assert payload.confidence >= 0.75

    def test_amount_or_rate_is_ambiguous(self):
        payload = parse("Leo Chen is now $100", REF)

        assert payload.update is None
        assert payload.interpretations == [UpdateKind.AMOUNT, UpdateKind.RATE]
        assert payload.confidence < 0.75

    def test_hourly_rate(self):
        payload = parse("Set Chloe rate to 60 per hour", REF)

        assert payload.update == UpdateKind.RATE
        assert payload.money == Decimal("60")
        assert payload.name_fragments == ["Chloe"]
        assert not payload.going_forward

    def test_going_forward_rate(self):
        payload = parse("Set Leo Chen's rate to $80 an hour starting next month", REF)

        assert payload.update == UpdateKind.RATE
        assert payload.going_forward

    def test_spoken_money(self):
        payload = parse("Ava's lesson is now a hundred dollars", REF)

        assert payload.money == Decimal("100")
        assert payload.update == UpdateKind.AMOUNT

    def test_money_without_student(self):
        payload = parse("Make it $100", REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == NO_STUDENT_HINT

    @pytest.mark.parametrize("transcript", [
        "Leo Chen is now $100.999",
        "Ava's class is now $1e5",
        "Set Chloe rate to 60.125 per hour",
    ])
    def test_unreadable_amount(self, transcript):
        payload = parse(transcript, REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == BAD_AMOUNT_HINT


class TestOtherIntents:

    def test_help(self):
        assert isinstance(parse("What can you do?", REF), Help)

    def test_empty(self):
        payload = parse("   ", REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == EMPTY_HINT

    def test_unmapped(self):
        payload = parse("Mark the students attended", REF)

        assert isinstance(payload, Unknown)
        assert payload.hint == UNMAPPED_HINT

    def test_payloads_serialize(self):
        from pydantic import TypeAdapter

        payload = parse("Leo Chen is now $100", REF)
        restored = TypeAdapter(IntentPayload).validate_python(payload.model_dump())

        assert restored == payload


class TestHelpers:

    def test_detect_language(self):
        assert detect_language("今天所有学生都来了") == "zh"
        assert detect_language("Hoy vinieron Sarah y Tiffany") == "es"
        assert detect_language("Chloe came") == "en"

    def test_extract_money(self):
        assert extract_money("$1,250.50 total") == Decimal("1250.50")
        assert extract_money("80 bucks") == Decimal("80")
        assert extract_money("no money here") is None

    def test_extract_money_rejects_sub_cent_figures(self):
        assert extract_money("$100.999") is None
        assert extract_money("100.999 dollars") is None
        assert extract_money("$1e5") is None
        assert extract_money("Leo is now $100.") == Decimal("100")

    def test_name_fragments_keep_month_names(self):
        assert extract_name_fragments("May and June came on Feb 3") == ["May", "June"]

    def test_name_fragments_dedupe(self):
        assert extract_name_fragments("Ava and ava came") == ["Ava"]

    def test_name_fragments_drop_digit_led_tokens(self):
        assert extract_name_fragments("Ava's class is now $1e5") == ["Ava"]
        assert extract_name_fragments("Emma came at 4pm") == ["Emma"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
