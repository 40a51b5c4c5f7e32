"""
Effective schedule helpers.

A student's day, time, duration and rate for a particular date, after
applying the schedule-change-from-date override and termination date.
Date keys are ISO strings (YYYY-MM-DD) so plain string comparison
orders them.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from .studio import ScheduleSlot, Student


TIME_OF_DAY_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$')


@dataclass(frozen=True)
class EffectiveSlot:
    """One weekly slot resolved for a specific date."""

    day_of_week: int
    time_of_day: str
    duration_minutes: int
    rate_cents: int


def day_of_week(date_key: str) -> int:
    """
    Weekday of a date key, 0 = Sunday.

    Examples:
        >>> day_of_week("2026-02-17")
        2
    """
    return (date.fromisoformat(date_key).weekday() + 1) % 7


def time_sort_key(time_of_day: Optional[str]) -> int:
    """Minutes since midnight for "H:MM AM|PM"; unparseable times sort last."""
    match = TIME_OF_DAY_PATTERN.match(time_of_day or "")
    if not match:
        return 24 * 60
    hour, minute, meridiem = int(match.group(1)) % 12, int(match.group(2)), match.group(3).upper()
    if meridiem == "PM":
        hour += 12
    return hour * 60 + minute


def _change_applies(student: Student, date_key: str) -> bool:
    return bool(student.schedule_change_from_date) and date_key >= student.schedule_change_from_date


def is_terminated(student: Student, date_key: str) -> bool:
    """True when the date falls after the student's last lesson date."""
    return bool(student.terminated_from_date) and date_key > student.terminated_from_date


def effective_schedule(student: Student, date_key: str) -> ScheduleSlot:
    """
    Primary day and time for a student on a date.

    The schedule change replaces day and time only when both changed
    values are present.
    """
    if (
        _change_applies(student, date_key)
        and student.schedule_change_day_of_week is not None
        and student.schedule_change_time_of_day is not None
    ):
        return ScheduleSlot(
            day_of_week=student.schedule_change_day_of_week,
            time_of_day=student.schedule_change_time_of_day,
        )
    return ScheduleSlot(day_of_week=student.day_of_week, time_of_day=student.time_of_day)


def effective_duration_minutes(student: Student, date_key: str) -> int:
    if _change_applies(student, date_key) and student.schedule_change_duration_minutes is not None:
        return student.schedule_change_duration_minutes
    return student.duration_minutes


def effective_rate_cents(student: Student, date_key: str) -> int:
    if _change_applies(student, date_key) and student.schedule_change_rate_cents is not None:
        return student.schedule_change_rate_cents
    return student.rate_cents


def effective_slots(student: Student, date_key: str) -> List[EffectiveSlot]:
    """
    Every weekly slot in force on a date: the primary one first, then
    secondary slots.

    Secondary slots come from the schedule-change list once the change
    applies and that list is set, otherwise from additional_schedules.
    Slot-level duration and rate fall back to the student's effective
    values.
    """
    duration = effective_duration_minutes(student, date_key)
    rate = effective_rate_cents(student, date_key)
    primary = effective_schedule(student, date_key)

    slots = [EffectiveSlot(primary.day_of_week, primary.time_of_day, duration, rate)]

    secondary = student.additional_schedules
    if _change_applies(student, date_key) and student.schedule_change_additional_schedules is not None:
        secondary = student.schedule_change_additional_schedules

    for slot in secondary:
        slots.append(EffectiveSlot(
            day_of_week=slot.day_of_week,
            time_of_day=slot.time_of_day,
            duration_minutes=slot.duration_minutes if slot.duration_minutes is not None else duration,
            rate_cents=slot.rate_cents if slot.rate_cents is not None else rate,
        ))
    return slots


def slot_for_date(student: Student, date_key: str) -> Optional[EffectiveSlot]:
    """
    The slot a student is scheduled in on a date, or None.

    Terminated students have no slot after their termination date.
    """
    if is_terminated(student, date_key):
        return None
    dow = day_of_week(date_key)
    for slot in effective_slots(student, date_key):
        if slot.day_of_week == dow:
            return slot
    return None


def students_for_day(students: Iterable[Student], date_key: str) -> List[Student]:
    """
    Active students scheduled on a date, ordered by start time.

    Examples:
        >>> [s.first_name for s in students_for_day(roster, "2026-02-17")]
        ['Ava', 'Leo']
    """
    scheduled = []
    for student in students:
        slot = slot_for_date(student, date_key)
        if slot is not None:
            scheduled.append((time_sort_key(slot.time_of_day), student))
    scheduled.sort(key=lambda pair: pair[0])
    return [student for _, student in scheduled]
