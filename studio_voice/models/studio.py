"""
Studio data models.

Students and lessons as the voice subsystem sees them. Students are
read-only here; lessons are one occurrence keyed by (student, date).

Day-of-week values use 0 = Sunday ... 6 = Saturday throughout.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class ScheduleSlot:
    """
    One weekly slot in addition to a student's primary schedule.

    Duration and rate fall back to the student's effective values when
    not set on the slot.
    """

    day_of_week: int
    time_of_day: str
    duration_minutes: Optional[int] = None
    rate_cents: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'ScheduleSlot':
        return cls(
            day_of_week=int(d["day_of_week"]),
            time_of_day=d.get("time_of_day", ""),
            duration_minutes=d.get("duration_minutes"),
            rate_cents=d.get("rate_cents"),
        )


@dataclass(frozen=True)
class Student:
    """
    A student with a default weekly schedule.

    Attributes:
        id: Student identifier
        first_name: First name
        last_name: Last name
        duration_minutes: Default lesson length
        rate_cents: Default lesson amount in minor units
        day_of_week: Default lesson weekday (0 = Sunday)
        time_of_day: Default start time, e.g. "4:00 PM"
        additional_schedules: Secondary weekly slots
        schedule_change_from_date: From this date (YYYY-MM-DD) the
            schedule_change_* values replace the defaults
        terminated_from_date: Last lesson date; inactive afterwards

    Examples:
        >>> student = Student(
        ...     id="s-ava",
        ...     first_name="Ava",
        ...     last_name="Kim",
        ...     duration_minutes=60,
        ...     rate_cents=6000,
        ...     day_of_week=2,
        ...     time_of_day="4:00 PM"
        ... )
        >>> student.full_name
        'Ava Kim'
    """

    id: str
    first_name: str
    last_name: str
    duration_minutes: int
    rate_cents: int
    day_of_week: int
    time_of_day: str
    additional_schedules: Tuple[ScheduleSlot, ...] = ()
    schedule_change_from_date: Optional[str] = None
    schedule_change_day_of_week: Optional[int] = None
    schedule_change_time_of_day: Optional[str] = None
    schedule_change_duration_minutes: Optional[int] = None
    schedule_change_rate_cents: Optional[int] = None
    schedule_change_additional_schedules: Optional[Tuple[ScheduleSlot, ...]] = None
    terminated_from_date: Optional[str] = None

    @property
    def full_name(self) -> str:
        """First and last name joined by a space."""
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Student':
        """
        Create a student from a snapshot dictionary.

        Args:
            d: Dictionary with snake_case keys

        Returns:
            Student instance
        """
        change_slots = d.get("schedule_change_additional_schedules")
        return cls(
            id=str(d["id"]),
            first_name=d.get("first_name", ""),
            last_name=d.get("last_name", ""),
            duration_minutes=int(d.get("duration_minutes", 60)),
            rate_cents=int(d.get("rate_cents", 0)),
            day_of_week=int(d.get("day_of_week", 0)),
            time_of_day=d.get("time_of_day", ""),
            additional_schedules=tuple(
                ScheduleSlot.from_dict(s) for s in d.get("additional_schedules") or []
            ),
            schedule_change_from_date=d.get("schedule_change_from_date"),
            schedule_change_day_of_week=d.get("schedule_change_day_of_week"),
            schedule_change_time_of_day=d.get("schedule_change_time_of_day"),
            schedule_change_duration_minutes=d.get("schedule_change_duration_minutes"),
            schedule_change_rate_cents=d.get("schedule_change_rate_cents"),
            schedule_change_additional_schedules=(
                tuple(ScheduleSlot.from_dict(s) for s in change_slots)
                if change_slots is not None else None
            ),
            terminated_from_date=d.get("terminated_from_date"),
        )


@dataclass(frozen=True)
class Lesson:
    """
    One lesson occurrence.

    At most one lesson exists per (student_id, date).

    Attributes:
        id: Lesson identifier
        student_id: Owning student
        date: Lesson date (YYYY-MM-DD)
        duration_minutes: Lesson length
        amount_cents: Amount charged, in minor units
        completed: Attended flag
        time_of_day: Start time override, e.g. "6:00 PM"
        note: Free-form note
    """

    id: str
    student_id: str
    date: str
    duration_minutes: int
    amount_cents: int
    completed: bool = False
    time_of_day: Optional[str] = None
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Lesson':
        return cls(
            id=str(d["id"]),
            student_id=str(d["student_id"]),
            date=d["date"],
            duration_minutes=int(d.get("duration_minutes", 60)),
            amount_cents=int(d.get("amount_cents", 0)),
            completed=bool(d.get("completed", False)),
            time_of_day=d.get("time_of_day"),
            note=d.get("note"),
        )


@dataclass(frozen=True)
class StudioSnapshot:
    """
    Read-only view of the roster and lessons handed to the resolver.

    Examples:
        >>> snapshot = StudioSnapshot(students=(ava,), lessons=(lesson,))
        >>> snapshot.lesson_for_student_on_date("s-ava", "2026-02-17")
    """

    students: Tuple[Student, ...] = ()
    lessons: Tuple[Lesson, ...] = field(default_factory=tuple)

    def student_by_id(self, student_id: str) -> Optional[Student]:
        for student in self.students:
            if student.id == student_id:
                return student
        return None

    def lesson_by_id(self, lesson_id: str) -> Optional[Lesson]:
        for lesson in self.lessons:
            if lesson.id == lesson_id:
                return lesson
        return None

    def lesson_for_student_on_date(self, student_id: str, date_key: str) -> Optional[Lesson]:
        """First lesson row for the student on that date, if any."""
        for lesson in self.lessons:
            if lesson.student_id == student_id and lesson.date == date_key:
                return lesson
        return None

    def lessons_on_date(self, date_key: str) -> List[Lesson]:
        return [lesson for lesson in self.lessons if lesson.date == date_key]

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'StudioSnapshot':
        """
        Build a snapshot from a dictionary with "students" and "lessons" lists.
        """
        return cls(
            students=tuple(Student.from_dict(s) for s in d.get("students", [])),
            lessons=tuple(Lesson.from_dict(l) for l in d.get("lessons", [])),
        )
