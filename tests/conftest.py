"""
Shared fixtures: a small studio roster with lessons around Tue, Feb 17 2026.
"""

import pytest

from studio_voice.models.studio import Lesson, ScheduleSlot, Student
from studio_voice.persistence.memory_store import InMemoryLessonStore
from studio_voice.voice.controller import VoiceCommandController


TODAY = "2026-02-17"  # Tuesday


def make_student(student_id, first, last, day, time, duration=60, rate=6000, **kwargs):
    return Student(
        id=student_id,
        first_name=first,
        last_name=last,
        duration_minutes=duration,
        rate_cents=rate,
        day_of_week=day,
        time_of_day=time,
        **kwargs
    )


@pytest.fixture
def students():
    """Roster; both Leos share a first name."""
    return [
        make_student("s-leo-garcia", "Leo", "Garcia", 2, "4:00 PM"),
        make_student("s-leo-chen", "Leo", "Chen", 5, "5:00 PM", rate=7000),
        make_student("s-ava", "Ava", "Kim", 2, "3:00 PM"),
        make_student("s-emma", "Emma", "Stone", 2, "5:00 PM"),
        make_student("s-sarah", "Sarah", "Nguyen", 2, "6:00 PM", duration=45, rate=4500),
        make_student("s-tiffany", "Tiffany", "Wong", 3, "4:00 PM", duration=30, rate=3000),
        make_student(
            "s-chloe", "Chloe", "Parker", 4, "3:30 PM",
            additional_schedules=(ScheduleSlot(day_of_week=6, time_of_day="10:00 AM", duration_minutes=30),),
        ),
        make_student("s-sofia", "Sofia", "Ramos", 1, "2:00 PM"),
    ]


@pytest.fixture
def lessons():
    return [
        Lesson(id="lesson-1", student_id="s-ava", date=TODAY, duration_minutes=60,
               amount_cents=6000, time_of_day="3:00 PM"),
        Lesson(id="lesson-2", student_id="s-leo-garcia", date=TODAY, duration_minutes=60,
               amount_cents=6000, time_of_day="4:00 PM"),
        Lesson(id="lesson-3", student_id="s-leo-chen", date="2026-02-20", duration_minutes=60,
               amount_cents=7000, time_of_day="5:00 PM"),
        Lesson(id="lesson-4", student_id="s-emma", date=TODAY, duration_minutes=60,
               amount_cents=6000, time_of_day="5:00 PM"),
    ]


@pytest.fixture
def store(students, lessons):
    return InMemoryLessonStore(students=students, lessons=lessons)


@pytest.fixture
def controller(store):
    return VoiceCommandController(store)


@pytest.fixture
def run(controller, store):
    """Run a transcript against the store's current contents."""
    def _run(transcript, selected=TODAY, reference=None):
        return controller.handle(transcript, store.snapshot(), selected, reference)
    return _run
