"""
In-memory lesson store.

Backs the command-line driver and the test suite. Like the remote
stores it stands in for, it does not enforce one row per
(student, date): a storage-level unique constraint on that pair would
sit in create_lesson and update_lesson, and would make the executor's
cleanup pass unnecessary.
"""

import itertools
import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import PersistenceError
from ..models.studio import Lesson, Student, StudioSnapshot
from .interfaces import LessonStore


logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = {
    "date", "time_of_day", "duration_minutes", "amount_cents", "completed", "note",
}


class InMemoryLessonStore(LessonStore):
    """
    Lesson store kept in a dictionary.

    Examples:
        >>> store = InMemoryLessonStore(students=[ava])
        >>> lesson_id = store.create_lesson({
        ...     "student_id": "s-ava",
        ...     "date": "2026-02-17",
        ...     "duration_minutes": 60,
        ...     "amount_cents": 6000,
        ... })
        >>> store.find_lesson_for_student_on_date("s-ava", "2026-02-17").id == lesson_id
        True
    """

    def __init__(
        self,
        students: Iterable[Student] = (),
        lessons: Iterable[Lesson] = (),
        id_prefix: str = "lesson"
    ):
        self._students: List[Student] = list(students)
        self._lessons: Dict[str, Lesson] = {}
        self._ids = itertools.count(1)
        self._id_prefix = id_prefix

        for lesson in lessons:
            self.insert_raw(lesson)

    def _next_id(self) -> str:
        while True:
            candidate = f"{self._id_prefix}-{next(self._ids)}"
            if candidate not in self._lessons:
                return candidate

    def find_students(self) -> List[Student]:
        return list(self._students)

    def find_lesson_for_student_on_date(
        self,
        student_id: str,
        date_key: str
    ) -> Optional[Lesson]:
        for lesson in self._lessons.values():
            if lesson.student_id == student_id and lesson.date == date_key:
                return lesson
        return None

    def update_lesson(self, lesson_id: str, fields: Dict[str, Any]) -> None:
        current = self._lessons.get(lesson_id)
        if current is None:
            raise PersistenceError(f"Lesson not found: {lesson_id}")

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise PersistenceError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        self._lessons[lesson_id] = replace(current, **fields)
        logger.debug(f"Updated lesson {lesson_id}: {sorted(fields)}")

    def create_lesson(self, fields: Dict[str, Any]) -> str:
        try:
            lesson = Lesson(
                id=self._next_id(),
                student_id=fields["student_id"],
                date=fields["date"],
                duration_minutes=fields["duration_minutes"],
                amount_cents=fields["amount_cents"],
                completed=fields.get("completed", False),
                time_of_day=fields.get("time_of_day"),
                note=fields.get("note"),
            )
        except KeyError as e:
            raise PersistenceError(f"Missing lesson field: {e.args[0]}") from e

        self._lessons[lesson.id] = lesson
        logger.debug(f"Created lesson {lesson.id} for {lesson.student_id} on {lesson.date}")
        return lesson.id

    def delete_lesson(self, lesson_id: str) -> None:
        if self._lessons.pop(lesson_id, None) is None:
            raise PersistenceError(f"Lesson not found: {lesson_id}")
        logger.debug(f"Deleted lesson {lesson_id}")

    def fetch_lessons_for_verification(
        self,
        student_id: Optional[str] = None,
        date_range: Optional[Tuple[str, str]] = None
    ) -> List[Lesson]:
        rows = []
        for lesson in self._lessons.values():
            if student_id is not None and lesson.student_id != student_id:
                continue
            if date_range is not None and not date_range[0] <= lesson.date <= date_range[1]:
                continue
            rows.append(lesson)
        return rows

    def insert_raw(self, lesson: Lesson) -> Lesson:
        """
        Insert a row as-is, without any uniqueness check.

        Simulates a duplicate slipping in through a racing writer.
        A lesson whose id is already taken gets a fresh one.
        """
        if lesson.id in self._lessons:
            lesson = replace(lesson, id=self._next_id())
        self._lessons[lesson.id] = lesson
        return lesson

    def get(self, lesson_id: str) -> Optional[Lesson]:
        return self._lessons.get(lesson_id)

    def lessons(self) -> List[Lesson]:
        return list(self._lessons.values())

    def snapshot(self) -> StudioSnapshot:
        """Read-only view of the current roster and lessons."""
        return StudioSnapshot(
            students=tuple(self._students),
            lessons=tuple(self._lessons.values()),
        )

    @classmethod
    def from_snapshot(cls, snapshot: StudioSnapshot) -> 'InMemoryLessonStore':
        return cls(students=snapshot.students, lessons=snapshot.lessons)
