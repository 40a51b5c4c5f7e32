"""
Abstract interface for the lesson persistence collaborator.

The voice subsystem never talks to a database directly. Anything that
can list students and read/write lesson rows can back it, local or
remote. Implementations raise PersistenceError when a call fails; the
executor catches it per item.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..models.studio import Lesson, Student


class LessonStore(ABC):
    """
    Abstract interface for lesson storage.

    This interface enables:
    - Dependency inversion (the executor depends on this, not a backend)
    - Easy mocking for unit tests
    - Swappable local and cloud stores

    Students are read-only through this interface. Lessons are created,
    updated in place by identifier, and deleted only by compensating
    cleanup.
    """

    @abstractmethod
    def find_students(self) -> List[Student]:
        """
        List all students.

        Raises:
            PersistenceError: If the store cannot be read
        """
        pass

    @abstractmethod
    def find_lesson_for_student_on_date(
        self,
        student_id: str,
        date_key: str
    ) -> Optional[Lesson]:
        """
        Find the lesson row for a student on a date.

        Args:
            student_id: Student identifier
            date_key: Date (YYYY-MM-DD)

        Returns:
            The lesson, or None when the student has no row on that date
        """
        pass

    @abstractmethod
    def update_lesson(self, lesson_id: str, fields: Dict[str, Any]) -> None:
        """
        Update some fields of an existing lesson in place.

        Args:
            lesson_id: Lesson identifier
            fields: Partial field mapping (date, time_of_day,
                duration_minutes, amount_cents, completed, note)

        Raises:
            PersistenceError: If the lesson does not exist or the write fails
        """
        pass

    @abstractmethod
    def create_lesson(self, fields: Dict[str, Any]) -> str:
        """
        Create a lesson row.

        Args:
            fields: student_id, date, duration_minutes, amount_cents
                and optionally completed, time_of_day, note

        Returns:
            The new lesson identifier
        """
        pass

    @abstractmethod
    def delete_lesson(self, lesson_id: str) -> None:
        """Delete a lesson row."""
        pass

    @abstractmethod
    def fetch_lessons_for_verification(
        self,
        student_id: Optional[str] = None,
        date_range: Optional[Tuple[str, str]] = None
    ) -> List[Lesson]:
        """
        Read lesson rows back after a write.

        Used only by the reschedule cleanup step.

        Args:
            student_id: Restrict to one student
            date_range: Inclusive (start, end) date keys

        Returns:
            Matching lesson rows, duplicates included
        """
        pass
