"""
Resolver output.

A resolved command names concrete student and lesson identifiers and
carries a summary used both for the confirmation prompt and the
post-execution message. When a fragment or reading cannot be pinned
down the resolver returns a DisambiguationSet; when resolution fails
outright it returns Unresolved. Nothing here is mutated after creation.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ErrorKind
from .intent import UpdateKind


class _Resolved(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    confidence: float = 0.0


class AttendanceTarget(BaseModel):
    """
    One (student, date) pair to mark.

    lesson_id is the existing row seen during resolution, if any.
    new_lesson holds the fields of the row to create when none exists.
    """

    model_config = ConfigDict(frozen=True)

    student_id: str
    student_name: str
    lesson_id: Optional[str] = None
    new_lesson: Optional[Dict[str, Any]] = None


class ResolvedAttendanceMark(_Resolved):
    kind: Literal["attendance_mark"] = "attendance_mark"
    present: bool
    date_key: str
    scope: Literal["all", "named"] = "named"
    targets: List[AttendanceTarget] = Field(default_factory=list)

    @property
    def student_ids(self) -> List[str]:
        return [t.student_id for t in self.targets]

    @property
    def lesson_ids(self) -> List[str]:
        return [t.lesson_id for t in self.targets if t.lesson_id is not None]


class ResolvedLessonReschedule(_Resolved):
    """
    Move of an existing lesson, updated in place by lesson_id.

    duration_minutes and amount_cents are set only when they change.
    """

    kind: Literal["lesson_reschedule"] = "lesson_reschedule"
    lesson_id: str
    student_id: str
    student_name: str
    from_date_key: str
    to_date_key: str
    to_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    amount_cents: Optional[int] = None

    def lesson_fields(self) -> Dict[str, Any]:
        """Fields written to the lesson row."""
        fields: Dict[str, Any] = {"date": self.to_date_key}
        if self.to_time is not None:
            fields["time_of_day"] = self.to_time
        if self.duration_minutes is not None:
            fields["duration_minutes"] = self.duration_minutes
        if self.amount_cents is not None:
            fields["amount_cents"] = self.amount_cents
        return fields


class LessonEdit(BaseModel):
    """
    Field changes for one student's lesson.

    updates applies to an existing row; new_lesson is the full row to
    create when the student has none on that date (duration and time
    edits only).
    """

    model_config = ConfigDict(frozen=True)

    student_id: str
    student_name: str
    lesson_id: Optional[str] = None
    updates: Dict[str, Any] = Field(default_factory=dict)
    new_lesson: Optional[Dict[str, Any]] = None


class ResolvedLessonUpdate(_Resolved):
    kind: Literal["lesson_update"] = "lesson_update"
    update: UpdateKind
    date_key: str
    edits: List[LessonEdit] = Field(default_factory=list)


ResolvedCommand = Annotated[
    Union[ResolvedAttendanceMark, ResolvedLessonReschedule, ResolvedLessonUpdate],
    Field(discriminator="kind"),
]


class AmbiguityKind(str, Enum):
    """What a disambiguation choice pins down."""

    STUDENT = "student"
    INTERPRETATION = "interpretation"
    DATE = "date"


class Option(BaseModel):
    """A selectable choice: label is shown, value is merged back on resume."""

    model_config = ConfigDict(frozen=True)

    label: str
    value: str


class DisambiguationSet(BaseModel):
    """
    Choices offered when a fragment, reading or date is ambiguous.

    Attributes:
        ambiguity: What the choice decides
        message: Question shown to the user
        options: Choices, in display order
        fragment_index: Name fragment the choice applies to (STUDENT)
        date_role: Move end the choice applies to (DATE)
    """

    model_config = ConfigDict(frozen=True)

    ambiguity: AmbiguityKind
    message: str
    options: List[Option]
    fragment_index: Optional[int] = None
    date_role: Optional[Literal["from", "to"]] = None

    @property
    def labels(self) -> List[str]:
        return [option.label for option in self.options]


class Unresolved(BaseModel):
    """Resolution failed; message is safe to show as-is."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


ResolveOutcome = Union[
    ResolvedAttendanceMark,
    ResolvedLessonReschedule,
    ResolvedLessonUpdate,
    DisambiguationSet,
    Unresolved,
]
