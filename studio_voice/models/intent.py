"""
Intent payloads produced by the command parser.

A payload says what the user wants, still in terms of spoken name
fragments and date keys, untied to concrete records. Payloads are
pydantic models so that a suspended command can be serialized and
resumed with extra facts merged in (model_copy(update=...)).
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


Language = Literal["en", "es", "zh"]


class UpdateKind(str, Enum):
    """Which lesson field a LessonUpdate changes."""

    DURATION = "duration"
    TIME = "time"
    AMOUNT = "amount"
    RATE = "rate"


class DateAmbiguity(BaseModel):
    """
    A bare weekday in a move ("from Friday") that could mean the last
    or the next occurrence.

    Attributes:
        role: Which end of the move the weekday belongs to
        token: The weekday as spoken, e.g. "friday"
        last_date_key: Most recent earlier occurrence
        next_date_key: Next later occurrence
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["from", "to"]
    token: str
    last_date_key: str
    next_date_key: str


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: Language = "en"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AttendanceMark(_Payload):
    """
    Mark lessons attended or not attended.

    scope "all" covers every student scheduled on the date; "named"
    covers the spoken name fragments. A date_key of None means the
    caller's selected date. pinned_student_ids maps a fragment index to
    a student chosen during disambiguation.
    """

    intent: Literal["attendance_mark"] = "attendance_mark"
    scope: Literal["all", "named"]
    present: bool
    name_fragments: List[str] = Field(default_factory=list)
    date_key: Optional[str] = None
    pinned_student_ids: Dict[int, str] = Field(default_factory=dict)


class LessonReschedule(_Payload):
    """
    Move one lesson to another date and/or time.

    to_date_key of None keeps the lesson on its current date (a
    time-only move).
    """

    intent: Literal["lesson_reschedule"] = "lesson_reschedule"
    student_name_fragment: str = ""
    from_date_key: Optional[str] = None
    to_date_key: Optional[str] = None
    to_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    date_ambiguities: List[DateAmbiguity] = Field(default_factory=list)
    pinned_student_ids: Dict[int, str] = Field(default_factory=dict)


class LessonUpdate(_Payload):
    """
    Change one field of the lesson on a date.

    When the utterance gives a dollar figure with no amount or rate cue,
    update is None and interpretations lists both readings.
    Money is kept in major units; conversion to cents happens during
    resolution.
    """

    intent: Literal["lesson_update"] = "lesson_update"
    name_fragments: List[str] = Field(default_factory=list)
    date_key: Optional[str] = None
    update: Optional[UpdateKind] = None
    interpretations: List[UpdateKind] = Field(default_factory=list)
    duration_minutes: Optional[int] = None
    time_of_day: Optional[str] = None
    money: Optional[Decimal] = None
    going_forward: bool = False
    pinned_student_ids: Dict[int, str] = Field(default_factory=dict)


class Help(_Payload):
    intent: Literal["help"] = "help"


class Unknown(_Payload):
    """Nothing recognized. hint, when set, is the question to ask back."""

    intent: Literal["unknown"] = "unknown"
    hint: Optional[str] = None


IntentPayload = Annotated[
    Union[AttendanceMark, LessonReschedule, LessonUpdate, Help, Unknown],
    Field(discriminator="intent"),
]
