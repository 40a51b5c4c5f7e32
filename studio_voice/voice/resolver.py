"""
Entity resolver.

resolve() binds an intent payload to concrete students and lessons in
a read-only snapshot. It has no side effects and never raises: a
finished command, a DisambiguationSet or an Unresolved is returned as
data and the controller decides what to do with it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..errors import ErrorKind
from ..models.command import (
    AmbiguityKind,
    AttendanceTarget,
    DisambiguationSet,
    LessonEdit,
    Option,
    ResolveOutcome,
    ResolvedAttendanceMark,
    ResolvedLessonReschedule,
    ResolvedLessonUpdate,
    Unresolved,
)
from ..models.intent import (
    AttendanceMark,
    Help,
    LessonReschedule,
    LessonUpdate,
    Unknown,
    UpdateKind,
)
from ..models.schedule import (
    effective_duration_minutes,
    effective_rate_cents,
    slot_for_date,
    students_for_day,
)
from ..models.studio import Lesson, Student, StudioSnapshot
from ..validation.lesson_validator import VALID_DURATIONS
from .formatting import (
    amount_for_rate,
    format_money,
    join_names,
    pretty_date,
    prorate_cents,
    title_case_name,
    to_minor_units,
)
from .matching import (
    DEFAULT_AMBIGUITY_MARGIN,
    DEFAULT_FUZZY_THRESHOLD,
    FragmentMatch,
    MatchStatus,
    match_fragments,
)


logger = logging.getLogger(__name__)


DEFAULT_UNKNOWN_MESSAGE = "I couldn't understand that. Please try rephrasing."
HELP_MESSAGE = (
    "Try: 'Chloe and Leo came today', 'All students attended today', "
    "or 'Move Leo from Friday to Sunday at 5pm'."
)
DURATION_MESSAGE = "Supported durations are 30, 45, 60, 90, or 120 minutes."
GOING_FORWARD_MESSAGE = (
    "Going-forward rate changes by voice are not supported yet. "
    "I can update a single lesson's rate by date."
)
INTERPRETATION_LABELS = {
    UpdateKind.AMOUNT: "Set lesson amount",
    UpdateKind.RATE: "Set hourly rate",
}


@dataclass(frozen=True)
class ResolveContext:
    """
    Everything resolution depends on.

    Attributes:
        students: Roster
        lessons: Lesson rows
        reference_date_key: Date relative words were resolved against
        selected_date_key: Date the caller has selected; commands that
            name no date apply to it (defaults to the reference date)
        fuzzy_threshold: Minimum name score to bind a fragment
        ambiguity_margin: Minimum gap between best and second-best score
    """

    students: Tuple[Student, ...]
    lessons: Tuple[Lesson, ...]
    reference_date_key: str
    selected_date_key: Optional[str] = None
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    ambiguity_margin: float = DEFAULT_AMBIGUITY_MARGIN

    @classmethod
    def from_snapshot(
        cls,
        snapshot: StudioSnapshot,
        reference_date_key: str,
        selected_date_key: Optional[str] = None,
        **kwargs: Any
    ) -> 'ResolveContext':
        return cls(
            students=tuple(snapshot.students),
            lessons=tuple(snapshot.lessons),
            reference_date_key=reference_date_key,
            selected_date_key=selected_date_key,
            **kwargs
        )

    @property
    def default_date_key(self) -> str:
        return self.selected_date_key or self.reference_date_key

    def lesson_for(self, student_id: str, date_key: str) -> Optional[Lesson]:
        for lesson in self.lessons:
            if lesson.student_id == student_id and lesson.date == date_key:
                return lesson
        return None


def new_lesson_fields(
    student: Student,
    date_key: str,
    completed: bool,
    duration_minutes: Optional[int] = None,
    time_of_day: Optional[str] = None
) -> Dict[str, Any]:
    """
    Fields of a lesson row created on demand.

    Duration, amount and start time come from the student's effective
    schedule on that date. A duration other than the scheduled one
    rescales the amount.

    Examples:
        >>> new_lesson_fields(ava, "2026-02-17", completed=True)["amount_cents"]
        6000
        >>> new_lesson_fields(ava, "2026-02-17", False, duration_minutes=90)["amount_cents"]
        9000
    """
    slot = slot_for_date(student, date_key)
    if slot is not None:
        base_duration, base_amount, scheduled_time = slot.duration_minutes, slot.rate_cents, slot.time_of_day
    else:
        base_duration = effective_duration_minutes(student, date_key)
        base_amount = effective_rate_cents(student, date_key)
        scheduled_time = None

    minutes = duration_minutes or base_duration
    return {
        "student_id": student.id,
        "date": date_key,
        "duration_minutes": minutes,
        "amount_cents": prorate_cents(base_amount, base_duration, minutes),
        "completed": completed,
        "time_of_day": time_of_day or scheduled_time or None,
    }


def _student_question(match: FragmentMatch) -> DisambiguationSet:
    return DisambiguationSet(
        ambiguity=AmbiguityKind.STUDENT,
        message=f"Which {title_case_name(match.fragment)}?",
        options=[Option(label=c.student.full_name, value=c.student.id) for c in match.candidates],
        fragment_index=match.index,
    )


def _bind_students(
    fragments: List[str],
    pinned: Dict[int, str],
    ctx: ResolveContext
) -> Tuple[List[Student], Optional[ResolveOutcome]]:
    """
    Students named by the fragments, or the outcome that stops resolution.

    Unknown names are reported before ambiguous ones so the user is not
    asked to choose and then told a name is missing.
    """
    matches = match_fragments(
        fragments,
        ctx.students,
        threshold=ctx.fuzzy_threshold,
        margin=ctx.ambiguity_margin,
        pinned=pinned,
    )

    missing = [m.fragment for m in matches if m.status == MatchStatus.MISSING]
    if missing:
        return [], Unresolved(
            kind=ErrorKind.ENTITY_NOT_FOUND,
            message=f"I couldn't find: {join_names(title_case_name(f) for f in missing)}.",
        )

    for match in matches:
        if match.status == MatchStatus.AMBIGUOUS:
            return [], _student_question(match)

    return [m.student for m in matches if m.status == MatchStatus.RESOLVED], None


def _resolve_attendance(payload: AttendanceMark, ctx: ResolveContext) -> ResolveOutcome:
    date_key = payload.date_key or ctx.default_date_key
    pretty = pretty_date(date_key)
    verb = "attended" if payload.present else "not attended"

    if payload.scope == "all":
        targets_students = students_for_day(ctx.students, date_key)
        scheduled_ids = {s.id for s in targets_students}
        targets_students += [
            s for s in ctx.students
            if s.id not in scheduled_ids and ctx.lesson_for(s.id, date_key) is not None
        ]
        if not targets_students:
            return Unresolved(kind=ErrorKind.NOTHING_TO_EXECUTE, message=f"No lessons scheduled for {pretty}.")
        summary = f"Mark all {len(targets_students)} lessons {verb} on {pretty}"
    else:
        if not payload.name_fragments and not payload.pinned_student_ids:
            return Unresolved(kind=ErrorKind.ENTITY_NOT_FOUND, message="Which student do you mean?")
        targets_students, stop = _bind_students(payload.name_fragments, payload.pinned_student_ids, ctx)
        if stop is not None:
            return stop
        summary = f"Mark {join_names(s.full_name for s in targets_students)} {verb} on {pretty}"

    targets = []
    for student in targets_students:
        existing = ctx.lesson_for(student.id, date_key)
        targets.append(AttendanceTarget(
            student_id=student.id,
            student_name=student.full_name,
            lesson_id=existing.id if existing else None,
            new_lesson=(
                new_lesson_fields(student, date_key, completed=True)
                if existing is None and payload.present else None
            ),
        ))

    if not payload.present and all(t.lesson_id is None for t in targets):
        names = join_names(t.student_name for t in targets)
        return Unresolved(
            kind=ErrorKind.NOTHING_TO_EXECUTE,
            message=f"No lesson scheduled for {names} on {pretty}.",
        )

    return ResolvedAttendanceMark(
        summary=summary,
        confidence=payload.confidence,
        present=payload.present,
        date_key=date_key,
        scope=payload.scope,
        targets=targets,
    )


def _date_question(payload: LessonReschedule) -> DisambiguationSet:
    ambiguity = payload.date_ambiguities[0]
    token = ambiguity.token.title()
    last_pretty = pretty_date(ambiguity.last_date_key)
    next_pretty = pretty_date(ambiguity.next_date_key)
    return DisambiguationSet(
        ambiguity=AmbiguityKind.DATE,
        message=f'For "{ambiguity.token}", do you mean {last_pretty} or {next_pretty}?',
        options=[
            Option(label=f"Last {token} ({last_pretty})", value=ambiguity.last_date_key),
            Option(label=f"Next {token} ({next_pretty})", value=ambiguity.next_date_key),
        ],
        date_role=ambiguity.role,
    )


def _source_lesson(student: Student, payload: LessonReschedule, ctx: ResolveContext) -> Optional[Lesson]:
    """The lesson on the spoken source date, else the next one from the reference date."""
    if payload.from_date_key:
        lesson = ctx.lesson_for(student.id, payload.from_date_key)
        if lesson is not None:
            return lesson
    upcoming = sorted(
        (l for l in ctx.lessons if l.student_id == student.id and l.date >= ctx.reference_date_key),
        key=lambda l: l.date,
    )
    return upcoming[0] if upcoming else None


def _resolve_reschedule(payload: LessonReschedule, ctx: ResolveContext) -> ResolveOutcome:
    if payload.date_ambiguities:
        return _date_question(payload)

    if not payload.student_name_fragment and 0 not in payload.pinned_student_ids:
        return Unresolved(kind=ErrorKind.ENTITY_NOT_FOUND, message="Whose lesson should I move?")

    students, stop = _bind_students([payload.student_name_fragment], payload.pinned_student_ids, ctx)
    if stop is not None:
        return stop
    student = students[0]
    name = student.full_name

    if payload.to_date_key is None and payload.to_time is None and payload.duration_minutes is None:
        return Unresolved(
            kind=ErrorKind.PARSE_FAILURE,
            message=f"Where should I move {name}'s lesson? Please say a day or a time.",
        )

    source = _source_lesson(student, payload, ctx)
    if source is None:
        return Unresolved(kind=ErrorKind.NOTHING_TO_EXECUTE, message=f"{name} has no upcoming lesson to move.")

    to_date_key = payload.to_date_key or source.date
    conflict = ctx.lesson_for(student.id, to_date_key)
    if conflict is not None and conflict.id != source.id:
        return Unresolved(
            kind=ErrorKind.INVALID_VALUE,
            message=f"{name} already has a lesson on {pretty_date(to_date_key)}.",
        )

    duration = payload.duration_minutes
    amount = None
    if duration is not None:
        if duration not in VALID_DURATIONS:
            return Unresolved(kind=ErrorKind.INVALID_VALUE, message=DURATION_MESSAGE)
        if duration != source.duration_minutes:
            amount = prorate_cents(source.amount_cents, source.duration_minutes, duration)
        else:
            duration = None

    summary = f"Move {name} from {pretty_date(source.date)} to {pretty_date(to_date_key)}"
    if payload.to_time:
        summary += f" at {payload.to_time}"
    if duration is not None:
        summary += f" ({duration} min)"

    return ResolvedLessonReschedule(
        summary=summary,
        confidence=payload.confidence,
        lesson_id=source.id,
        student_id=student.id,
        student_name=name,
        from_date_key=source.date,
        to_date_key=to_date_key,
        to_time=payload.to_time,
        duration_minutes=duration,
        amount_cents=amount,
    )


def _interpretation_question(payload: LessonUpdate) -> DisambiguationSet:
    money = format_money(to_minor_units(payload.money)) if payload.money is not None else "that"
    return DisambiguationSet(
        ambiguity=AmbiguityKind.INTERPRETATION,
        message=f"Should {money} be the lesson amount or the hourly rate?",
        options=[
            Option(label=INTERPRETATION_LABELS[kind], value=kind.value)
            for kind in payload.interpretations
        ],
    )


def _edit_for(
    update: UpdateKind,
    student: Student,
    payload: LessonUpdate,
    date_key: str,
    existing: Optional[Lesson]
) -> Optional[LessonEdit]:
    """Field changes for one student; None when the edit needs a row that is not there."""
    if update == UpdateKind.DURATION:
        minutes = payload.duration_minutes
        if existing is not None:
            updates = {
                "duration_minutes": minutes,
                "amount_cents": prorate_cents(existing.amount_cents, existing.duration_minutes, minutes),
            }
            return LessonEdit(student_id=student.id, student_name=student.full_name, lesson_id=existing.id, updates=updates)
        return LessonEdit(
            student_id=student.id,
            student_name=student.full_name,
            new_lesson=new_lesson_fields(student, date_key, completed=False, duration_minutes=minutes),
        )

    if update == UpdateKind.TIME:
        if existing is not None:
            return LessonEdit(
                student_id=student.id,
                student_name=student.full_name,
                lesson_id=existing.id,
                updates={"time_of_day": payload.time_of_day},
            )
        return LessonEdit(
            student_id=student.id,
            student_name=student.full_name,
            new_lesson=new_lesson_fields(student, date_key, completed=False, time_of_day=payload.time_of_day),
        )

    if existing is None:
        return None

    cents = to_minor_units(payload.money)
    if update == UpdateKind.RATE:
        cents = amount_for_rate(cents, existing.duration_minutes)
    return LessonEdit(
        student_id=student.id,
        student_name=student.full_name,
        lesson_id=existing.id,
        updates={"amount_cents": cents},
    )


def _update_summary(update: UpdateKind, payload: LessonUpdate, names: str, pretty: str) -> str:
    if update == UpdateKind.DURATION:
        return f"Set {names} lesson on {pretty} to {payload.duration_minutes} min"
    if update == UpdateKind.TIME:
        return f"Set {names} start time on {pretty} to {payload.time_of_day}"
    money = format_money(to_minor_units(payload.money))
    if update == UpdateKind.RATE:
        return f"Set {names} hourly rate on {pretty} to {money}"
    return f"Set {names} lesson amount on {pretty} to {money}"


def _resolve_update(payload: LessonUpdate, ctx: ResolveContext) -> ResolveOutcome:
    if payload.going_forward:
        return Unresolved(kind=ErrorKind.INVALID_VALUE, message=GOING_FORWARD_MESSAGE)

    if not payload.name_fragments and not payload.pinned_student_ids:
        return Unresolved(kind=ErrorKind.ENTITY_NOT_FOUND, message="Which student should I update?")

    students, stop = _bind_students(payload.name_fragments, payload.pinned_student_ids, ctx)
    if stop is not None:
        return stop

    update = payload.update
    if update is None:
        if len(payload.interpretations) > 1:
            return _interpretation_question(payload)
        if not payload.interpretations:
            return Unresolved(kind=ErrorKind.PARSE_FAILURE, message=DEFAULT_UNKNOWN_MESSAGE)
        update = payload.interpretations[0]

    if update == UpdateKind.DURATION and payload.duration_minutes not in VALID_DURATIONS:
        return Unresolved(kind=ErrorKind.INVALID_VALUE, message=DURATION_MESSAGE)
    if update in (UpdateKind.AMOUNT, UpdateKind.RATE) and payload.money is None:
        return Unresolved(kind=ErrorKind.INVALID_VALUE, message="What amount should I set?")
    if update == UpdateKind.TIME and not payload.time_of_day:
        return Unresolved(kind=ErrorKind.INVALID_VALUE, message="What time should the lesson start?")

    date_key = payload.date_key or ctx.default_date_key
    pretty = pretty_date(date_key)

    edits = []
    without_lesson = []
    for student in students:
        edit = _edit_for(update, student, payload, date_key, ctx.lesson_for(student.id, date_key))
        if edit is None:
            without_lesson.append(student.full_name)
        else:
            edits.append(edit)

    if without_lesson:
        return Unresolved(
            kind=ErrorKind.NOTHING_TO_EXECUTE,
            message=f"No lesson for {join_names(without_lesson)} on {pretty}.",
        )

    names = join_names(f"{s.full_name}'s" for s in students)
    return ResolvedLessonUpdate(
        summary=_update_summary(update, payload, names, pretty),
        confidence=payload.confidence,
        update=update,
        date_key=date_key,
        edits=edits,
    )


def resolve(payload, ctx: ResolveContext) -> ResolveOutcome:
    """
    Resolve an intent payload against a snapshot.

    Args:
        payload: Parser output
        ctx: Roster, lessons and dates to resolve against

    Returns:
        A resolved command, a DisambiguationSet, or Unresolved

    Examples:
        >>> ctx = ResolveContext.from_snapshot(snapshot, "2026-02-17")
        >>> outcome = resolve(parse("Mark Ava attended", "2026-02-17"), ctx)
        >>> outcome.student_ids
        ['s-ava']
    """
    if isinstance(payload, Unknown):
        outcome = Unresolved(kind=ErrorKind.PARSE_FAILURE, message=payload.hint or DEFAULT_UNKNOWN_MESSAGE)
    elif isinstance(payload, Help):
        outcome = Unresolved(kind=ErrorKind.PARSE_FAILURE, message=HELP_MESSAGE)
    elif isinstance(payload, AttendanceMark):
        outcome = _resolve_attendance(payload, ctx)
    elif isinstance(payload, LessonReschedule):
        outcome = _resolve_reschedule(payload, ctx)
    elif isinstance(payload, LessonUpdate):
        outcome = _resolve_update(payload, ctx)
    else:
        outcome = Unresolved(kind=ErrorKind.PARSE_FAILURE, message=DEFAULT_UNKNOWN_MESSAGE)

    logger.debug(f"Resolved {getattr(payload, 'intent', 'payload')} -> {type(outcome).__name__}")
    return outcome
