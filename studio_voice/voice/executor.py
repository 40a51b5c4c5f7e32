"""
Executor for resolved voice commands.

The only write path voice commands use. Every store call goes through
_guarded(), which returns a Result instead of raising, so a failure on
one student's lesson is recorded and the rest of the batch continues.
Writes happen one at a time, in order.

Moves update the lesson in place and are followed by a verification
read: stray rows for the student on the source or destination date are
duplicates and are deleted.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from ..errors import ErrorKind, PersistenceError
from ..models.command import (
    AttendanceTarget,
    LessonEdit,
    ResolvedAttendanceMark,
    ResolvedLessonReschedule,
    ResolvedLessonUpdate,
)
from ..models.intent import UpdateKind
from ..models.outcome import ExecutionReport, ItemResult, ItemStatus
from ..models.result import Result
from ..persistence.interfaces import LessonStore
from ..resilience.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError
from ..validation.lesson_validator import LessonValidator
from .formatting import format_money, join_names, pretty_date


logger = logging.getLogger(__name__)


STORE_UNAVAILABLE = "store unavailable"


class VoiceCommandExecutor:
    """
    Applies resolved commands to a lesson store.

    Examples:
        >>> executor = VoiceCommandExecutor(store)
        >>> report = executor.execute(resolved)
        >>> print(report.message)
        Marked attended: Ava Kim, Leo Garcia (Tue, Feb 17)
    """

    def __init__(
        self,
        store: LessonStore,
        circuit_breaker: Optional[CircuitBreaker] = None,
        validator: Optional[LessonValidator] = None,
        create_validator: Optional[LessonValidator] = None
    ):
        """
        Initialize executor.

        Args:
            store: Lesson store to write to
            circuit_breaker: Breaker guarding store calls (optional)
            validator: Checks partial field sets written by edits
            create_validator: Checks full rows before they are created;
                scheduled durations outside the voice set are allowed
        """
        self.store = store
        self.circuit_breaker = circuit_breaker
        self.validator = validator or LessonValidator(partial=True)
        self.create_validator = create_validator or LessonValidator(voice_durations_only=False)

    def execute(self, resolved) -> ExecutionReport:
        """
        Execute a resolved command.

        Args:
            resolved: ResolvedAttendanceMark, ResolvedLessonReschedule or
                ResolvedLessonUpdate

        Returns:
            ExecutionReport with per-item results and a display message
        """
        logger.info(f"Executing {resolved.kind}: {resolved.summary}")

        if isinstance(resolved, ResolvedAttendanceMark):
            report = self._execute_attendance(resolved)
        elif isinstance(resolved, ResolvedLessonReschedule):
            report = self._execute_reschedule(resolved)
        elif isinstance(resolved, ResolvedLessonUpdate):
            report = self._execute_update(resolved)
        else:
            raise TypeError(f"Unsupported command: {type(resolved).__name__}")

        logger.info(
            f"Executed {resolved.kind}: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped"
        )
        return report

    def _guarded(self, description: str, func: Callable, *args: Any) -> Result:
        try:
            if self.circuit_breaker is not None:
                value = self.circuit_breaker.call(func, *args)
            else:
                value = func(*args)
            return Result.success(value)

        except CircuitBreakerOpenError as e:
            logger.warning(f"{description} skipped, circuit breaker open")
            return Result.failure(STORE_UNAVAILABLE, e)

        except PersistenceError as e:
            logger.warning(f"{description} failed: {e}")
            return Result.failure(str(e), e)

        except Exception as e:
            logger.error(f"{description} failed unexpectedly: {e}", exc_info=True)
            return Result.failure(str(e), e)

    def _validated(self, validator: LessonValidator, fields: Dict[str, Any]) -> Optional[str]:
        validation = validator.validate(fields)
        if validation.has_errors:
            logger.debug(validation.get_summary())
            return "; ".join(validation.errors)
        return None

    def _create(self, fields: Dict[str, Any], student_id: str, student_name: str) -> ItemResult:
        error = self._validated(self.create_validator, fields)
        if error:
            return ItemResult(
                student_id, student_name, ItemStatus.FAILED, error_message=error, kind=ErrorKind.INVALID_VALUE
            )

        created = self._guarded(f"Create lesson for {student_name}", self.store.create_lesson, fields)
        if created.is_failure:
            return ItemResult(
                student_id, student_name, ItemStatus.FAILED, error_message=created.message, kind=created.kind
            )
        return ItemResult(student_id, student_name, ItemStatus.CREATED, lesson_id=created.value)

    def _update(self, lesson_id: str, fields: Dict[str, Any], student_id: str, student_name: str) -> ItemResult:
        updated = self._guarded(f"Update lesson {lesson_id}", self.store.update_lesson, lesson_id, fields)
        if updated.is_failure:
            return ItemResult(
                student_id, student_name, ItemStatus.FAILED,
                lesson_id=lesson_id, error_message=updated.message, kind=updated.kind
            )
        return ItemResult(student_id, student_name, ItemStatus.UPDATED, lesson_id=lesson_id)

    # Attendance

    def _mark_one(self, target: AttendanceTarget, date_key: str, present: bool) -> ItemResult:
        # Re-read so a row created since resolution is updated, not duplicated
        found = self._guarded(
            f"Find lesson for {target.student_name}",
            self.store.find_lesson_for_student_on_date,
            target.student_id,
            date_key,
        )
        if found.is_failure:
            return ItemResult(
                target.student_id, target.student_name, ItemStatus.FAILED,
                error_message=found.message, kind=found.kind
            )

        lesson = found.unwrap()
        if lesson is not None:
            return self._update(lesson.id, {"completed": present}, target.student_id, target.student_name)

        if not present or not target.new_lesson:
            return ItemResult(target.student_id, target.student_name, ItemStatus.SKIPPED, error_message="no lesson")

        return self._create(dict(target.new_lesson), target.student_id, target.student_name)

    def _execute_attendance(self, command: ResolvedAttendanceMark) -> ExecutionReport:
        report = ExecutionReport(command=command.kind)
        for target in command.targets:
            report.items.append(self._mark_one(target, command.date_key, command.present))

        pretty = pretty_date(command.date_key)
        verb = "attended" if command.present else "not attended"
        done = report.succeeded
        if not done:
            message = f"No lessons marked {verb} ({pretty})."
        elif command.scope == "all":
            message = f"Marked {len(done)} lessons {verb} ({pretty})"
        else:
            message = f"Marked {verb}: {join_names(i.student_name for i in done)} ({pretty})"
        report.message = message + _tail(report)
        return report

    # Reschedule

    def _execute_reschedule(self, command: ResolvedLessonReschedule) -> ExecutionReport:
        report = ExecutionReport(command=command.kind)
        fields = command.lesson_fields()

        error = self._validated(self.validator, fields)
        if error:
            report.items.append(ItemResult(
                command.student_id, command.student_name, ItemStatus.FAILED,
                lesson_id=command.lesson_id, error_message=error, kind=ErrorKind.INVALID_VALUE
            ))
            report.message = f"Couldn't move {command.student_name}'s lesson: {error}."
            return report

        item = self._update(command.lesson_id, fields, command.student_id, command.student_name)
        if item.is_success:
            cleanup_error = self._verify_move(command)
            if cleanup_error:
                item = ItemResult(
                    command.student_id, command.student_name, ItemStatus.FAILED,
                    lesson_id=command.lesson_id, error_message=cleanup_error,
                    kind=ErrorKind.PERSISTENCE_FAILURE
                )
        report.items.append(item)

        if item.is_success:
            message = f"Moved {command.student_name} to {pretty_date(command.to_date_key)}"
            if command.to_time:
                message += f" at {command.to_time}"
            if command.duration_minutes:
                message += f" ({command.duration_minutes} min)"
            report.message = message + "."
        else:
            report.message = f"Couldn't move {command.student_name}'s lesson: {item.error_message}."
        return report

    def _verify_move(self, command: ResolvedLessonReschedule) -> Optional[str]:
        """
        Delete stray rows left around a move.

        Returns:
            None when exactly the moved lesson remains, else the reason
            cleanup could not finish
        """
        dates = sorted((command.from_date_key, command.to_date_key))
        fetched = self._guarded(
            f"Verify move of {command.lesson_id}",
            self.store.fetch_lessons_for_verification,
            command.student_id,
            (dates[0], dates[-1]),
        )
        if fetched.is_failure:
            return f"could not verify the move ({fetched.message})"

        rows = [
            lesson for lesson in fetched.value
            if lesson.student_id == command.student_id
            and lesson.date in (command.from_date_key, command.to_date_key)
        ]
        if not any(l.id == command.lesson_id and l.date == command.to_date_key for l in rows):
            logger.error(f"Moved lesson {command.lesson_id} not found on {command.to_date_key}")
            return "the moved lesson was not found after saving"

        duplicates = [l for l in rows if l.id != command.lesson_id]
        for duplicate in duplicates:
            logger.warning(
                f"{ErrorKind.DUPLICATE_DETECTED.value}: lesson {duplicate.id} for "
                f"{command.student_id} on {duplicate.date}, deleting"
            )
            deleted = self._guarded(f"Delete duplicate {duplicate.id}", self.store.delete_lesson, duplicate.id)
            if deleted.is_failure:
                logger.error(f"Cleanup failed for duplicate lesson {duplicate.id}: {deleted.message}")
                return f"a duplicate lesson could not be removed ({deleted.message})"
        return None

    # Field edits

    def _apply_edit(self, edit: LessonEdit, date_key: str, update: UpdateKind) -> ItemResult:
        if edit.lesson_id is not None:
            error = self._validated(self.validator, edit.updates)
            if error:
                return ItemResult(
                    edit.student_id, edit.student_name, ItemStatus.FAILED,
                    lesson_id=edit.lesson_id, error_message=error, kind=ErrorKind.INVALID_VALUE
                )
            return self._update(edit.lesson_id, edit.updates, edit.student_id, edit.student_name)

        found = self._guarded(
            f"Find lesson for {edit.student_name}",
            self.store.find_lesson_for_student_on_date,
            edit.student_id,
            date_key,
        )
        if found.is_failure:
            return ItemResult(
                edit.student_id, edit.student_name, ItemStatus.FAILED,
                error_message=found.message, kind=found.kind
            )
        existing = found.unwrap_or(None)
        if existing is not None:
            fields = _edited_fields(edit.new_lesson, update)
            return self._update(existing.id, fields, edit.student_id, edit.student_name)

        return self._create(dict(edit.new_lesson), edit.student_id, edit.student_name)

    def _execute_update(self, command: ResolvedLessonUpdate) -> ExecutionReport:
        report = ExecutionReport(command=command.kind)
        for edit in command.edits:
            report.items.append(self._apply_edit(edit, command.date_key, command.update))

        done = join_names(i.student_name for i in report.succeeded)
        pretty = pretty_date(command.date_key)
        if not report.succeeded:
            report.message = f"No lessons updated ({pretty})." + _tail(report)
            return report

        if command.update == UpdateKind.DURATION:
            minutes = _first_value(command.edits, "duration_minutes")
            headline = f"Updated duration to {minutes} min: {done} ({pretty})"
        elif command.update == UpdateKind.TIME:
            headline = f"Updated start time to {_first_value(command.edits, 'time_of_day')}: {done} ({pretty})"
        elif command.update == UpdateKind.RATE:
            headline = f"Updated hourly rate, lesson amount now {format_money(_first_value(command.edits, 'amount_cents'))}: {done} ({pretty})"
        else:
            headline = f"Updated lesson amount to {format_money(_first_value(command.edits, 'amount_cents'))}: {done} ({pretty})"
        report.message = headline + _tail(report)
        return report


EDITED_KEYS = {
    UpdateKind.DURATION: ("duration_minutes", "amount_cents"),
    UpdateKind.TIME: ("time_of_day",),
}


def _edited_fields(new_lesson: Dict[str, Any], update: UpdateKind) -> Dict[str, Any]:
    """Fields of a would-be new row that an existing row should take."""
    keys = EDITED_KEYS.get(update, ())
    return {key: value for key, value in new_lesson.items() if key in keys and value is not None}


def _first_value(edits: List[LessonEdit], key: str) -> Any:
    for edit in edits:
        source = edit.updates if edit.lesson_id is not None else (edit.new_lesson or {})
        if key in source:
            return source[key]
    return None


def _tail(report: ExecutionReport) -> str:
    """Failed and skipped items appended to a summary."""
    tail = ""
    if report.failed:
        failures = ", ".join(f"{i.student_name} ({i.error_message})" for i in report.failed)
        tail += f" Failed: {failures}."
    if report.skipped:
        tail += f" Skipped (no lesson): {join_names(i.student_name for i in report.skipped)}."
    return tail
