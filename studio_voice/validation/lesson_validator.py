"""
Lesson field validator.

Checks lesson rows before they are created and partial field sets
before they are written by a voice command.
"""

from typing import Dict, Any

from .validators import Validator, ValidationResult


VALID_DURATIONS = (30, 45, 60, 90, 120)


class LessonValidator(Validator):
    """
    Validator for lesson fields.

    With partial=False every field of a new row is required; with
    partial=True only the fields present are checked.

    Examples:
        >>> validator = LessonValidator()
        >>> result = validator.validate({
        ...     "student_id": "s-ava",
        ...     "date": "2026-02-17",
        ...     "duration_minutes": 60,
        ...     "amount_cents": 6000,
        ... })
        >>> result.is_valid
        True

        >>> LessonValidator(partial=True).validate({"duration_minutes": 50}).is_valid
        False
    """

    REQUIRED_FIELDS = ["student_id", "date", "duration_minutes", "amount_cents"]

    # Business rule constraints
    MIN_DURATION = 15  # minutes
    MAX_DURATION = 240  # minutes

    def __init__(self, partial: bool = False, voice_durations_only: bool = True):
        self.partial = partial
        self.voice_durations_only = voice_durations_only

    def validate(self, data: Dict[str, Any]) -> ValidationResult:
        """
        Validate lesson fields.

        Args:
            data: Lesson field dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(is_valid=True)

        if not self.partial:
            for error in self.validate_required_fields(data, self.REQUIRED_FIELDS):
                result.add_error(error)
            if not result.is_valid:
                return result

            error = self.validate_string_length(data["student_id"], "student_id", min_length=1)
            if error:
                result.add_error(error)

        if "date" in data:
            error = self.validate_date_format(data["date"], "date")
            if error:
                result.add_error(error)

        if "duration_minutes" in data:
            self._check_duration(data["duration_minutes"], result)

        if "amount_cents" in data:
            error = self.validate_non_negative_int(data["amount_cents"], "amount_cents")
            if error:
                result.add_error(error)

        if data.get("time_of_day") is not None:
            error = self.validate_time_format(data["time_of_day"], "time_of_day")
            if error:
                result.add_error(error)

        return result

    def _check_duration(self, duration: Any, result: ValidationResult):
        error = self.validate_positive_int(duration, "duration_minutes")
        if error:
            result.add_error(error)
            return

        if self.voice_durations_only:
            if duration not in VALID_DURATIONS:
                result.add_error(
                    f"Unsupported duration: {duration} minutes "
                    f"(must be one of: {', '.join(str(d) for d in VALID_DURATIONS)})"
                )
        elif duration < self.MIN_DURATION:
            result.add_error(
                f"Duration too short: {duration} minutes "
                f"(minimum: {self.MIN_DURATION})"
            )
        elif duration > self.MAX_DURATION:
            result.add_warning(
                f"Duration unusually long: {duration} minutes "
                f"(maximum recommended: {self.MAX_DURATION})"
            )
