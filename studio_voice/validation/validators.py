"""
Validation framework with Strategy pattern.

This module provides:
- Abstract Validator interface
- ValidationResult for consistent validation reporting
- Shared field checks used by concrete validators
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional


DATE_KEY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_OF_DAY_PATTERN = re.compile(r'^(1[0-2]|[1-9]):[0-5]\d (AM|PM)$')


@dataclass
class ValidationResult:
    """
    Result of data validation.

    Attributes:
        is_valid: Whether validation passed
        errors: List of error messages
        warnings: List of warning messages (non-fatal)
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> 'ValidationResult':
        """
        Add an error message.

        Args:
            message: Error message to add

        Returns:
            Self for method chaining
        """
        self.errors.append(message)
        self.is_valid = False
        return self

    def add_warning(self, message: str) -> 'ValidationResult':
        """Add a non-fatal warning message."""
        self.warnings.append(message)
        return self

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def get_summary(self) -> str:
        """
        Get validation summary.

        Returns:
            Human-readable summary of validation results
        """
        if self.is_valid and not self.has_warnings:
            return "Validation passed"

        parts = []

        if self.has_errors:
            parts.append(f"Errors ({len(self.errors)}):")
            for error in self.errors:
                parts.append(f"  - {error}")

        if self.has_warnings:
            parts.append(f"Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                parts.append(f"  - {warning}")

        return "\n".join(parts)


class Validator(ABC):
    """
    Abstract base class for validators.

    Subclasses implement validate(); the helpers return an error message
    or None so that callers can collect every problem in one pass.
    """

    @abstractmethod
    def validate(self, data: Any) -> ValidationResult:
        """
        Validate data.

        Args:
            data: Data to validate

        Returns:
            ValidationResult with errors and warnings
        """
        pass

    def validate_required_fields(
        self,
        data: dict,
        required_fields: List[str]
    ) -> List[str]:
        """
        Validate that required fields exist.

        Args:
            data: Dictionary to check
            required_fields: List of required field names

        Returns:
            List of error messages for missing fields
        """
        errors = []
        for name in required_fields:
            if name not in data or data[name] is None:
                errors.append(f"Missing required field: {name}")
        return errors

    def validate_date_format(
        self,
        date_str: Any,
        field_name: str = "date"
    ) -> Optional[str]:
        """
        Validate date format (YYYY-MM-DD).

        Returns:
            Error message if invalid, None if valid
        """
        if not isinstance(date_str, str) or not DATE_KEY_PATTERN.match(date_str):
            return f"Invalid {field_name} format: {date_str} (expected YYYY-MM-DD)"
        return None

    def validate_time_format(
        self,
        time_str: Any,
        field_name: str = "time_of_day"
    ) -> Optional[str]:
        """
        Validate time-of-day format ("H:MM AM" / "H:MM PM").

        Returns:
            Error message if invalid, None if valid
        """
        if not isinstance(time_str, str) or not TIME_OF_DAY_PATTERN.match(time_str):
            return f"Invalid {field_name} format: {time_str} (expected H:MM AM|PM)"
        return None

    def validate_positive_int(
        self,
        value: Any,
        field_name: str
    ) -> Optional[str]:
        """
        Validate that value is a positive integer.

        Returns:
            Error message if invalid, None if valid
        """
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{field_name} must be an integer, got {type(value).__name__}"

        if value <= 0:
            return f"{field_name} must be positive, got {value}"

        return None

    def validate_non_negative_int(
        self,
        value: Any,
        field_name: str
    ) -> Optional[str]:
        """Validate that value is an integer >= 0."""
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{field_name} must be an integer, got {type(value).__name__}"

        if value < 0:
            return f"{field_name} must not be negative, got {value}"

        return None

    def validate_string_length(
        self,
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None
    ) -> Optional[str]:
        """
        Validate string length.

        Returns:
            Error message if invalid, None if valid
        """
        if not isinstance(value, str):
            return f"{field_name} must be a string, got {type(value).__name__}"

        length = len(value)

        if min_length is not None and length < min_length:
            return f"{field_name} must be at least {min_length} characters, got {length}"

        if max_length is not None and length > max_length:
            return f"{field_name} must be at most {max_length} characters, got {length}"

        return None
