"""
Result<T> pattern for store calls made by the executor.

Every guarded read or write against the lesson store comes back as a
Result so that one failed item in a batch never aborts the others.
"""

from dataclasses import dataclass
from typing import Optional, Generic, TypeVar
from enum import Enum

from ..errors import ErrorKind


T = TypeVar('T')


class ResultStatus(Enum):
    """Status of a Result."""
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class Result(Generic[T]):
    """
    Outcome of one store operation.

    Attributes:
        status: Result status (SUCCESS or FAILURE)
        value: The result value if successful (None if failure)
        error: The exception that caused failure (None if success)
        message: Optional message describing the result
        kind: Failure category (None on success)

    Examples:
        >>> result = Result.success("lesson-42", "Lesson created")
        >>> if result.is_success:
        ...     print(f"Created: {result.value}")

        >>> result = Result.failure("Store unavailable", PersistenceError("timeout"))
        >>> result.kind
        <ErrorKind.PERSISTENCE_FAILURE: 'persistence_failure'>
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[Exception] = None
    message: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def is_success(self) -> bool:
        """Check if the result represents success."""
        return self.status == ResultStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        """Check if the result represents failure."""
        return self.status == ResultStatus.FAILURE

    @classmethod
    def success(cls, value: T, message: Optional[str] = None) -> 'Result[T]':
        """
        Create a successful result.

        Args:
            value: The result value
            message: Optional success message

        Returns:
            Result instance with SUCCESS status
        """
        return cls(
            status=ResultStatus.SUCCESS,
            value=value,
            message=message
        )

    @classmethod
    def failure(
        cls,
        message: str,
        error: Optional[Exception] = None,
        kind: ErrorKind = ErrorKind.PERSISTENCE_FAILURE
    ) -> 'Result[T]':
        """
        Create a failure result.

        Args:
            message: Error message describing the failure
            error: Optional exception that caused the failure
            kind: Failure category

        Returns:
            Result instance with FAILURE status
        """
        return cls(
            status=ResultStatus.FAILURE,
            message=message,
            error=error,
            kind=kind
        )

    def unwrap(self) -> T:
        """
        Unwrap the result value.

        Raises:
            ValueError: If the result is a failure
        """
        if self.is_failure:
            raise ValueError(
                f"Cannot unwrap failure result: {self.message}"
            )
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Unwrap the result value or return a default."""
        return self.value if self.is_success else default
