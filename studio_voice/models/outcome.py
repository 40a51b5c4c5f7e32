"""
Execution and command outcome models.

ItemResult records what happened to one student's lesson, an
ExecutionReport aggregates a whole command, and CommandResult is what
the controller hands back to the UI layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..errors import ErrorKind


class ItemStatus(Enum):
    """Per-lesson execution status."""
    UPDATED = "updated"
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


class CommandStatus(Enum):
    """Status reported to the caller."""
    SUCCESS = "success"
    NEEDS_CONFIRMATION = "needs_confirmation"
    NEEDS_CLARIFICATION = "needs_clarification"
    ERROR = "error"


class ControllerState(Enum):
    """Clarification controller states."""
    RESOLVED_HIGH_CONFIDENCE = "resolved_high_confidence"
    RESOLVED_LOW_CONFIDENCE = "resolved_low_confidence"
    AMBIGUOUS = "ambiguous"
    UNRESOLVABLE = "unresolvable"
    AWAITING_RESUME = "awaiting_resume"
    EXECUTED = "executed"
    CANCELLED = "cancelled"


@dataclass
class ItemResult:
    """
    Result of one lesson write.

    Attributes:
        student_id: Student the write was for
        student_name: Display name
        status: Execution status
        lesson_id: Lesson updated or created
        error_message: Plain-language reason for FAILED or SKIPPED
        kind: Failure category for FAILED items

    Examples:
        >>> item = ItemResult(
        ...     student_id="s-ava",
        ...     student_name="Ava Kim",
        ...     status=ItemStatus.UPDATED,
        ...     lesson_id="lesson-3"
        ... )
        >>> item.is_success
        True
    """

    student_id: str
    student_name: str
    status: ItemStatus
    lesson_id: Optional[str] = None
    error_message: Optional[str] = None
    kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "status": self.status.value,
            "lesson_id": self.lesson_id,
            "error_message": self.error_message,
            "kind": self.kind.value if self.kind else None,
        }

    @property
    def is_success(self) -> bool:
        return self.status in (ItemStatus.UPDATED, ItemStatus.CREATED)

    @property
    def is_failure(self) -> bool:
        return self.status == ItemStatus.FAILED

    @property
    def is_skipped(self) -> bool:
        return self.status == ItemStatus.SKIPPED


@dataclass
class ExecutionReport:
    """
    Summary of one executed command.

    A batch with some failed items still succeeds as a whole; it is an
    error only when nothing could be written.

    Attributes:
        command: Resolved command kind
        message: Human-readable summary, ready to display
        items: Per-lesson results
        executed_at: Execution timestamp (ISO 8601)
    """

    command: str
    message: str = ""
    items: List[ItemResult] = field(default_factory=list)
    executed_at: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def succeeded(self) -> List[ItemResult]:
        return [item for item in self.items if item.is_success]

    @property
    def failed(self) -> List[ItemResult]:
        return [item for item in self.items if item.is_failure]

    @property
    def skipped(self) -> List[ItemResult]:
        return [item for item in self.items if item.is_skipped]

    @property
    def is_success(self) -> bool:
        return not self.failed or bool(self.succeeded)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation of the report
        """
        return {
            "command": self.command,
            "message": self.message,
            "executed_at": self.executed_at,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "skipped": len(self.skipped),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class CommandResult:
    """
    What the controller returns for one transcript or resume.

    Attributes:
        status: Caller-facing status
        message: Plain-language message to display
        options: Choices to offer (needs_clarification only)
        pending_command: Token to pass back to resume(), when deferred
        state: Controller state the command ended in
        report: Execution report when the command ran
        kind: Failure category for error / clarification outcomes
        pending: The deferred command itself, for inspection

    Examples:
        >>> result = controller.handle("Leo came today", snapshot, "2026-02-17")
        >>> result.to_dict()["status"]
        'needs_clarification'
    """

    status: CommandStatus
    message: str
    options: List[str] = field(default_factory=list)
    pending_command: Optional[str] = None
    state: Optional[ControllerState] = None
    report: Optional[ExecutionReport] = None
    kind: Optional[ErrorKind] = None
    pending: Optional[Any] = None

    @property
    def is_success(self) -> bool:
        return self.status == CommandStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """The discriminated result shape consumed by the UI layer."""
        return {
            "status": self.status.value,
            "message": self.message,
            "options": list(self.options),
            "pending_command": self.pending_command,
        }
