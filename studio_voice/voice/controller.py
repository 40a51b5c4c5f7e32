"""
Clarification controller.

Decides, for every resolved transcript, whether it runs now, waits for
a yes/no confirmation, or waits for the user to pick an option.

States:
- RESOLVED_HIGH_CONFIDENCE: executes immediately
- RESOLVED_LOW_CONFIDENCE: confirmation prompt, pending command created
- AMBIGUOUS: options offered, pending command created
- UNRESOLVABLE: plain-language failure, nothing executed
- AWAITING_RESUME: a pending command is outstanding
- EXECUTED / CANCELLED: terminal

A resumed command goes back through resolution and the same checks;
picking an option never forces execution.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..errors import ErrorKind
from ..models.command import (
    AmbiguityKind,
    DisambiguationSet,
    Option,
    ResolveOutcome,
    ResolvedCommand,
    Unresolved,
)
from ..models.intent import IntentPayload, UpdateKind
from ..models.outcome import CommandResult, CommandStatus, ControllerState
from ..models.studio import StudioSnapshot
from ..persistence.interfaces import LessonStore
from .executor import VoiceCommandExecutor
from .matching import fold
from .parser import CONFIDENT, parse
from .resolver import ResolveContext, resolve


logger = logging.getLogger(__name__)


EXPIRED_MESSAGE = "That request expired. Please say it again."
UNKNOWN_TOKEN_MESSAGE = "That request is no longer open. Please say it again."
CANCELLED_MESSAGE = "Cancelled."

YES_WORDS = {"yes", "y", "si", "是", "ok", "okay", "confirm", "sure", "yeah"}
NO_WORDS = {"no", "n", "cancel", "不", "nope", "stop"}

UNRESOLVED_STATUS = {
    ErrorKind.PARSE_FAILURE: CommandStatus.NEEDS_CLARIFICATION,
    ErrorKind.ENTITY_NOT_FOUND: CommandStatus.NEEDS_CLARIFICATION,
    ErrorKind.INVALID_VALUE: CommandStatus.NEEDS_CLARIFICATION,
    ErrorKind.AMBIGUOUS_ENTITY: CommandStatus.NEEDS_CLARIFICATION,
    ErrorKind.NOTHING_TO_EXECUTE: CommandStatus.ERROR,
}


class PendingKind(str, Enum):
    CONFIRMATION = "confirmation"
    DISAMBIGUATION = "disambiguation"


class PendingCommand(BaseModel):
    """
    A suspended command awaiting a follow-up.

    Serializable with model_dump() / model_validate(); the roster
    snapshot it was resolved against is kept beside it by the
    controller.

    Attributes:
        token: Identifier handed to the caller
        kind: Waiting for a yes/no or for an option
        payload: Parsed intent, with any facts merged so far
        resolved: Command to run on confirmation (CONFIRMATION only)
        disambiguation: Question and options (DISAMBIGUATION only)
        selected_date_key: Caller's selected date at creation
        reference_date_key: Reference date the transcript was parsed with
        created_at: Creation time, for expiry
    """

    model_config = ConfigDict(frozen=True)

    token: str
    kind: PendingKind
    payload: IntentPayload
    resolved: Optional[ResolvedCommand] = None
    disambiguation: Optional[DisambiguationSet] = None
    selected_date_key: str
    reference_date_key: str
    created_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at > ttl

    @property
    def options(self) -> List[str]:
        return self.disambiguation.labels if self.disambiguation else []


@dataclass
class Selection:
    """
    A follow-up to a pending command.

    Any one field is enough. Explicit values (student_id,
    interpretation, date_key, confirm) win over option_index, which wins
    over label and free text.

    Examples:
        >>> Selection(student_id="s-leo-garcia")
        >>> Selection(option_index=0)
        >>> Selection(text="yes")
    """

    option_index: Optional[int] = None
    label: Optional[str] = None
    student_id: Optional[str] = None
    interpretation: Optional[Union[UpdateKind, str]] = None
    date_key: Optional[str] = None
    confirm: Optional[bool] = None
    text: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> 'Selection':
        return cls(text=text)


def classify(outcome: ResolveOutcome, confidence_threshold: float) -> ControllerState:
    """
    Controller state for a resolver outcome.

    Examples:
        >>> classify(Unresolved(kind=ErrorKind.PARSE_FAILURE, message="?"), 0.75)
        <ControllerState.UNRESOLVABLE: 'unresolvable'>
    """
    if isinstance(outcome, Unresolved):
        return ControllerState.UNRESOLVABLE
    if isinstance(outcome, DisambiguationSet):
        return ControllerState.AMBIGUOUS
    if outcome.confidence >= confidence_threshold:
        return ControllerState.RESOLVED_HIGH_CONFIDENCE
    return ControllerState.RESOLVED_LOW_CONFIDENCE


def confirmation_reply(selection: Selection) -> Optional[bool]:
    """True to confirm, False to cancel, None when the reply is neither."""
    if selection.confirm is not None:
        return selection.confirm
    reply = fold(selection.text or selection.label or "")
    if reply in YES_WORDS:
        return True
    if reply in NO_WORDS:
        return False
    return None


def pick_option(disambiguation: DisambiguationSet, selection: Selection) -> Optional[Option]:
    """
    The option a selection refers to, or None.

    Explicit values must be one of the offered options. Free text
    matches a label exactly after folding, then as a unique partial
    match; a bare number is a 1-based position.
    """
    options = disambiguation.options

    explicit = {
        AmbiguityKind.STUDENT: selection.student_id,
        AmbiguityKind.INTERPRETATION: (
            selection.interpretation.value
            if isinstance(selection.interpretation, UpdateKind) else selection.interpretation
        ),
        AmbiguityKind.DATE: selection.date_key,
    }[disambiguation.ambiguity]
    if explicit is not None:
        return next((o for o in options if o.value == explicit), None)

    if selection.option_index is not None:
        if 0 <= selection.option_index < len(options):
            return options[selection.option_index]
        return None

    reply = fold(selection.label or selection.text or "")
    if not reply:
        return None
    if re.fullmatch(r"\d+", reply):
        position = int(reply) - 1
        return options[position] if 0 <= position < len(options) else None

    for option in options:
        if fold(option.label) == reply:
            return option
    partial = [o for o in options if reply in fold(o.label) or fold(o.label) in reply]
    return partial[0] if len(partial) == 1 else None


def merge_choice(payload: IntentPayload, disambiguation: DisambiguationSet, option: Option) -> IntentPayload:
    """
    Payload with the chosen fact merged in.

    A chosen student is pinned to its fragment, a chosen reading becomes
    the update kind, and a chosen date replaces its ambiguous weekday.
    """
    if disambiguation.ambiguity == AmbiguityKind.STUDENT:
        pinned = dict(payload.pinned_student_ids)
        pinned[disambiguation.fragment_index or 0] = option.value
        return payload.model_copy(update={"pinned_student_ids": pinned})

    if disambiguation.ambiguity == AmbiguityKind.INTERPRETATION:
        # the spoken figure is now unambiguous; score it as if a cue had been said
        return payload.model_copy(update={
            "update": UpdateKind(option.value),
            "interpretations": [],
            "confidence": max(payload.confidence, CONFIDENT),
        })

    role = disambiguation.date_role or "to"
    remaining = [a for a in payload.date_ambiguities if a.role != role]
    return payload.model_copy(update={
        f"{role}_date_key": option.value,
        "date_ambiguities": remaining,
    })


class VoiceCommandController:
    """
    Runs transcripts through parse, resolve and the confirmation gate.

    Pending commands live in memory for one interaction session. Each
    can be resumed once: resume() pops it under a lock, so two racing
    follow-ups cannot both act on it.

    Examples:
        >>> controller = VoiceCommandController(store)
        >>> result = controller.handle("Mark Leo attended", snapshot, "2026-02-17")
        >>> result.status
        <CommandStatus.NEEDS_CLARIFICATION: 'needs_clarification'>
        >>> result = controller.resume(result.pending_command, Selection(option_index=0))
    """

    def __init__(
        self,
        store: LessonStore,
        executor: Optional[VoiceCommandExecutor] = None,
        confidence_threshold: float = 0.75,
        fuzzy_threshold: float = 0.6,
        ambiguity_margin: float = 0.1,
        pending_ttl: timedelta = timedelta(seconds=600),
        clock: Callable[[], datetime] = datetime.now
    ):
        """
        Initialize controller.

        Args:
            store: Lesson store commands execute against
            executor: Executor to use (defaults to one over store)
            confidence_threshold: Minimum confidence to execute without asking
            fuzzy_threshold: Minimum name score to bind a fragment
            ambiguity_margin: Minimum gap between best and second-best name score
            pending_ttl: How long a pending command can be resumed
            clock: Returns the current time
        """
        self.store = store
        self.executor = executor or VoiceCommandExecutor(store)
        self.confidence_threshold = confidence_threshold
        self.fuzzy_threshold = fuzzy_threshold
        self.ambiguity_margin = ambiguity_margin
        self.pending_ttl = pending_ttl
        self._clock = clock

        self._pending: Dict[str, Tuple[PendingCommand, StudioSnapshot]] = {}
        self._lock = Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def handle(
        self,
        transcript: str,
        snapshot: StudioSnapshot,
        selected_date_key: str,
        reference_date_key: Optional[str] = None
    ) -> CommandResult:
        """
        Process one transcript.

        Args:
            transcript: Text from speech-to-text or typed input
            snapshot: Roster and lessons to resolve against
            selected_date_key: Date the user has selected
            reference_date_key: Date "today" refers to (defaults to the
                selected date)

        Returns:
            CommandResult for the UI layer
        """
        reference = reference_date_key or selected_date_key
        payload = parse(transcript, reference)
        logger.info(f"Voice command parsed: intent={payload.intent}, confidence={payload.confidence:.2f}")
        return self._process(payload, snapshot, selected_date_key, reference)

    def resume(
        self,
        token: str,
        selection: Selection,
        snapshot: Optional[StudioSnapshot] = None
    ) -> CommandResult:
        """
        Continue a pending command with the user's follow-up.

        Args:
            token: pending_command value from an earlier result
            selection: The user's answer
            snapshot: Fresh snapshot to re-resolve against (defaults to
                the one the command was first resolved with)

        Returns:
            CommandResult; an unknown, already used or expired token is
            an error
        """
        with self._lock:
            entry = self._pending.pop(token, None)

        if entry is None:
            logger.warning(f"Resume for unknown pending command {token}")
            return CommandResult(status=CommandStatus.ERROR, message=UNKNOWN_TOKEN_MESSAGE, kind=ErrorKind.EXPIRED)

        pending, stored_snapshot = entry
        if pending.is_expired(self._clock(), self.pending_ttl):
            logger.info(f"Pending command {token} expired")
            return CommandResult(
                status=CommandStatus.ERROR,
                message=EXPIRED_MESSAGE,
                state=ControllerState.CANCELLED,
                kind=ErrorKind.EXPIRED,
            )

        snapshot = snapshot or stored_snapshot

        if pending.kind == PendingKind.CONFIRMATION:
            decision = confirmation_reply(selection)
            if decision is True:
                logger.info(f"Pending command {token} confirmed")
                return self._execute(pending.resolved)
            if decision is False:
                logger.info(f"Pending command {token} cancelled")
                return CommandResult(
                    status=CommandStatus.SUCCESS,
                    message=CANCELLED_MESSAGE,
                    state=ControllerState.CANCELLED,
                )
            reissued = self._suspend(
                PendingKind.CONFIRMATION, pending.payload, snapshot,
                pending.selected_date_key, pending.reference_date_key, resolved=pending.resolved
            )
            return CommandResult(
                status=CommandStatus.NEEDS_CONFIRMATION,
                message=f"Please answer yes or no. {pending.resolved.summary}?",
                pending_command=reissued.token,
                state=ControllerState.AWAITING_RESUME,
                pending=reissued,
            )

        option = pick_option(pending.disambiguation, selection)
        if option is None:
            reissued = self._suspend(
                PendingKind.DISAMBIGUATION, pending.payload, snapshot,
                pending.selected_date_key, pending.reference_date_key,
                disambiguation=pending.disambiguation
            )
            return CommandResult(
                status=CommandStatus.NEEDS_CLARIFICATION,
                message=f"Please choose one of the options. {pending.disambiguation.message}",
                options=reissued.options,
                pending_command=reissued.token,
                state=ControllerState.AWAITING_RESUME,
                kind=ErrorKind.AMBIGUOUS_ENTITY,
                pending=reissued,
            )

        logger.info(f"Pending command {token} resumed with '{option.label}'")
        merged = merge_choice(pending.payload, pending.disambiguation, option)
        return self._process(merged, snapshot, pending.selected_date_key, pending.reference_date_key)

    def close_session(self) -> int:
        """
        Discard every outstanding pending command.

        Returns:
            Number of pending commands discarded
        """
        with self._lock:
            count = len(self._pending)
            self._pending.clear()
        if count:
            logger.info(f"Session closed, {count} pending command(s) discarded")
        return count

    def _process(
        self,
        payload: IntentPayload,
        snapshot: StudioSnapshot,
        selected_date_key: str,
        reference_date_key: str
    ) -> CommandResult:
        ctx = ResolveContext.from_snapshot(
            snapshot,
            reference_date_key,
            selected_date_key,
            fuzzy_threshold=self.fuzzy_threshold,
            ambiguity_margin=self.ambiguity_margin,
        )
        outcome = resolve(payload, ctx)
        state = classify(outcome, self.confidence_threshold)
        logger.info(f"Voice command {payload.intent} -> {state.value}")

        if state == ControllerState.RESOLVED_HIGH_CONFIDENCE:
            return self._execute(outcome)

        if state == ControllerState.RESOLVED_LOW_CONFIDENCE:
            pending = self._suspend(
                PendingKind.CONFIRMATION, payload, snapshot,
                selected_date_key, reference_date_key, resolved=outcome
            )
            return CommandResult(
                status=CommandStatus.NEEDS_CONFIRMATION,
                message=f"{outcome.summary}?",
                pending_command=pending.token,
                state=ControllerState.AWAITING_RESUME,
                pending=pending,
            )

        if state == ControllerState.AMBIGUOUS:
            pending = self._suspend(
                PendingKind.DISAMBIGUATION, payload, snapshot,
                selected_date_key, reference_date_key, disambiguation=outcome
            )
            return CommandResult(
                status=CommandStatus.NEEDS_CLARIFICATION,
                message=outcome.message,
                options=outcome.labels,
                pending_command=pending.token,
                state=ControllerState.AWAITING_RESUME,
                kind=ErrorKind.AMBIGUOUS_ENTITY,
                pending=pending,
            )

        return CommandResult(
            status=UNRESOLVED_STATUS.get(outcome.kind, CommandStatus.ERROR),
            message=outcome.message,
            state=ControllerState.UNRESOLVABLE,
            kind=outcome.kind,
        )

    def _execute(self, resolved) -> CommandResult:
        report = self.executor.execute(resolved)
        return CommandResult(
            status=CommandStatus.SUCCESS if report.is_success else CommandStatus.ERROR,
            message=report.message,
            state=ControllerState.EXECUTED,
            report=report,
            kind=None if report.is_success else ErrorKind.PERSISTENCE_FAILURE,
        )

    def _suspend(
        self,
        kind: PendingKind,
        payload: IntentPayload,
        snapshot: StudioSnapshot,
        selected_date_key: str,
        reference_date_key: str,
        resolved=None,
        disambiguation: Optional[DisambiguationSet] = None
    ) -> PendingCommand:
        pending = PendingCommand(
            token=uuid.uuid4().hex,
            kind=kind,
            payload=payload,
            resolved=resolved,
            disambiguation=disambiguation,
            selected_date_key=selected_date_key,
            reference_date_key=reference_date_key,
            created_at=self._clock(),
        )
        with self._lock:
            self._pending[pending.token] = (pending, snapshot)
        logger.info(f"Pending {kind.value} command {pending.token} created")
        return pending
