"""
Error taxonomy for the voice command subsystem.

Parser, resolver and controller report failures as data tagged with an
ErrorKind. Only store implementations raise, using PersistenceError,
and the executor folds those into per-item results.
"""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of failure a voice command can end in."""

    PARSE_FAILURE = "parse_failure"
    AMBIGUOUS_ENTITY = "ambiguous_entity"
    ENTITY_NOT_FOUND = "entity_not_found"
    NOTHING_TO_EXECUTE = "nothing_to_execute"
    INVALID_VALUE = "invalid_value"
    PERSISTENCE_FAILURE = "persistence_failure"
    DUPLICATE_DETECTED = "duplicate_detected"
    EXPIRED = "expired"


class PersistenceError(Exception):
    """Raised by a LessonStore when a read or write cannot be completed."""

    pass
