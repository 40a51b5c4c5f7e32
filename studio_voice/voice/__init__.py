"""
Voice command pipeline.

Parser -> Resolver -> Clarification Controller -> Executor.

Usage:
    >>> from studio_voice.voice import VoiceCommandController, Selection
    >>>
    >>> controller = VoiceCommandController(store)
    >>> result = controller.handle("Mark Leo attended today", store.snapshot(), "2026-02-17")
    >>> if result.options:
    ...     result = controller.resume(result.pending_command, Selection(option_index=0))
"""

from .controller import PendingCommand, Selection, VoiceCommandController
from .executor import VoiceCommandExecutor
from .parser import parse
from .resolver import ResolveContext, resolve

__all__ = [
    "PendingCommand",
    "Selection",
    "VoiceCommandController",
    "VoiceCommandExecutor",
    "parse",
    "resolve",
    "ResolveContext",
]
