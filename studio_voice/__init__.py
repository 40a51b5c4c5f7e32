"""
Studio voice commands.

Turns a spoken or typed utterance about the lesson schedule
("Leo's class now at 6 PM", "mark everyone attended") into a safely
executed change against a lesson store.

Usage:
    >>> from studio_voice import VoiceCommandController, InMemoryLessonStore
    >>>
    >>> store = InMemoryLessonStore(students=students, lessons=lessons)
    >>> controller = VoiceCommandController(store)
    >>> result = controller.handle("Sarah and Tiffany came today", store.snapshot(), "2026-02-17")
    >>> print(result.status, result.message)
"""

from .persistence.interfaces import LessonStore
from .persistence.memory_store import InMemoryLessonStore
from .voice.controller import VoiceCommandController, Selection
from .voice.executor import VoiceCommandExecutor
from .voice.parser import parse
from .voice.resolver import resolve, ResolveContext

__all__ = [
    "LessonStore",
    "InMemoryLessonStore",
    "VoiceCommandController",
    "VoiceCommandExecutor",
    "Selection",
    "parse",
    "resolve",
    "ResolveContext",
]

__version__ = "0.1.0"
