"""Common data structures for the document study pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


class TaskKind(str, Enum):
    """The three derived-content modes a document can be used for."""

    CHAT = "chat"
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"

    @property
    def structured(self) -> bool:
        return self is not TaskKind.CHAT


@dataclass(frozen=True)
class Document:
    """A stored PDF and the plain text derived from it for one request."""

    filename: str
    path: Path
    text: str


@dataclass(frozen=True)
class Passage:
    """A contiguous span of document text, ranked by source position."""

    rank: int
    text: str


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call ceilings threaded through loading and generation."""

    max_tokens: int = 1024
    timeout: Optional[float] = 60.0

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive or None")


@dataclass(frozen=True)
class GenerationRequest:
    """One document-grounded generation invocation."""

    filename: str
    task: TaskKind
    model_id: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept plain strings from callers such as the CLI.
        object.__setattr__(self, "task", TaskKind(self.task))
        if self.task is TaskKind.CHAT and not (self.message or "").strip():
            raise ValueError("chat requests require a non-empty message")


@dataclass(frozen=True)
class GenerationResult:
    """Raw backend text plus, for structured tasks, the validated payload."""

    task: TaskKind
    model_id: str
    raw_text: str
    payload: Optional[Dict[str, Any]] = None
    passages: Tuple[Passage, ...] = field(default_factory=tuple)
    payload_error: Optional[Exception] = None
