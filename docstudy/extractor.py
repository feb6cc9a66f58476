"""Extract and validate the JSON payload embedded in model replies.

Extraction and validation are separate steps. ``extract`` only locates the
text between the ``start_json_`` and ``_end_json`` markers and raises
``ExtractionFailed`` when they are missing or misordered. ``parse_payload``
then decodes that text and checks it against the task schema, raising
``PayloadInvalid`` so a malformed payload can be told apart from a reply
that ignored the delimiter instruction.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Type

from pydantic import BaseModel, ValidationError

from .errors import ExtractionFailed, PayloadInvalid
from .schemas import ConceptFlashcards, QuestionFlashcards, QuizPayload
from .types import TaskKind


START_MARKER = "start_json_"
END_MARKER = "_end_json"


def extract(text: str) -> str:
    start = text.find(START_MARKER)
    if start < 0:
        raise ExtractionFailed(f"start marker {START_MARKER!r} not found")
    payload_start = start + len(START_MARKER)
    end = text.find(END_MARKER, payload_start)
    if end < 0:
        if END_MARKER in text:
            raise ExtractionFailed(f"end marker {END_MARKER!r} precedes the start marker")
        raise ExtractionFailed(f"end marker {END_MARKER!r} not found")
    return text[payload_start:end].strip()


def schema_for(task: TaskKind, flashcard_style: str = "concepts") -> Type[BaseModel]:
    task = TaskKind(task)
    if task is TaskKind.QUIZ:
        return QuizPayload
    if task is TaskKind.FLASHCARDS:
        return QuestionFlashcards if flashcard_style == "questions" else ConceptFlashcards
    raise ValueError(f"{task.value} results carry no structured payload")


def parse_payload(
    candidate: str,
    task: TaskKind,
    flashcard_style: str = "concepts",
) -> Dict[str, Any]:
    schema = schema_for(task, flashcard_style)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise PayloadInvalid(
            f"payload is not valid JSON: {exc.msg}",
            details={"line": exc.lineno, "column": exc.colno},
        ) from exc
    try:
        model = schema.model_validate(data)
    except ValidationError as exc:
        raise PayloadInvalid(
            f"payload does not match the {schema.__name__} schema",
            details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc
    return model.model_dump()
