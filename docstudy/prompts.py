"""Prompt templates for chat, quiz and flashcard generation."""

from __future__ import annotations

from typing import Optional, Sequence

from langchain_core.prompts import PromptTemplate

from .extractor import END_MARKER, START_MARKER
from .types import Passage, TaskKind


SYSTEM_PROMPT = (
    "You are a study assistant. You help students understand documents they "
    "upload by answering questions, writing quizzes and writing flashcards."
)

CHAT_PROMPT = PromptTemplate(
    input_variables=["context", "message"],
    template=(
        "{context}\n\n"
        "Use the contexts above to answer the user's message if they are relevant. "
        "If they are not relevant, answer the message normally.\n\n"
        "Message: {message}"
    ),
)

QUIZ_PROMPT = PromptTemplate(
    input_variables=["context", "start", "end"],
    template=(
        "Generate a quiz from this document. Let the quiz be made up of 10 questions, "
        "with 4 options each, and one correct answer. Let the difficulty level be hard. "
        "The questions should be formatted in json, json should start with a {start} tag "
        "and end with a {end} tag. For example here is a sample response: "
        '{start} {{ "questions": [ {{ "question": "What is the capital of France?", '
        '"options": {{ "a": "Berlin", "b": "Madrid", "c": "Paris", "d": "Rome" }}, '
        '"answer": "c" }}, {{ "question": "Which planet is known as the Red Planet?", '
        '"options": {{ "a": "Earth", "b": "Mars", "c": "Jupiter", "d": "Venus" }}, '
        '"answer": "b" }} ]}} {end}\n\n'
        "{context}"
    ),
)

CONCEPT_FLASHCARD_PROMPT = PromptTemplate(
    input_variables=["context", "count", "start", "end"],
    template=(
        "Generate flashcards from this document. Let there be {count} concept and "
        "explanation pairs covering the most important ideas. The pairs should be "
        "formatted in json, json should start with a {start} tag and end with a {end} "
        "tag. For example here is a sample response: "
        '{start} {{ "concepts": [ {{ "concept": "Capital city", "explanation": '
        '"The city where a country\'s government is seated, such as Paris for France." }}, '
        '{{ "concept": "Red Planet", "explanation": "A name for Mars, which looks red '
        'because of iron oxide on its surface." }} ]}} {end}\n\n'
        "{context}"
    ),
)

QUESTION_FLASHCARD_PROMPT = PromptTemplate(
    input_variables=["context", "count", "start", "end"],
    template=(
        "Generate a question and answer pair from this document. Let there be {count} "
        "question and answer pairs. The pairs should be formatted in json, json should "
        "start with a {start} tag and end with a {end} tag. For example here is a sample "
        'response: {start} {{ "questions": [ {{ "question": "What is the capital of '
        'France?", "answer": "Paris" }}, {{ "question": "Which planet is known as the '
        'Red Planet?", "answer": "Mars" }} ]}} {end}\n\n'
        "{context}"
    ),
)


def format_contexts(passages: Sequence[Passage]) -> str:
    return "\n\n".join(
        f"Context {idx}:\n{passage.text}" for idx, passage in enumerate(passages, start=1)
    )


def assemble(
    task: TaskKind,
    passages: Sequence[Passage],
    message: Optional[str] = None,
    *,
    flashcard_count: int = 8,
    flashcard_style: str = "concepts",
) -> str:
    """Build the backend prompt for ``task`` from retrieved passages."""
    task = TaskKind(task)
    context = format_contexts(passages)
    if task is TaskKind.CHAT:
        if not (message or "").strip():
            raise ValueError("chat prompts require a user message")
        return CHAT_PROMPT.format(context=context, message=message.strip()).strip()
    if task is TaskKind.QUIZ:
        return QUIZ_PROMPT.format(context=context, start=START_MARKER, end=END_MARKER).strip()
    template = QUESTION_FLASHCARD_PROMPT if flashcard_style == "questions" else CONCEPT_FLASHCARD_PROMPT
    return template.format(
        context=context,
        count=flashcard_count,
        start=START_MARKER,
        end=END_MARKER,
    ).strip()
