"""
Unit tests for prompt assembly.
"""

import pytest

from docstudy.extractor import END_MARKER, START_MARKER
from docstudy.prompts import assemble, format_contexts
from docstudy.types import Passage, TaskKind


PASSAGES = [
    Passage(rank=4, text="Mitochondria produce ATP."),
    Passage(rank=1, text="Chloroplasts capture light."),
]


def test_contexts_are_numbered_in_retrieval_order():
    assert format_contexts(PASSAGES) == (
        "Context 1:\nMitochondria produce ATP.\n\nContext 2:\nChloroplasts capture light."
    )


def test_chat_prompt_puts_contexts_before_instruction_and_message():
    prompt = assemble(TaskKind.CHAT, PASSAGES, "What makes ATP?")
    assert prompt.index("Context 1:") < prompt.index("Context 2:") < prompt.index("if they are relevant")
    assert prompt.endswith("Message: What makes ATP?")
    assert START_MARKER not in prompt


def test_chat_prompt_requires_message():
    with pytest.raises(ValueError):
        assemble(TaskKind.CHAT, PASSAGES, "   ")


def test_quiz_prompt():
    prompt = assemble("quiz", PASSAGES)
    assert "10 questions" in prompt
    assert "4 options each" in prompt
    assert "difficulty level be hard" in prompt
    assert '"answer": "c"' in prompt
    assert prompt.count(START_MARKER) >= 2 and prompt.count(END_MARKER) >= 2
    assert prompt.index(END_MARKER) < prompt.index("Context 1:")


@pytest.mark.parametrize(
    "style, count, keys",
    [("concepts", 8, ('"concept"', '"explanation"')), ("questions", 4, ('"question"', '"answer"'))],
)
def test_flashcard_prompt_styles(style, count, keys):
    prompt = assemble(TaskKind.FLASHCARDS, PASSAGES, flashcard_count=count, flashcard_style=style)
    assert f"Let there be {count} " in prompt
    assert START_MARKER in prompt and END_MARKER in prompt
    for key in keys:
        assert key in prompt
    assert prompt.endswith("Context 2:\nChloroplasts capture light.")


def test_structured_prompts_keep_delimiters_without_passages():
    for task in (TaskKind.QUIZ, TaskKind.FLASHCARDS):
        prompt = assemble(task, [])
        assert START_MARKER in prompt and END_MARKER in prompt
