"""Caller-facing payload shapes for chat, quiz and flashcard results."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict


class ChatReply(BaseModel):
    message: str


class QuizOptions(BaseModel):
    a: str
    b: str
    c: str
    d: str


class QuizQuestion(BaseModel):
    question: str
    options: QuizOptions
    answer: Literal["a", "b", "c", "d"]


class QuizPayload(BaseModel):
    """Multiple-choice quiz. The question count is requested, not enforced."""

    model_config = ConfigDict(extra="ignore")

    questions: List[QuizQuestion]


class Concept(BaseModel):
    concept: str
    explanation: str


class ConceptFlashcards(BaseModel):
    model_config = ConfigDict(extra="ignore")

    concepts: List[Concept]


class QuestionCard(BaseModel):
    question: str
    answer: str


class QuestionFlashcards(BaseModel):
    model_config = ConfigDict(extra="ignore")

    questions: List[QuestionCard]
