"""Utilities for splitting document text into retrievable passages."""

from __future__ import annotations

import re
from typing import List

from langchain_text_splitters import RecursiveCharacterTextSplitter

from .types import Passage


PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_END = re.compile(r"(?<=[.!?。])\s+")


class TextSplitter:
    """Splits text into sentence passages or overlapping character windows.

    In ``sentence`` mode each sentence becomes a passage and only sentences
    longer than ``chunk_size`` are windowed. In ``window`` mode the whole text
    goes through LangChain's recursive character splitter.
    """

    def __init__(self, chunk_size: int = 1000, overlap: int = 200, mode: str = "sentence") -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        if mode not in ("sentence", "window"):
            raise ValueError(f"Unknown segmentation mode: {mode}")
        self.chunk_size = chunk_size
        self.mode = mode
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=overlap,
            separators=["\n\n", "\n", "。", ". ", " ", ""],
        )

    def split(self, text: str) -> List[Passage]:
        if self.mode == "window":
            pieces = self._splitter.split_text(text)
        else:
            pieces = []
            for sentence in _sentences(text):
                if len(sentence) > self.chunk_size:
                    pieces.extend(self._splitter.split_text(sentence))
                else:
                    pieces.append(sentence)
        texts = [piece.strip() for piece in pieces if piece.strip()]
        return [Passage(rank=idx, text=piece) for idx, piece in enumerate(texts)]


def _sentences(text: str) -> List[str]:
    sentences: List[str] = []
    for paragraph in PARAGRAPH_BREAK.split(text):
        flat = " ".join(paragraph.split())
        if flat:
            sentences.extend(s for s in SENTENCE_END.split(flat) if s)
    return sentences
