"""Per-request FAISS index over one document's passages."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from langchain_community.vectorstores import FAISS
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings

from .text_splitter import TextSplitter
from .types import Passage


logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3


class PassageIndex:
    """Answers top-k nearest-passage queries for a single document.

    Instances are immutable once built. ``query`` scores every passage and
    orders by distance, breaking ties by source rank, so results are stable.
    """

    def __init__(self, passages: Sequence[Passage], store: FAISS | None) -> None:
        self._passages: Tuple[Passage, ...] = tuple(passages)
        self._store = store

    @classmethod
    def build(
        cls,
        text: str,
        embeddings: Embeddings,
        splitter: TextSplitter | None = None,
    ) -> "PassageIndex":
        splitter = splitter or TextSplitter()
        passages = splitter.split(text)
        if not passages:
            return cls(passages, None)
        documents = [
            Document(page_content=passage.text, metadata={"rank": passage.rank})
            for passage in passages
        ]
        store = FAISS.from_documents(documents, embeddings)
        logger.debug("Indexed %d passages", len(passages))
        return cls(passages, store)

    @property
    def passages(self) -> Tuple[Passage, ...]:
        return self._passages

    def __len__(self) -> int:
        return len(self._passages)

    def query(self, query_text: str, k: int = DEFAULT_TOP_K) -> List[Passage]:
        if self._store is None or k <= 0:
            return []
        hits = self._store.similarity_search_with_score(query_text, k=len(self._passages))
        ranked = sorted(
            ((float(score), int(doc.metadata["rank"])) for doc, score in hits),
            key=lambda item: (item[0], item[1]),
        )
        return [self._passages[rank] for _, rank in ranked[:k]]
