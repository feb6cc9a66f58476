"""Embedding utilities built on top of LangChain BGE embeddings."""

from __future__ import annotations

from dataclasses import dataclass

from langchain_community.embeddings import HuggingFaceBgeEmbeddings
from langchain_core.embeddings import Embeddings


@dataclass
class EmbedderConfig:
    model_name: str = "BAAI/bge-small-en-v1.5"
    device: str = "cpu"
    cache_folder: str | None = None
    normalize: bool = True


class BGEEmbedder:
    """Provides LangChain's HuggingFaceBgeEmbeddings for passage search.

    The underlying model is loaded on first use, so constructing a pipeline
    does not download weights until a document is actually indexed.
    """

    def __init__(self, config: EmbedderConfig | None = None) -> None:
        self.config = config or EmbedderConfig()
        self._embedder: HuggingFaceBgeEmbeddings | None = None

    @property
    def embeddings(self) -> Embeddings:
        if self._embedder is None:
            kwargs = {}
            if self.config.cache_folder:
                kwargs["cache_folder"] = self.config.cache_folder
            self._embedder = HuggingFaceBgeEmbeddings(
                model_name=self.config.model_name,
                model_kwargs={"device": self.config.device},
                encode_kwargs={"normalize_embeddings": self.config.normalize},
                **kwargs,
            )
        return self._embedder
