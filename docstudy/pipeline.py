"""Document-grounded generation pipeline.

One call to :meth:`GenerationPipeline.run` loads the PDF, builds a passage
index over its text, retrieves the passages most relevant to the request,
assembles a prompt, generates with the selected backend and, for quiz and
flashcard requests, extracts and validates the JSON payload. Nothing is
cached between calls.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Dict, Optional

from langchain_core.embeddings import Embeddings

from .backends import BackendFactory, backend_factory
from .config import Settings
from .embedder import BGEEmbedder, EmbedderConfig
from .errors import DocumentUnreadable, IndexingFailed, PipelineError
from .extractor import extract, parse_payload
from .passage_index import PassageIndex
from .pdf_loader import DocumentLoader
from .prompts import assemble
from .schemas import ChatReply
from .storage import LocalUploadStore
from .text_splitter import TextSplitter
from .types import Document, GenerationOptions, GenerationRequest, GenerationResult, TaskKind


logger = logging.getLogger(__name__)


class GenerationPipeline:
    """Composes loader, index, prompt assembler, backend and extractor."""

    def __init__(
        self,
        settings: Settings,
        loader: Optional[DocumentLoader] = None,
        embeddings: Optional[Embeddings] = None,
        backends: Optional[BackendFactory] = None,
    ) -> None:
        self.settings = settings
        self.loader = loader or DocumentLoader(LocalUploadStore(settings.upload_dir))
        self._embeddings = embeddings
        self._embeddings_lock = threading.Lock()
        self.backends = backends or backend_factory(settings)
        self.splitter = TextSplitter(
            chunk_size=settings.chunk_size,
            overlap=settings.chunk_overlap,
            mode=settings.segmentation,
        )

    @property
    def embeddings(self) -> Embeddings:
        # Loaded once even when the first requests arrive together.
        with self._embeddings_lock:
            if self._embeddings is None:
                embedder = BGEEmbedder(
                    EmbedderConfig(
                        model_name=self.settings.embedding_model,
                        device=self.settings.embedding_device,
                    )
                )
                self._embeddings = embedder.embeddings
            return self._embeddings

    def default_options(self) -> GenerationOptions:
        return GenerationOptions(max_tokens=self.settings.max_tokens, timeout=self.settings.timeout)

    async def run(
        self,
        request: GenerationRequest,
        options: Optional[GenerationOptions] = None,
        strict: bool = True,
    ) -> GenerationResult:
        """Run one request end to end.

        With ``strict`` (the default) extraction and validation failures are
        raised. Otherwise they are recorded on the result next to the raw
        text so callers can fall back to showing it unstructured.
        """
        options = options or self.default_options()
        started = time.perf_counter()

        document = await self._stage("load", self._load(request.filename, options.timeout))
        index = await self._stage("index", asyncio.to_thread(self._build_index, document.text))

        query = request.message if request.task is TaskKind.CHAT else self.settings.ranking_query
        passages = await self._stage(
            "retrieve", asyncio.to_thread(index.query, query, self.settings.top_k)
        )
        logger.info(
            "Retrieved %d of %d passages from %s for %s",
            len(passages),
            len(index),
            request.filename,
            request.task.value,
        )

        prompt = self._call(
            "assemble",
            assemble,
            request.task,
            passages,
            request.message,
            flashcard_count=self.settings.flashcard_count,
            flashcard_style=self.settings.flashcard_style,
        )
        backend = self._call("resolve", self.backends, request.model_id)
        raw_text = await self._stage("generate", backend.generate(prompt, options))

        payload: Optional[Dict[str, Any]] = None
        payload_error: Optional[PipelineError] = None
        if request.task.structured:
            try:
                payload = self._structured_payload(request.task, raw_text)
            except PipelineError as exc:
                exc.raw_text = raw_text
                if strict:
                    raise
                logger.warning("Returning unstructured %s result: %s", request.task.value, exc)
                payload_error = exc

        logger.info(
            "Generated %s with %s in %.2fs",
            request.task.value,
            backend.model_id,
            time.perf_counter() - started,
        )
        return GenerationResult(
            task=request.task,
            model_id=backend.model_id,
            raw_text=raw_text,
            payload=payload,
            passages=tuple(passages),
            payload_error=payload_error,
        )

    def run_sync(
        self,
        request: GenerationRequest,
        options: Optional[GenerationOptions] = None,
        strict: bool = True,
    ) -> GenerationResult:
        return asyncio.run(self.run(request, options, strict=strict))

    async def _load(self, filename: str, timeout: Optional[float]) -> Document:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.loader.load_document, filename), timeout=timeout
            )
        except asyncio.TimeoutError as exc:
            raise DocumentUnreadable(filename, f"timed out after {timeout}s") from exc

    def _build_index(self, text: str) -> PassageIndex:
        try:
            return PassageIndex.build(text, self.embeddings, self.splitter)
        except PipelineError:
            raise
        except Exception as exc:
            raise IndexingFailed(f"could not index document: {exc}") from exc

    def _structured_payload(self, task: TaskKind, raw_text: str) -> Dict[str, Any]:
        candidate = extract(raw_text)
        return parse_payload(candidate, task, self.settings.flashcard_style)

    async def _stage(self, stage: str, awaitable: Any) -> Any:
        try:
            return await awaitable
        except PipelineError:
            raise
        except asyncio.TimeoutError as exc:
            raise PipelineError(f"{stage} timed out", stage=stage) from exc
        except Exception as exc:
            raise PipelineError(f"{stage} failed: {exc}", stage=stage) from exc

    @staticmethod
    def _call(stage: str, func: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except PipelineError:
            raise
        except Exception as exc:
            raise PipelineError(f"{stage} failed: {exc}", stage=stage) from exc


def format_result(result: GenerationResult) -> Dict[str, Any]:
    """Render a result in the caller-facing shape for its task."""
    if result.task is TaskKind.CHAT:
        return ChatReply(message=result.raw_text).model_dump()
    if result.payload is not None:
        return result.payload
    error = result.payload_error
    body: Dict[str, Any] = {"message": result.raw_text}
    if isinstance(error, PipelineError):
        details = error.to_dict()
        details.pop("raw_text", None)
        body.update(details)
    return body

