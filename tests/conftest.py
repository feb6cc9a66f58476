"""
Pytest configuration and fixtures.
Provides offline stand-ins for embeddings and generation backends, and
builders for small PDF files.
"""

import math
import re
import zlib
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from langchain_core.embeddings import Embeddings
from pypdf import PdfWriter

from docstudy.config import Settings
from docstudy.errors import BackendUnavailable
from docstudy.pdf_loader import DocumentLoader
from docstudy.pipeline import GenerationPipeline
from docstudy.storage import LocalUploadStore
from docstudy.types import GenerationOptions


class BagOfWordsEmbeddings(Embeddings):
    """Deterministic hashed bag-of-words vectors, L2-normalised."""

    def __init__(self, dim: int = 1024):
        self.dim = dim

    def _embed(self, text: str) -> List[float]:
        vector = [0.0] * self.dim
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            vector[zlib.crc32(token.encode("utf-8")) % self.dim] += 1.0
        norm = math.sqrt(sum(value * value for value in vector))
        if norm:
            vector = [value / norm for value in vector]
        return vector

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> List[float]:
        return self._embed(text)


class StubBackend:
    """Backend double that records prompts and replays a canned reply."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None, model_id: str = "default"):
        self.reply = reply
        self.error = error
        self.model_id = model_id
        self.prompts: List[str] = []
        self.options: List[GenerationOptions] = []

    async def generate(self, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        self.prompts.append(prompt)
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return self.reply


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_text_pdf(lines: List[str]) -> bytes:
    """Return a one-page Helvetica PDF showing ``lines``."""
    content = "BT /F1 12 Tf 14 TL 72 720 Td " + " ".join(
        f"({_escape(line)}) Tj T*" for line in lines
    ) + " ET"
    stream = content.encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    return bytes(out)


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def write_pdf(upload_dir: Path) -> Callable[..., Path]:
    """Write a text PDF into the upload directory and return its path."""

    def _write(name: str, *lines: str) -> Path:
        path = upload_dir / name
        path.write_bytes(build_text_pdf(list(lines)))
        return path

    return _write


@pytest.fixture
def write_blank_pdf(upload_dir: Path) -> Callable[..., Path]:
    def _write(name: str, password: Optional[str] = None) -> Path:
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        if password:
            writer.encrypt(user_password=password, algorithm="RC4-128")
        path = upload_dir / name
        with path.open("wb") as handle:
            writer.write(handle)
        return path

    return _write


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    return Settings(upload_dir=upload_dir, max_retries=1, timeout=5.0)


@pytest.fixture
def embeddings() -> BagOfWordsEmbeddings:
    return BagOfWordsEmbeddings()


@pytest.fixture
def loader(upload_dir: Path) -> DocumentLoader:
    return DocumentLoader(LocalUploadStore(upload_dir))


@pytest.fixture
def make_pipeline(settings: Settings, loader: DocumentLoader, embeddings: BagOfWordsEmbeddings):
    """Build a pipeline whose every model identifier resolves to ``backend``."""

    def _make(backend: StubBackend, **overrides) -> GenerationPipeline:
        pipeline_settings = settings
        if overrides:
            pipeline_settings = replace(settings, **overrides)
        return GenerationPipeline(
            pipeline_settings,
            loader=loader,
            embeddings=embeddings,
            backends=lambda model_id: backend,
        )

    return _make


@pytest.fixture
def unavailable_backend() -> StubBackend:
    return StubBackend(error=BackendUnavailable("default", "connection reset"))
