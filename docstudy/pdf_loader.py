"""Load stored PDF documents into plain text."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .errors import DocumentUnreadable
from .storage import LocalUploadStore
from .types import Document


logger = logging.getLogger(__name__)


class DocumentLoader:
    """Converts PDFs to text. Every call re-parses the file."""

    def __init__(self, store: LocalUploadStore | None = None) -> None:
        self.store = store

    def load(self, path: Path) -> str:
        path = Path(path)
        if not path.is_file():
            raise DocumentUnreadable(str(path), "file not found")
        try:
            pages = self._read_pages(path)
        except DocumentUnreadable:
            raise
        except (PyPdfError, ValueError, OSError) as exc:
            raise DocumentUnreadable(str(path), f"not a valid PDF ({exc})") from exc

        text = "\n".join(pages)
        if not text.strip():
            raise DocumentUnreadable(str(path), "no extractable text")
        logger.debug("Loaded %s: %d pages, %d characters", path.name, len(pages), len(text))
        return text

    def load_document(self, filename: str) -> Document:
        if self.store is None:
            raise DocumentUnreadable(filename, "no upload store configured")
        path = self.store.resolve(filename)
        return Document(filename=filename, path=path, text=self.load(path))

    def _read_pages(self, path: Path) -> List[str]:
        with path.open("rb") as handle:
            reader = PdfReader(handle)
            if reader.is_encrypted and not reader.decrypt(""):
                raise DocumentUnreadable(str(path), "encrypted")
            return [page.extract_text() or "" for page in reader.pages]
