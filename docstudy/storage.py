"""Read-only access to PDFs stored by the upload service."""

from __future__ import annotations

from pathlib import Path

from .errors import DocumentUnreadable


class LocalUploadStore:
    """Resolves upload filenames to files inside a local upload directory."""

    def __init__(self, upload_dir: Path) -> None:
        self.upload_dir = Path(upload_dir)

    def resolve(self, filename: str) -> Path:
        if not filename or not filename.strip():
            raise DocumentUnreadable(str(filename), "empty filename")
        root = self.upload_dir.resolve()
        path = (root / filename).resolve()
        if root != path and root not in path.parents:
            raise DocumentUnreadable(filename, "path escapes the upload directory")
        if not path.is_file():
            raise DocumentUnreadable(filename, "not found")
        return path
