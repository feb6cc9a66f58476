"""Stage-tagged exceptions raised by the generation pipeline."""

from __future__ import annotations

from typing import Any, Dict, Optional


class PipelineError(Exception):
    """Base exception for every pipeline failure.

    ``stage`` names the pipeline step that failed so callers can report it
    without inspecting the exception type.
    """

    default_stage = "pipeline"

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.details = details or {}
        self.raw_text: Optional[str] = None
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message, "stage": self.stage}
        if self.details:
            payload["details"] = self.details
        if self.raw_text is not None:
            payload["raw_text"] = self.raw_text
        return payload


class DocumentUnreadable(PipelineError):
    """Raised when a PDF is missing, corrupt, encrypted or has no text."""

    default_stage = "load"

    def __init__(self, source: str, reason: str, **kwargs: Any) -> None:
        self.source = source
        super().__init__(f"Document {source!r} is unreadable: {reason}", **kwargs)


class IndexingFailed(PipelineError):
    """Raised when passages cannot be embedded or searched."""

    default_stage = "index"


class BackendUnavailable(PipelineError):
    """Raised when a generation provider errors, times out or is misconfigured."""

    default_stage = "generate"

    def __init__(self, model_id: str, reason: str, **kwargs: Any) -> None:
        self.model_id = model_id
        super().__init__(f"Backend {model_id!r} unavailable: {reason}", **kwargs)


class ExtractionFailed(PipelineError):
    """Raised when the start_json_/_end_json markers are missing or misordered."""

    default_stage = "extract"


class PayloadInvalid(PipelineError):
    """Raised when an extracted payload is not valid JSON for the task schema."""

    default_stage = "validate"
