"""Runtime configuration loaded from environment variables.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory. API keys are read lazily so that settings can
be built in environments where only some providers are configured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


SEGMENTATION_MODES = ("sentence", "window")
FLASHCARD_STYLES = ("concepts", "questions")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    """Pipeline settings.

    Attributes:
        upload_dir: Directory the upload service stores PDFs in.
        segmentation: Passage segmentation mode, ``sentence`` or ``window``.
        chunk_size: Maximum passage length in characters.
        chunk_overlap: Overlap between windowed passages.
        top_k: Number of passages retrieved per request.
        ranking_query: Query used to rank passages for quiz and flashcards.
        embedding_model: Hugging Face model used for passage embeddings.
        embedding_device: Torch device for the embedding model.
        default_model: Provider model for unrecognised identifiers.
        gpt35_model, gpt4_model, gpt4o_model: OpenAI chat models.
        gemini_model: Google Gemini chat model.
        llama_model: Llama 3 instruct model on the inference host.
        llama_base_url: OpenAI-compatible completions endpoint for Llama 3.
        creative_temperature: Temperature used by gpt-4, gpt-4o and llama3.
        max_tokens: Default output ceiling per generation call.
        timeout: Default per-attempt timeout in seconds.
        max_retries: Attempts per generation call, including the first.
        flashcard_style: ``concepts`` or ``questions`` flashcard payloads.
        flashcard_count: Number of flashcards requested.
    """

    upload_dir: Path = field(default_factory=lambda: Path("uploads"))
    segmentation: str = "sentence"
    chunk_size: int = 1000
    chunk_overlap: int = 200
    top_k: int = 3
    ranking_query: str = "useful facts"
    embedding_model: str = "BAAI/bge-small-en-v1.5"
    embedding_device: str = "cpu"
    default_model: str = "gpt-3.5-turbo"
    gpt35_model: str = "gpt-3.5-turbo"
    gpt4_model: str = "gpt-4-turbo"
    gpt4o_model: str = "gpt-4o"
    gemini_model: str = "gemini-1.5-flash"
    llama_model: str = "meta-llama/Meta-Llama-3-70B-Instruct"
    llama_base_url: str = "https://api.deepinfra.com/v1/openai"
    creative_temperature: float = 0.7
    max_tokens: int = 1024
    timeout: Optional[float] = 60.0
    max_retries: int = 3
    flashcard_style: str = "concepts"
    flashcard_count: int = 8

    def __post_init__(self) -> None:
        self.upload_dir = Path(self.upload_dir)
        if self.segmentation not in SEGMENTATION_MODES:
            raise ValueError(f"segmentation must be one of {SEGMENTATION_MODES}")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        if self.top_k <= 0:
            raise ValueError("top_k must be positive")
        if self.max_retries <= 0:
            raise ValueError("max_retries must be at least 1")
        if self.flashcard_style not in FLASHCARD_STYLES:
            raise ValueError(f"flashcard_style must be one of {FLASHCARD_STYLES}")
        if self.flashcard_count <= 0:
            raise ValueError("flashcard_count must be positive")

    @property
    def openai_api_key(self) -> Optional[str]:
        return os.getenv("OPENAI_API_KEY")

    @property
    def google_api_key(self) -> Optional[str]:
        return os.getenv("GOOGLE_API_KEY")

    @property
    def llama_api_key(self) -> Optional[str]:
        return os.getenv("LLAMA_API_KEY")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from ``DOCSTUDY_*`` environment variables."""
        if dotenv:
            load_dotenv()
        defaults = cls()
        return cls(
            upload_dir=Path(os.getenv("DOCSTUDY_UPLOAD_DIR", str(defaults.upload_dir))),
            segmentation=os.getenv("DOCSTUDY_SEGMENTATION", defaults.segmentation),
            chunk_size=_env_int("DOCSTUDY_CHUNK_SIZE", defaults.chunk_size),
            chunk_overlap=_env_int("DOCSTUDY_CHUNK_OVERLAP", defaults.chunk_overlap),
            top_k=_env_int("DOCSTUDY_TOP_K", defaults.top_k),
            ranking_query=os.getenv("DOCSTUDY_RANKING_QUERY", defaults.ranking_query),
            embedding_model=os.getenv("DOCSTUDY_EMBEDDING_MODEL", defaults.embedding_model),
            embedding_device=os.getenv("DOCSTUDY_EMBEDDING_DEVICE", defaults.embedding_device),
            default_model=os.getenv("DOCSTUDY_DEFAULT_MODEL", defaults.default_model),
            gpt35_model=os.getenv("DOCSTUDY_GPT35_MODEL", defaults.gpt35_model),
            gpt4_model=os.getenv("DOCSTUDY_GPT4_MODEL", defaults.gpt4_model),
            gpt4o_model=os.getenv("DOCSTUDY_GPT4O_MODEL", defaults.gpt4o_model),
            gemini_model=os.getenv("DOCSTUDY_GEMINI_MODEL", defaults.gemini_model),
            llama_model=os.getenv("DOCSTUDY_LLAMA_MODEL", defaults.llama_model),
            llama_base_url=os.getenv("LLAMA_BASE_URL", defaults.llama_base_url),
            creative_temperature=_env_float(
                "DOCSTUDY_CREATIVE_TEMPERATURE", defaults.creative_temperature
            ),
            max_tokens=_env_int("DOCSTUDY_MAX_TOKENS", defaults.max_tokens),
            timeout=_env_float("DOCSTUDY_TIMEOUT", defaults.timeout),
            max_retries=_env_int("DOCSTUDY_MAX_RETRIES", defaults.max_retries),
            flashcard_style=os.getenv("DOCSTUDY_FLASHCARD_STYLE", defaults.flashcard_style),
            flashcard_count=_env_int("DOCSTUDY_FLASHCARD_COUNT", defaults.flashcard_count),
        )
