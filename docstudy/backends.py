"""Generation backends and the identifier-to-backend mapping.

Each backend wraps one provider behind ``generate(prompt, options)``.
``resolve`` builds a fresh backend per call from the model identifier and the
settings it is given, so concurrent requests never share a selected model.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple, Type

import openai
from google.api_core import exceptions as google_exceptions
from langchain_core.language_models import BaseChatModel, BaseLLM
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI, OpenAI
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from .config import Settings
from .errors import BackendUnavailable
from .prompts import SYSTEM_PROMPT
from .types import GenerationOptions


logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "default"

LLAMA3_TEMPLATE = (
    "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\n\n"
    "{system}<|eot_id|><|start_header_id|>user<|end_header_id|>\n\n"
    "{prompt}<|eot_id|><|start_header_id|>assistant<|end_header_id|>\n\n"
)
LLAMA3_STOP = ["<|eot_id|>"]

# Failures worth another attempt. Auth and request errors are not retried.
TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    asyncio.TimeoutError,
    ConnectionError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    google_exceptions.TooManyRequests,
    google_exceptions.ServiceUnavailable,
    google_exceptions.InternalServerError,
    google_exceptions.DeadlineExceeded,
)


class Backend(ABC):
    """A text-generation provider with bounded, jittered retries."""

    def __init__(
        self,
        model_id: str,
        model_name: str,
        api_key: Optional[str],
        temperature: Optional[float] = None,
        max_retries: int = 3,
        wait: Optional[wait_base] = None,
    ) -> None:
        self.model_id = model_id
        self.model_name = model_name
        self.api_key = api_key
        self.temperature = temperature
        self.max_retries = max_retries
        self.wait = wait or wait_random_exponential(multiplier=1, max=10)

    async def generate(self, prompt: str, options: GenerationOptions | None = None) -> str:
        options = options or GenerationOptions()
        if not self.api_key:
            raise BackendUnavailable(self.model_id, f"no API key configured for {self.provider}")
        model = self._build_model(options)
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.wait,
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        attempts = 0
        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    text = await asyncio.wait_for(
                        self._invoke(model, prompt), timeout=options.timeout
                    )
        except asyncio.TimeoutError as exc:
            raise BackendUnavailable(
                self.model_id, f"timed out after {options.timeout}s", details=self._details(attempts)
            ) from exc
        except Exception as exc:
            raise BackendUnavailable(self.model_id, str(exc), details=self._details(attempts)) from exc
        logger.debug("%s returned %d characters", self.model_name, len(text))
        return text

    def _details(self, attempts: int) -> Dict[str, Any]:
        return {"provider": self.provider, "model": self.model_name, "attempts": attempts}

    def _temperature_kwargs(self) -> Dict[str, Any]:
        return {} if self.temperature is None else {"temperature": self.temperature}

    @property
    @abstractmethod
    def provider(self) -> str:
        ...

    @abstractmethod
    def _build_model(self, options: GenerationOptions) -> Any:
        ...

    @abstractmethod
    async def _invoke(self, model: Any, prompt: str) -> str:
        ...


class HostedChatBackend(Backend):
    """OpenAI chat completions with a system message ahead of the prompt."""

    provider = "openai"

    def _build_model(self, options: GenerationOptions) -> BaseChatModel:
        return ChatOpenAI(
            model=self.model_name,
            max_tokens=options.max_tokens,
            timeout=options.timeout,
            max_retries=0,
            api_key=self.api_key,
            **self._temperature_kwargs(),
        )

    async def _invoke(self, model: BaseChatModel, prompt: str) -> str:
        reply = await model.ainvoke([SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)])
        return message_text(reply)


class GeminiBackend(Backend):
    """Google Gemini, sent the context-bearing prompt as a single user turn."""

    provider = "google"

    def _build_model(self, options: GenerationOptions) -> BaseChatModel:
        return ChatGoogleGenerativeAI(
            model=self.model_name,
            max_output_tokens=options.max_tokens,
            timeout=options.timeout,
            max_retries=0,
            google_api_key=self.api_key,
            **self._temperature_kwargs(),
        )

    async def _invoke(self, model: BaseChatModel, prompt: str) -> str:
        reply = await model.ainvoke([HumanMessage(content=prompt)])
        return message_text(reply)


class TemplateCompletionBackend(Backend):
    """Llama 3 instruct on an OpenAI-compatible completions host."""

    provider = "llama"

    def __init__(self, *args: Any, base_url: str, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = base_url.rstrip("/")

    def render(self, prompt: str) -> str:
        return LLAMA3_TEMPLATE.format(system=SYSTEM_PROMPT, prompt=prompt)

    def _build_model(self, options: GenerationOptions) -> BaseLLM:
        return OpenAI(
            model=self.model_name,
            base_url=self.base_url,
            max_tokens=options.max_tokens,
            timeout=options.timeout,
            max_retries=0,
            api_key=self.api_key,
            **self._temperature_kwargs(),
        )

    async def _invoke(self, model: BaseLLM, prompt: str) -> str:
        text = await model.ainvoke(self.render(prompt), stop=LLAMA3_STOP)
        return text.strip()


def message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def _normalise(model_id: Optional[str]) -> str:
    return (model_id or DEFAULT_MODEL_ID).strip().lower() or DEFAULT_MODEL_ID


def resolve(model_id: Optional[str], settings: Settings, wait: Optional[wait_base] = None) -> Backend:
    """Map a caller-supplied model identifier to a new backend instance."""
    key = _normalise(model_id)
    common = {"max_retries": settings.max_retries, "wait": wait}

    if key == "gemini":
        return GeminiBackend(key, settings.gemini_model, settings.google_api_key, **common)
    if key == "llama3":
        return TemplateCompletionBackend(
            key,
            settings.llama_model,
            settings.llama_api_key,
            temperature=settings.creative_temperature,
            base_url=settings.llama_base_url,
            **common,
        )
    if key in ("gpt-4", "gpt-4o"):
        name = settings.gpt4_model if key == "gpt-4" else settings.gpt4o_model
        return HostedChatBackend(
            key, name, settings.openai_api_key, temperature=settings.creative_temperature, **common
        )
    if key == "gpt-3.5":
        return HostedChatBackend(key, settings.gpt35_model, settings.openai_api_key, **common)
    if key != DEFAULT_MODEL_ID:
        logger.info("Unknown model %r, using the default backend", model_id)
    return HostedChatBackend(DEFAULT_MODEL_ID, settings.default_model, settings.openai_api_key, **common)


BackendFactory = Callable[[Optional[str]], Backend]


def backend_factory(settings: Settings, wait: Optional[wait_base] = None) -> BackendFactory:
    def factory(model_id: Optional[str]) -> Backend:
        return resolve(model_id, settings, wait=wait)

    return factory
