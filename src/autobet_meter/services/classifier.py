"""Vision classifier client.

This module provides the ClassifierClient class that sends one screenshot plus
a task instruction to an OpenAI-compatible chat-completions endpoint and
returns the structured answer. It includes:

- Lazily created ``httpx.AsyncClient`` shared across requests
- JSON-schema response format generated from a pydantic output model
- Validation of the model output back through the same pydantic model
- A hard per-call deadline and optional retries on 5xx responses
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from autobet_meter.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_INTERNAL_SERVER_ERROR = 500
RETRY_DELAY_SECONDS = 0.25

OutputT = TypeVar("OutputT", bound=BaseModel)


class ClassifierError(RuntimeError):
    """Base exception raised when a classification could not be obtained."""


class ClassifierTimeoutError(ClassifierError):
    """Raised when the classifier did not answer within the configured deadline."""


class ClassifierOutputError(ClassifierError):
    """Raised when the classifier answered with text that does not fit the schema."""


class Classifier(Protocol):
    async def classify(
        self,
        image: str,
        instruction: str,
        output_model: type[OutputT],
        *,
        model: str | None = None,
    ) -> OutputT: ...


@dataclass(frozen=True)
class ClassifierConfig:
    """Immutable configuration for classifier calls."""

    base_url: str
    api_key: str | None
    default_model: str
    timeout_seconds: float
    max_retries: int
    max_tokens: int


def load_classifier_config() -> ClassifierConfig:
    """Build configuration object from global settings."""

    return ClassifierConfig(
        base_url=settings.classifier_base_url,
        api_key=settings.classifier_api_key,
        default_model=settings.classifier_model,
        timeout_seconds=float(settings.classifier_timeout_seconds),
        max_retries=max(0, int(settings.classifier_max_retries)),
        max_tokens=int(settings.classifier_max_tokens),
    )


def to_data_url(image: str) -> str:
    """Return ``image`` as a data URL, treating bare strings as base64 JPEG."""
    if image.startswith("data:"):
        return image
    return f"data:image/jpeg;base64,{image}"


def response_format_for(output_model: type[BaseModel]) -> dict[str, Any]:
    """Describe ``output_model`` as a strict ``json_schema`` response format."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": output_model.__name__,
            "strict": True,
            "schema": output_model.model_json_schema(),
        },
    }


def _extract_message_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise ClassifierOutputError("Classifier response was not a JSON object")
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ClassifierOutputError("Classifier response did not contain any choices")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        # Some providers split the answer into typed content parts.
        content = "".join(
            str(part.get("text", "")) for part in content if isinstance(part, dict)
        )
    text = str(content or "").strip()
    if not text:
        raise ClassifierOutputError("Classifier response did not contain any text")
    return text


def parse_output(text: str, output_model: type[OutputT]) -> OutputT:
    """Validate the raw model answer against ``output_model``."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        # Tolerate fenced answers from models that ignore the response format.
        cleaned = cleaned.strip("`")
        if cleaned.startswith("json"):
            cleaned = cleaned[4:]
    try:
        return output_model.model_validate_json(cleaned)
    except ValidationError as exc:
        raise ClassifierOutputError(f"Classifier output rejected: {exc}") from exc


class ClassifierClient:
    """HTTP client wrapper for the vision classifier."""

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_classifier_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _build_headers(self) -> dict[str, str]:
        if not self.config.api_key:
            raise ClassifierError("Missing OPENROUTER_API_KEY for classifier calls")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(
        self, image: str, instruction: str, output_model: type[BaseModel], model: str
    ) -> dict[str, Any]:
        return {
            "model": model,
            "max_tokens": self.config.max_tokens,
            "messages": [
                {"role": "system", "content": instruction},
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": to_data_url(image)}},
                    ],
                },
            ],
            "response_format": response_format_for(output_model),
        }

    async def _post_with_retries(
        self, headers: dict[str, str], payload: dict[str, Any]
    ) -> httpx.Response:
        client = await self._ensure_client()
        for attempt in range(self.config.max_retries + 1):
            response = await client.post("/chat/completions", headers=headers, json=payload)
            if (
                response.status_code >= HTTP_INTERNAL_SERVER_ERROR
                and attempt < self.config.max_retries
            ):
                logger.warning(
                    "Classifier responded with %d, retrying (%d/%d)",
                    response.status_code,
                    attempt + 1,
                    self.config.max_retries,
                )
                await asyncio.sleep(RETRY_DELAY_SECONDS)
                continue
            return response
        raise ClassifierError("Classifier retries exhausted")  # pragma: no cover

    async def classify(
        self,
        image: str,
        instruction: str,
        output_model: type[OutputT],
        *,
        model: str | None = None,
    ) -> OutputT:
        """Classify ``image`` under ``instruction`` and return a validated answer.

        Args:
            image: Base64 string or data URL of the screenshot.
            instruction: System instruction describing the task and reply format.
            output_model: Pydantic model describing the expected answer.
            model: Provider model name; defaults to the configured model.

        Raises:
            ClassifierTimeoutError: The call exceeded the configured deadline.
            ClassifierOutputError: The answer did not match ``output_model``.
            ClassifierError: Any other transport or provider failure.
        """
        model_name = model or self.config.default_model
        headers = self._build_headers()
        payload = self._build_payload(image, instruction, output_model, model_name)

        try:
            response = await asyncio.wait_for(
                self._post_with_retries(headers, payload),
                timeout=self.config.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ClassifierTimeoutError(
                f"Classifier did not answer within {self.config.timeout_seconds:.1f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ClassifierError(f"Classifier request failed: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise ClassifierError(f"Classifier responded with {response.status_code}")

        try:
            body = response.json()
        except json.JSONDecodeError as exc:
            raise ClassifierOutputError("Classifier response was not JSON") from exc

        result = parse_output(_extract_message_text(body), output_model)
        logger.info("Classifier %s answered: %s", model_name, result.model_dump(by_alias=True))
        return result

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""

        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class _ClassifierClientSingleton:
    """Singleton wrapper for ClassifierClient."""

    _instance: ClassifierClient | None = None

    @classmethod
    def get_instance(cls) -> ClassifierClient:
        """Get or create the singleton ClassifierClient instance."""
        if cls._instance is None:
            cls._instance = ClassifierClient()
        return cls._instance


def get_classifier_client() -> ClassifierClient:
    """Return a singleton classifier client instance."""
    return _ClassifierClientSingleton.get_instance()
