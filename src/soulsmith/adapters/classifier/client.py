"""HTTP client for OpenAI-compatible and Anthropic completion endpoints."""

from __future__ import annotations

import asyncio
import re
from contextlib import suppress
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ValidationError

from soulsmith.adapters.http_resilience import ResilienceConfig, ResilientClient
from soulsmith.config import ClassifierConfig, ClassifierProvider
from soulsmith.domain.ports.classifier import ClassifierError

from .schema import ChatCompletionResponse, ErrorResponse, MessagesResponse

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"

_FENCE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence, if the model added one."""

    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_json_payload[TModel: BaseModel](text: str, schema: type[TModel]) -> TModel:
    try:
        return schema.model_validate_json(strip_code_fences(text))
    except ValidationError as exc:
        raise ClassifierError(f"Classifier returned an invalid {schema.__name__}: {exc}") from exc


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpClassifier:
    config: ClassifierConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system: str | None = None,
    ) -> str:
        return asyncio.run(
            self._complete_async(
                prompt, max_tokens=max_tokens, temperature=temperature, system=system
            )
        )

    def complete_json[TModel: BaseModel](
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        schema: type[TModel],
        system: str | None = None,
    ) -> TModel:
        text = self.complete(prompt, max_tokens=max_tokens, temperature=temperature, system=system)
        return parse_json_payload(text, schema)

    async def _complete_async(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system: str | None,
    ) -> str:
        if self.config.provider is ClassifierProvider.ANTHROPIC:
            path = "messages"
            headers = {
                "x-api-key": self.config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            }
            body: dict[str, Any] = {
                "model": self.config.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": [{"role": "user", "content": prompt}],
            }
            if system:
                body["system"] = system
        else:
            path = "chat/completions"
            headers = {"Authorization": f"Bearer {self.config.api_key}"}
            messages = [{"role": "system", "content": system}] if system else []
            messages.append({"role": "user", "content": prompt})
            body = {
                "model": self.config.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": messages,
            }

        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.post(path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ClassifierError(f"Classifier request failed: {exc}") from exc

        return self._extract_text(response)

    def _extract_text(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ClassifierError(
                f"Classifier returned non-JSON body (HTTP {response.status_code})"
            ) from exc

        if response.is_error:
            message = response.reason_phrase
            with suppress(ValidationError):
                message = ErrorResponse.model_validate(payload).error.message or message
            log.debug(f"Classifier error payload: {payload!r}")
            raise ClassifierError(f"Classifier HTTP {response.status_code}: {message}")

        try:
            if self.config.provider is ClassifierProvider.ANTHROPIC:
                text = MessagesResponse.model_validate(payload).text()
            else:
                text = ChatCompletionResponse.model_validate(payload).text()
        except ValidationError as exc:
            raise ClassifierError(f"Unexpected classifier response shape: {exc}") from exc

        if not text:
            raise ClassifierError("Classifier returned no content")
        return text
