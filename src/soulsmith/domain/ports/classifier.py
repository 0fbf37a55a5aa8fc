"""Port for the external text classifier (an LLM completion endpoint)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pydantic import BaseModel


class ClassifierError(RuntimeError):
    """The classifier was unreachable, timed out or returned an unusable payload."""


@runtime_checkable
class Classifier(Protocol):
    """Single-attempt completion contract; every failure surfaces as ``ClassifierError``."""

    def complete(
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        system: str | None = None,
    ) -> str: ...

    def complete_json[TModel: BaseModel](
        self,
        prompt: str,
        *,
        max_tokens: int,
        temperature: float,
        schema: type[TModel],
        system: str | None = None,
    ) -> TModel: ...
