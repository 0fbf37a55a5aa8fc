"""Completion endpoint adapter implementing the classifier port."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .client import HttpClassifier, parse_json_payload, strip_code_fences

if TYPE_CHECKING:
    from soulsmith.config import ClassifierConfig


def build_http_classifier(config: ClassifierConfig | None) -> HttpClassifier | None:
    """Return a classifier for ``config``; ``None`` keeps the fallback paths active."""

    if config is None:
        return None
    return HttpClassifier(config=config)


__all__ = [
    "HttpClassifier",
    "build_http_classifier",
    "parse_json_payload",
    "strip_code_fences",
]
