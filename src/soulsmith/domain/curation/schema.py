"""Structured classifier verdicts for fragment review."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VerdictBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ReviewVerdict(VerdictBaseModel):
    accept: bool
    confidence: float
    reason: str = ""

    @field_validator("confidence", mode="after")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return min(1.0, max(0.0, value))

    @field_validator("reason", mode="before")
    @classmethod
    def _none_to_blank(cls, value: object) -> object:
        return "" if value is None else value


class IndexedVerdict(ReviewVerdict):
    index: int


class BatchReviewResult(VerdictBaseModel):
    verdicts: list[IndexedVerdict] = Field(default_factory=list["IndexedVerdict"])
