"""Structured classifier result for a condensation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CondensationBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CategoryAssessment(CondensationBaseModel):
    score: int
    summary: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def _round_score(cls, value: object) -> object:
        if isinstance(value, float):
            return round(value)
        return value


class CondensationResult(CondensationBaseModel):
    profile_document: str = Field(min_length=1)
    categories: dict[str, CategoryAssessment] = Field(
        default_factory=dict[str, "CategoryAssessment"]
    )
    summary_diff: str = ""
