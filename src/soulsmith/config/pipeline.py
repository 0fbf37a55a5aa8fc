"""Curation and condensation pipeline defaults."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_float, env_int

DEFAULT_CONTEXT_LIMIT = 20
DEFAULT_FALLBACK_CONFIDENCE = 0.70
DEFAULT_CONDENSATION_THRESHOLD = 10
DEFAULT_MAX_SCORE_DELTA = 15
DEFAULT_TASK_SCORE_FLOOR = 30
DEFAULT_HIGH_PRIORITY_BELOW = 15
DEFAULT_MIN_CONTENT_LENGTH = 20
DEFAULT_MAX_CONTENT_LENGTH = 5000
DEFAULT_PENDING_TIMEOUT = timedelta(minutes=30)
DEFAULT_MAX_SOULS_PER_OWNER = 5
DEFAULT_REVIEW_WORKERS = 4


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    context_limit: int = DEFAULT_CONTEXT_LIMIT
    fallback_confidence: float = DEFAULT_FALLBACK_CONFIDENCE
    condensation_threshold: int = DEFAULT_CONDENSATION_THRESHOLD
    max_score_delta: int = DEFAULT_MAX_SCORE_DELTA
    task_score_floor: int = DEFAULT_TASK_SCORE_FLOOR
    high_priority_below: int = DEFAULT_HIGH_PRIORITY_BELOW
    min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH
    pending_timeout: timedelta = DEFAULT_PENDING_TIMEOUT
    max_souls_per_owner: int = DEFAULT_MAX_SOULS_PER_OWNER
    review_workers: int = DEFAULT_REVIEW_WORKERS
    dispatch_interval: float = 15.0
    backfill_interval: float = 300.0
    cleanup_interval: float = 300.0


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        condensation_threshold=env_int(
            "CONDENSATION_THRESHOLD", DEFAULT_CONDENSATION_THRESHOLD
        ),
        review_workers=env_int("REVIEW_WORKERS", DEFAULT_REVIEW_WORKERS),
        dispatch_interval=env_float("LEDGER_DISPATCH_INTERVAL_SECONDS", 15.0),
        backfill_interval=env_float("BACKFILL_INTERVAL_SECONDS", 300.0),
        cleanup_interval=env_float("CLEANUP_INTERVAL_SECONDS", 300.0),
    )
