"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Category(StrEnum):
    """Closed set of topical buckets a fragment can claim."""

    PERSONALITY = "personality"
    KNOWLEDGE = "knowledge"
    STANCE = "stance"
    STYLE = "style"
    RELATIONSHIP = "relationship"
    TIMELINE = "timeline"


class Stage(StrEnum):
    PENDING = "pending"
    SEED = "seed"
    DEVELOPING = "developing"
    MATURE = "mature"
    REFINING = "refining"


class FragmentStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SubmitterStatus(StrEnum):
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"


class LedgerEventKind(StrEnum):
    FEEDBACK = "feedback"
    PROFILE_UPDATE = "profile_update"


class LedgerEventStatus(StrEnum):
    PENDING = "pending"
    DONE = "done"
    DEAD = "dead"
    SKIPPED = "skipped"
