"""SQLAlchemy mapping metadata for the Soulsmith domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache
from typing import Any, cast

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    Uuid,
    orm,
)

from soulsmith.domain.model import (
    Category,
    CategoryScore,
    Condensation,
    Fragment,
    FragmentStatus,
    LedgerEvent,
    LedgerEventKind,
    LedgerEventStatus,
    Soul,
    Stage,
    Submitter,
    SubmitterStatus,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class CategoryScoresType(TypeDecorator[dict[Category, CategoryScore]]):
    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: dict[Category, CategoryScore] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = {
            category.value: {"score": score.score, "summary": score.summary}
            for category, score in sorted(value.items())
        }
        return json.dumps(payload, sort_keys=True)

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> dict[Category, CategoryScore]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        scores: dict[Category, CategoryScore] = {}
        for key, item in cast(dict[str, Any], loaded).items():
            try:
                category = Category(key)
            except ValueError:
                log.warning(f"Dropping unknown category {key!r} from stored scores")
                continue
            if isinstance(item, dict):
                entry = cast(dict[str, Any], item)
                scores[category] = CategoryScore(
                    score=int(entry.get("score", 0)),
                    summary=str(entry.get("summary", "")),
                )
        return scores


def _enum_values(enum_cls: type[StrEnum]) -> list[str]:
    return [member.value for member in enum_cls]


def _enum(enum_cls: type[StrEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=_enum_values,
        length=32,
    )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Core tables -----------------------------------------------------------------

soul_table = Table(
    "soul",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("handle", String(15), nullable=False, unique=True),
    Column("display_name", String(255), nullable=False, default=""),
    Column("owner_address", String(64), nullable=True, index=True),
    Column("seed_summary", Text, nullable=False, default=""),
    Column("profile_document", Text, nullable=False, default=""),
    Column("profile_version", Integer, nullable=False, default=1),
    Column("stage", _enum(Stage, "stage"), nullable=False),
    Column("category_scores", CategoryScoresType, nullable=False),
    Column("total_fragments", Integer, nullable=False, default=0),
    Column("accepted_fragments", Integer, nullable=False, default=0),
    Column("contributor_count", Integer, nullable=False, default=0),
    Column("follower_count", BigInteger, nullable=False, default=0),
    Column("ledger_agent_id", BigInteger, nullable=True),
    Column("registration_tx", String(128), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

submitter_table = Table(
    "submitter",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("api_key_hash", String(64), nullable=False, unique=True),
    Column("status", _enum(SubmitterStatus, "submitter_status"), nullable=False),
    Column("wallet_address", String(64), nullable=True),
    Column("total_submitted", Integer, nullable=False, default=0),
    Column("total_accepted", Integer, nullable=False, default=0),
    Column("created_at", UTCDateTime(), nullable=False),
)

condensation_table = Table(
    "condensation",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("soul_id", UUIDColumnType, ForeignKey("soul.id"), nullable=False),
    Column("version_from", Integer, nullable=False),
    Column("version_to", Integer, nullable=False),
    Column("fragments_merged", Integer, nullable=False),
    Column("profile_document", Text, nullable=False),
    Column("summary_diff", Text, nullable=False, default=""),
    Column("ledger_tx", String(128), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Index("uq_condensation_soul_version", "soul_id", "version_to", unique=True),
)

fragment_table = Table(
    "fragment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("soul_id", UUIDColumnType, ForeignKey("soul.id"), nullable=False),
    Column("submitter_id", UUIDColumnType, ForeignKey("submitter.id"), nullable=False),
    Column("category", _enum(Category, "category"), nullable=False),
    Column("content", Text, nullable=False),
    Column("content_hash", String(64), nullable=False),
    Column("status", _enum(FragmentStatus, "fragment_status"), nullable=False),
    Column("confidence", Float, nullable=True),
    Column("reject_reason", Text, nullable=True),
    Column("condensation_id", UUIDColumnType, ForeignKey("condensation.id"), nullable=True),
    Column("ledger_tx", String(128), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("reviewed_at", UTCDateTime(), nullable=True),
    Index("ix_fragment_soul_status_category", "soul_id", "status", "category"),
    Index("ix_fragment_soul_condensation", "soul_id", "condensation_id"),
    Index("ix_fragment_soul_content_hash", "soul_id", "content_hash"),
)

ledger_event_table = Table(
    "ledger_event",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("kind", _enum(LedgerEventKind, "ledger_event_kind"), nullable=False),
    Column("soul_id", UUIDColumnType, ForeignKey("soul.id"), nullable=False),
    Column("fragment_id", UUIDColumnType, nullable=True),
    Column("condensation_id", UUIDColumnType, nullable=True),
    Column("submitter_id", UUIDColumnType, nullable=True),
    Column("payload", JSON, nullable=False),
    Column("status", _enum(LedgerEventStatus, "ledger_event_status"), nullable=False),
    Column("attempts", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    Column("top_up_tx", String(128), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("processed_at", UTCDateTime(), nullable=True),
    Index("ix_ledger_event_status_created", "status", "created_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Soul, soul_table)
    mapper_registry.map_imperatively(Submitter, submitter_table)
    mapper_registry.map_imperatively(Condensation, condensation_table)
    mapper_registry.map_imperatively(Fragment, fragment_table)
    mapper_registry.map_imperatively(LedgerEvent, ledger_event_table)

    orm.configure_mappers()
    return mapper_registry
