"""Accept/reject decisions for submitted fragments."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.config.pipeline import PipelineConfig
from soulsmith.domain.errors import DomainError, InvariantViolation, NotFoundError
from soulsmith.domain.ledger_sync.events import feedback_event
from soulsmith.domain.lifecycle import refresh_stage
from soulsmith.domain.ports.classifier import ClassifierError

from .prompts import (
    REVIEW_SYSTEM,
    ReviewSubject,
    build_batch_review_prompt,
    build_review_prompt,
)
from .schema import BatchReviewResult, ReviewVerdict

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from soulsmith.domain.condensation.engine import CondensationEngine
    from soulsmith.domain.model import Condensation
    from soulsmith.domain.ports.classifier import Classifier
    from soulsmith.domain.ports.unit_of_work import SoulRepositories, UnitOfWorkFactory

log = getLogger(__name__)

REVIEW_MAX_TOKENS = 500
REVIEW_TEMPERATURE = 0.2
BATCH_TOKENS_PER_ITEM = 120
DUPLICATE_REASON = "Exact duplicate of an already accepted fragment"


class DecisionSource(StrEnum):
    CLASSIFIER = "classifier"
    FALLBACK = "fallback"
    DUPLICATE = "duplicate"


@dataclass(frozen=True, slots=True)
class Verdict:
    accept: bool
    confidence: float
    reason: str
    source: DecisionSource


@dataclass(frozen=True, slots=True)
class ReviewDecision:
    fragment_id: UUID
    soul_id: UUID
    accepted: bool
    confidence: float
    reason: str | None
    source: DecisionSource
    condensation: Condensation | None = None


class CurationEngine:
    """Reviews pending fragments and applies the verdict.

    The classifier is called outside any transaction. When it is missing or fails,
    the fragment is accepted with ``fallback_confidence``: availability wins over
    strict gating, so a broken classifier never blocks contributions.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        classifier: Classifier | None,
        condenser: CondensationEngine,
        *,
        config: PipelineConfig | None = None,
        ledger_enabled: bool = False,
        on_ledger_event: Callable[[], None] | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.classifier = classifier
        self.condenser = condenser
        self.config = config or PipelineConfig()
        self.ledger_enabled = ledger_enabled
        self._on_ledger_event = on_ledger_event

    # Single review -----------------------------------------------------------

    def review(self, fragment_id: UUID) -> ReviewDecision:
        subject, is_duplicate = self._load_subject(fragment_id)
        if is_duplicate:
            verdict = Verdict(False, 1.0, DUPLICATE_REASON, DecisionSource.DUPLICATE)
        else:
            verdict = self._judge(subject)
        return self._apply(subject, verdict)

    def _judge(self, subject: ReviewSubject) -> Verdict:
        if self.classifier is None:
            log.debug("Classifier not configured; default-accepting %s", subject.fragment_id)
            return self._fallback_verdict("classifier not configured")
        try:
            result = self.classifier.complete_json(
                build_review_prompt(subject),
                max_tokens=REVIEW_MAX_TOKENS,
                temperature=REVIEW_TEMPERATURE,
                schema=ReviewVerdict,
                system=REVIEW_SYSTEM,
            )
        except ClassifierError as exc:
            log.warning(
                "Classifier failed for fragment %s, default-accepting: %s",
                subject.fragment_id,
                exc,
            )
            return self._fallback_verdict("classifier unavailable")
        return Verdict(result.accept, result.confidence, result.reason, DecisionSource.CLASSIFIER)

    def _fallback_verdict(self, why: str) -> Verdict:
        return Verdict(
            True,
            self.config.fallback_confidence,
            f"Accepted without review ({why})",
            DecisionSource.FALLBACK,
        )

    # Batch review ------------------------------------------------------------

    def review_batch(self, fragment_ids: Sequence[UUID]) -> list[ReviewDecision]:
        """Review a backlog with one classifier request.

        Verdicts are matched by their 1-based index. Out-of-range indices are logged
        and ignored; a fragment without a verdict is default-accepted so that no
        fragment is ever left behind.
        """

        if not fragment_ids:
            return []

        loaded = [self._load_subject(fragment_id) for fragment_id in fragment_ids]
        verdicts: dict[int, Verdict] = {
            index: Verdict(False, 1.0, DUPLICATE_REASON, DecisionSource.DUPLICATE)
            for index, (_, is_duplicate) in enumerate(loaded, start=1)
            if is_duplicate
        }
        to_classify = [
            (index, subject)
            for index, (subject, is_duplicate) in enumerate(loaded, start=1)
            if not is_duplicate
        ]

        if to_classify:
            verdicts.update(self._judge_batch(to_classify))

        decisions: list[ReviewDecision] = []
        for index, (subject, _) in enumerate(loaded, start=1):
            verdict = verdicts.get(index)
            if verdict is None:
                log.warning(
                    "No verdict returned for fragment %s (index %d); default-accepting",
                    subject.fragment_id,
                    index,
                )
                verdict = self._fallback_verdict("missing from batch verdicts")
            decisions.append(self._apply(subject, verdict))
        return decisions

    def _judge_batch(self, items: Sequence[tuple[int, ReviewSubject]]) -> dict[int, Verdict]:
        if self.classifier is None:
            fallback = self._fallback_verdict("classifier not configured")
            return {index: fallback for index, _ in items}

        subjects = [subject for _, subject in items]
        try:
            result = self.classifier.complete_json(
                build_batch_review_prompt(subjects),
                max_tokens=REVIEW_MAX_TOKENS + BATCH_TOKENS_PER_ITEM * len(subjects),
                temperature=REVIEW_TEMPERATURE,
                schema=BatchReviewResult,
                system=REVIEW_SYSTEM,
            )
        except ClassifierError as exc:
            log.warning("Batch classifier call failed for %d fragments: %s", len(subjects), exc)
            return {index: self._fallback_verdict("classifier unavailable") for index, _ in items}

        verdicts: dict[int, Verdict] = {}
        for item in result.verdicts:
            # the prompt numbers only the classified subset, 1..len(subjects)
            if not 1 <= item.index <= len(items):
                log.warning(
                    "Ignoring batch verdict with out-of-range index %d (batch size %d)",
                    item.index,
                    len(items),
                )
                continue
            original_index = items[item.index - 1][0]
            verdicts[original_index] = Verdict(
                item.accept, item.confidence, item.reason, DecisionSource.CLASSIFIER
            )
        return verdicts

    # Persistence -------------------------------------------------------------

    def _load_subject(self, fragment_id: UUID) -> tuple[ReviewSubject, bool]:
        with self.uow_factory() as uow:
            repos: SoulRepositories = uow.repositories
            fragment = repos.fragments.get(fragment_id)
            if fragment is None:
                raise NotFoundError(f"Fragment {fragment_id} not found")
            if not fragment.is_pending:
                log.error(
                    "Refusing to review fragment %s: status already %s",
                    fragment_id,
                    fragment.status.value,
                )
                raise InvariantViolation(
                    f"Fragment {fragment_id} already {fragment.status.value}"
                )
            soul = repos.souls.get(fragment.soul_id)
            if soul is None:
                raise NotFoundError(f"Soul {fragment.soul_id} not found")

            duplicate = repos.fragments.find_accepted_duplicate(
                soul.id, fragment.content_hash, exclude_id=fragment.id
            )
            context = repos.fragments.recent_accepted(
                soul.id,
                fragment.category,
                limit=self.config.context_limit,
                exclude_id=fragment.id,
            )
            subject = ReviewSubject(
                fragment_id=fragment.id,
                soul_id=soul.id,
                submitter_id=fragment.submitter_id,
                handle=soul.handle,
                category=fragment.category,
                content=fragment.content,
                profile_summary=soul.seed_summary,
                context=tuple(item.content for item in context),
            )
        return subject, duplicate is not None

    def _apply(self, subject: ReviewSubject, verdict: Verdict) -> ReviewDecision:
        enqueued = False
        with self.uow_factory() as uow:
            repos = uow.repositories
            soul = repos.souls.get_for_update(subject.soul_id)
            fragment = repos.fragments.get(subject.fragment_id)
            if soul is None or fragment is None:
                raise NotFoundError(f"Fragment {subject.fragment_id} vanished during review")

            # an identical fragment may have been accepted since the subject was loaded
            if verdict.accept and repos.fragments.find_accepted_duplicate(
                soul.id, fragment.content_hash, exclude_id=fragment.id
            ) is not None:
                log.info("Fragment %s duplicates a fragment accepted meanwhile", fragment.id)
                verdict = Verdict(False, 1.0, DUPLICATE_REASON, DecisionSource.DUPLICATE)

            try:
                if verdict.accept:
                    fragment.accept(verdict.confidence)
                else:
                    fragment.reject(verdict.confidence, verdict.reason)
            except InvariantViolation:
                log.error("Concurrent review detected for fragment %s", fragment.id)
                raise

            if verdict.accept:
                repos.submitters.increment_accepted(fragment.submitter_id)
                soul.accepted_fragments = repos.fragments.count_accepted(soul.id)
                soul.contributor_count = repos.fragments.count_contributors(soul.id)
                refresh_stage(soul)
                soul.touch()
                if self.ledger_enabled:
                    repos.ledger_events.add(feedback_event(fragment))
                    enqueued = True
            confidence = fragment.confidence if fragment.confidence is not None else 0.0
            uow.commit()

        log.info(
            "Fragment %s for @%s %s (confidence=%.2f, via %s)",
            subject.fragment_id,
            subject.handle,
            "accepted" if verdict.accept else "rejected",
            confidence,
            verdict.source.value,
        )
        if enqueued and self._on_ledger_event is not None:
            self._on_ledger_event()

        condensation: Condensation | None = None
        if verdict.accept:
            try:
                condensation = self.condenser.condense_if_due(subject.soul_id)
            except DomainError as exc:
                log.error("Condensation after accepting %s failed: %s", subject.fragment_id, exc)

        return ReviewDecision(
            fragment_id=subject.fragment_id,
            soul_id=subject.soul_id,
            accepted=verdict.accept,
            confidence=confidence,
            reason=None if verdict.accept else verdict.reason,
            source=verdict.source,
            condensation=condensation,
        )
