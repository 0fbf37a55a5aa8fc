"""Batch merge of accepted fragments into a new profile version."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.config.pipeline import PipelineConfig
from soulsmith.domain.errors import InvariantViolation, NotFoundError, ValidationError
from soulsmith.domain.ledger_sync.events import profile_update_event
from soulsmith.domain.lifecycle import refresh_stage
from soulsmith.domain.model import Category, CategoryScore, Condensation
from soulsmith.domain.ports.classifier import ClassifierError

from .guardrails import apply_guardrails
from .prompts import (
    CONDENSATION_SYSTEM,
    CondensationPlan,
    FragmentView,
    build_condensation_prompt,
)
from .rubric import depth_tier, render_rubric
from .schema import CondensationResult

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from uuid import UUID

    from soulsmith.domain.locking import SoulLocks
    from soulsmith.domain.ports.classifier import Classifier
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)

CONDENSATION_MAX_TOKENS = 4000
CONDENSATION_TEMPERATURE = 0.4


class MergeSource(StrEnum):
    CLASSIFIER = "classifier"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    profile_document: str
    scores: Mapping[Category, CategoryScore]
    summary_diff: str
    source: MergeSource


def fallback_merge(plan: CondensationPlan) -> MergeOutcome:
    """Append the new fragments verbatim, grouped by category, in first-seen order."""

    next_version = plan.version + 1
    grouped: dict[Category, list[str]] = {}
    for fragment in plan.fragments:
        grouped.setdefault(fragment.category, []).append(fragment.content)

    parts: list[str] = []
    if plan.profile_document.strip():
        parts.extend([plan.profile_document.rstrip(), ""])
    parts.extend([f"--- Updated Knowledge (v{next_version}) ---", ""])
    for category, contents in grouped.items():
        parts.append(f"[{category.value}]")
        parts.extend(f"- {content}" for content in contents)
        parts.append("")

    summary = (
        f"Merged {len(plan.fragments)} fragments across {len(grouped)} categories. "
        f"Profile upgraded from v{plan.version} to v{next_version}."
    )
    return MergeOutcome(
        profile_document="\n".join(parts).rstrip() + "\n",
        scores=dict(plan.scores),
        summary_diff=summary,
        source=MergeSource.FALLBACK,
    )


class CondensationEngine:
    """Merges unmerged accepted fragments into the next profile version.

    Condensations for one soul are serialised by ``locks``. The commit re-checks the
    version under a row lock and links fragments only where the link is still null,
    so a concurrent writer in another process aborts with ``InvariantViolation``
    instead of double-merging.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        classifier: Classifier | None,
        locks: SoulLocks,
        *,
        config: PipelineConfig | None = None,
        ledger_enabled: bool = False,
        on_ledger_event: Callable[[], None] | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.classifier = classifier
        self.locks = locks
        self.config = config or PipelineConfig()
        self.ledger_enabled = ledger_enabled
        self._on_ledger_event = on_ledger_event

    def condense(self, soul_id: UUID) -> Condensation:
        with self.locks.hold(soul_id):
            return self._condense_locked(soul_id)

    def condense_if_due(self, soul_id: UUID) -> Condensation | None:
        """Condense once ``condensation_threshold`` unmerged accepted fragments exist.

        A fragment counts as unmerged while its condensation link is null.
        """

        with self.locks.hold(soul_id):
            with self.uow_factory() as uow:
                pending = uow.repositories.fragments.count_unmerged(soul_id)
            if pending < self.config.condensation_threshold:
                log.debug(
                    "Soul %s has %d/%d unmerged fragments",
                    soul_id,
                    pending,
                    self.config.condensation_threshold,
                )
                return None
            log.info("Threshold reached for soul %s (%d unmerged fragments)", soul_id, pending)
            return self._condense_locked(soul_id)

    def _condense_locked(self, soul_id: UUID) -> Condensation:
        plan = self._snapshot(soul_id)
        outcome = self._merge(plan)
        condensation = self._commit(plan, outcome)
        log.info(
            "Condensed @%s: v%d -> v%d, merged %d fragments (%s)",
            plan.handle,
            condensation.version_from,
            condensation.version_to,
            condensation.fragments_merged,
            outcome.source.value,
        )
        if self.ledger_enabled and self._on_ledger_event is not None:
            self._on_ledger_event()
        return condensation

    def _snapshot(self, soul_id: UUID) -> CondensationPlan:
        with self.uow_factory() as uow:
            repos = uow.repositories
            soul = repos.souls.get(soul_id)
            if soul is None:
                raise NotFoundError(f"Soul {soul_id} not found")
            fragments = repos.fragments.unmerged_accepted(soul_id)
            if not fragments:
                raise ValidationError(f"Soul @{soul.handle} has no unmerged accepted fragments")
            return CondensationPlan(
                soul_id=soul.id,
                handle=soul.handle,
                stage=soul.stage,
                version=soul.profile_version,
                seed_summary=soul.seed_summary,
                profile_document=soul.profile_document,
                scores=dict(soul.category_scores),
                follower_count=soul.follower_count,
                fragments=tuple(
                    FragmentView(
                        id=fragment.id,
                        category=fragment.category,
                        content=fragment.content,
                        confidence=fragment.confidence or 0.0,
                    )
                    for fragment in fragments
                ),
            )

    def _merge(self, plan: CondensationPlan) -> MergeOutcome:
        if self.classifier is None:
            log.debug("Classifier not configured; using fallback merge for @%s", plan.handle)
            return fallback_merge(plan)

        tier = depth_tier(plan.follower_count)
        prompt = build_condensation_prompt(
            plan, rubric=render_rubric(tier), max_delta=self.config.max_score_delta
        )
        try:
            result = self.classifier.complete_json(
                prompt,
                max_tokens=CONDENSATION_MAX_TOKENS,
                temperature=CONDENSATION_TEMPERATURE,
                schema=CondensationResult,
                system=CONDENSATION_SYSTEM,
            )
        except ClassifierError as exc:
            log.warning(
                "Classifier failed while condensing @%s, using fallback: %s", plan.handle, exc
            )
            return fallback_merge(plan)

        scores = apply_guardrails(
            plan.scores,
            result.categories,
            plan.new_counts,
            max_delta=self.config.max_score_delta,
        )
        summary = result.summary_diff or (
            f"Merged {len(plan.fragments)} fragments. "
            f"Profile upgraded from v{plan.version} to v{plan.version + 1}."
        )
        return MergeOutcome(
            profile_document=result.profile_document,
            scores=scores,
            summary_diff=summary,
            source=MergeSource.CLASSIFIER,
        )

    def _commit(self, plan: CondensationPlan, outcome: MergeOutcome) -> Condensation:
        fragment_ids = [fragment.id for fragment in plan.fragments]
        with self.uow_factory() as uow:
            repos = uow.repositories
            soul = repos.souls.get_for_update(plan.soul_id)
            if soul is None:
                raise NotFoundError(f"Soul {plan.soul_id} not found")
            if soul.profile_version != plan.version:
                log.error(
                    "Version moved for @%s during condensation (expected v%d, found v%d)",
                    plan.handle,
                    plan.version,
                    soul.profile_version,
                )
                raise InvariantViolation(
                    f"Profile version of @{plan.handle} changed from v{plan.version} "
                    f"to v{soul.profile_version} during condensation"
                )

            condensation = Condensation(
                soul_id=soul.id,
                version_from=plan.version,
                version_to=plan.version + 1,
                fragments_merged=len(fragment_ids),
                profile_document=outcome.profile_document,
                summary_diff=outcome.summary_diff,
            )
            repos.condensations.add(condensation)

            linked = repos.fragments.link_to_condensation(fragment_ids, condensation.id)
            if linked != len(fragment_ids):
                log.error(
                    "Double merge prevented for @%s: linked %d of %d fragments",
                    plan.handle,
                    linked,
                    len(fragment_ids),
                )
                raise InvariantViolation(
                    f"Only {linked} of {len(fragment_ids)} fragments were still unmerged"
                )

            soul.profile_document = outcome.profile_document
            soul.profile_version = condensation.version_to
            soul.category_scores = dict(outcome.scores)
            refresh_stage(soul)
            soul.touch()
            if self.ledger_enabled:
                repos.ledger_events.add(profile_update_event(soul, condensation))
            uow.commit()
        return condensation
