"""Fragment intake and read access."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.config.pipeline import PipelineConfig
from soulsmith.domain.errors import ForbiddenError, NotFoundError, ValidationError
from soulsmith.domain.handles import clean_content, normalize_handle, parse_category
from soulsmith.domain.model import Category, Fragment, FragmentStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from soulsmith.domain.curation.engine import CurationEngine
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory
    from soulsmith.domain.tasks import TaskRunner

log = getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class FragmentPage:
    items: Sequence[Fragment]
    total: int
    page: int
    limit: int


class SubmissionService:
    """Accepts fragments from verified submitters and schedules their review.

    Submission returns as soon as the pending fragment is stored; review runs on the
    task runner so a slow classifier never holds up the caller.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        reviewer: CurationEngine,
        runner: TaskRunner,
        *,
        config: PipelineConfig | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.reviewer = reviewer
        self.runner = runner
        self.config = config or PipelineConfig()

    def submit_fragment(
        self,
        handle: str,
        category: str | Category,
        content: str,
        submitter_id: UUID,
    ) -> Fragment:
        normalized = normalize_handle(handle)
        parsed_category = parse_category(category)
        text = clean_content(content)
        if not self.config.min_content_length <= len(text) <= self.config.max_content_length:
            raise ValidationError(
                f"Content must be {self.config.min_content_length}-"
                f"{self.config.max_content_length} characters (got {len(text)})"
            )

        with self.uow_factory() as uow:
            repos = uow.repositories
            submitter = repos.submitters.get(submitter_id)
            if submitter is None:
                raise NotFoundError(f"Submitter {submitter_id} not found")
            if not submitter.is_verified:
                raise ForbiddenError(f"Submitter {submitter.name} is not verified")
            soul = repos.souls.get_by_handle(normalized)
            if soul is None:
                raise NotFoundError(f"Soul @{normalized} not found")
            if not soul.is_confirmed:
                raise ForbiddenError(f"@{normalized} is awaiting registration confirmation")

            fragment = Fragment(
                soul_id=soul.id,
                submitter_id=submitter.id,
                category=parsed_category,
                content=text,
            )
            repos.fragments.add(fragment)
            repos.submitters.increment_submitted(submitter.id)
            repos.souls.increment_total_fragments(soul.id)
            uow.commit()

        log.info(
            "Fragment %s submitted for @%s [%s] by %s",
            fragment.id,
            normalized,
            parsed_category.value,
            submitter_id,
        )
        fragment_id = fragment.id
        self.runner.submit(f"review:{fragment_id}", lambda: self.reviewer.review(fragment_id))
        return fragment

    def get_fragment(self, fragment_id: UUID) -> Fragment:
        with self.uow_factory() as uow:
            fragment = uow.repositories.fragments.get(fragment_id)
        if fragment is None:
            raise NotFoundError(f"Fragment {fragment_id} not found")
        return fragment

    def list_fragments(
        self,
        handle: str,
        *,
        status: FragmentStatus | str | None = None,
        category: Category | str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> FragmentPage:
        normalized = normalize_handle(handle)
        page = max(1, page)
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        status_filter = _parse_status(status)
        category_filter = parse_category(category) if category is not None else None
        with self.uow_factory() as uow:
            soul = uow.repositories.souls.get_by_handle(normalized)
            if soul is None:
                raise NotFoundError(f"Soul @{normalized} not found")
            items, total = uow.repositories.fragments.list_for_soul(
                soul.id,
                status=status_filter,
                category=category_filter,
                offset=(page - 1) * limit,
                limit=limit,
            )
        return FragmentPage(items=list(items), total=total, page=page, limit=limit)

    def pending_fragment_ids(self, handle: str, *, limit: int = MAX_PAGE_SIZE) -> list[UUID]:
        page = self.list_fragments(handle, status=FragmentStatus.PENDING, limit=limit)
        return [fragment.id for fragment in page.items]


def _parse_status(value: FragmentStatus | str | None) -> FragmentStatus | None:
    if value is None or isinstance(value, FragmentStatus):
        return value
    try:
        return FragmentStatus(value.strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown fragment status {value!r}") from None
