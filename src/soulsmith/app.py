"""Application wiring: builds the services and background workers from config."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.adapters.classifier import build_http_classifier
from soulsmith.adapters.ledger import build_http_ledger_gateway, load_ledger_config
from soulsmith.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, startup
from soulsmith.config import get_classifier_config, get_pipeline_config
from soulsmith.domain.condensation import CondensationEngine
from soulsmith.domain.curation import CurationEngine
from soulsmith.domain.ledger_sync import BackfillJob, LedgerSync
from soulsmith.domain.locking import SoulLocks
from soulsmith.domain.souls import PendingSoulCleanup, SoulService
from soulsmith.domain.submission import SubmissionService
from soulsmith.domain.submitters import SubmitterService
from soulsmith.domain.tasks import PeriodicTask, ThreadPoolTaskRunner

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from soulsmith.config import LedgerConfig, PipelineConfig
    from soulsmith.domain.ports.classifier import Classifier
    from soulsmith.domain.ports.ledger import LedgerGateway
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory
    from soulsmith.domain.tasks import TaskRunner

log = getLogger(__name__)


class Application:
    """Every service of the pipeline, sharing one session factory and one lock table."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        classifier: Classifier | None,
        ledger: LedgerGateway | None,
        ledger_config: LedgerConfig | None,
        config: PipelineConfig,
        runner: TaskRunner,
    ) -> None:
        self.uow_factory = uow_factory
        self.config = config
        self.runner = runner
        self.locks = SoulLocks()

        self.ledger_sync = LedgerSync(uow_factory, ledger, ledger_config)
        ledger_enabled = self.ledger_sync.enabled
        self.condenser = CondensationEngine(
            uow_factory,
            classifier,
            self.locks,
            config=config,
            ledger_enabled=ledger_enabled,
            on_ledger_event=self._notify_ledger,
        )
        self.curator = CurationEngine(
            uow_factory,
            classifier,
            self.condenser,
            config=config,
            ledger_enabled=ledger_enabled,
            on_ledger_event=self._notify_ledger,
        )
        self.souls = SoulService(uow_factory, config=config)
        self.submitters = SubmitterService(uow_factory)
        self.submissions = SubmissionService(uow_factory, self.curator, runner, config=config)
        self.backfill = BackfillJob(uow_factory, ledger)
        self.cleanup = PendingSoulCleanup(uow_factory, config=config)

        self.workers: list[PeriodicTask] = [
            PeriodicTask(
                "ledger-dispatch", self.ledger_sync.dispatch_pending, config.dispatch_interval
            ),
            PeriodicTask("ledger-backfill", self.backfill.run_once, config.backfill_interval),
            PeriodicTask("pending-cleanup", self.cleanup.run_once, config.cleanup_interval),
        ]
        log.info(
            "Application ready (classifier=%s, ledger=%s)",
            "on" if classifier is not None else "off",
            "on" if ledger_enabled else "off",
        )

    @property
    def dispatcher_worker(self) -> PeriodicTask:
        return self.workers[0]

    def _notify_ledger(self) -> None:
        self.dispatcher_worker.wake()

    def start_workers(self) -> None:
        for worker in self.workers:
            if worker.name.startswith("ledger-") and not self.ledger_sync.enabled:
                continue
            worker.start()

    def stop_workers(self) -> None:
        for worker in self.workers:
            worker.stop()
        self.runner.shutdown(wait=True)


def build_application(
    *,
    session_factory: sessionmaker[Session] | None = None,
    classifier: Classifier | None = None,
    ledger: LedgerGateway | None = None,
    ledger_config: LedgerConfig | None = None,
    config: PipelineConfig | None = None,
    runner: TaskRunner | None = None,
    use_environment: bool = True,
) -> Application:
    """Assemble the application.

    Adapters not passed explicitly are built from the environment unless
    ``use_environment`` is false, in which case they stay disabled.
    """

    factory = session_factory or startup()
    resolved_config = config or get_pipeline_config()
    if use_environment:
        if classifier is None:
            classifier = build_http_classifier(get_classifier_config())
        if ledger is None:
            ledger_config = ledger_config or load_ledger_config()
            ledger = build_http_ledger_gateway(ledger_config)
    return Application(
        partial(SqlAlchemyUnitOfWork, factory),
        classifier=classifier,
        ledger=ledger,
        ledger_config=ledger_config,
        config=resolved_config,
        runner=runner or ThreadPoolTaskRunner(resolved_config.review_workers),
    )

