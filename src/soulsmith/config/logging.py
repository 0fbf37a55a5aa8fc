"""Root logger setup for the CLI and the background workers."""

from __future__ import annotations

import logging

# Per-request chatter from the HTTP and migration stacks drowns out pipeline decisions.
QUIET_LOGGERS = ("httpx", "httpcore", "hishel", "alembic.runtime.migration")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Configure the root logger once.

    The thread name is part of every line because reviews, ledger dispatch and
    backfill run on separate worker threads. ``force=True`` reconfigures an
    already configured root logger.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(threadName)s %(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    quiet_level = max(level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
