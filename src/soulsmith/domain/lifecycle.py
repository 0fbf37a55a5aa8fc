"""Maturity stage of a soul.

The stage is a pure function of the accepted-fragment count and the number of
condensations. Once three condensations exist the soul is ``refining`` regardless
of how many fragments were accepted.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from soulsmith.domain.errors import InvariantViolation
from soulsmith.domain.model import Stage

if TYPE_CHECKING:
    from soulsmith.domain.model import Soul

log = getLogger(__name__)

REFINING_CONDENSATIONS: Final[int] = 3
MATURE_ACCEPTED: Final[int] = 50
DEVELOPING_ACCEPTED: Final[int] = 1


def compute_stage(accepted_count: int, condensation_count: int) -> Stage:
    if condensation_count >= REFINING_CONDENSATIONS:
        return Stage.REFINING
    if accepted_count >= MATURE_ACCEPTED:
        return Stage.MATURE
    if accepted_count >= DEVELOPING_ACCEPTED:
        return Stage.DEVELOPING
    return Stage.SEED


def refresh_stage(soul: Soul) -> Stage:
    """Re-derive ``soul.stage``; pending registrations are left alone."""

    if soul.stage is Stage.PENDING:
        return soul.stage
    stage = compute_stage(soul.accepted_fragments, soul.condensation_count)
    if stage is not soul.stage:
        log.info("Soul %s moved from %s to %s", soul.handle, soul.stage.value, stage.value)
        soul.stage = stage
    return stage


def activate(soul: Soul) -> Stage:
    """Leave the pending state once the registration is confirmed."""

    if soul.stage is not Stage.PENDING:
        raise InvariantViolation(f"Soul {soul.handle} is already {soul.stage.value}")
    soul.stage = compute_stage(soul.accepted_fragments, soul.condensation_count)
    return soul.stage
