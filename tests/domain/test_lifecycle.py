from __future__ import annotations

import pytest

from soulsmith.domain.errors import InvariantViolation
from soulsmith.domain.lifecycle import activate, compute_stage, refresh_stage
from soulsmith.domain.model import Soul, Stage


def _soul(**overrides: object) -> Soul:
    values: dict[str, object] = {"handle": "ada", "display_name": "Ada", "owner_address": "0x1"}
    values.update(overrides)
    return Soul(**values)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("accepted", "condensations", "expected"),
    [
        (0, 0, Stage.SEED),
        (1, 0, Stage.DEVELOPING),
        (49, 2, Stage.DEVELOPING),
        (50, 0, Stage.MATURE),
        (0, 3, Stage.REFINING),
        (500, 3, Stage.REFINING),
    ],
)
def test_compute_stage(accepted: int, condensations: int, expected: Stage) -> None:
    assert compute_stage(accepted, condensations) is expected


def test_refresh_stage_leaves_pending_alone() -> None:
    soul = _soul(accepted_fragments=80)

    assert refresh_stage(soul) is Stage.PENDING
    assert soul.stage is Stage.PENDING


def test_refresh_stage_uses_profile_version_as_condensation_count() -> None:
    soul = _soul(stage=Stage.MATURE, accepted_fragments=60, profile_version=4)

    assert soul.condensation_count == 3
    assert refresh_stage(soul) is Stage.REFINING


def test_activate_moves_pending_to_derived_stage() -> None:
    soul = _soul()

    assert activate(soul) is Stage.SEED
    assert soul.is_confirmed


def test_activate_twice_is_rejected() -> None:
    soul = _soul()
    activate(soul)

    with pytest.raises(InvariantViolation):
        activate(soul)
