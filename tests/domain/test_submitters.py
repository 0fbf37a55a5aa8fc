from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from soulsmith.domain.errors import ForbiddenError, NotFoundError
from soulsmith.domain.model import SubmitterStatus
from soulsmith.domain.submitters import API_KEY_PREFIX, SubmitterService, hash_api_key

if TYPE_CHECKING:
    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory


def test_register_submitter_returns_key_and_stores_hash(uow_factory: UnitOfWorkFactory) -> None:
    service = SubmitterService(uow_factory)

    submitter, api_key = service.register_submitter("Curator", wallet_address=" 0xabc ")

    assert api_key.startswith(API_KEY_PREFIX)
    assert submitter.api_key_hash == hash_api_key(api_key)
    assert submitter.api_key_hash != api_key
    assert submitter.status is SubmitterStatus.PENDING_VERIFICATION
    assert submitter.wallet_address == "0xabc"


def test_register_submitter_rejects_duplicate_name(uow_factory: UnitOfWorkFactory) -> None:
    service = SubmitterService(uow_factory)
    service.register_submitter("Curator")

    with pytest.raises(ForbiddenError):
        service.register_submitter("curator")


def test_verify_submitter_is_idempotent(uow_factory: UnitOfWorkFactory) -> None:
    service = SubmitterService(uow_factory)
    submitter, _ = service.register_submitter("Curator")

    service.verify_submitter(submitter.id)
    verified = service.verify_submitter(submitter.id)

    assert verified.is_verified
    with pytest.raises(NotFoundError):
        service.verify_submitter(uuid4())


def test_authenticate_by_api_key(uow_factory: UnitOfWorkFactory) -> None:
    service = SubmitterService(uow_factory)
    submitter, api_key = service.register_submitter("Curator")

    assert service.authenticate(api_key).id == submitter.id
    with pytest.raises(ForbiddenError):
        service.authenticate(api_key + "x")
    with pytest.raises(ForbiddenError):
        service.authenticate("")
