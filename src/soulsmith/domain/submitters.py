"""Submitter registration, verification and API-key authentication."""

from __future__ import annotations

import hashlib
import secrets
from logging import getLogger
from typing import TYPE_CHECKING

from soulsmith.domain.errors import ForbiddenError, NotFoundError
from soulsmith.domain.handles import normalize_submitter_name
from soulsmith.domain.model import Submitter, SubmitterStatus

if TYPE_CHECKING:
    from uuid import UUID

    from soulsmith.domain.ports.unit_of_work import UnitOfWorkFactory

log = getLogger(__name__)

API_KEY_PREFIX = "soul_"


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


class SubmitterService:
    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self.uow_factory = uow_factory

    def register_submitter(
        self, name: str, *, wallet_address: str | None = None
    ) -> tuple[Submitter, str]:
        """Create an unverified submitter.

        Returns the submitter and its plaintext API key. Only the hash is stored, so
        the key cannot be recovered afterwards.
        """

        normalized = normalize_submitter_name(name)
        api_key = generate_api_key()
        with self.uow_factory() as uow:
            submitters = uow.repositories.submitters
            if submitters.get_by_name(normalized) is not None:
                raise ForbiddenError(f"Submitter name {normalized!r} is taken")
            submitter = Submitter(
                name=normalized,
                api_key_hash=hash_api_key(api_key),
                wallet_address=(wallet_address or "").strip() or None,
            )
            submitters.add(submitter)
            uow.commit()
        log.info("Registered submitter %s (%s)", normalized, submitter.id)
        return submitter, api_key

    def verify_submitter(self, submitter_id: UUID) -> Submitter:
        with self.uow_factory() as uow:
            submitter = uow.repositories.submitters.get(submitter_id)
            if submitter is None:
                raise NotFoundError(f"Submitter {submitter_id} not found")
            if not submitter.is_verified:
                submitter.status = SubmitterStatus.VERIFIED
                uow.commit()
                log.info("Verified submitter %s", submitter.name)
        return submitter

    def authenticate(self, api_key: str) -> Submitter:
        if not api_key:
            raise ForbiddenError("Missing API key")
        with self.uow_factory() as uow:
            submitter = uow.repositories.submitters.get_by_api_key_hash(hash_api_key(api_key))
        if submitter is None:
            raise ForbiddenError("Invalid API key")
        return submitter

    def get_submitter(self, submitter_id: UUID) -> Submitter:
        with self.uow_factory() as uow:
            submitter = uow.repositories.submitters.get(submitter_id)
        if submitter is None:
            raise NotFoundError(f"Submitter {submitter_id} not found")
        return submitter
