"""Credential issuance and verification.

Per credential id the only state change is Unissued → Issued, on the first
successful issue() call.  verify() is a pure read.
"""

from __future__ import annotations

import datetime
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from app.core.metrics import CREDENTIAL_OPERATIONS, CREDENTIALS_STORED
from app.models.credential import CredentialRecord
from app.repos.credential_repo import CredentialRepo, CredentialStorageError

logger = logging.getLogger(__name__)

MSG_ISSUED = "Credential issued"
MSG_ALREADY_ISSUED = "Credential already issued"


class CredentialValidationError(ValueError):
    pass


class CredentialServiceError(Exception):
    pass


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True, slots=True)
class IssueResult:
    record: CredentialRecord
    created: bool

    @property
    def message(self) -> str:
        return MSG_ISSUED if self.created else MSG_ALREADY_ISSUED


@dataclass(frozen=True, slots=True)
class VerifyResult:
    valid: bool
    worker_id: str | None = None
    issued_at: datetime.datetime | None = None


def _normalize_id(raw_id: object) -> str:
    if not isinstance(raw_id, str) or not raw_id.strip():
        raise CredentialValidationError("missing or empty identifier")
    return raw_id.strip()


class CredentialService:
    def __init__(
        self,
        repo: CredentialRepo,
        worker_id: str,
        clock: Callable[[], datetime.datetime] = utc_now,
    ) -> None:
        self._repo = repo
        self._worker_id = worker_id
        self._clock = clock
        # Serializes check-then-put so two callers can't both see "absent".
        self._issue_lock = threading.Lock()

    @property
    def worker_id(self) -> str:
        return self._worker_id

    def issue(self, raw_id: object) -> IssueResult:
        try:
            credential_id = _normalize_id(raw_id)
        except CredentialValidationError:
            logger.warning("Rejected issuance with missing or empty id")
            CREDENTIAL_OPERATIONS.labels(operation="issue", result="rejected").inc()
            raise

        with self._issue_lock:
            existing = self._repo.get(credential_id)
            if existing is not None:
                logger.info(
                    "Credential already issued id=%s by=%s",
                    credential_id,
                    existing.worker_id,
                    extra={"credential_id": credential_id},
                )
                CREDENTIAL_OPERATIONS.labels(
                    operation="issue", result="already_issued"
                ).inc()
                return IssueResult(record=existing, created=False)

            record = CredentialRecord(
                id=credential_id,
                worker_id=self._worker_id,
                issued_at=self._clock(),
            )
            try:
                self._repo.put(record)
            except CredentialStorageError as e:
                logger.exception(
                    "Failed to persist credential id=%s",
                    credential_id,
                    extra={"credential_id": credential_id},
                )
                CREDENTIAL_OPERATIONS.labels(operation="issue", result="error").inc()
                raise CredentialServiceError("failed to persist credential") from e

            CREDENTIALS_STORED.set(len(self._repo))

        CREDENTIAL_OPERATIONS.labels(operation="issue", result="issued").inc()
        logger.info(
            "Issued credential id=%s worker=%s",
            credential_id,
            self._worker_id,
            extra={"credential_id": credential_id},
        )
        return IssueResult(record=record, created=True)

    def verify(self, raw_id: object) -> VerifyResult:
        try:
            credential_id = _normalize_id(raw_id)
        except CredentialValidationError:
            logger.warning("Rejected verification with missing or empty id")
            CREDENTIAL_OPERATIONS.labels(operation="verify", result="rejected").inc()
            raise

        record = self._repo.get(credential_id)
        if record is None:
            logger.debug("Verify miss id=%s", credential_id)
            CREDENTIAL_OPERATIONS.labels(operation="verify", result="invalid").inc()
            return VerifyResult(valid=False)

        CREDENTIAL_OPERATIONS.labels(operation="verify", result="valid").inc()
        return VerifyResult(
            valid=True, worker_id=record.worker_id, issued_at=record.issued_at
        )
