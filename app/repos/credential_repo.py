"""File-backed credential store.

The whole collection lives in memory and is rewritten to disk on every
insert (write-through).  The on-disk format is a JSON array:

  [{"id": "cred-101", "worker_id": "worker-1", "issued_at": "2026-...Z"}]

Writes go to a sibling temp file which is then renamed over the target,
so readers never see a half-written collection.
"""

from __future__ import annotations

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from app.models.credential import CredentialRecord

logger = logging.getLogger(__name__)


class CredentialStorageError(Exception):
    """Persisted collection could not be read or written."""


class CredentialAlreadyExistsError(Exception):
    pass


class CredentialRepo(Protocol):
    def load(self) -> None: ...
    def exists(self, credential_id: str) -> bool: ...
    def get(self, credential_id: str) -> CredentialRecord | None: ...
    def put(self, record: CredentialRecord) -> None: ...
    def __len__(self) -> int: ...


class _StoredCredential(BaseModel):
    id: str = Field(min_length=1)
    worker_id: str
    issued_at: datetime


_FILE_ADAPTER = TypeAdapter(list[_StoredCredential])


class JsonFileCredentialRepo:
    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._by_id: dict[str, CredentialRecord] = {}
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Replace in-memory state with the persisted collection.

        A missing (or blank) file means an empty store.  Anything else that
        doesn't parse as a list of records raises CredentialStorageError.
        """
        if not self._path.exists():
            logger.info("No credential file at %s, starting empty", self._path)
            self._by_id = {}
            return

        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise CredentialStorageError(
                f"cannot read credential file {self._path}: {e}"
            ) from e

        if not raw.strip():
            self._by_id = {}
            return

        try:
            rows = _FILE_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise CredentialStorageError(
                f"malformed credential file {self._path}: "
                f"{e.error_count()} validation error(s)"
            ) from e

        by_id: dict[str, CredentialRecord] = {}
        for row in rows:
            if row.id in by_id:
                raise CredentialStorageError(
                    f"malformed credential file {self._path}: duplicate id {row.id!r}"
                )
            by_id[row.id] = CredentialRecord(
                id=row.id, worker_id=row.worker_id, issued_at=row.issued_at
            )

        self._by_id = by_id
        logger.info("Loaded %d credential(s) from %s", len(by_id), self._path)

    def exists(self, credential_id: str) -> bool:
        return credential_id in self._by_id

    def get(self, credential_id: str) -> CredentialRecord | None:
        return self._by_id.get(credential_id)

    def put(self, record: CredentialRecord) -> None:
        with self._lock:
            if record.id in self._by_id:
                raise CredentialAlreadyExistsError(record.id)

            self._by_id[record.id] = record
            try:
                self._persist()
            except Exception as e:
                # Memory must never claim a record the disk doesn't have.
                del self._by_id[record.id]
                if isinstance(e, OSError):
                    raise CredentialStorageError(
                        f"cannot write credential file {self._path}: {e}"
                    ) from e
                raise

    def __len__(self) -> int:
        return len(self._by_id)

    def _persist(self) -> None:
        rows = [
            _StoredCredential(id=r.id, worker_id=r.worker_id, issued_at=r.issued_at)
            for r in self._by_id.values()
        ]
        payload = _FILE_ADAPTER.dump_json(rows, indent=2)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
